"""Tests for generated codecs, executed against the runtime"""

from pytest import raises

from jsongen.runtime import Codec, JsonParseError, JsonToken

from . import beans
from .beans import (
    Account,
    Box,
    Chain,
    Color,
    Diamond,
    Document,
    Event,
    Frozen,
    Image,
    Lenient,
    Link,
    Margin,
    Money,
    Node,
    Paint,
    Pin,
    Point,
    Poster,
    Profile,
    Secret,
    Settings,
    Size,
    Tag,
    Timestamp,
    Unnamed,
    Versioned,
)


class TimestampCodec(Codec):
    value_type = Timestamp

    def serialize(self, encoder, value):
        encoder.write_number(value.seconds)

    def deserialize(self, decoder):
        if decoder.current_token() is not JsonToken.VALUE_NUMBER_INT:
            raise JsonParseError.unexpected_token(decoder, JsonToken.VALUE_NUMBER_INT)
        return Timestamp(decoder.get_int_value())


def describe_serialization():
    def writes_image_example(expect, codecs_for):
        codecs = codecs_for(Image)
        image = Image(id=123, uri="https://x", tags=[Tag("popcorn"), Tag("gif")])
        expect(codecs.dumps(image)) == (
            '{"id":123,"uri":"https://x","tags":[{"value":"popcorn"},{"value":"gif"}]}'
        )

    def writes_null_for_none(expect, codecs_for):
        codecs = codecs_for(Profile)
        text = codecs.dumps(Profile("ann", scores=[1, None]))
        expect(text) == (
            '{"name":"ann","nickname":null,"scores":[1,null],"ratio":1.0,"active":true}'
        )

    def writes_enum_names(expect, codecs_for):
        codecs = codecs_for(Paint)
        expect(codecs.dumps(Paint(Color.GREEN, (1, 2)))) == '{"color":"GREEN","coats":[1,2]}'

    def flattens_unwrapped_members(expect, codecs_for):
        codecs = codecs_for(Pin)
        expect(codecs.dumps(Pin("home", Point(1, 2)))) == '{"label":"home","x":1,"y":2}'

    def uses_explicit_names(expect, codecs_for):
        codecs = codecs_for(Link, Document)
        expect(codecs.dumps(Link("https://x"))) == '{"href":"https://x","title":""}'
        expect(codecs.dumps(Document("t", "b"))) == '{"title":"t","text":"b"}'

    def uses_getters(expect, codecs_for):
        codecs = codecs_for(Settings, Money)
        settings = Settings()
        settings.set_volume(7)
        expect(codecs.dumps(settings)) == '{"volume":7,"muted":false}'
        expect(codecs.dumps(Money(5, "EUR"))) == '{"amount":5,"currency":"EUR"}'

    def skips_ignored_members(expect, codecs_for):
        codecs = codecs_for(Versioned)
        expect(codecs.dumps(Versioned("v", revision=3))) == '{"name":"v"}'


def describe_deserialization():
    def reads_image_example(expect, codecs_for):
        codecs = codecs_for(Image)
        text = '{"id":123,"uri":"https://x","tags":[{"value":"popcorn"},{"value":"gif"}]}'
        expect(codecs.loads(text, Image)) == Image(
            id=123, uri="https://x", tags=[Tag("popcorn"), Tag("gif")]
        )

    def accepts_any_member_order(expect, codecs_for):
        codecs = codecs_for(Image)
        text = '{"tags":[],"uri":"u","id":1}'
        expect(codecs.loads(text, Image)) == Image(1, "u", [])

    def keeps_defaults_of_absent_members(expect, codecs_for):
        codecs = codecs_for(Image, Profile)
        expect(codecs.loads('{"id":1,"uri":"u"}', Image)) == Image(1, "u")
        expect(codecs.loads('{"name":"a"}', Profile)) == Profile("a")

    def reads_nulls(expect, codecs_for):
        codecs = codecs_for(Profile)
        text = '{"name":"a","nickname":null,"scores":[null,2],"ratio":2,"active":false}'
        expect(codecs.loads(text, Profile)) == Profile("a", None, [None, 2], 2.0, False)

    def reads_enums_and_arrays(expect, codecs_for):
        codecs = codecs_for(Paint)
        expect(codecs.loads('{"color":"RED","coats":[3]}', Paint)) == Paint(Color.RED, (3,))

    def rejects_unknown_enum_constants(expect, codecs_for):
        codecs = codecs_for(Paint)
        with raises(JsonParseError) as e:
            codecs.loads('{"color":"BLUE"}', Paint)
        expect("Unknown Color constant 'BLUE'" in str(e.value)) == True

    def rejects_wrong_token(expect, codecs_for):
        codecs = codecs_for(Image)
        with raises(JsonParseError) as e:
            codecs.loads('{"id":"1","uri":"u"}', Image)
        expect("Unexpected token VALUE_STRING, expected VALUE_NUMBER_INT" in str(e.value)) == True
        with raises(JsonParseError):
            codecs.loads("[]", Image)

    def rejects_duplicates(expect, codecs_for):
        codecs = codecs_for(Image)
        with raises(JsonParseError) as e:
            codecs.loads('{"id":1,"uri":"u","id":2}', Image)
        expect("Duplicate property id" in str(e.value)) == True

    def rejects_missing_required(expect, codecs_for):
        codecs = codecs_for(Image)
        with raises(JsonParseError) as e:
            codecs.loads('{"uri":"u"}', Image)
        expect("Missing property id" in str(e.value)) == True

    def rejects_unknown_members(expect, codecs_for):
        codecs = codecs_for(Image)
        with raises(JsonParseError) as e:
            codecs.loads('{"id":1,"uri":"u","extra":{"a":[1]}}', Image)
        expect("Unknown property 'extra'" in str(e.value)) == True

    def skips_unknown_members_when_tolerated(expect, codecs_for):
        codecs = codecs_for(Lenient)
        text = '{"extra":{"a":[1,{"b":2}]},"name":"n","more":[]}'
        expect(codecs.loads(text, Lenient)) == Lenient("n")

    def skips_ignored_names(expect, codecs_for):
        codecs = codecs_for(Versioned)
        text = '{"name":"n","legacy":[1,2],"revision":{"x":1}}'
        expect(codecs.loads(text, Versioned)) == Versioned("n")
        with raises(JsonParseError):
            codecs.loads('{"name":"n","other":1}', Versioned)

    def accepts_aliases(expect, codecs_for):
        codecs = codecs_for(Link)
        expected = Link("https://x")
        expect(codecs.loads('{"href":"https://x"}', Link)) == expected
        expect(codecs.loads('{"link":"https://x"}', Link)) == expected
        expect(codecs.loads('{"uri":"https://x"}', Link)) == expected

    def rejects_alias_duplicates(expect, codecs_for):
        codecs = codecs_for(Link)
        with raises(JsonParseError) as e:
            codecs.loads('{"href":"a","link":"b"}', Link)
        expect("Duplicate property href" in str(e.value)) == True

    def reads_unwrapped_members(expect, codecs_for):
        codecs = codecs_for(Pin)
        expect(codecs.loads('{"y":2,"label":"home","x":1}', Pin)) == Pin("home", Point(1, 2))
        with raises(JsonParseError) as e:
            codecs.loads('{"label":"home","x":1}', Pin)
        expect("Missing property y" in str(e.value)) == True

    def uses_static_factories(expect, codecs_for):
        codecs = codecs_for(Account)
        text = '{"owner":"o","balance":{"currency":"EUR","amount":3}}'
        expect(codecs.loads(text, Account)) == Account("o", Money(3, "EUR"))

    def uses_setters(expect, codecs_for):
        codecs = codecs_for(Settings)
        settings = codecs.loads('{"muted":true,"volume":4}', Settings)
        expect(settings.get_volume()) == 4
        expect(settings.is_muted()) == True

    def leaves_absent_setter_properties_alone(expect, codecs_for):
        codecs = codecs_for(Settings)
        settings = codecs.loads("{}", Settings)
        expect(settings.get_volume()) == 0

    def creates_frozen_instances(expect, codecs_for):
        codecs = codecs_for(Frozen)
        expect(codecs.loads('{"key":"k"}', Frozen)) == Frozen("k")
        expect(codecs.loads('{"count":2,"key":"k"}', Frozen)) == Frozen("k", 2)

    def ignores_disabled_creators(expect, codecs_for):
        codecs = codecs_for(Unnamed)
        expect(codecs.loads('{"value":3}', Unnamed)) == Unnamed(3)

    def rejects_trailing_content(expect, codecs_for):
        codecs = codecs_for(Tag)
        with raises(JsonParseError):
            codecs.loads('{"value":"a"} {"value":"b"}', Tag)

    def reads_absent_nullable_unwrapped_members_as_none(expect, codecs_for):
        codecs = codecs_for(Box)
        text = codecs.dumps(Box("a"))
        expect(text) == '{"label":"a"}'
        expect(codecs.loads(text, Box)) == Box("a")

    def reads_present_nullable_unwrapped_members(expect, codecs_for):
        codecs = codecs_for(Box)
        box = Box("a", Margin(1, 2))
        text = codecs.dumps(box)
        expect(text) == '{"label":"a","top":1,"bottom":2}'
        expect(codecs.loads(text, Box)) == box
        expect(codecs.loads('{"top":3,"label":"b"}', Box)) == Box("b", Margin(3))

    def requires_members_of_partially_present_unwrapped_beans(expect, codecs_for):
        codecs = codecs_for(Box)
        with raises(JsonParseError) as e:
            codecs.loads('{"label":"a","bottom":2}', Box)
        expect(e.value.original_message) == "Missing property top"

    def leaves_out_private_fields(expect, codecs_for):
        codecs = codecs_for(Secret)
        text = codecs.dumps(Secret("a", "token"))
        expect(text) == '{"name":"a"}'
        expect(codecs.loads(text, Secret)) == Secret("a")


def describe_nested_codecs():
    def round_trips_recursive_types(expect, codecs_for):
        codecs = codecs_for(Node)
        tree = Node("root", [Node("a"), Node("b", [Node("c")])])
        text = codecs.dumps(tree)
        expect(text) == (
            '{"name":"root","children":[{"name":"a","children":[]},'
            '{"name":"b","children":[{"name":"c","children":[]}]}]}'
        )
        expect(codecs.loads(text, Node)) == tree

    def inlines_inline_beans(expect, codecs_for):
        codecs = codecs_for(Poster)
        poster = Poster("p", Size(3, 4))
        text = codecs.dumps(poster)
        expect(text) == '{"title":"p","size":{"width":3,"height":4}}'
        expect(codecs.loads(text, Poster)) == poster

    def uses_registered_external_codecs(expect, codecs_for):
        codecs = codecs_for(Event)
        codecs.register(Timestamp, TimestampCodec())
        event = Event("launch", Timestamp(10))
        text = codecs.dumps(event)
        expect(text) == '{"name":"launch","at":10}'
        expect(codecs.loads(text, Event)) == event

    def round_trips_deep_chains(expect, codecs_for):
        codecs = codecs_for(Diamond)
        chain = Point(1, 2)
        for level in range(24):
            chain = getattr(beans, f"Chain{level}")(chain)
        expect(type(chain)) == Chain

        diamond = Diamond(chain, chain)
        text = codecs.dumps(diamond)
        nested = '{"inner":' * 24 + '{"x":1,"y":2}' + "}" * 24
        expect(text) == f'{{"left":{nested},"right":{nested}}}'
        expect(codecs.loads(text, Diamond)) == diamond
