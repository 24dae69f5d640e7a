"""Tests for the codec registry"""

from pytest import raises

from jsongen.runtime import Codec, CodecError, CodecRegistry, JsonParseError, JsonToken


class Celsius:
    def __init__(self, degrees):
        self.degrees = degrees


class CelsiusCodec(Codec):
    value_type = Celsius

    def serialize(self, encoder, value):
        encoder.write_number(value.degrees)

    def deserialize(self, decoder):
        if decoder.current_token() is not JsonToken.VALUE_NUMBER_INT:
            raise JsonParseError.unexpected_token(decoder, JsonToken.VALUE_NUMBER_INT)
        return Celsius(decoder.get_int_value())


class Chicken:
    pass


class Egg:
    pass


class ChickenCodec(Codec):
    value_type = Chicken

    def __init__(self, codecs):
        self._egg_codec = codecs.get(Egg)


class EggCodec(Codec):
    value_type = Egg

    def __init__(self, codecs):
        self._chicken_codec = codecs.get(Chicken)


class LazyEggCodec(Codec):
    value_type = Egg

    def __init__(self, codecs):
        self._chicken_codec = codecs.provider(Chicken)


def describe_codec_registry():
    def constructs_singletons(expect):
        codecs = CodecRegistry([CelsiusCodec])
        expect(codecs.get(Celsius) is codecs.get(Celsius)) == True

    def registers_modules(expect):
        codecs = CodecRegistry()
        codecs.register_module({"CODECS": [CelsiusCodec]})
        expect(codecs.dumps(Celsius(21))) == "21"

    def prefers_registered_instances(expect):
        codecs = CodecRegistry([CelsiusCodec])
        codec = CelsiusCodec()
        codecs.register(Celsius, codec)
        expect(codecs.get(Celsius) is codec) == True

    def rejects_codecs_without_value_type(expect):
        with raises(CodecError):
            CodecRegistry([Codec])

    def reports_missing_codecs(expect):
        with raises(CodecError) as e:
            CodecRegistry().get(Celsius)
        expect(str(e.value)) == "No codec registered for Celsius"

    def reports_circular_construction(expect):
        codecs = CodecRegistry([ChickenCodec, EggCodec])
        with raises(CodecError) as e:
            codecs.get(Chicken)
        expect(str(e.value)) == "Circular codec construction for Chicken"

    def resolves_providers_lazily(expect):
        codecs = CodecRegistry([ChickenCodec, LazyEggCodec])
        chicken = codecs.get(Chicken)
        egg = codecs.get(Egg)
        expect(chicken._egg_codec is egg) == True
        expect(egg._chicken_codec() is chicken) == True


def describe_loads():
    def decodes_values(expect):
        codecs = CodecRegistry([CelsiusCodec])
        expect(codecs.loads("-4", Celsius).degrees) == -4

    def wraps_malformed_input(expect):
        codecs = CodecRegistry([CelsiusCodec])
        with raises(JsonParseError) as e:
            codecs.loads("[", Celsius)
        expect(str(e.value).startswith("Malformed JSON")) == True

    def reports_unexpected_tokens(expect):
        codecs = CodecRegistry([CelsiusCodec])
        with raises(JsonParseError) as e:
            codecs.loads('"warm"', Celsius)
        expect(e.value.original_message) == (
            "Unexpected token VALUE_STRING, expected VALUE_NUMBER_INT"
        )
        expect(str(e.value.location)) == "token 0 ($)"
