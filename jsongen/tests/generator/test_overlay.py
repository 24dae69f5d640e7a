"""Tests for additional annotation sources"""

import os
import tempfile

from pytest import raises

from jsongen.generator.overlay import AnnotationOverlay, OverlayError

OVERLAY = """
# third party types
type shop.models.Image {
    @JsonIgnoreProperties(ignore_unknown=true, names=["legacy", "old"])
    @SerializableBean(inline=false)

    uri: @JsonProperty("url") @JsonAlias("link", "href");
    __init__: @JsonCreator(mode="PROPERTIES");
    __init__.uri: @JsonProperty(value="url", required=true);
    tags: @JsonUnwrapped() @Nullable;
}

type shop.models.Tag {
    size: @JsonProperty(required=false) @JsonAlias();
    weight: @JsonProperty("w") @JsonIgnore(false);
    score: @JsonAlias("points") @JsonProperty(required=null);
}
"""


def describe_parse():
    def reads_types(expect):
        overlay = AnnotationOverlay.parse(OVERLAY)
        expect(overlay.type_names) == ["shop.models.Image", "shop.models.Tag"]

    def reads_class_annotations(expect):
        overlay = AnnotationOverlay.parse(OVERLAY)
        ignore, bean = overlay.class_annotations("shop.models.Image")
        expect(ignore.name) == "JsonIgnoreProperties"
        expect(ignore.get("ignore_unknown")) == True
        expect(ignore.get("names")) == ("legacy", "old")
        expect(bean.get("inline")) == False

    def reads_member_annotations(expect):
        overlay = AnnotationOverlay.parse(OVERLAY)
        prop, alias = overlay.member_annotations("shop.models.Image", "uri")
        expect(prop.value()) == "url"
        expect(alias.values()) == ["link", "href"]

        creator = overlay.member_annotations("shop.models.Image", "__init__")[0]
        expect(creator.get("mode")) == "PROPERTIES"

        param = overlay.member_annotations("shop.models.Image", "__init__.uri")[0]
        expect(param.value()) == "url"
        expect(param.get("required")) == True

        names = [a.name for a in overlay.member_annotations("shop.models.Image", "tags")]
        expect(names) == ["JsonUnwrapped", "Nullable"]

    def reads_literals(expect):
        overlay = AnnotationOverlay.parse(OVERLAY)
        prop, alias = overlay.member_annotations("shop.models.Tag", "size")
        expect(prop.get("required")) == False
        expect(alias.values()) == []
        _, ignore = overlay.member_annotations("shop.models.Tag", "weight")
        expect(ignore.value()) == False
        _, prop = overlay.member_annotations("shop.models.Tag", "score")
        expect(prop.get("required", "unset")) == None

    def returns_nothing_for_unknown_members(expect):
        overlay = AnnotationOverlay.parse(OVERLAY)
        expect(overlay.class_annotations("shop.models.Other")) == []
        expect(overlay.member_annotations("shop.models.Image", "other")) == []
        expect(overlay.member_annotations("shop.models.Other", "uri")) == []

    def accepts_empty_input(expect):
        expect(AnnotationOverlay.parse("# nothing\n").type_names) == []


def describe_errors():
    def rejects_unknown_annotations(expect):
        with raises(OverlayError) as e:
            AnnotationOverlay.parse("type a.B { x: @JsonSomething; }")
        expect(str(e.value)) == "Unknown annotation @JsonSomething"

    def rejects_duplicate_types(expect):
        with raises(OverlayError) as e:
            AnnotationOverlay.parse("type a.B { } type a.B { }")
        expect(str(e.value)) == "Type a.B is declared more than once"

    def rejects_syntax_errors(expect):
        with raises(OverlayError) as e:
            AnnotationOverlay.parse("type a.B { x @JsonIgnore; }")
        expect(str(e.value).startswith("Invalid overlay definition")) == True


def describe_merge():
    def combines_types(expect):
        first = AnnotationOverlay.parse("type a.B { x: @JsonIgnore; }")
        second = AnnotationOverlay.parse("type a.C { y: @JsonIgnore; }")
        expect(first.merge(second).type_names) == ["a.B", "a.C"]

    def rejects_types_declared_twice(expect):
        first = AnnotationOverlay.parse("type a.B { x: @JsonIgnore; }")
        with raises(OverlayError):
            first.merge(first)


def describe_load():
    def reads_files(expect):
        with tempfile.NamedTemporaryFile("w", suffix=".jsongen", delete=False) as f:
            f.write(OVERLAY)
            path = f.name
        try:
            expect(AnnotationOverlay.load(path).type_names) == [
                "shop.models.Image",
                "shop.models.Tag",
            ]
        finally:
            os.unlink(path)
