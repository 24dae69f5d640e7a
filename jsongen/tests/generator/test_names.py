"""Tests for generated identifier naming"""

from pytest import raises

from jsongen.generator.names import NameAllocationError, NameAllocator, sanitize


def describe_sanitize():
    def keeps_legal_names(expect):
        expect(sanitize("tags")) == "tags"
        expect(sanitize("camelCase")) == "camelCase"

    def replaces_invalid_characters(expect):
        expect(sanitize("content-type")) == "content_type"
        expect(sanitize("a b.c")) == "a_b_c"

    def strips_leading_underscores(expect):
        expect(sanitize("__private")) == "private"
        expect(sanitize("_")) == "v"
        expect(sanitize("")) == "v"

    def prefixes_leading_digits(expect):
        expect(sanitize("3d")) == "v3d"

    def escapes_keywords_and_builtins(expect):
        expect(sanitize("class")) == "class_"
        expect(sanitize("match")) == "match_"
        expect(sanitize("id")) == "id_"
        expect(sanitize("list")) == "list_"

    def escapes_reserved_names(expect):
        expect(sanitize("value")) == "value_"
        expect(sanitize("decoder")) == "decoder_"
        expect(sanitize("JsonToken")) == "JsonToken_"


def describe_name_allocator():
    def numbers_collisions(expect):
        names = NameAllocator()
        expect(names.new_name("tags")) == "tags"
        expect(names.new_name("tags")) == "tags_1"
        expect(names.new_name("tags")) == "tags_2"
        expect(names.new_name("tags-")) == "tags_"

    def avoids_used_names(expect):
        names = NameAllocator({"result"})
        expect(names.new_name("result")) == "result_1"
        expect("result" in names) == True
        expect("other" in names) == False

    def claims_names(expect):
        names = NameAllocator()
        expect(names.claim("encoder")) == "encoder"
        expect(names.new_name("encoder")) == "encoder_"
        with raises(NameAllocationError):
            names.claim("encoder")
        with raises(NameAllocationError):
            names.claim("not legal")
        with raises(NameAllocationError):
            names.claim("for")

    def clones_independently(expect):
        names = NameAllocator()
        names.new_name("a")
        copy = names.clone()
        copy.new_name("b")
        expect("b" in names) == False
        expect(copy.new_name("a")) == "a_1"
