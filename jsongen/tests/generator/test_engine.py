"""Tests for generation requests and the rendered module"""

import ast

from jsongen.generator import AnnotationOverlay, GeneratorOptions, Severity, generate, reflect

from ..conftest import exec_codecs
from .beans import Account, Color, Event, Holder, Image, Raw, Sealed, Tag


def fail_messages(output):
    return [p.message for p in output.problems if p.severity == Severity.FAIL]


def describe_generate():
    def renders_a_module(expect):
        output = generate([reflect.describe(Image)])
        expect(output.failed) == False
        ast.parse(output.source)
        expect(output.source.startswith('"""Generated by jsongen')) == True
        expect("from jsongen.runtime import Codec, JsonParseError, JsonToken" in output.source) == True
        expect("import jsongen.tests.generator.beans as _beans" in output.source) == True
        expect("CODECS = [\n    TagCodec,\n    ImageCodec,\n]" in output.source) == True

    def injects_dependencies(expect):
        output = generate([reflect.describe(Image)])
        image = output.result("jsongen.tests.generator.beans.Image")
        expect(image.dependencies) == ["jsongen.tests.generator.beans.Tag"]
        expect("self._tag_codec = codecs.get(_beans.Tag)" in image.source) == True

    def uses_the_runtime_import_option(expect):
        options = GeneratorOptions(runtime_import="myapp.runtime", codec_suffix="Json")
        output = generate([reflect.describe(Tag)], options)
        expect("from myapp.runtime import Codec" in output.source) == True
        expect("class TagJson(Codec):" in output.source) == True

    def rejects_non_bean_roots(expect):
        output = generate([reflect.describe(Color), reflect.describe(int), reflect.describe(bytes)])
        expect(fail_messages(output)) == [
            "jsongen.tests.generator.beans.Color is not a bean type",
            "int is not a bean type",
            "No codec for type bytes",
        ]

    def reports_unsupported_properties(expect):
        output = generate([reflect.describe(Raw)])
        expect(fail_messages(output)) == [
            "Raw collection type list is not supported, declare its element type",
            "Raw collection type list is not supported, declare its element type",
        ]
        expect(output.problems[0].element) == "jsongen.tests.generator.beans.Raw.items"

    def fails_dependents_of_failed_codecs(expect):
        output = generate([reflect.describe(Holder)])
        messages = fail_messages(output)
        expect(messages[0]) == "Missing default constructor or @JsonCreator"
        expect(messages[-1]) == (
            "Depends on failed codec of jsongen.tests.generator.beans.NoConstructor"
        )
        expect("class HolderCodec" in output.source) == False

    def rejects_unbound_private_fields(expect):
        output = generate([reflect.describe(Sealed)])
        expect(fail_messages(output)) == [
            "Creator parameter '_token' is not bound to a property"
        ]
        expect("class SealedCodec" in output.source) == False

    def treats_external_types_as_injected(expect):
        options = GeneratorOptions(external_types=["jsongen.tests.generator.beans.Money"])
        output = generate([reflect.describe(Account), reflect.describe(Event)], options)
        expect(output.failed) == False
        expect([r.class_name for r in output.results]) == ["AccountCodec", "EventCodec"]
        expect("codecs.get(_beans.Money)" in output.source) == True
        expect("codecs.get(_beans.Timestamp)" in output.source) == True

    def merges_overlays(expect):
        overlay = AnnotationOverlay.parse(
            """
            # rename on the wire only
            type jsongen.tests.generator.beans.Tag {
                value: @JsonProperty("name");
            }
            """
        )
        output = generate([reflect.describe(Tag)], overlay=overlay)
        codecs = exec_codecs(output.source)
        expect(codecs.dumps(Tag("a"))) == '{"name":"a"}'
        expect(codecs.loads('{"name":"b"}', Tag)) == Tag("b")
