"""Tests for strategy resolution"""

from pytest import raises

from jsongen.generator import GeneratingRegistry, ProblemReporter, StrategyRegistry, reflect
from jsongen.generator.bean_codec import BeanStrategy
from jsongen.generator.strategies import (
    ArrayStrategy,
    EnumStrategy,
    ExternalCodecStrategy,
    InjectedStrategy,
    ListStrategy,
    NoCodecError,
    OptionalStrategy,
    ScalarStrategy,
    StringStrategy,
    UnsupportedTypeError,
)
from jsongen.generator.types import TypeDescriptor, TypeKind, primitive

from .beans import Color, Image, Node, Size, Tag, Timestamp


def describe_strategy_registry():
    def resolves_in_order(expect):
        registry = StrategyRegistry.default()
        expect(type(registry.resolve(reflect.describe(int)))) == ScalarStrategy
        expect(type(registry.resolve(reflect.describe(str)))) == StringStrategy
        expect(type(registry.resolve(reflect.describe(tuple[int, ...])))) == ArrayStrategy
        expect(type(registry.resolve(reflect.describe(list[str])))) == ListStrategy
        expect(type(registry.resolve(reflect.describe(Color)))) == EnumStrategy
        expect(type(registry.resolve(reflect.describe(Timestamp)))) == ExternalCodecStrategy
        expect(type(registry.resolve(reflect.describe(Image)))) == BeanStrategy

    def resolves_optional_arguments(expect):
        registry = StrategyRegistry.default()
        optional = reflect.describe(list[int | None]).type_arguments[0]
        expect(type(registry.resolve(optional))) == OptionalStrategy

    def accepts_external_type_names(expect):
        registry = StrategyRegistry.default(["jsongen.tests.generator.beans.Tag"])
        expect(type(registry.resolve(reflect.describe(Tag)))) == ExternalCodecStrategy

    def fails_without_codec(expect):
        registry = StrategyRegistry.default()
        with raises(NoCodecError) as e:
            registry.resolve(reflect.describe(bytes))
        expect(str(e.value)) == "No codec for type bytes"
        with raises(NoCodecError):
            registry.resolve(TypeDescriptor(name="T", kind=TypeKind.TYPE_VAR))
        with raises(NoCodecError):
            registry.resolve(primitive("None"))

    def prepends_strategies(expect):
        registry = StrategyRegistry.default()
        injected = InjectedStrategy(reflect.describe(Image))
        registry.prepend(injected)
        expect(registry.strategies[0]) == injected
        expect(registry.resolve(reflect.describe(Image))) == injected
        expect(type(registry.resolve(reflect.describe(Tag)))) == BeanStrategy

    def applies_recursive_serialization(expect):
        registry = StrategyRegistry.default()
        strategy = registry.resolve_for_property(reflect.describe(list[Node]), recursive=True)
        expect(strategy.recursive) == True
        bean = registry.resolve_for_property(reflect.describe(Node), recursive=True)
        expect(type(bean)) == InjectedStrategy
        expect(bean.lazy) == True


def describe_list_strategy():
    def rejects_raw_collections(expect):
        with raises(UnsupportedTypeError):
            ListStrategy().element_type(reflect.describe(list))


def describe_generating_registry():
    def generates_each_bean_once(expect):
        registry = GeneratingRegistry(ProblemReporter())
        first = registry.resolve(reflect.describe(Image))
        second = registry.resolve(reflect.describe(Image))
        expect(first is second) == True
        expect(type(first)) == InjectedStrategy
        expect([r.class_name for r in registry.results]) == ["TagCodec", "ImageCodec"]

    def expands_inline_beans(expect):
        registry = GeneratingRegistry(ProblemReporter())
        expect(type(registry.resolve(reflect.describe(Size)))) == BeanStrategy
        expect(registry.results) == []

    def allocates_unique_class_names(expect):
        registry = GeneratingRegistry(ProblemReporter(), codec_suffix="")
        registry.generate(reflect.describe(Tag))
        expect(registry.results[0].class_name) == "Tag"
        expect(registry.class_names.new_name("Tag")) == "Tag_1"
