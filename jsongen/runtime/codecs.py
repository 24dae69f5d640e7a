"""Runtime wiring of generated and external codecs."""

from collections.abc import Callable, Iterable
from types import ModuleType
from typing import Any, TypeVar

from .serialization import Codec, JsonParseError
from .tokens import TokenReader, TokenStreamError, TokenWriter

T = TypeVar("T")


class CodecError(RuntimeError):
    """Raised when a codec cannot be found or constructed."""


class CodecRegistry:
    """Creates codec singletons on demand and hands them to each other.

    Generated codec classes take the registry as their only constructor
    argument and request their dependencies from it, either eagerly with
    ``get()`` or lazily with ``provider()``.

    Example:
        import generated_codecs

        codecs = CodecRegistry()
        codecs.register_module(generated_codecs)
        text = codecs.dumps(image)
        image = codecs.loads(text, Image)
    """

    def __init__(self, codec_types: Iterable[type[Codec]] = ()):
        self._codec_types: dict[Any, type[Codec]] = {}
        self._instances: dict[Any, Codec] = {}
        self._constructing: set[Any] = set()
        for codec_type in codec_types:
            self.register_type(codec_type)

    def register_type(self, codec_type: type[Codec]) -> None:
        """Register a codec class, constructed on first use."""
        if codec_type.value_type is None:
            raise CodecError(f"{codec_type.__name__} does not declare a value_type")
        self._codec_types[codec_type.value_type] = codec_type

    def register(self, value_type: Any, codec: Codec) -> None:
        """Register an already constructed codec, e.g. a hand-written one."""
        self._instances[value_type] = codec

    def register_module(self, module: ModuleType | dict[str, Any]) -> None:
        """Register every codec listed in a generated module's ``CODECS``."""
        namespace = module if isinstance(module, dict) else vars(module)
        for codec_type in namespace.get("CODECS", ()):
            self.register_type(codec_type)

    def get(self, value_type: Any) -> Codec:
        codec = self._instances.get(value_type)
        if codec is not None:
            return codec
        codec_type = self._codec_types.get(value_type)
        if codec_type is None:
            raise CodecError(f"No codec registered for {_type_name(value_type)}")
        if value_type in self._constructing:
            raise CodecError(f"Circular codec construction for {_type_name(value_type)}")
        self._constructing.add(value_type)
        try:
            codec = codec_type(self)
        finally:
            self._constructing.discard(value_type)
        self._instances[value_type] = codec
        return codec

    def provider(self, value_type: Any) -> Callable[[], Codec]:
        """Return a callable resolving the codec on first call."""
        resolved: list[Codec] = []

        def provide() -> Codec:
            if not resolved:
                resolved.append(self.get(value_type))
            return resolved[0]

        return provide

    def dumps(self, value: Any, value_type: Any = None) -> str:
        """Encode ``value`` to JSON text."""
        codec = self.get(value_type if value_type is not None else type(value))
        writer = TokenWriter()
        codec.serialize(writer, value)
        return writer.getvalue()

    def loads(self, text: str, value_type: type[T]) -> T:
        """Decode JSON text into an instance of ``value_type``."""
        codec = self.get(value_type)
        try:
            reader = TokenReader.from_text(text)
        except TokenStreamError as e:
            raise JsonParseError(str(e)) from e
        if reader.next_token() is None:
            raise JsonParseError.from_decoder(reader, "Empty input")
        try:
            value = codec.deserialize(reader)
        except TokenStreamError as e:
            raise JsonParseError(str(e), reader.location()) from e
        if reader.next_token() is not None:
            raise JsonParseError.from_decoder(reader, "Trailing content after value")
        return value


def _type_name(value_type: Any) -> str:
    return getattr(value_type, "__qualname__", repr(value_type))
