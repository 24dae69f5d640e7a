"""Codec base class and decode errors for generated code."""

from typing import Any, ClassVar, Generic, TypeVar

from .tokens import JsonToken, Location, TokenReader, TokenWriter

T = TypeVar("T")


class JsonParseError(RuntimeError):
    """Raised by generated codecs when the token stream does not match the type."""

    def __init__(self, message: str, location: Location | None = None):
        super().__init__(message)
        self.original_message = message
        self.location = location

    @classmethod
    def from_decoder(cls, decoder: TokenReader, message: str) -> "JsonParseError":
        return cls(message, decoder.location())

    @classmethod
    def unexpected_token(cls, decoder: TokenReader, *expected: JsonToken) -> "JsonParseError":
        wanted = " or ".join(str(token) for token in expected)
        return cls.from_decoder(
            decoder, f"Unexpected token {decoder.current_token()}, expected {wanted}"
        )

    def __str__(self) -> str:
        if self.location is None:
            return self.original_message
        return f"{self.original_message}\n at {self.location}"


class Codec(Generic[T]):
    """Base class for generated and hand-written codecs.

    Generated subclasses set ``value_type`` and implement both methods.

    Example:
        class PointCodec(Codec[Point]):
            value_type = Point

            def serialize(self, encoder, value):
                encoder.write_start_array()
                encoder.write_number(value.x)
                encoder.write_number(value.y)
                encoder.write_end_array()

            def deserialize(self, decoder):
                ...
    """

    value_type: ClassVar[Any] = None

    def __init__(self, codecs: Any = None) -> None:
        """``codecs`` is the registry generated codecs request dependencies from."""

    def serialize(self, encoder: TokenWriter, value: T) -> None:
        """Write ``value`` to ``encoder``."""
        raise NotImplementedError("serialize() must be implemented by the codec")

    def deserialize(self, decoder: TokenReader) -> T:
        """Read a value from ``decoder``.

        The decoder must be positioned at the first token of the value. On
        return it is positioned at the last token of the value.
        """
        raise NotImplementedError("deserialize() must be implemented by the codec")
