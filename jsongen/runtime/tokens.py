"""JSON token stream used by generated codecs."""

import json
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum, auto
from io import StringIO
from typing import Any, TextIO


class JsonToken(Enum):
    """Events of the token stream."""

    START_OBJECT = auto()
    END_OBJECT = auto()
    START_ARRAY = auto()
    END_ARRAY = auto()
    FIELD_NAME = auto()
    VALUE_STRING = auto()
    VALUE_NUMBER_INT = auto()
    VALUE_NUMBER_FLOAT = auto()
    VALUE_TRUE = auto()
    VALUE_FALSE = auto()
    VALUE_NULL = auto()

    def __str__(self) -> str:
        return self.name


_SCALAR_TOKENS = frozenset(
    [
        JsonToken.VALUE_STRING,
        JsonToken.VALUE_NUMBER_INT,
        JsonToken.VALUE_NUMBER_FLOAT,
        JsonToken.VALUE_TRUE,
        JsonToken.VALUE_FALSE,
        JsonToken.VALUE_NULL,
    ]
)


@dataclass(frozen=True)
class Location:
    """Position of a token in the stream."""

    index: int
    path: str

    def __str__(self) -> str:
        return f"token {self.index} ({self.path})"


class TokenStreamError(ValueError):
    """Raised when a token stream is malformed."""


class _JsonObject(list):
    """Key/value pairs of a decoded object, duplicates preserved."""


class TokenReader:
    """Cursor over a sequence of tokens.

    The reader starts before the first token; ``next_token()`` advances.
    """

    def __init__(self, tokens: Iterable[tuple[JsonToken, Any]]):
        self._tokens: list[tuple[JsonToken, Any]] = list(tokens)
        self._paths = _token_paths(self._tokens)
        self._index = -1

    @classmethod
    def from_text(cls, text: str) -> "TokenReader":
        """Tokenize JSON text."""
        try:
            tree = json.loads(text, object_pairs_hook=_JsonObject)
        except json.JSONDecodeError as e:
            raise TokenStreamError(f"Malformed JSON: {e}") from e
        return cls(_flatten(tree))

    def current_token(self) -> JsonToken | None:
        if 0 <= self._index < len(self._tokens):
            return self._tokens[self._index][0]
        return None

    def next_token(self) -> JsonToken | None:
        if self._index < len(self._tokens):
            self._index += 1
        return self.current_token()

    def current_name(self) -> str:
        token, value = self._current()
        if token is not JsonToken.FIELD_NAME:
            raise TokenStreamError(f"Current token {token} is not a field name")
        return value

    def get_text(self) -> str:
        token, value = self._current()
        if token is JsonToken.VALUE_STRING or token is JsonToken.FIELD_NAME:
            return value
        if token in _SCALAR_TOKENS:
            return json.dumps(value)
        return str(token)

    def get_int_value(self) -> int:
        token, value = self._current()
        if token is JsonToken.VALUE_NUMBER_INT:
            return value
        if token is JsonToken.VALUE_NUMBER_FLOAT and float(value).is_integer():
            return int(value)
        raise TokenStreamError(f"Current token {token} ({value!r}) is not an integer")

    def get_float_value(self) -> float:
        token, value = self._current()
        if token is JsonToken.VALUE_NUMBER_INT or token is JsonToken.VALUE_NUMBER_FLOAT:
            return float(value)
        raise TokenStreamError(f"Current token {token} is not a number")

    def get_boolean_value(self) -> bool:
        token, _ = self._current()
        if token is JsonToken.VALUE_TRUE:
            return True
        if token is JsonToken.VALUE_FALSE:
            return False
        raise TokenStreamError(f"Current token {token} is not a boolean")

    def skip_children(self) -> None:
        """Move to the matching end token if positioned on a start token."""
        token = self.current_token()
        if token is not JsonToken.START_OBJECT and token is not JsonToken.START_ARRAY:
            return
        depth = 1
        while depth:
            token = self.next_token()
            if token is None:
                raise TokenStreamError("Unexpected end of token stream")
            if token is JsonToken.START_OBJECT or token is JsonToken.START_ARRAY:
                depth += 1
            elif token is JsonToken.END_OBJECT or token is JsonToken.END_ARRAY:
                depth -= 1

    def location(self) -> Location:
        if 0 <= self._index < len(self._paths):
            return Location(self._index, self._paths[self._index])
        return Location(self._index, "<end>" if self._index >= 0 else "<start>")

    def _current(self) -> tuple[JsonToken, Any]:
        if not 0 <= self._index < len(self._tokens):
            raise TokenStreamError("No current token")
        return self._tokens[self._index]


def _flatten(node: Any) -> Iterator[tuple[JsonToken, Any]]:
    if isinstance(node, _JsonObject):
        yield JsonToken.START_OBJECT, None
        for key, value in node:
            yield JsonToken.FIELD_NAME, key
            yield from _flatten(value)
        yield JsonToken.END_OBJECT, None
    elif isinstance(node, list):
        yield JsonToken.START_ARRAY, None
        for item in node:
            yield from _flatten(item)
        yield JsonToken.END_ARRAY, None
    elif node is None:
        yield JsonToken.VALUE_NULL, None
    elif node is True:
        yield JsonToken.VALUE_TRUE, True
    elif node is False:
        yield JsonToken.VALUE_FALSE, False
    elif isinstance(node, int):
        yield JsonToken.VALUE_NUMBER_INT, node
    elif isinstance(node, float):
        yield JsonToken.VALUE_NUMBER_FLOAT, node
    elif isinstance(node, str):
        yield JsonToken.VALUE_STRING, node
    else:
        raise TokenStreamError(f"Unsupported JSON value {node!r}")


def _token_paths(tokens: list[tuple[JsonToken, Any]]) -> list[str]:
    """Compute a JSON path for every token, for error locations."""
    paths: list[str] = []
    # one frame per open container: [path, is_object, next array index, current key]
    stack: list[list[Any]] = []

    def value_path() -> str:
        if not stack:
            return "$"
        frame = stack[-1]
        if frame[1]:
            return f"{frame[0]}.{frame[3]}"
        return f"{frame[0]}[{frame[2]}]"

    for token, value in tokens:
        if token is JsonToken.END_OBJECT or token is JsonToken.END_ARRAY:
            frame = stack.pop() if stack else ["$"]
            paths.append(frame[0])
            _finish_value(stack)
        elif token is JsonToken.FIELD_NAME:
            stack[-1][3] = value
            paths.append(value_path())
        elif token is JsonToken.START_OBJECT or token is JsonToken.START_ARRAY:
            path = value_path()
            paths.append(path)
            stack.append([path, token is JsonToken.START_OBJECT, 0, None])
        else:
            paths.append(value_path())
            _finish_value(stack)
    return paths


def _finish_value(stack: list[list[Any]]) -> None:
    if stack and not stack[-1][1]:
        stack[-1][2] += 1


class TokenWriter:
    """Writes tokens as compact JSON text."""

    def __init__(self, stream: TextIO | None = None):
        self._stream = stream if stream is not None else StringIO()
        # per open container: whether a value was already written
        self._stack: list[bool] = []
        self._after_field_name = False

    def write_start_object(self) -> None:
        self._before_value()
        self._stream.write("{")
        self._stack.append(False)

    def write_end_object(self) -> None:
        self._stack.pop()
        self._stream.write("}")

    def write_start_array(self) -> None:
        self._before_value()
        self._stream.write("[")
        self._stack.append(False)

    def write_end_array(self) -> None:
        self._stack.pop()
        self._stream.write("]")

    def write_field_name(self, name: str) -> None:
        self._separate()
        self._stream.write(json.dumps(name, ensure_ascii=False))
        self._stream.write(":")
        self._after_field_name = True

    def write_string(self, value: str) -> None:
        self._before_value()
        self._stream.write(json.dumps(value, ensure_ascii=False))

    def write_number(self, value: int | float) -> None:
        self._before_value()
        self._stream.write(json.dumps(value))

    def write_boolean(self, value: bool) -> None:
        self._before_value()
        self._stream.write("true" if value else "false")

    def write_null(self) -> None:
        self._before_value()
        self._stream.write("null")

    def getvalue(self) -> str:
        if not isinstance(self._stream, StringIO):
            raise TokenStreamError("Writer does not own its stream")
        return self._stream.getvalue()

    def _before_value(self) -> None:
        if self._after_field_name:
            self._after_field_name = False
            return
        self._separate()

    def _separate(self) -> None:
        if self._stack:
            if self._stack[-1]:
                self._stream.write(",")
            self._stack[-1] = True
