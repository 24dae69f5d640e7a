"""Collision-free naming of generated identifiers."""

import builtins
import keyword
import re

ENCODER = "encoder"
DECODER = "decoder"
VALUE = "value"

# Names the generated module and method signatures already bind
RESERVED = frozenset(["self", ENCODER, DECODER, VALUE, "JsonToken", "JsonParseError", "Codec"])

_INVALID_CHARS = re.compile(r"\W")
_BUILTINS = frozenset(dir(builtins))


class NameAllocationError(ValueError):
    """Raised when a name cannot be allocated."""


def sanitize(hint: str) -> str:
    """Turn an arbitrary hint into a legal, non-private identifier."""
    name = _INVALID_CHARS.sub("_", hint).lstrip("_")
    if not name:
        name = "v"
    if name[0].isdigit():
        name = f"v{name}"
    if keyword.iskeyword(name) or keyword.issoftkeyword(name) or name in _BUILTINS:
        name = f"{name}_"
    if name in RESERVED:
        name = f"{name}_"
    return name


class NameAllocator:
    """Set of used names plus the rule producing new unique ones.

    Example:
        names = NameAllocator()
        names.new_name("id")      # "id_"
        names.new_name("tags")    # "tags"
        names.new_name("tags")    # "tags_1"
    """

    def __init__(self, used: set[str] | None = None):
        self._used: set[str] = set(used or ())

    def new_name(self, hint: str) -> str:
        base = sanitize(hint)
        name = base
        suffix = 0
        while name in self._used:
            suffix += 1
            name = f"{base}_{suffix}"
        self._used.add(name)
        return name

    def claim(self, name: str) -> str:
        """Mark ``name`` as used; it must be legal and not taken."""
        if not name.isidentifier() or keyword.iskeyword(name):
            raise NameAllocationError(f"'{name}' is not a legal identifier")
        if name in self._used:
            raise NameAllocationError(f"'{name}' is already used")
        self._used.add(name)
        return name

    def __contains__(self, name: str) -> bool:
        return name in self._used

    def clone(self) -> "NameAllocator":
        return NameAllocator(self._used)
