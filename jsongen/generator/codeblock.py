"""Indentation-aware builder for generated Python statements."""

INDENT = "    "


class CodeBlockError(RuntimeError):
    """Raised when control flow is closed without being opened."""


class CodeBlock:
    """A sequence of Python statements with nested control flow.

    Blocks are built independently of where they end up; ``add_block`` and
    ``render`` shift them to the right indentation.

    Example:
        block = CodeBlock()
        block.begin_control_flow("if value is None")
        block.add("encoder.write_null()")
        block.next_control_flow("else")
        block.add("encoder.write_number(value)")
        block.end_control_flow()
    """

    def __init__(self) -> None:
        self._lines: list[tuple[int, str]] = []
        self._level = 0
        # line count at each opened control flow, to detect empty bodies
        self._open: list[int] = []

    def add(self, code: str) -> "CodeBlock":
        """Add one or more statements, split on newlines."""
        for line in code.splitlines():
            self._lines.append((self._level, line) if line.strip() else (0, ""))
        return self

    def add_block(self, block: "CodeBlock") -> "CodeBlock":
        if block._open:
            raise CodeBlockError("Cannot add a block with unclosed control flow")
        for level, line in block._lines:
            self._lines.append((self._level + level, line) if line else (0, ""))
        return self

    def begin_control_flow(self, header: str) -> "CodeBlock":
        self.add(f"{header}:")
        self._level += 1
        self._open.append(len(self._lines))
        return self

    def next_control_flow(self, header: str) -> "CodeBlock":
        self._close()
        self.add(f"{header}:")
        self._level += 1
        self._open.append(len(self._lines))
        return self

    def end_control_flow(self) -> "CodeBlock":
        self._close()
        return self

    def _close(self) -> None:
        if not self._open:
            raise CodeBlockError("No open control flow")
        start = self._open.pop()
        if len(self._lines) == start:
            self._lines.append((self._level, "pass"))
        self._level -= 1

    @property
    def is_empty(self) -> bool:
        return not any(line for _, line in self._lines)

    def render(self, level: int = 0) -> str:
        """Render the statements indented by ``level`` steps."""
        if self._open:
            raise CodeBlockError("Unclosed control flow")
        return "".join(
            f"{INDENT * (level + lvl)}{line}\n" if line else "\n" for lvl, line in self._lines
        )

    def __str__(self) -> str:
        return self.render()
