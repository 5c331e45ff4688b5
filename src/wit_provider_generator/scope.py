"""Indentation-aware blocks of generated Rust source lines."""

from __future__ import annotations

from typing_extensions import override

INDENT = "    "


class NoParentError(Exception):
    """Raised when returning from a scope that has no parent."""

    pass


class Scope:
    """A brace-delimited block of generated lines, e.g. the body of a module or an impl.

    Lines added to a scope are indented one level deeper than the lines of its parent.
    """

    def __init__(self, name: str, parent: Scope | None = None, heading: str = ""):
        """Initialize the scope.

        Args:
            name (str): The name of the scope, e.g. the module or trait it represents.
            parent (Scope | None): The enclosing scope, or None for the root scope.
            heading (str): The line that opens the block, without the opening brace.
        """
        self.name = name
        self.parent = parent
        self.heading = heading
        self.lines: list[str] = []

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def depth(self) -> int:
        return 0 if self.parent is None else self.parent.depth + 1

    @property
    def indent(self) -> str:
        return INDENT * self.depth

    def add(self, *lines: str) -> None:
        """Add lines at the indentation of this scope. Empty lines stay empty."""
        for line in lines:
            self.lines.append(f"{self.indent}{line}" if line else "")

    def add_verbatim(self, text: str) -> None:
        """Add multi-line source text as it was written.

        Only the first line is indented; the following lines keep their original whitespace,
        so multi-line literals inside the text are not altered.
        """
        first, *rest = text.split("\n")
        self.add(first)
        self.lines.extend(rest)

    def close(self) -> list[str]:
        """The lines of this scope wrapped in its heading and braces, at the parent's indentation."""
        if self.parent is None:
            raise NoParentError(f"The scope with name '{self.name}' has no parent.")
        outer = self.parent.indent
        if not self.lines:
            return [f"{outer}{self.heading} {{}}"]
        return [f"{outer}{self.heading} {{", *self.lines, f"{outer}}}"]

    @override
    def __repr__(self) -> str:
        return f"Scope(name={self.name!r}, depth={self.depth}, lines={len(self.lines)})"
