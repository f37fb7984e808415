"""Exceptions raised by the template engine.

Every error carries the offset of the span it was raised for. When the
template text is known, the offset is also turned into a 1-indexed line and
column so messages read like ``versions.rs.tt:12:5 message``.
"""

from __future__ import annotations


def locate(text: str, offset: int) -> tuple[int, int]:
    """Convert an absolute offset in ``text`` to a 1-indexed (line, column)."""
    offset = max(0, min(offset, len(text)))
    lineno = text.count("\n", 0, offset) + 1
    col_offset = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return lineno, col_offset


class TemplateError(Exception):
    """Base exception for all template errors."""

    def __init__(
        self,
        message: str,
        offset: int | None = None,
        source_name: str | None = None,
        source_text: str | None = None,
    ) -> None:
        """Initialize the error with an optional source location.

        Args:
            message: Error description.
            offset: Absolute offset in the template where the error occurred.
            source_name: Name of the template document.
            source_text: Template text, used to compute line and column.
        """
        self.message = message
        self.offset = offset
        self.source_name = source_name
        self.lineno: int | None = None
        self.col_offset: int | None = None
        if offset is not None and source_text is not None:
            self.lineno, self.col_offset = locate(source_text, offset)

        location = ""
        if source_name:
            location = f"{source_name}:"
        if self.lineno is not None:
            location += f"{self.lineno}:{self.col_offset}:"
        elif offset is not None:
            location += f"@{offset}:"
        if location:
            location = location.rstrip(":") + " "

        super().__init__(f"{location}{message}")


class UnterminatedDirective(TemplateError):
    """A directive was opened but its closing delimiter never appears."""


class UnknownPragma(TemplateError):
    """A pragma (or pragma attribute) the engine does not recognize.

    Never raised: the normalizer logs it as a warning and carries on.
    """

    def __init__(self, key: str, **kwargs) -> None:
        self.key = key
        super().__init__(f"Unknown pragma '{key}' ignored", **kwargs)


class BindingLookupFailure(TemplateError):
    """A fragment referenced a name missing from the bindings."""

    def __init__(self, name: str, **kwargs) -> None:
        self.name = name
        super().__init__(f"Name '{name}' is not bound", **kwargs)


class FragmentEvaluationFailure(TemplateError):
    """A spliced fragment failed to compile or raised while running."""
