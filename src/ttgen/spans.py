"""Span model shared by the lexer, the normalizer and the assembler."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

# Directive delimiters. Every opener shares the "<#" prefix.
OPEN = "<#"
CLOSE = "#>"
PRAGMA_MARK = "@"
EXPRESSION_MARK = "="


class SpanKind(StrEnum):
    LITERAL = "literal"
    PRAGMA = "pragma"
    CODE = "code"
    EXPRESSION = "expression"


class TemplateDocument(BaseModel):
    """Raw template text plus the name used in diagnostics."""

    model_config = ConfigDict(frozen=True)

    name: str = "<template>"
    text: str


class Span(BaseModel):
    """One region of a template document.

    ``text`` is the literal output for literal spans and the directive body
    for the others. ``raw`` is the delimited source of a directive, and
    ``lead``/``trail`` hold the whitespace the normalizer moved into the
    span, so that ``origin`` always accounts for the source exactly.
    """

    model_config = ConfigDict(frozen=True)

    kind: SpanKind
    text: str
    offset: int = 0
    raw: str = ""
    lead: str = ""
    trail: str = ""
    standalone: bool = False

    @property
    def is_directive(self) -> bool:
        return self.kind != SpanKind.LITERAL

    @property
    def origin(self) -> str:
        """Source text covered by this span."""
        if self.kind == SpanKind.LITERAL:
            return self.text
        return self.lead + self.raw + self.trail

    @classmethod
    def literal(cls, text: str, offset: int = 0) -> "Span":
        return cls(kind=SpanKind.LITERAL, text=text, offset=offset)

    def __str__(self) -> str:
        return f"{self.kind.value}@{self.offset}: {self.text!r}"


def origin_text(spans: list[Span]) -> str:
    """Reconstruct the source text covered by a span sequence."""
    return "".join(span.origin for span in spans)
