"""Template lexer.

Splits a template document into literal and directive spans. The lexer knows
nothing about the host language: a code directive is an opaque fragment and
block nesting is never tracked here.
"""

import logging

from .errors import UnterminatedDirective
from .spans import (
    CLOSE,
    EXPRESSION_MARK,
    OPEN,
    PRAGMA_MARK,
    Span,
    SpanKind,
    TemplateDocument,
)


def _opener_at(text: str, pos: int) -> tuple[SpanKind, int]:
    """Classify the opener starting at ``pos``, returning its kind and length."""
    mark = text[pos + len(OPEN) : pos + len(OPEN) + 1]
    if mark == PRAGMA_MARK:
        return SpanKind.PRAGMA, len(OPEN) + 1
    if mark == EXPRESSION_MARK:
        return SpanKind.EXPRESSION, len(OPEN) + 1
    return SpanKind.CODE, len(OPEN)


def lex(document: TemplateDocument | str) -> list[Span]:
    """Lex a template document into an ordered list of spans.

    Args:
        document: The template document, or raw template text.

    Returns:
        Spans in source order. No two adjacent spans are literals.

    Raises:
        UnterminatedDirective: If a directive is opened but never closed.
    """
    log = logging.getLogger("ttgen")

    if isinstance(document, str):
        document = TemplateDocument(text=document)
    text = document.text

    spans: list[Span] = []
    cursor = 0
    while cursor < len(text):
        start = text.find(OPEN, cursor)
        if start < 0:
            spans.append(Span.literal(text[cursor:], cursor))
            break
        if start > cursor:
            spans.append(Span.literal(text[cursor:start], cursor))

        kind, opener_len = _opener_at(text, start)
        body_start = start + opener_len
        end = text.find(CLOSE, body_start)
        if end < 0:
            raise UnterminatedDirective(
                f"Unterminated {kind.value} directive, expected '{CLOSE}'",
                offset=start,
                source_name=document.name,
                source_text=text,
            )
        cursor = end + len(CLOSE)
        spans.append(
            Span(
                kind=kind,
                text=text[body_start:end],
                offset=start,
                raw=text[start:cursor],
            )
        )

    log.debug(f"Lexed '{document.name}' into {len(spans)} spans")
    return spans
