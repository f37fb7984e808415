"""Pragma handling and whitespace normalization.

The ``template`` pragma controls whether directive-only lines are cleaned
from the output::

    <#@ template cleanws="true" #>

Settings are read once from the span sequence and passed explicitly to
:func:`normalize`; there is no module-level state.
"""

import logging
import re

from pydantic import BaseModel, ConfigDict

from .errors import UnknownPragma
from .spans import Span, SpanKind, origin_text

TEMPLATE_PRAGMA = "template"

_PRAGMA_NAME = re.compile(r"^\s*(\w+)")
_PRAGMA_ATTR = re.compile(r'(\w+)\s*=\s*"([^"]*)"')

_TRIMMABLE = (SpanKind.CODE, SpanKind.PRAGMA)


class PragmaSettings(BaseModel):
    """Document-level settings collected from pragma directives."""

    model_config = ConfigDict(frozen=True)

    cleanws: bool = False


def parse_pragma(body: str) -> tuple[str, dict[str, str]]:
    """Split a pragma body into its name and ``key="value"`` attributes."""
    match = _PRAGMA_NAME.match(body)
    name = match.group(1) if match else ""
    attrs = dict(_PRAGMA_ATTR.findall(body[match.end() :] if match else body))
    return name, attrs


def _parse_bool(value: str) -> bool | None:
    lowered = value.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return None


def read_pragmas(spans: list[Span], source_name: str | None = None) -> PragmaSettings:
    """Collect the document settings from all pragma spans.

    Unknown pragmas and attributes are logged as warnings and ignored. When a
    setting appears more than once, the last occurrence wins.
    """
    log = logging.getLogger("ttgen")

    cleanws = False
    for span in spans:
        if span.kind != SpanKind.PRAGMA:
            continue

        name, attrs = parse_pragma(span.text)
        if name != TEMPLATE_PRAGMA:
            warning = UnknownPragma(
                name or span.text.strip(), offset=span.offset, source_name=source_name
            )
            log.warning(str(warning))
            continue

        for key, value in attrs.items():
            if key != "cleanws":
                warning = UnknownPragma(
                    f"{name}.{key}", offset=span.offset, source_name=source_name
                )
                log.warning(str(warning))
                continue
            parsed = _parse_bool(value)
            if parsed is None:
                log.warning(
                    f"Ignoring invalid cleanws value '{value}' at offset {span.offset}"
                )
                continue
            cleanws = parsed

    return PragmaSettings(cleanws=cleanws)


def normalize(spans: list[Span], settings: PragmaSettings) -> list[Span]:
    """Move directive-line whitespace out of the literal spans.

    A code or pragma span that sits alone on its line absorbs the indentation
    before it and the line break after it, so neither reaches the output.
    Expression spans are left untouched.

    Args:
        spans: Span sequence produced by the lexer (or a previous call).
        settings: Document settings; nothing happens unless ``cleanws`` is on.

    Returns:
        A new span sequence whose ``origin`` text is unchanged.
    """
    if not settings.cleanws:
        return list(spans)

    full = origin_text(spans)
    starts: list[int] = []
    pos = 0
    for span in spans:
        starts.append(pos)
        pos += len(span.origin)

    head_cut = [0] * len(spans)
    tail_cut = [0] * len(spans)
    result = list(spans)

    for i, span in enumerate(spans):
        if span.kind not in _TRIMMABLE or span.standalone:
            continue

        raw_start = starts[i] + len(span.lead)
        raw_end = raw_start + len(span.raw)

        line_start = full.rfind("\n", 0, raw_start) + 1
        before = full[line_start:raw_start]
        if before.strip():
            continue

        newline = full.find("\n", raw_end)
        after = full[raw_end : len(full) if newline < 0 else newline + 1]
        if after.strip():
            continue

        # Whitespace on the directive's line can only live in adjacent literals.
        if before:
            tail_cut[i - 1] = len(before)
        if after:
            head_cut[i + 1] = len(after)
        result[i] = span.model_copy(
            update={"lead": before, "trail": after, "standalone": True}
        )

    normalized: list[Span] = []
    for i, span in enumerate(result):
        if span.is_directive:
            normalized.append(span)
            continue
        text = span.text[head_cut[i] : len(span.text) - tail_cut[i]]
        if text:
            normalized.append(Span.literal(text, span.offset + head_cut[i]))

    return normalized
