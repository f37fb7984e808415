"""Assembler: turns a span sequence into a generator program.

Code fragments are spliced into the generated Python verbatim. The only
structure the assembler adds is indentation, following these conventions:

- a fragment whose last token is ``:`` opens a block;
- a fragment that is exactly ``end`` closes the innermost block;
- ``else``/``elif``/``except``/``finally`` fragments close the current block
  and open a sibling one.

Nesting is not checked. A mismatched template produces source that fails to
compile, and the failure is reported against the offending span.

Blocks nested deeper than :data:`MAX_BLOCK_DEPTH` continue in a separate
top-level function that is called in place. Every name used by the template's
fragments is declared ``global`` there, so the function sees the same
namespace as the main program.
"""

import io
import keyword
import logging
import re
import textwrap
import tokenize

from .normalizer import TEMPLATE_PRAGMA, parse_pragma
from .program import (
    VALUE_HOOK,
    WRITE_HOOK,
    EmitText,
    EmitValue,
    GeneratorProgram,
    Operation,
    Splice,
)
from .spans import Span, SpanKind

INDENT = "    "
END_KEYWORD = "end"
PRAGMA_MARKER = "# pragma:"
BLOCK_FUNCTION = "_ttgen_block"

# Below CPython's limit of 20 statically nested blocks per code object.
MAX_BLOCK_DEPTH = 16

_CONTINUATION = re.compile(r"^(else|elif|except|finally)\b")
_SCOPE_OPENER = re.compile(r"^(async\s+def|def|class)\b")
_IDENTIFIER = re.compile(r"(?!\d)\w+")

_INSIGNIFICANT = {
    tokenize.COMMENT,
    tokenize.NL,
    tokenize.NEWLINE,
    tokenize.INDENT,
    tokenize.DEDENT,
    tokenize.ENDMARKER,
}


def to_operations(spans: list[Span]) -> list[Operation]:
    """Map spans 1:1 to operations, merging adjacent text."""
    operations: list[Operation] = []
    for span in spans:
        if not span.is_directive:
            previous = operations[-1] if operations else None
            if isinstance(previous, EmitText):
                operations[-1] = EmitText(
                    text=previous.text + span.text, offset=previous.offset
                )
            else:
                operations.append(EmitText(text=span.text, offset=span.offset))
        elif span.kind == SpanKind.EXPRESSION:
            operations.append(EmitValue(fragment=span.text, offset=span.offset))
        elif span.kind == SpanKind.CODE:
            operations.append(Splice(fragment=span.text, offset=span.offset))
        else:
            name, _ = parse_pragma(span.text)
            # The template pragma was already applied by the normalizer.
            if name == TEMPLATE_PRAGMA:
                continue
            marker = f"{PRAGMA_MARKER} {' '.join(span.text.split())}"
            operations.append(Splice(fragment=marker, offset=span.offset))
    return operations


def opens_block(fragment: str) -> bool:
    """Whether the last significant token of a fragment is ``:``."""
    last = None
    try:
        for token in tokenize.generate_tokens(io.StringIO(fragment).readline):
            if token.type not in _INSIGNIFICANT:
                last = token
    except (tokenize.TokenError, SyntaxError):
        return fragment.rstrip().endswith(":")
    return last is not None and last.type == tokenize.OP and last.string == ":"


def fragment_names(operations: list[Operation]) -> list[str]:
    """Identifiers a template's fragments could bind, for ``global`` lists."""
    names: set[str] = set()
    for op in operations:
        if isinstance(op, (EmitValue, Splice)):
            names.update(_IDENTIFIER.findall(op.fragment))
    return sorted(
        name
        for name in names
        if not keyword.iskeyword(name) and not name.startswith(BLOCK_FUNCTION)
    )


class _Buffer:
    """Lines of one generated code object (the main program or a block)."""

    def __init__(self, depth: int = 0) -> None:
        self.lines: list[str] = []
        self.offsets: list[int] = []
        self.depth = depth


class _Block:
    """An open block: where it was opened and whether its suite has a body."""

    def __init__(self, parent: _Buffer, scope: bool) -> None:
        self.parent = parent
        self.scope = scope
        self.has_body = False


class _SourceBuilder:
    """Accumulates indented Python lines and the span offset of each."""

    def __init__(self, names: list[str]) -> None:
        self.names = names
        self.main = _Buffer()
        self.functions: list[_Buffer] = []
        self.current = self.main
        self._blocks: list[_Block] = []

    @property
    def depth(self) -> int:
        return self.current.depth

    def add(self, text: str, offset: int, depth: int | None = None) -> None:
        buffer = self.current
        prefix = INDENT * (buffer.depth if depth is None else depth)
        for line in text.split("\n"):
            buffer.lines.append(prefix + line if line.strip() else "")
            buffer.offsets.append(offset)
        if self._blocks and not text.lstrip().startswith("#"):
            self._blocks[-1].has_body = True

    def _in_scope(self) -> bool:
        return any(block.scope for block in self._blocks)

    def open_block(self, offset: int, scope: bool = False) -> None:
        self.current.depth += 1
        block = _Block(self.current, scope)
        self._blocks.append(block)
        if self.current.depth < MAX_BLOCK_DEPTH or self._in_scope():
            return

        name = f"{BLOCK_FUNCTION}_{len(self.functions) + 1}"
        self.add(f"{name}()", offset)
        function = _Buffer(depth=0)
        self.functions.append(function)
        self.current = function
        self.add(f"def {name}():", offset)
        function.depth = 1
        if self.names:
            self.add(f"global {', '.join(self.names)}", offset)
        block.has_body = False

    def close_block(self, offset: int) -> bool:
        """Close the innermost block; return False if none is open."""
        if not self._blocks:
            return False
        block = self._blocks[-1]
        if not block.has_body:
            self.add("pass", offset)
        self._blocks.pop()
        self.current = block.parent
        self.current.depth -= 1
        return True

    def source(self) -> tuple[str, tuple[int, ...]]:
        lines: list[str] = []
        offsets: list[int] = []
        for buffer in [*self.functions, self.main]:
            lines.extend(buffer.lines)
            offsets.extend(buffer.offsets)
        return "\n".join(lines) + "\n", tuple(offsets)


def _splice(builder: _SourceBuilder, op: Splice) -> None:
    fragment = textwrap.dedent(op.fragment).strip("\n").rstrip()
    stripped = fragment.strip()
    if not stripped:
        return

    if stripped.startswith("#"):
        builder.add(stripped, op.offset)
        return

    if stripped == END_KEYWORD:
        if not builder.close_block(op.offset):
            # Left over-indented so compilation rejects it at this span.
            builder.add(END_KEYWORD, op.offset, depth=builder.depth + 1)
        return

    if _CONTINUATION.match(stripped) and opens_block(stripped):
        builder.close_block(op.offset)
        builder.add(stripped, op.offset)
        builder.open_block(op.offset)
        return

    builder.add(fragment, op.offset)
    if opens_block(fragment):
        builder.open_block(op.offset, scope=bool(_SCOPE_OPENER.match(stripped)))


def _value_call(fragment: str) -> str:
    expression = fragment.strip()
    if "\n" in expression or "#" in expression:
        # Keep the closing parentheses off any trailing comment.
        return f"{WRITE_HOOK}({VALUE_HOOK}((\n{expression}\n)))"
    return f"{WRITE_HOOK}({VALUE_HOOK}(({expression})))"


def build_source(operations: list[Operation]) -> tuple[str, tuple[int, ...]]:
    """Generate the Python source for a list of operations.

    Returns:
        The source text and, per generated line, the template offset of the
        operation that produced it.
    """
    builder = _SourceBuilder(fragment_names(operations))
    for op in operations:
        if isinstance(op, EmitText):
            builder.add(f"{WRITE_HOOK}({op.text!r})", op.offset)
        elif isinstance(op, EmitValue):
            builder.add(_value_call(op.fragment), op.offset)
        elif isinstance(op, Splice):
            _splice(builder, op)
    return builder.source()


def assemble(
    spans: list[Span], name: str = "<template>", source_text: str | None = None
) -> GeneratorProgram:
    """Assemble normalized spans into a generator program.

    No fragment is evaluated or validated here.

    Args:
        spans: Normalized span sequence.
        name: Template name for diagnostics.
        source_text: Template text, used to report line and column on errors.

    Returns:
        The generator program.
    """
    log = logging.getLogger("ttgen")

    operations = to_operations(spans)
    source, offsets = build_source(operations)
    log.debug(
        f"Assembled '{name}' into {len(operations)} operations "
        f"({len(offsets)} lines of Python)"
    )
    return GeneratorProgram(name, tuple(operations), source, offsets, source_text)
