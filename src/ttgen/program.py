"""Generator program produced by the assembler and run by the emitter."""

import threading
from types import CodeType

from pydantic import BaseModel, ConfigDict

from .errors import FragmentEvaluationFailure

# Names the generated Python source calls to produce output.
WRITE_HOOK = "_ttgen_write"
VALUE_HOOK = "_ttgen_value"


class Operation(BaseModel):
    model_config = ConfigDict(frozen=True)

    offset: int = 0


class EmitText(Operation):
    text: str


class EmitValue(Operation):
    fragment: str


class Splice(Operation):
    fragment: str


class GeneratorProgram:
    """An assembled template, ready to be emitted any number of times.

    The program is immutable. Its Python source is compiled on first use and
    the code object is shared by every emission run, so one program may be
    emitted from several threads at once.
    """

    def __init__(
        self,
        name: str,
        operations: tuple[Operation, ...],
        source: str,
        line_offsets: tuple[int, ...],
        source_text: str | None = None,
    ):
        self._name = name
        self._operations = tuple(operations)
        self._source = source
        self._source_text = source_text
        self._line_offsets = tuple(line_offsets)
        self._code: CodeType | None = None
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        """Template name used in diagnostics."""
        return self._name

    @property
    def operations(self) -> tuple[Operation, ...]:
        """The emit/splice operations, in order."""
        return self._operations

    @property
    def source(self) -> str:
        """Generated Python source for the operations."""
        return self._source

    @property
    def source_text(self) -> str | None:
        return self._source_text

    @property
    def filename(self) -> str:
        """Pseudo filename the compiled code is attributed to."""
        return f"<ttgen {self.name}>"

    def offset_for_line(self, lineno: int | None) -> int | None:
        """Template offset of the span that produced a generated line."""
        if lineno is None or not self._line_offsets:
            return None
        index = min(max(lineno, 1), len(self._line_offsets)) - 1
        return self._line_offsets[index]

    def compile(self) -> CodeType:
        """Compile the generated source, caching the code object.

        Raises:
            FragmentEvaluationFailure: If the spliced fragments do not form
                valid Python.
        """
        with self._lock:
            if self._code is None:
                try:
                    self._code = compile(self.source, self.filename, "exec")
                except SyntaxError as e:
                    raise FragmentEvaluationFailure(
                        f"Generated program does not compile: {e.msg}",
                        offset=self.offset_for_line(e.lineno),
                        source_name=self.name,
                        source_text=self.source_text,
                    ) from e
            return self._code

    def __repr__(self) -> str:
        return f"GeneratorProgram({self.name!r}, {len(self.operations)} operations)"
