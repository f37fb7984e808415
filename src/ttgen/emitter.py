"""Emitter: runs a generator program against caller bindings."""

import logging
from collections.abc import Callable, Mapping
from types import TracebackType
from typing import Any

from .errors import BindingLookupFailure, FragmentEvaluationFailure, TemplateError
from .program import VALUE_HOOK, WRITE_HOOK, GeneratorProgram


def _program_lineno(tb: TracebackType | None, filename: str) -> tuple[int | None, bool]:
    """Find the innermost traceback line that belongs to the program.

    Returns:
        The generated line number (or None), and whether that frame is the
        innermost one, i.e. the failure happened in the fragment itself.
    """
    lineno = None
    innermost = False
    while tb is not None:
        is_program = tb.tb_frame.f_code.co_filename == filename
        if is_program:
            lineno = tb.tb_lineno
        innermost = is_program
        tb = tb.tb_next
    return lineno, innermost


class Emitter:
    """Runs generator programs.

    Every run gets its own namespace and output buffer, so one emitter and
    one program can serve several runs at once.

    Args:
        to_text: Converts expression values to output text.
    """

    def __init__(self, to_text: Callable[[Any], str] = str):
        self.to_text = to_text
        self._log = logging.getLogger("ttgen")

    def emit(
        self,
        program: GeneratorProgram,
        bindings: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> str:
        """Run a program and return the produced text.

        Args:
            program: The assembled program.
            bindings: Names visible to the template fragments.
            **kwargs: Extra bindings, overriding ``bindings``.

        Returns:
            The output text.

        Raises:
            BindingLookupFailure: If a fragment uses an unbound name.
            FragmentEvaluationFailure: If the program fails to compile, or a
                fragment raises.
        """
        code = program.compile()

        buffer: list[str] = []
        namespace: dict[str, Any] = {}
        if bindings:
            namespace.update(bindings)
        namespace.update(kwargs)
        namespace[WRITE_HOOK] = buffer.append
        namespace[VALUE_HOOK] = self.to_text

        self._log.debug(
            f"Emitting '{program.name}' with bindings: "
            f"{', '.join(sorted(k for k in namespace if not k.startswith('_ttgen')))}"
        )
        try:
            exec(code, namespace)
        except TemplateError:
            raise
        except Exception as e:
            lineno, innermost = _program_lineno(e.__traceback__, program.filename)
            location = {
                "offset": program.offset_for_line(lineno),
                "source_name": program.name,
                "source_text": program.source_text,
            }
            if isinstance(e, NameError) and innermost:
                name = getattr(e, "name", None) or str(e)
                raise BindingLookupFailure(name, **location) from e
            raise FragmentEvaluationFailure(
                f"Fragment raised {type(e).__name__}: {e}", **location
            ) from e

        return "".join(buffer)


_default_emitter = Emitter()


def emit(
    program: GeneratorProgram,
    bindings: Mapping[str, Any] | None = None,
    **kwargs: Any,
) -> str:
    """Run a program with the default emitter (values converted with ``str``)."""
    return _default_emitter.emit(program, bindings, **kwargs)
