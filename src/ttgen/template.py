"""Template facade tying the lexer, normalizer, assembler and emitter together."""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from .assembler import assemble
from .emitter import Emitter
from .lexer import lex
from .normalizer import PragmaSettings, normalize, read_pragmas
from .program import GeneratorProgram
from .spans import Span, TemplateDocument


class Template:
    """A compiled template.

    Lexing, normalization and assembly run once, in the constructor. The
    resulting program can then be rendered any number of times.

    Example:
        >>> Template("A<#= x #>B").render(x=3)
        'A3B'
    """

    def __init__(
        self,
        text: str,
        name: str = "<template>",
        emitter: Emitter | None = None,
    ):
        log = logging.getLogger("ttgen")

        self.document = TemplateDocument(name=name, text=text)
        spans = lex(self.document)
        self.settings: PragmaSettings = read_pragmas(spans, source_name=name)
        log.debug(f"Template '{name}' settings: cleanws={self.settings.cleanws}")
        self.spans: list[Span] = normalize(spans, self.settings)
        self.program: GeneratorProgram = assemble(self.spans, name, text)
        self.emitter = emitter or Emitter()

    @property
    def name(self) -> str:
        return self.document.name

    @classmethod
    def from_file(cls, path: Path | str, emitter: Emitter | None = None) -> "Template":
        """Load and compile a template file."""
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Template file {path} does not exist")
        return cls(path.read_text(encoding="utf-8"), name=path.name, emitter=emitter)

    def render(self, bindings: Mapping[str, Any] | None = None, **kwargs: Any) -> str:
        """Render the template with the given bindings."""
        return self.emitter.emit(self.program, bindings, **kwargs)

    def __repr__(self) -> str:
        return f"Template({self.name!r})"
