"""ttgen - Text Template Generator.

A small template engine that splices Python control flow into literal text.

Example usage:
    >>> from ttgen import Template
    >>>
    >>> template = Template(
    ...     "<#@ template cleanws=\\"true\\" #>\\n"
    ...     "<# for v in versions: #>\\n"
    ...     "    V<#= v #>,\\n"
    ...     "<# end #>\\n"
    ... )
    >>> template.render(versions=[1, 2])
    '    V1,\\n    V2,\\n'
"""

from .assembler import assemble
from .emitter import Emitter, emit
from .errors import (
    BindingLookupFailure,
    FragmentEvaluationFailure,
    TemplateError,
    UnknownPragma,
    UnterminatedDirective,
)
from .generator import CodeGenerator
from .lexer import lex
from .models import GenerationConfig, TemplateInfo
from .normalizer import PragmaSettings, normalize, read_pragmas
from .program import EmitText, EmitValue, GeneratorProgram, Splice
from .spans import Span, SpanKind, TemplateDocument
from .template import Template
from .templates import discover_templates, file_type

__all__ = [
    # Core classes
    "Template",
    "CodeGenerator",
    "Emitter",
    "GeneratorProgram",
    # Pipeline
    "lex",
    "read_pragmas",
    "normalize",
    "assemble",
    "emit",
    # Models
    "TemplateDocument",
    "Span",
    "SpanKind",
    "PragmaSettings",
    "EmitText",
    "EmitValue",
    "Splice",
    "GenerationConfig",
    "TemplateInfo",
    # Errors
    "TemplateError",
    "UnterminatedDirective",
    "UnknownPragma",
    "BindingLookupFailure",
    "FragmentEvaluationFailure",
    # Utilities
    "discover_templates",
    "file_type",
]
