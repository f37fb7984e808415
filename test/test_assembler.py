"""Tests for the assembler and the generator program."""

import pytest

from ttgen.assembler import (
    BLOCK_FUNCTION,
    MAX_BLOCK_DEPTH,
    assemble,
    build_source,
    fragment_names,
    opens_block,
    to_operations,
)
from ttgen.errors import FragmentEvaluationFailure
from ttgen.lexer import lex
from ttgen.program import EmitText, EmitValue, Splice
from ttgen.spans import Span


class TestOperations:
    """Span to operation mapping."""

    def test_one_to_one(self):
        ops = to_operations(lex("A<#= x #><# y = 1 #>B"))
        assert ops == [
            EmitText(text="A", offset=0),
            EmitValue(fragment=" x ", offset=1),
            Splice(fragment=" y = 1 ", offset=9),
            EmitText(text="B", offset=20),
        ]

    def test_adjacent_text_coalesced(self):
        ops = to_operations([Span.literal("a", 0), Span.literal("b", 1)])
        assert ops == [EmitText(text="ab", offset=0)]

    def test_template_pragma_dropped(self):
        ops = to_operations(lex('<#@ template cleanws="true" #>x'))
        assert ops == [EmitText(text="x", offset=30)]

    def test_other_pragma_kept_as_marker(self):
        ops = to_operations(lex('<#@ output   extension=".rs" #>'))
        assert ops == [Splice(fragment='# pragma: output extension=".rs"', offset=0)]


class TestSource:
    """Generated Python source."""

    def source_of(self, text: str) -> str:
        return build_source(to_operations(lex(text)))[0]

    def test_text_and_value(self):
        assert self.source_of("A<#= x #>B") == (
            "_ttgen_write('A')\n"
            "_ttgen_write(_ttgen_value((x)))\n"
            "_ttgen_write('B')\n"
        )

    def test_block_indentation(self):
        assert self.source_of("<# for i in r: #>x<# end #>") == (
            "for i in r:\n    _ttgen_write('x')\n"
        )

    def test_nested_blocks(self):
        source = self.source_of("<# for a in b: #><# if a: #>y<# end #><# end #>z")
        assert source == (
            "for a in b:\n"
            "    if a:\n"
            "        _ttgen_write('y')\n"
            "_ttgen_write('z')\n"
        )

    def test_empty_block_gets_pass(self):
        assert self.source_of("<# if c: #><# end #>") == "if c:\n    pass\n"

    def test_else_continuation(self):
        assert self.source_of("<# if c: #>a<# else: #>b<# end #>") == (
            "if c:\n"
            "    _ttgen_write('a')\n"
            "else:\n"
            "    _ttgen_write('b')\n"
        )

    def test_block_opener_with_comment(self):
        source = self.source_of("<# while n:  # countdown #><# n -= 1 #><# end #>")
        assert source == "while n:  # countdown\n    n -= 1\n"

    def test_block_opener_with_quote_in_comment(self):
        source = self.source_of("<# if a:  # it's on #>y<# end #>")
        assert source == "if a:  # it's on\n    _ttgen_write('y')\n"

    def test_colon_inside_string_does_not_open(self):
        source = self.source_of("<# label = 'a:' #>x")
        assert source == "label = 'a:'\n_ttgen_write('x')\n"

    def test_value_is_parenthesized(self):
        assert self.source_of("<#= 1, 2 #>") == "_ttgen_write(_ttgen_value((1, 2)))\n"

    def test_multiline_fragment_dedented(self):
        source = self.source_of("<# if c: #><#\n    x = 1\n    y = 2\n#><# end #>")
        assert source == "if c:\n    x = 1\n    y = 2\n"

    def test_expression_with_comment(self):
        source = self.source_of("<#= x  # the value #>")
        assert source == "_ttgen_write(_ttgen_value((\nx  # the value\n)))\n"

    def test_line_offsets(self):
        program = assemble(lex("A<#= x #>\n<# y = 1 #>"))
        assert program.offset_for_line(1) == 0
        assert program.offset_for_line(2) == 1
        assert program.offset_for_line(4) == 10
        assert program.offset_for_line(None) is None


class TestNoValidation:
    """Malformed fragments only fail when the program is compiled."""

    def test_syntax_error_is_deferred(self):
        program = assemble(lex("ok\n<# for x in #>"), source_text="ok\n<# for x in #>")
        with pytest.raises(FragmentEvaluationFailure) as exc_info:
            program.compile()
        assert exc_info.value.offset == 3
        assert exc_info.value.lineno == 2
        assert isinstance(exc_info.value.__cause__, SyntaxError)

    def test_unmatched_end(self):
        program = assemble(lex("a<# end #>"))
        with pytest.raises(FragmentEvaluationFailure) as exc_info:
            program.compile()
        assert exc_info.value.offset == 1

    def test_else_without_if(self):
        program = assemble(lex("<# else: #>x<# end #>"))
        with pytest.raises(FragmentEvaluationFailure):
            program.compile()

    def test_compile_is_cached(self):
        program = assemble(lex("A<#= x #>"))
        assert program.compile() is program.compile()

    def test_program_is_reusable_after_compile_failure(self):
        program = assemble(lex("<# if #>"))
        for _ in range(2):
            with pytest.raises(FragmentEvaluationFailure):
                program.compile()


class TestOpensBlock:
    """Block openers are found on the token stream, not the raw text."""

    @pytest.mark.parametrize(
        "fragment",
        [
            "for x in xs:",
            "if a:  # it's on",
            'with open("f") as f:  # "quoted"',
            "if (a and\n        b):",
            "else:",
        ],
    )
    def test_opens(self, fragment):
        assert opens_block(fragment)

    @pytest.mark.parametrize(
        "fragment",
        ["x = 1", "d = {'a': 1}", "s = 'ends with:'", "# just a comment:", "x[1:]"],
    )
    def test_does_not_open(self, fragment):
        assert not opens_block(fragment)

    def test_unbalanced_fragment_falls_back_to_text(self):
        assert opens_block("lambda: (") is False
        assert opens_block("if f(a,\n  b:")


class TestBlockFunctions:
    """Deeply nested blocks continue in separate functions."""

    def nested_ifs(self, depth: int) -> str:
        return "<# if True: #>" * depth + "x" + "<# end #>" * depth

    def test_shallow_nesting_stays_inline(self):
        text = self.nested_ifs(MAX_BLOCK_DEPTH - 1)
        source, _ = build_source(to_operations(lex(text)))
        assert BLOCK_FUNCTION not in source

    def test_deep_nesting_is_split(self):
        source, offsets = build_source(to_operations(lex(self.nested_ifs(120))))
        assert f"def {BLOCK_FUNCTION}_1():" in source
        assert f"    {BLOCK_FUNCTION}_1()" in source
        assert len(offsets) == len(source.splitlines())

        deepest = max(len(line) - len(line.lstrip()) for line in source.splitlines())
        assert deepest // 4 <= MAX_BLOCK_DEPTH

    def test_block_function_declares_fragment_names_global(self):
        text = "<# total = 0 #>" + "<# if True: #>" * 20 + "<# total += 1 #>"
        source, _ = build_source(to_operations(lex(text)))
        assert "    global total\n" in source

    def test_no_split_inside_function_definition(self):
        text = "<# def f(): #>" + self.nested_ifs(MAX_BLOCK_DEPTH) + "<# end #>"
        source, _ = build_source(to_operations(lex(text)))
        assert BLOCK_FUNCTION not in source

    def test_fragment_names(self):
        ops = to_operations(lex("<# for v in items: #><#= v.name #><# end #>"))
        assert fragment_names(ops) == ["items", "name", "v"]


class TestProgram:
    """The generator program is read-only."""

    @pytest.mark.parametrize("attribute", ["name", "operations", "source"])
    def test_attributes_are_read_only(self, attribute):
        program = assemble(lex("A<#= x #>"), "t.tt")
        with pytest.raises(AttributeError):
            setattr(program, attribute, None)

    def test_attributes(self):
        program = assemble(lex("A<#= x #>"), "t.tt")
        assert program.name == "t.tt"
        assert program.filename == "<ttgen t.tt>"
        assert program.operations == (
            EmitText(text="A", offset=0),
            EmitValue(fragment=" x ", offset=1),
        )
        assert program.source.startswith("_ttgen_write('A')\n")
