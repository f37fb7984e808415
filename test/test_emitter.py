"""Tests for the emitter."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from ttgen.assembler import assemble
from ttgen.emitter import Emitter, emit
from ttgen.errors import BindingLookupFailure, FragmentEvaluationFailure
from ttgen.lexer import lex


def program_for(text: str):
    return assemble(lex(text), "test.tt", text)


class TestEmit:
    """Basic emission."""

    def test_expression_value(self):
        assert emit(program_for("A<#= x #>B"), {"x": 3}) == "A3B"

    def test_zero_directives_round_trip(self):
        text = 'He said "hi" \\n\n\tünïcode \'quotes\'\r\n'
        assert emit(program_for(text)) == text

    def test_empty_template(self):
        assert emit(program_for("")) == ""

    def test_keyword_bindings_override_mapping(self):
        program = program_for("<#= x #>")
        assert emit(program, {"x": 1}, x=2) == "2"

    def test_loop_and_conditional(self):
        program = program_for(
            "<# for n in numbers: #><# if n % 2: #>odd<# else: #>even<# end #>,<# end #>"
        )
        assert emit(program, numbers=[1, 2, 3]) == "odd,even,odd,"

    def test_code_assignments_are_local_to_run(self):
        program = program_for("<# total = sum(values) #>total=<#= total #>")
        bindings = {"values": [1, 2, 3]}
        assert emit(program, bindings) == "total=6"
        assert bindings == {"values": [1, 2, 3]}

    def test_builtins_available(self):
        assert emit(program_for("<#= len(items) #>"), items="abc") == "3"

    def test_deep_nesting(self):
        depth = 25
        text = "".join(f"<# for i{n} in range(1): #>" for n in range(depth))
        text += "x" + "<# end #>" * depth
        assert emit(program_for(text)) == "x"

    def test_very_deep_conditionals(self):
        depth = 120
        text = "<# if True: #>" * depth + "x" + "<# end #>" * depth + "y"
        assert emit(program_for(text)) == "xy"

    def test_deep_blocks_share_the_run_namespace(self):
        text = "<# total = 0 #><# for i in range(3): #>"
        text += "<# if True: #>" * 20 + "<# total += i #><# seen = i #>"
        text += "<# end #>" * 21 + "<#= total #>/<#= seen #>"
        assert emit(program_for(text)) == "3/2"

    def test_deep_block_lookup_failure(self):
        text = "<# if True: #>" * 20 + "<#= missing #>" + "<# end #>" * 20
        with pytest.raises(BindingLookupFailure) as exc_info:
            emit(program_for(text))
        assert exc_info.value.name == "missing"
        assert exc_info.value.offset == 20 * len("<# if True: #>")

    def test_tuple_expression(self):
        assert emit(program_for("<#= 1, 2 #>")) == "(1, 2)"

    def test_block_opener_with_quote_in_comment(self):
        program = program_for("<# if a:  # it's on #>y<# end #>")
        assert emit(program, a=True) == "y"
        assert emit(program, a=False) == ""

    def test_custom_to_text(self):
        emitter = Emitter(to_text=repr)
        assert emitter.emit(program_for("<#= s #>"), s="a") == "'a'"

    def test_none_value(self):
        assert emit(program_for("<#= v #>"), v=None) == "None"


class TestFailures:
    """Emission failures and recovery."""

    def test_unbound_expression_name(self):
        program = program_for("A\nB<#= y #>")
        with pytest.raises(BindingLookupFailure) as exc_info:
            emit(program)
        err = exc_info.value
        assert err.name == "y"
        assert err.offset == 3
        assert (err.lineno, err.col_offset) == (2, 2)
        assert "test.tt:2:2" in str(err)

    def test_program_usable_after_failure(self):
        program = program_for("A<#= y #>B")
        with pytest.raises(BindingLookupFailure):
            emit(program)
        assert emit(program, y="!") == "A!B"

    def test_unbound_name_in_code(self):
        program = program_for("<# for v in versions: #><#= v #><# end #>")
        with pytest.raises(BindingLookupFailure) as exc_info:
            emit(program)
        assert exc_info.value.name == "versions"
        assert exc_info.value.offset == 0

    def test_fragment_exception(self):
        program = program_for("x<#= 1 / zero #>")
        with pytest.raises(FragmentEvaluationFailure) as exc_info:
            emit(program, zero=0)
        assert isinstance(exc_info.value.__cause__, ZeroDivisionError)
        assert exc_info.value.offset == 1

    def test_name_error_inside_binding_is_not_a_lookup_failure(self):
        def broken():
            raise NameError("inner")

        with pytest.raises(FragmentEvaluationFailure):
            emit(program_for("<#= broken() #>"), broken=broken)

    def test_compile_failure_reported_on_emit(self):
        with pytest.raises(FragmentEvaluationFailure):
            emit(program_for("<# for x in #>"))


class TestConcurrency:
    """One program, many independent runs."""

    def test_concurrent_runs_are_independent(self):
        program = program_for(
            "<# for v in items: #>[<#= tag #>:<#= v #>]<# end #>"
        )

        def run(n: int) -> str:
            return emit(program, tag=n, items=range(50))

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(run, range(32)))

        for n, result in enumerate(results):
            assert result == "".join(f"[{n}:{v}]" for v in range(50))

    def test_two_binding_sets(self):
        program = program_for("<#= x #>")
        assert emit(program, x="a") == "a"
        assert emit(program, x="b") == "b"
