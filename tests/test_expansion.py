# tests/test_expansion.py
"""
Tests for expansion rules, rounds and degree computation.

Semantic checks run each program at every degree from 0 to its maximum and
compare y (and, for nested calls, the caller's variables) against the
unexpanded run.
"""

import pytest

from semulator.errors import InvalidOperandError
from semulator.expansion import Expander
from semulator.instructions import (
    Opcode,
    assignment,
    constant_assignment,
    decrease,
    goto_label,
    increase,
    jump_equal_constant,
    jump_equal_function,
    jump_equal_variable,
    jump_zero,
    quotation,
    zero_variable,
)
from semulator.model import EXIT, Variable
from semulator.program import Program
from semulator.registry import FunctionRegistry
from semulator.runtime import Runtime
from tests.conftest import L1, L2, L3, X1, X2, Y, Z1, add_function, succ_function


def branch_program(name, jump):
    """y = 2 when `jump` is taken, 1 otherwise."""
    return Program(name, [
        jump,
        constant_assignment(Y, 1),
        goto_label(EXIT),
        constant_assignment(Y, 2, L1),
    ])


def double_program():
    """y = 2 * x1, looping back to a labelled synthetic instruction."""
    return Program("double", [
        assignment(Z1, X1),
        jump_zero(Z1, EXIT, L2),
        decrease(Z1),
        increase(Y),
        increase(Y),
        goto_label(L2),
    ])


def nested_registry():
    """ADD and SUCC plus DOUBLE, whose body itself calls ADD."""
    double = Program("DOUBLE", [quotation(Y, "ADD", "x1,x1")])
    return FunctionRegistry([add_function(), succ_function(), double]).freeze()


def doubling_loop():
    """x1 <- 2 * (x1 + 1), x2 times; y = x1, plus one if x1 equals 2 * x2."""
    return Program("loop", [
        jump_zero(X2, L2, L1),
        quotation(X1, "DOUBLE", "(SUCC,x1)"),
        decrease(X2),
        increase(Z1),
        goto_label(L1),
        assignment(Y, X1, L2),
        jump_equal_function(X1, "ADD", "z1,z1", L3),
        goto_label(EXIT),
        increase(Y, L3),
    ])


def assert_preserved(expander, runtime, program, inputs):
    expected = runtime.run(program, inputs).result
    top = expander.max_degree(program)
    for degree in range(top + 1):
        expanded = expander.expand_to_degree(program, degree)
        assert runtime.run(expanded, inputs).result == expected, (degree, inputs)
    return expected


class TestRules:

    def test_constant_assignment(self):
        expander = Expander()
        prog = Program("p", [constant_assignment(Z1, 3)])

        once = expander.expand_to_degree(prog, 1)
        assert [i.opcode for i in once] == [Opcode.ZERO_VARIABLE] + [Opcode.INCREASE] * 3

        twice = expander.expand_to_degree(prog, 2)
        assert [i.opcode for i in twice] == (
            [Opcode.DECREASE, Opcode.JUMP_NOT_ZERO] + [Opcode.INCREASE] * 3
        )
        assert twice[0].label == twice[1].target
        assert twice.is_fully_basic

    def test_label_goes_to_first_instruction(self):
        ins = assignment(Y, X1, L1)
        out = Expander().expand_once([ins])
        assert out[0].label == L1
        assert all(o.label != L1 for o in out[1:])

    def test_zero_variable_with_label_leads_with_neutral(self):
        out = Expander().expand_once([zero_variable(Z1, L1)])
        assert [o.opcode for o in out] == [Opcode.NEUTRAL, Opcode.DECREASE, Opcode.JUMP_NOT_ZERO]
        assert out[0].label == L1 and out[1].label != L1

    def test_self_assignment(self):
        assert Expander().expand_once([assignment(Y, Y)]) == []
        out = Expander().expand_once([assignment(Y, Y, L1)])
        assert len(out) == 1 and out[0].opcode == Opcode.NEUTRAL and out[0].label == L1

    def test_origin_chain(self):
        prog = Program("p", [constant_assignment(Z1, 2)])
        full = Expander().expand_to_degree(prog, 2)
        chain = [i.opcode for i in full[0].ancestry]
        assert chain == [Opcode.ZERO_VARIABLE, Opcode.CONSTANT_ASSIGNMENT]
        # INCREASE passes through round two untouched
        assert [i.opcode for i in full[-1].ancestry] == [Opcode.CONSTANT_ASSIGNMENT]

    def test_fresh_names_avoid_existing(self):
        prog = Program("p", [
            assignment(Variable.work(4), X1, L2),
            goto_label(L2),
        ])
        once = Expander().expand_program_once(prog)
        assert all(v.index > 4 for v in once.work_variables if v != Variable.work(4))
        assert all(lbl.number > 2 for lbl in once.labels if lbl != L2)


class TestRounds:

    def test_degree_zero_is_identity(self, countdown):
        assert Expander().expand_to_degree(countdown, 0) is countdown

    def test_negative_degree(self, countdown):
        with pytest.raises(InvalidOperandError):
            Expander().expand_to_degree(countdown, -1)

    def test_past_max_is_stable(self, expander):
        prog = double_program()
        top = expander.max_degree(prog)
        full = expander.expand_fully(prog)
        assert full.is_fully_basic
        assert expander.expand_to_degree(prog, top + 3) == full

    def test_expansion_is_deterministic(self, expander):
        prog = Program("p", [quotation(Y, "ADD", "x1,(SUCC,x2)")])
        assert expander.expand_fully(prog) == expander.expand_fully(prog)

    def test_basic_program_has_degree_zero(self, countdown, expander):
        assert expander.max_degree(countdown) == 0


class TestDegree:

    def test_static_degrees(self, expander):
        assert expander.max_degree(Program("p", [goto_label(EXIT)])) == 1
        assert expander.max_degree(double_program()) == 2
        jev = branch_program("jev", jump_equal_variable(X1, X2, L1))
        assert expander.max_degree(jev) == 3

    def test_function_degree(self, expander, registry):
        assert expander.max_degree(registry.get("ADD")) == 2
        assert expander.max_degree(registry.get("SUCC")) == 2
        assert expander.max_degree(registry.get("CONST7")) == 2

    def test_quotation_degree_matches_rounds(self, expander):
        ins = quotation(Y, "ADD", "x1,(SUCC,x2)")
        assert expander.instruction_degree(ins) == 4
        assert expander.max_degree(Program("p", [ins])) == 4

    def test_jump_equal_function_degree_matches_rounds(self, expander):
        ins = jump_equal_function(X1, "SUCC", "x2", EXIT)
        assert expander.instruction_degree(ins) == expander.max_degree(Program("p", [ins]))

    def test_self_assignment_degree(self, expander):
        assert expander.instruction_degree(assignment(Y, Y)) == 1
        assert expander.instruction_degree(assignment(Y, X1)) == 2

    def test_nested_function_degree(self):
        expander = Expander(nested_registry())
        assert expander.max_degree(expander.registry.get("DOUBLE")) == 3
        assert expander.max_degree(doubling_loop()) == 4

    def test_replaced_callee_refreshes_caller(self):
        main = Program("MAIN", [quotation(Y, "SUCC", "x1")])
        registry = FunctionRegistry([main, Program("SUCC", [increase(Y)])])
        expander = Expander(registry)
        assert expander.max_degree(main) == 3

        registry.register(add_function())
        registry.register(Program("SUCC", [quotation(Y, "ADD", "x1,1")]))
        assert expander.max_degree(main) == 4
        full = expander.expand_fully(main)
        assert full.is_fully_basic
        assert Runtime(registry).run(full, [4]).result == 5

    def test_replaced_program_refreshes_itself(self):
        registry = FunctionRegistry([Program("SUCC", [assignment(Y, X1), increase(Y)])])
        expander = Expander(registry)
        assert expander.max_degree(registry.get("SUCC")) == 2

        registry.register(Program("SUCC", [increase(Y)]))
        assert expander.max_degree(registry.get("SUCC")) == 0


class TestSemantics:

    @pytest.mark.parametrize("a,b,expected", [(3, 3, 2), (3, 4, 1), (4, 3, 1), (0, 0, 2), (0, 2, 1)])
    def test_jump_equal_variable(self, expander, runtime, a, b, expected):
        prog = branch_program("jev", jump_equal_variable(X1, X2, L1))
        assert assert_preserved(expander, runtime, prog, [a, b]) == expected

    @pytest.mark.parametrize("a,expected", [(2, 2), (1, 1), (3, 1), (0, 1)])
    def test_jump_equal_constant(self, expander, runtime, a, expected):
        prog = branch_program("jec", jump_equal_constant(X1, 2, L1))
        assert assert_preserved(expander, runtime, prog, [a]) == expected

    @pytest.mark.parametrize("a,expected", [(0, 2), (5, 1)])
    def test_jump_zero(self, expander, runtime, a, expected):
        prog = branch_program("jz", jump_zero(X1, L1))
        assert assert_preserved(expander, runtime, prog, [a]) == expected

    @pytest.mark.parametrize("a", [0, 1, 4])
    def test_loop_into_labelled_synthetic(self, expander, runtime, a):
        assert assert_preserved(expander, runtime, double_program(), [a]) == 2 * a

    @pytest.mark.parametrize("src", [0, 1, 5])
    def test_assignment_preserves_source(self, expander, runtime, src):
        prog = Program("copy", [assignment(X1, X2)])
        result = runtime.run(expander.expand_fully(prog), [7, src])
        assert result.values["x1"] == src
        assert result.values["x2"] == src

    @pytest.mark.parametrize("a,b", [(2, 3), (0, 0)])
    def test_quotation(self, expander, runtime, a, b):
        prog = Program("p", [quotation(Y, "ADD", "x1,(SUCC,x2)")])
        assert assert_preserved(expander, runtime, prog, [a, b]) == a + b + 1

    @pytest.mark.parametrize("a,expected", [(3, 2), (4, 1)])
    def test_jump_equal_function(self, expander, runtime, a, expected):
        prog = branch_program("jef", jump_equal_function(X1, "ADD", "x2,1", L1))
        assert assert_preserved(expander, runtime, prog, [a, 2]) == expected

    def test_bare_name_argument(self, expander, runtime):
        prog = Program("p", [quotation(Y, "ADD", "CONST7,x1")])
        assert assert_preserved(expander, runtime, prog, [1]) == 8

    def test_quotation_leaves_inputs_alone(self, expander, runtime):
        prog = Program("p", [quotation(Y, "ADD", "x1,x2")])
        result = runtime.run(expander.expand_fully(prog), [3, 4])
        assert result.result == 7
        assert result.values["x1"] == 3 and result.values["x2"] == 4


class TestNestedFunctions:

    CALLER_VARIABLES = ("x1", "x2", "y", "z1")

    @pytest.mark.parametrize("a", [0, 1, 2])
    @pytest.mark.parametrize("b", [0, 1, 2])
    def test_every_degree_matches_direct_run(self, a, b):
        registry = nested_registry()
        expander, runtime = Expander(registry), Runtime(registry)
        prog = doubling_loop()

        x = a
        for _ in range(b):
            x = 2 * (x + 1)
        expected_y = x + 1 if x == 2 * b else x

        direct = runtime.run(prog, [a, b])
        assert direct.result == expected_y
        wanted = {name: direct.values[name] for name in self.CALLER_VARIABLES}

        for degree in range(expander.max_degree(prog) + 1):
            result = runtime.run(expander.expand_to_degree(prog, degree), [a, b])
            assert result.result == expected_y, degree
            got = {name: result.values[name] for name in self.CALLER_VARIABLES}
            assert got == wanted, degree

    def test_inlined_body_call_uses_renamed_variables(self):
        expander = Expander(nested_registry())
        once = expander.expand_to_degree(doubling_loop(), 1)

        calls = [i for i in once if i.opcode == Opcode.QUOTATION and i.function == "ADD"]
        assert len(calls) == 1
        call = calls[0]
        assert call.variable.is_work
        first, second = call.arguments.split(",")
        assert first == second
        assert Variable.parse(first).is_work
        assert Variable.parse(first) != Z1
