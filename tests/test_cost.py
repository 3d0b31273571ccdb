# tests/test_cost.py
"""
Tests for static cycle cost and architecture tiers.
"""

import pytest

from semulator.cost import (
    Architecture,
    CostCalculator,
    minimum_architecture,
    unsupported_instructions,
)
from semulator.instructions import (
    Opcode,
    assignment,
    constant_assignment,
    increase,
    quotation,
    zero_variable,
)
from semulator.program import Program
from tests.conftest import X1, Y, Z1


class TestArchitecture:

    def test_tiers(self):
        assert [a.credits for a in Architecture] == [5, 100, 500, 1000]
        assert Architecture.III.description == "High performance"

    def test_parse(self):
        assert Architecture.parse(" iii ") is Architecture.III
        with pytest.raises(KeyError):
            Architecture.parse("V")

    def test_supports(self):
        assert Architecture.I.supports(Opcode.JUMP_NOT_ZERO)
        assert not Architecture.I.supports(Opcode.GOTO_LABEL)
        assert Architecture.II.supports(Opcode.CONSTANT_ASSIGNMENT)
        assert not Architecture.II.supports(Opcode.JUMP_ZERO)
        assert Architecture.III.supports(Opcode.JUMP_EQUAL_VARIABLE)
        assert not Architecture.III.supports(Opcode.QUOTATION)
        assert all(Architecture.IV.supports(op) for op in Opcode)

    def test_minimum_architecture(self, countdown):
        assert minimum_architecture(countdown) is Architecture.I
        assert minimum_architecture(Program("z", [zero_variable(Z1)])) is Architecture.II
        assert minimum_architecture(Program("a", [assignment(Y, X1)])) is Architecture.III
        assert minimum_architecture(Program("q", [quotation(Y, "SUCC", "x1")])) is Architecture.IV
        assert minimum_architecture(Program("empty")) is Architecture.I

    def test_unsupported_instructions(self):
        prog = Program("p", [increase(Y), assignment(Y, X1), zero_variable(Z1)])
        missing = unsupported_instructions(prog, Architecture.II)
        assert [(i, ins.opcode) for i, ins in missing] == [(1, Opcode.ASSIGNMENT)]


class TestCostCalculator:

    def test_cycles_per_degree(self, expander):
        costs = CostCalculator(expander)
        prog = Program("p", [constant_assignment(Z1, 3)])
        assert costs.cycles_at_degree(prog, 0) == 2
        assert costs.cycles_at_degree(prog, 1) == 4
        assert costs.cycles_at_degree(prog, 2) == 6
        assert costs.cycles_fully_expanded(prog) == 6

    def test_credit_cost(self, expander, countdown):
        costs = CostCalculator(expander)
        assert costs.static_cycles(countdown) == 4
        assert costs.credit_cost(countdown, Architecture.II) == 104
        assert costs.credit_cost(countdown, Architecture.I) == 9

    def test_quotation_counts_base_cost(self, expander):
        prog = Program("q", [quotation(Y, "ADD", "x1,x1")])
        assert CostCalculator(expander).cycles_at_degree(prog, 0) == 5
