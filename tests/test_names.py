# tests/test_names.py
"""
Tests for fresh name allocation.
"""

from semulator.instructions import assignment, jump_not_zero, quotation
from semulator.model import Label, Variable
from semulator.names import FreshNames, NumberPool, used_names
from tests.conftest import L1, X1, Y


class TestNumberPool:

    def test_starts_above_highest_used(self):
        alloc = NumberPool([1, 4], Variable.work)
        assert alloc.next() == Variable.work(5)
        assert alloc.next() == Variable.work(6)
        assert alloc.high_water == 6

    def test_empty(self):
        alloc = NumberPool([], Label.numbered)
        assert alloc.next() == Label.numbered(1)


class TestUsedNames:

    def test_scans_every_position(self):
        instructions = [
            assignment(Variable.work(2), X1, L1),
            jump_not_zero(Variable.work(3), Label.numbered(7)),
            quotation(Y, "ADD", "z9,(SUCC,z4)"),
        ]
        work, labels = used_names(instructions)
        assert work == {2, 3, 4, 9}
        assert labels == {1, 7}


class TestFreshNames:

    def test_fresh_names_never_collide(self):
        instructions = [
            assignment(Variable.work(2), X1, Label.numbered(3)),
            jump_not_zero(X1, Label.numbered(3)),
        ]
        helper = FreshNames(instructions)
        variables = {helper.fresh_variable() for _ in range(5)}
        labels = {helper.fresh_label() for _ in range(5)}
        assert len(variables) == 5 and Variable.work(2) not in variables
        assert len(labels) == 5 and Label.numbered(3) not in labels
        assert min(v.index for v in variables) == 3
        assert min(l.number for l in labels) == 4
