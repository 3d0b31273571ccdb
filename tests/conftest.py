# tests/conftest.py
"""
Shared programs and fixtures for the S-Emulator test suite.
"""

import pytest

from semulator.expansion import Expander
from semulator.instructions import (
    assignment,
    constant_assignment,
    decrease,
    goto_label,
    increase,
    jump_not_zero,
    jump_zero,
)
from semulator.model import EXIT, RESULT, Label, Variable
from semulator.program import Program
from semulator.registry import FunctionRegistry
from semulator.runtime import Runtime

X1, X2, X3 = Variable.input(1), Variable.input(2), Variable.input(3)
Z1 = Variable.work(1)
Y = RESULT
L1, L2, L3 = Label.numbered(1), Label.numbered(2), Label.numbered(3)


def countdown_program() -> Program:
    """[L1] x1 <- x1 - 1; y <- y + 1; IF x1 != 0 GOTO L1"""
    return Program("countdown", [
        decrease(X1, L1),
        increase(Y),
        jump_not_zero(X1, L1),
    ])


def add_function() -> Program:
    """ADD(x1, x2) = x1 + x2"""
    return Program("ADD", [
        assignment(Y, X1),
        assignment(Z1, X2),
        jump_zero(Z1, EXIT, L1),
        decrease(Z1),
        increase(Y),
        goto_label(L1),
    ])


def succ_function() -> Program:
    """SUCC(x1) = x1 + 1"""
    return Program("SUCC", [
        assignment(Y, X1),
        increase(Y),
    ])


def const7_function() -> Program:
    """CONST7() = 7"""
    return Program("CONST7", [constant_assignment(Y, 7)])


ADDER_SOURCE = """\
// Adds its two inputs through the ADD function, then doubles y once more
PROGRAM Adder
     y <- (ADD,x1,x2)
     z1 <- y
[L1] IF z1 = 0 GOTO EXIT
     z1 <- z1 - 1
     y <- (SUCC,y)
     GOTO L1

FUNCTION ADD
     y <- x1
     z1 <- x2
[L1] IF z1 = 0 GOTO EXIT
     z1 <- z1 - 1
     y <- y + 1
     GOTO L1

FUNCTION SUCC                  # y = x1 + 1
     y <- x1
     y <- y + 1
"""


@pytest.fixture
def countdown():
    return countdown_program()


@pytest.fixture
def registry():
    return FunctionRegistry([add_function(), succ_function(), const7_function()]).freeze()


@pytest.fixture
def runtime(registry):
    return Runtime(registry)


@pytest.fixture
def expander(registry):
    return Expander(registry)


@pytest.fixture
def adder_file(tmp_path):
    path = tmp_path / "adder.semu"
    path.write_text(ADDER_SOURCE, encoding="utf-8")
    return path
