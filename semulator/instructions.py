"""
S-Emulator Instructions

The instruction set is a closed sum type: one Opcode enum plus a single
frozen Instruction value whose operand fields are validated per opcode.
Behaviour (expansion, execution, formatting) lives in dispatch tables keyed
by Opcode in the modules that own it, so adding an opcode is a visible,
exhaustive change.

Opcode table:

    opcode                 basic  cycles  degree
    NEUTRAL                 yes     0       0      v <- v
    INCREASE                yes     1       0      v <- v + 1
    DECREASE                yes     1       0      v <- max(v - 1, 0)
    JUMP_NOT_ZERO           yes     2       0      IF v != 0 GOTO L
    ZERO_VARIABLE           no      1       1      v <- 0
    GOTO_LABEL              no      1       1      GOTO L
    CONSTANT_ASSIGNMENT     no      2       2      v <- K
    JUMP_ZERO               no      2       2      IF v = 0 GOTO L
    ASSIGNMENT              no      4       2      v <- v'
    JUMP_EQUAL_CONSTANT     no      2       3      IF v = K GOTO L
    JUMP_EQUAL_VARIABLE     no      2       3      IF v = v' GOTO L
    QUOTATION               no      5+      *      v <- (F,args)
    JUMP_EQUAL_FUNCTION     no      6+      *      IF v = (F,args) GOTO L

QUOTATION and JUMP_EQUAL_FUNCTION declare a base cost only; their degree
depends on the callee and is computed by the Expander.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterator, Optional

from semulator.errors import InvalidOperandError, MissingOperandError
from semulator import quote
from semulator.model import EMPTY, Label, Variable


# ============================================================================
# Opcodes
# ============================================================================

@dataclass(frozen=True)
class OpcodeInfo:
    basic: bool
    cycles: int
    degree: Optional[int]        # None: depends on the callee
    operands: tuple[str, ...]    # required operand fields


class Opcode(Enum):
    NEUTRAL = "NEUTRAL"
    INCREASE = "INCREASE"
    DECREASE = "DECREASE"
    JUMP_NOT_ZERO = "JUMP_NOT_ZERO"
    ZERO_VARIABLE = "ZERO_VARIABLE"
    GOTO_LABEL = "GOTO_LABEL"
    CONSTANT_ASSIGNMENT = "CONSTANT_ASSIGNMENT"
    JUMP_ZERO = "JUMP_ZERO"
    ASSIGNMENT = "ASSIGNMENT"
    JUMP_EQUAL_CONSTANT = "JUMP_EQUAL_CONSTANT"
    JUMP_EQUAL_VARIABLE = "JUMP_EQUAL_VARIABLE"
    QUOTATION = "QUOTATION"
    JUMP_EQUAL_FUNCTION = "JUMP_EQUAL_FUNCTION"

    @property
    def info(self) -> OpcodeInfo:
        return OPCODE_TABLE[self]

    @property
    def is_basic(self) -> bool:
        return self.info.basic

    @property
    def cycles(self) -> int:
        return self.info.cycles

    @property
    def degree(self) -> Optional[int]:
        return self.info.degree

    @property
    def is_jump(self) -> bool:
        return "target" in self.info.operands

    @property
    def is_quotation(self) -> bool:
        return "function" in self.info.operands


OPCODE_TABLE: dict[Opcode, OpcodeInfo] = {
    Opcode.NEUTRAL:             OpcodeInfo(True, 0, 0, ("variable",)),
    Opcode.INCREASE:            OpcodeInfo(True, 1, 0, ("variable",)),
    Opcode.DECREASE:            OpcodeInfo(True, 1, 0, ("variable",)),
    Opcode.JUMP_NOT_ZERO:       OpcodeInfo(True, 2, 0, ("variable", "target")),
    Opcode.ZERO_VARIABLE:       OpcodeInfo(False, 1, 1, ("variable",)),
    Opcode.GOTO_LABEL:          OpcodeInfo(False, 1, 1, ("target",)),
    Opcode.CONSTANT_ASSIGNMENT: OpcodeInfo(False, 2, 2, ("variable", "constant")),
    Opcode.JUMP_ZERO:           OpcodeInfo(False, 2, 2, ("variable", "target")),
    Opcode.ASSIGNMENT:          OpcodeInfo(False, 4, 2, ("variable", "source")),
    Opcode.JUMP_EQUAL_CONSTANT: OpcodeInfo(False, 2, 3, ("variable", "constant", "target")),
    Opcode.JUMP_EQUAL_VARIABLE: OpcodeInfo(False, 2, 3, ("variable", "source", "target")),
    Opcode.QUOTATION:           OpcodeInfo(False, 5, None, ("variable", "function")),
    Opcode.JUMP_EQUAL_FUNCTION: OpcodeInfo(False, 6, None, ("variable", "function", "target")),
}


# ============================================================================
# Instruction
# ============================================================================

@dataclass(frozen=True)
class Instruction:
    """One S-language instruction.

    `label` is the label *of* this instruction (a jump target), `target`
    the label it jumps *to*. `source` is the assigned-from / compared
    variable, `function` and `arguments` the callee and its argument text.
    `origin` is the instruction this one was expanded from; it is
    provenance only and does not take part in equality.
    """
    opcode: Opcode
    variable: Optional[Variable] = None
    label: Label = EMPTY
    target: Label = EMPTY
    constant: Optional[int] = None
    source: Optional[Variable] = None
    function: Optional[str] = None
    arguments: str = ""
    origin: Optional[Instruction] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        name = self.opcode.value
        for operand in self.opcode.info.operands:
            value = getattr(self, operand)
            if value is None or (operand == "target" and value.is_empty):
                raise MissingOperandError(name, operand)
            if operand == "function" and not value.strip():
                raise MissingOperandError(name, operand)
        if self.constant is not None and self.constant < 0:
            raise InvalidOperandError(name, "constant", self.constant)
        if self.opcode.is_quotation:
            # Fail at construction on malformed argument text
            quote.parse_arguments(self.arguments)

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    @property
    def is_basic(self) -> bool:
        return self.opcode.is_basic

    @property
    def cycles(self) -> int:
        """Declared cycle cost (the base cost for quotations)."""
        return self.opcode.cycles

    @property
    def is_jump(self) -> bool:
        return self.opcode.is_jump

    @property
    def call(self) -> quote.Call:
        """The invoked function with its parsed arguments."""
        if not self.opcode.is_quotation:
            raise InvalidOperandError(self.opcode.value, "function", None)
        return quote.Call(self.function, quote.parse_arguments(self.arguments))

    @property
    def referenced_variables(self) -> tuple[Variable, ...]:
        found: list[Variable] = []
        for v in (self.variable, self.source):
            if v is not None and v not in found:
                found.append(v)
        if self.opcode.is_quotation:
            for v in sorted(self.call_variables, key=lambda v: v.sort_key):
                if v not in found:
                    found.append(v)
        return tuple(found)

    @property
    def call_variables(self) -> set[Variable]:
        """Variables named inside the argument expression."""
        if not self.opcode.is_quotation:
            return set()
        return quote.variables_in(quote.parse_arguments(self.arguments))

    @property
    def called_functions(self) -> set[str]:
        """The callee plus every function called inside the arguments."""
        if not self.opcode.is_quotation:
            return set()
        return {self.function} | quote.calls_in(quote.parse_arguments(self.arguments))

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def derived_from(self, origin: Instruction) -> Instruction:
        return replace(self, origin=origin)

    @property
    def ancestry(self) -> Iterator[Instruction]:
        """Origins, nearest first."""
        node = self.origin
        while node is not None:
            yield node
            node = node.origin

    def __str__(self) -> str:
        from semulator.view import format_instruction
        return format_instruction(self)


# ============================================================================
# Constructors
# ============================================================================

def neutral(variable: Variable, label: Label = EMPTY) -> Instruction:
    return Instruction(Opcode.NEUTRAL, variable, label)


def increase(variable: Variable, label: Label = EMPTY) -> Instruction:
    return Instruction(Opcode.INCREASE, variable, label)


def decrease(variable: Variable, label: Label = EMPTY) -> Instruction:
    return Instruction(Opcode.DECREASE, variable, label)


def jump_not_zero(variable: Variable, target: Label, label: Label = EMPTY) -> Instruction:
    return Instruction(Opcode.JUMP_NOT_ZERO, variable, label, target)


def zero_variable(variable: Variable, label: Label = EMPTY) -> Instruction:
    return Instruction(Opcode.ZERO_VARIABLE, variable, label)


def goto_label(target: Label, label: Label = EMPTY) -> Instruction:
    return Instruction(Opcode.GOTO_LABEL, None, label, target)


def constant_assignment(variable: Variable, constant: int, label: Label = EMPTY) -> Instruction:
    return Instruction(Opcode.CONSTANT_ASSIGNMENT, variable, label, constant=constant)


def jump_zero(variable: Variable, target: Label, label: Label = EMPTY) -> Instruction:
    return Instruction(Opcode.JUMP_ZERO, variable, label, target)


def assignment(variable: Variable, source: Variable, label: Label = EMPTY) -> Instruction:
    return Instruction(Opcode.ASSIGNMENT, variable, label, source=source)


def jump_equal_constant(
    variable: Variable, constant: int, target: Label, label: Label = EMPTY
) -> Instruction:
    return Instruction(Opcode.JUMP_EQUAL_CONSTANT, variable, label, target, constant=constant)


def jump_equal_variable(
    variable: Variable, other: Variable, target: Label, label: Label = EMPTY
) -> Instruction:
    return Instruction(Opcode.JUMP_EQUAL_VARIABLE, variable, label, target, source=other)


def quotation(
    variable: Variable, function: str, arguments: str = "", label: Label = EMPTY
) -> Instruction:
    return Instruction(Opcode.QUOTATION, variable, label, function=function, arguments=arguments)


def jump_equal_function(
    variable: Variable, function: str, arguments: str, target: Label, label: Label = EMPTY
) -> Instruction:
    return Instruction(
        Opcode.JUMP_EQUAL_FUNCTION, variable, label, target,
        function=function, arguments=arguments,
    )
