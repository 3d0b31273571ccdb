"""
S-Emulator Cost and Architecture

Static cost of a program at a degree is the sum of the declared cycle costs
of the instructions at that degree. Synthetic instructions that are not yet
expanded contribute their base cost, so for quotations this is only an
estimate: their true cost depends on the inputs.

Architectures are tiers of instruction support with a fixed credit
surcharge per run:

    I     5      Basic             NEUTRAL, INCREASE, DECREASE, JUMP_NOT_ZERO
    II    100    Optimized         + ZERO_VARIABLE, CONSTANT_ASSIGNMENT, GOTO_LABEL
    III   500    High performance  + ASSIGNMENT, JUMP_ZERO, JUMP_EQUAL_CONSTANT,
                                     JUMP_EQUAL_VARIABLE
    IV    1000   Ultimate          + QUOTATION, JUMP_EQUAL_FUNCTION
"""

from __future__ import annotations

from enum import Enum

from semulator.expansion import Expander
from semulator.instructions import Instruction, Opcode
from semulator.program import Program


class Architecture(Enum):
    I = (1, 5, "Basic")
    II = (2, 100, "Optimized")
    III = (3, 500, "High performance")
    IV = (4, 1000, "Ultimate")

    def __init__(self, rank: int, credits: int, description: str) -> None:
        self.rank = rank
        self.credits = credits
        self.description = description

    def supports(self, opcode: Opcode) -> bool:
        return MINIMUM_ARCHITECTURE[opcode].rank <= self.rank

    @classmethod
    def parse(cls, text: str) -> Architecture:
        try:
            return cls[text.strip().upper()]
        except KeyError:
            raise KeyError(
                f"Unknown architecture '{text}'. "
                f"Known: {[a.name for a in cls]}"
            ) from None

    def __str__(self) -> str:
        return self.name


MINIMUM_ARCHITECTURE: dict[Opcode, Architecture] = {
    Opcode.NEUTRAL: Architecture.I,
    Opcode.INCREASE: Architecture.I,
    Opcode.DECREASE: Architecture.I,
    Opcode.JUMP_NOT_ZERO: Architecture.I,
    Opcode.ZERO_VARIABLE: Architecture.II,
    Opcode.CONSTANT_ASSIGNMENT: Architecture.II,
    Opcode.GOTO_LABEL: Architecture.II,
    Opcode.ASSIGNMENT: Architecture.III,
    Opcode.JUMP_ZERO: Architecture.III,
    Opcode.JUMP_EQUAL_CONSTANT: Architecture.III,
    Opcode.JUMP_EQUAL_VARIABLE: Architecture.III,
    Opcode.QUOTATION: Architecture.IV,
    Opcode.JUMP_EQUAL_FUNCTION: Architecture.IV,
}


def minimum_architecture(program: Program) -> Architecture:
    """Lowest tier that supports every instruction of the program."""
    tiers = [MINIMUM_ARCHITECTURE[ins.opcode] for ins in program]
    return max(tiers, key=lambda a: a.rank, default=Architecture.I)


def unsupported_instructions(program: Program, architecture: Architecture) -> list[tuple[int, Instruction]]:
    return [(i, ins) for i, ins in enumerate(program) if not architecture.supports(ins.opcode)]


class CostCalculator:
    """Static cycle and credit cost of programs."""

    def __init__(self, expander: Expander) -> None:
        self._expander = expander

    @staticmethod
    def static_cycles(program: Program) -> int:
        return sum(ins.cycles for ins in program)

    def cycles_at_degree(self, program: Program, degree: int) -> int:
        return self.static_cycles(self._expander.expand_to_degree(program, degree))

    def cycles_fully_expanded(self, program: Program) -> int:
        return self.static_cycles(self._expander.expand_fully(program))

    def credit_cost(self, program: Program, architecture: Architecture) -> int:
        """Static cost at degree 0 plus the tier surcharge."""
        return self.static_cycles(program) + architecture.credits
