"""
Instruction formatting and program views.

format_instruction renders the textual syntax the assembler reads back:

    x1 <- x1 + 1          IF x1 != 0 GOTO L1
    x1 <- x1 - 1          IF x1 = 0 GOTO EXIT
    y <- y                IF z1 = 3 GOTO L2
    z1 <- 0               IF x1 = x2 GOTO L2
    z1 <- 5               IF y = (ADD,x1,x2) GOTO L3
    y <- x2               GOTO L4
    y <- (ADD,x1,(SUCC,3))

A ProgramListing is the answer to a view/expand request: one row per
instruction of the program at the requested degree, with its cycle cost,
remaining degree and the texts of the instructions it was expanded from.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from semulator.expansion import Expander
from semulator.instructions import Instruction, Opcode
from semulator import quote
from semulator.program import Program


def _call_text(ins: Instruction) -> str:
    return quote.render_call(ins.call)


_FORMATS: dict[Opcode, Callable[[Instruction], str]] = {
    Opcode.NEUTRAL: lambda i: f"{i.variable} <- {i.variable}",
    Opcode.INCREASE: lambda i: f"{i.variable} <- {i.variable} + 1",
    Opcode.DECREASE: lambda i: f"{i.variable} <- {i.variable} - 1",
    Opcode.JUMP_NOT_ZERO: lambda i: f"IF {i.variable} != 0 GOTO {i.target}",
    Opcode.ZERO_VARIABLE: lambda i: f"{i.variable} <- 0",
    Opcode.GOTO_LABEL: lambda i: f"GOTO {i.target}",
    Opcode.CONSTANT_ASSIGNMENT: lambda i: f"{i.variable} <- {i.constant}",
    Opcode.JUMP_ZERO: lambda i: f"IF {i.variable} = 0 GOTO {i.target}",
    Opcode.ASSIGNMENT: lambda i: f"{i.variable} <- {i.source}",
    Opcode.JUMP_EQUAL_CONSTANT: lambda i: f"IF {i.variable} = {i.constant} GOTO {i.target}",
    Opcode.JUMP_EQUAL_VARIABLE: lambda i: f"IF {i.variable} = {i.source} GOTO {i.target}",
    Opcode.QUOTATION: lambda i: f"{i.variable} <- {_call_text(i)}",
    Opcode.JUMP_EQUAL_FUNCTION: lambda i: f"IF {i.variable} = {_call_text(i)} GOTO {i.target}",
}


def format_instruction(ins: Instruction) -> str:
    return _FORMATS[ins.opcode](ins)


def format_line(ins: Instruction, width: int = 5) -> str:
    """Instruction text with its label column, as written in source files."""
    label = f"[{ins.label}]" if ins.label else ""
    return f"{label:<{width}} {format_instruction(ins)}"


@dataclass(frozen=True)
class ListingRow:
    index: int
    opcode: Opcode
    label: str
    text: str
    cycles: int
    degree: int
    basic: bool
    history: tuple[str, ...] = ()

    def row(self) -> str:
        kind = "B" if self.basic else "S"
        label = f"[{self.label}]" if self.label else ""
        return f"#{self.index + 1:<4} ({kind}) {label:<6} {self.text}  ({self.cycles})"


@dataclass
class ProgramListing:
    name: str
    degree: int
    max_degree: int
    rows: list[ListingRow] = field(default_factory=list)
    input_variables: list[str] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)

    @classmethod
    def build(cls, program: Program, expander: Expander, degree: int = 0) -> ProgramListing:
        expanded = expander.expand_to_degree(program, degree)
        rows = [
            ListingRow(
                index=i,
                opcode=ins.opcode,
                label=ins.label.name,
                text=format_instruction(ins),
                cycles=ins.cycles,
                degree=expander.instruction_degree(ins),
                basic=ins.is_basic,
                history=tuple(format_instruction(a) for a in ins.ancestry),
            )
            for i, ins in enumerate(expanded)
        ]
        return cls(
            name=program.name,
            degree=degree,
            max_degree=expander.max_degree(program),
            rows=rows,
            input_variables=[v.name for v in expanded.input_variables],
            labels=[lbl.name for lbl in expanded.labels],
        )

    @property
    def total_cycles(self) -> int:
        return sum(r.cycles for r in self.rows)

    def render(self) -> str:
        lines = [f"{self.name}  (degree {self.degree}/{self.max_degree})"]
        lines.extend(r.row() for r in self.rows)
        return "\n".join(lines)
