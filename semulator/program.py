"""
S-Emulator Program

A Program is a name plus an ordered, immutable list of instructions with a
label -> index table. Construction appends instructions one at a time:
each append records the instruction's variables and, when it declares a
label, enters it into the table. A second declaration of the same label is
fatal.

Jump targets are not checked at construction (a loader may build a program
before all its labels exist); validate() checks them, and the runtime calls
validate() before every run.

Usage:
    prog = Program("count", [
        decrease(x1, label=Label.numbered(1)),
        increase(RESULT),
        jump_not_zero(x1, Label.numbered(1)),
    ])
    prog.required_input_count   # 1
    prog.index_of(Label.numbered(1))   # 0
"""

from __future__ import annotations

from typing import Iterable, Iterator

from semulator.errors import DuplicateLabelError, UnknownLabelError
from semulator.instructions import Instruction
from semulator.model import Label, Variable


class Program:
    """An immutable, named S-language program."""

    def __init__(self, name: str, instructions: Iterable[Instruction] = ()) -> None:
        self._name = name
        self._instructions: list[Instruction] = []
        self._labels: dict[Label, int] = {}
        self._variables: set[Variable] = set()
        for ins in instructions:
            self._append(ins)
        self._frozen = tuple(self._instructions)

    def _append(self, ins: Instruction) -> None:
        index = len(self._instructions)
        if ins.label.is_numbered:
            first = self._labels.get(ins.label)
            if first is not None:
                raise DuplicateLabelError(ins.label.name, first, index, self._name)
            self._labels[ins.label] = index
        self._variables.update(ins.referenced_variables)
        self._instructions.append(ins)

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def instructions(self) -> tuple[Instruction, ...]:
        return self._frozen

    def __len__(self) -> int:
        return len(self._frozen)

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self._frozen)

    def __getitem__(self, index: int) -> Instruction:
        return self._frozen[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Program):
            return NotImplemented
        return self._name == other._name and self._frozen == other._frozen

    def __hash__(self) -> int:
        return hash((self._name, self._frozen))

    def with_instructions(self, instructions: Iterable[Instruction]) -> Program:
        """A new program with the same name."""
        return Program(self._name, instructions)

    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------

    @property
    def labels(self) -> list[Label]:
        """Declared labels, in program order."""
        return list(self._labels)

    def has_label(self, label: Label) -> bool:
        return label in self._labels

    def index_of(self, label: Label) -> int:
        try:
            return self._labels[label]
        except KeyError:
            raise UnknownLabelError(label.name, self._name) from None

    def instruction_at(self, label: Label) -> Instruction:
        return self._frozen[self.index_of(label)]

    def validate(self) -> Program:
        """Check every jump target resolves. Returns self for chaining."""
        for i, ins in enumerate(self._frozen):
            t = ins.target
            if t.is_numbered and t not in self._labels:
                raise UnknownLabelError(t.name, self._name, i)
        return self

    # ------------------------------------------------------------------
    # Variables
    # ------------------------------------------------------------------

    @property
    def variables(self) -> list[Variable]:
        """Every referenced variable: inputs, then y, then work variables."""
        return sorted(self._variables, key=lambda v: v.sort_key)

    @property
    def input_variables(self) -> list[Variable]:
        return [v for v in self.variables if v.is_input]

    @property
    def work_variables(self) -> list[Variable]:
        return [v for v in self.variables if v.is_work]

    @property
    def required_input_count(self) -> int:
        """Highest input index referenced (0 when the program reads no input)."""
        return max((v.index for v in self._variables if v.is_input), default=0)

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    @property
    def is_fully_basic(self) -> bool:
        return all(ins.is_basic for ins in self._frozen)

    @property
    def called_functions(self) -> set[str]:
        names: set[str] = set()
        for ins in self._frozen:
            names |= ins.called_functions
        return names

    def __repr__(self) -> str:
        return f"<Program '{self._name}' instructions={len(self._frozen)} labels={len(self._labels)}>"
