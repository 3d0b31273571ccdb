"""
S-Emulator Value Model: Variables and Labels

Registers and jump targets are plain immutable values. Two variables are
the same register iff their textual representations match; the same holds
for labels.

- Variable: x<n> (INPUT), z<n> (WORK), or the single result register y.
- Label: L<n> (n >= 1), or one of the sentinels EMPTY ("fall through")
  and EXIT ("halt").
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from semulator.errors import InvalidLabelError, InvalidVariableError


_VARIABLE_RE = re.compile(r"^([xXzZ])([1-9]\d*)$")
_LABEL_RE = re.compile(r"^[lL]([1-9]\d*)$")


class VariableKind(Enum):
    INPUT = "x"
    RESULT = "y"
    WORK = "z"


# Display/sort order: inputs, then y, then work registers
_KIND_ORDER = {VariableKind.INPUT: 0, VariableKind.RESULT: 1, VariableKind.WORK: 2}


@dataclass(frozen=True, order=False)
class Variable:
    """A register. RESULT carries index 0; INPUT/WORK carry a positive index."""
    kind: VariableKind
    index: int = 0

    def __post_init__(self) -> None:
        if self.kind == VariableKind.RESULT:
            if self.index != 0:
                raise InvalidVariableError(f"y{self.index}")
        elif self.index < 1:
            raise InvalidVariableError(f"{self.kind.value}{self.index}")

    @classmethod
    def input(cls, index: int) -> Variable:
        return cls(VariableKind.INPUT, index)

    @classmethod
    def work(cls, index: int) -> Variable:
        return cls(VariableKind.WORK, index)

    @classmethod
    def parse(cls, text: str) -> Variable:
        """Parse 'x3', 'Z12' or 'y' (case-insensitive)."""
        t = text.strip()
        if t.lower() == "y":
            return RESULT
        m = _VARIABLE_RE.match(t)
        if not m:
            raise InvalidVariableError(text)
        kind = VariableKind.INPUT if m.group(1).lower() == "x" else VariableKind.WORK
        return cls(kind, int(m.group(2)))

    @staticmethod
    def is_name(text: str) -> bool:
        t = text.strip()
        return t.lower() == "y" or bool(_VARIABLE_RE.match(t))

    @property
    def name(self) -> str:
        if self.kind == VariableKind.RESULT:
            return "y"
        return f"{self.kind.value}{self.index}"

    @property
    def is_input(self) -> bool:
        return self.kind == VariableKind.INPUT

    @property
    def is_work(self) -> bool:
        return self.kind == VariableKind.WORK

    @property
    def is_result(self) -> bool:
        return self.kind == VariableKind.RESULT

    @property
    def sort_key(self) -> tuple[int, int]:
        return (_KIND_ORDER[self.kind], self.index)

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"<Var {self.name}>"


RESULT = Variable(VariableKind.RESULT)


@dataclass(frozen=True)
class Label:
    """A jump target. Construct with Label.numbered(), Label.parse() or the sentinels."""
    name: str

    @classmethod
    def numbered(cls, number: int) -> Label:
        if number < 1:
            raise InvalidLabelError(f"L{number}")
        return cls(f"L{number}")

    @classmethod
    def parse(cls, text: str) -> Label:
        t = text.strip()
        if not t:
            return EMPTY
        if t.upper() == "EXIT":
            return EXIT
        m = _LABEL_RE.match(t)
        if not m:
            raise InvalidLabelError(text)
        return cls(f"L{int(m.group(1))}")

    @property
    def is_empty(self) -> bool:
        return self.name == ""

    @property
    def is_exit(self) -> bool:
        return self.name == "EXIT"

    @property
    def is_numbered(self) -> bool:
        return not (self.is_empty or self.is_exit)

    @property
    def number(self) -> int:
        if not self.is_numbered:
            raise InvalidLabelError(self.name)
        return int(self.name[1:])

    def __bool__(self) -> bool:
        return not self.is_empty

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"<Label {self.name or 'EMPTY'}>"


EMPTY = Label("")
EXIT = Label("EXIT")
