"""
Fresh name allocation for one expansion round.

Before a round expands an instruction list, the list is scanned once for
every work variable (z<n>) and numbered label (L<n>) in use. The allocators
then hand out names strictly above what was seen, skipping anything already
taken, so a round never produces a collision with pre-existing names or with
names it allocated earlier.
"""

from __future__ import annotations

import logging
from typing import Callable, Generic, Iterable, TypeVar

from semulator.instructions import Instruction
from semulator.model import Label, Variable
from semulator import quote

logger = logging.getLogger(__name__)

T = TypeVar("T")


class NumberPool(Generic[T]):
    """Hands out make(n) for increasing n, never repeating a used number."""

    def __init__(self, used: Iterable[int], make: Callable[[int], T]) -> None:
        self._used = set(used)
        self._counter = max(self._used, default=0)
        self._make = make

    def next(self) -> T:
        self._counter += 1
        while self._counter in self._used:
            self._counter += 1
        self._used.add(self._counter)
        return self._make(self._counter)

    @property
    def high_water(self) -> int:
        return self._counter


def used_names(instructions: Iterable[Instruction]) -> tuple[set[int], set[int]]:
    """Work-variable indices and label numbers referenced anywhere in the list."""
    work: set[int] = set()
    labels: set[int] = set()
    for ins in instructions:
        for v in (ins.variable, ins.source):
            if v is not None and v.is_work:
                work.add(v.index)
        if ins.opcode.is_quotation:
            for v in quote.variables_in(quote.parse_arguments(ins.arguments)):
                if v.is_work:
                    work.add(v.index)
        for lbl in (ins.label, ins.target):
            if lbl.is_numbered:
                labels.add(lbl.number)
    return work, labels


class FreshNames:
    """Fresh-name source scoped to a single expansion round."""

    def __init__(self, instructions: Iterable[Instruction]) -> None:
        work, labels = used_names(instructions)
        self._variables = NumberPool(work, Variable.work)
        self._labels = NumberPool(labels, Label.numbered)
        logger.debug("expansion round: %d work variables, %d labels in use", len(work), len(labels))

    def fresh_variable(self) -> Variable:
        return self._variables.next()

    def fresh_label(self) -> Label:
        return self._labels.next()
