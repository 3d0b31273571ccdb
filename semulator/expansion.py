"""
S-Emulator Expansion Engine

Rewrites synthetic instructions into their canonical lower-degree
equivalents, one round at a time.

A round (expand_once) scans the whole instruction list for names in use,
then replaces every synthetic instruction with its expansion; basic
instructions pass through untouched. Expansions depend only on the
instruction's own operands plus fresh names, never on its position.

Label handoff: a labelled instruction gives its label to the first
instruction of its expansion, so jumps into it still land on the same
program point. Where the first expanded instruction is itself a jump
target inside the expansion, a labelled NEUTRAL goes first.

Usage:
    expander = Expander(registry)
    expander.max_degree(program)   # rounds to fully basic
    expander.expand_to_degree(program, 1)    # new Program, one round in
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from semulator.compose import Inliner, bound_arguments, resolve_bare_name
from semulator.errors import InvalidOperandError
from semulator.instructions import (
    Instruction,
    Opcode,
    assignment,
    decrease,
    goto_label,
    increase,
    jump_not_zero,
    jump_zero,
    neutral,
    zero_variable,
)
from semulator.names import FreshNames
from semulator import quote
from semulator.program import Program
from semulator.registry import FunctionRegistry

logger = logging.getLogger(__name__)

Rule = Callable[[Instruction, FreshNames], list[Instruction]]


class Expander:
    """Expansion rules per opcode, plus degree computation."""

    def __init__(self, registry: Optional[FunctionRegistry] = None) -> None:
        self._registry = registry if registry is not None else FunctionRegistry()
        self._inliner = Inliner(self._registry)
        self._max_degree: dict[str, int] = {}
        self._cache_version = self._registry.version
        self._rules: dict[Opcode, Rule] = {
            Opcode.ZERO_VARIABLE: self._zero_variable,
            Opcode.GOTO_LABEL: self._goto_label,
            Opcode.CONSTANT_ASSIGNMENT: self._constant_assignment,
            Opcode.JUMP_ZERO: self._jump_zero,
            Opcode.ASSIGNMENT: self._assignment,
            Opcode.JUMP_EQUAL_CONSTANT: self._jump_equal_constant,
            Opcode.JUMP_EQUAL_VARIABLE: self._jump_equal_variable,
            Opcode.QUOTATION: self._inliner.inline,
            Opcode.JUMP_EQUAL_FUNCTION: self._inliner.inline,
        }

    @property
    def registry(self) -> FunctionRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Rounds
    # ------------------------------------------------------------------

    def expand_instruction(self, ins: Instruction, names: FreshNames) -> list[Instruction]:
        """One step of expansion for a single instruction."""
        if ins.is_basic:
            return [ins]
        rule = self._rules[ins.opcode]
        return [e.derived_from(ins) for e in rule(ins, names)]

    def expand_once(self, instructions: Sequence[Instruction]) -> list[Instruction]:
        names = FreshNames(instructions)
        out: list[Instruction] = []
        for ins in instructions:
            out.extend(self.expand_instruction(ins, names))
        return out

    def expand_program_once(self, program: Program) -> Program:
        return program.with_instructions(self.expand_once(program.instructions))

    def expand_to_degree(self, program: Program, degree: int) -> Program:
        """Apply at most `degree` rounds, stopping once fully basic."""
        if degree < 0:
            raise InvalidOperandError("expand", "degree", degree)
        current = program
        for _ in range(degree):
            if current.is_fully_basic:
                break
            current = self.expand_program_once(current)
        return current

    def expand_fully(self, program: Program) -> Program:
        return self.expand_to_degree(program, self.max_degree(program))

    # ------------------------------------------------------------------
    # Degree
    # ------------------------------------------------------------------

    def max_degree(self, program: Program) -> int:
        """Number of rounds until the program is fully basic."""
        # Only registered programs are memoised; any registration invalidates them
        if self._cache_version != self._registry.version:
            self._max_degree.clear()
            self._cache_version = self._registry.version
        registered = program.name in self._registry and self._registry.get(program.name) is program
        if registered and program.name in self._max_degree:
            return self._max_degree[program.name]

        rounds = 0
        current = program
        while not current.is_fully_basic:
            current = self.expand_program_once(current)
            rounds += 1
        logger.debug("max degree of '%s' = %d", program.name, rounds)

        if registered:
            self._max_degree[program.name] = rounds
        return rounds

    def instruction_degree(self, ins: Instruction) -> int:
        """Rounds needed to rewrite this single instruction into basic form."""
        if ins.opcode == Opcode.ASSIGNMENT and ins.variable == ins.source:
            return 1
        static = ins.opcode.degree
        if static is not None:
            return static
        # Comparison glue is JUMP_EQUAL_VARIABLE, copy-back glue is ASSIGNMENT
        if ins.opcode == Opcode.JUMP_EQUAL_FUNCTION:
            glue = Opcode.JUMP_EQUAL_VARIABLE.degree
        else:
            glue = Opcode.ASSIGNMENT.degree
        return 1 + max(glue, self._call_degree(ins.call))

    def _call_degree(self, call: quote.Call) -> int:
        """Highest degree among what inlining `call` emits, glue excluded."""
        callee = self._registry.get_program_by_name(call.function)
        degrees = [self.max_degree(callee)]
        for arg in bound_arguments(call, callee):
            if isinstance(arg, quote.Name) and not arg.is_variable:
                arg = resolve_bare_name(arg, self._registry)
            if isinstance(arg, quote.Call):
                # Nested argument becomes a QUOTATION: 1 + max(copy-back, its own call)
                degrees.append(1 + max(Opcode.ASSIGNMENT.degree, self._call_degree(arg)))
            else:
                degrees.append(Opcode.CONSTANT_ASSIGNMENT.degree)
        return max(degrees)

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def _zero_variable(self, ins: Instruction, names: FreshNames) -> list[Instruction]:
        v = ins.variable
        loop = names.fresh_label()
        out = [neutral(v, ins.label)] if ins.label else []
        out += [
            decrease(v, loop),
            jump_not_zero(v, loop),
        ]
        return out

    def _goto_label(self, ins: Instruction, names: FreshNames) -> list[Instruction]:
        z = names.fresh_variable()
        return [
            increase(z, ins.label),
            jump_not_zero(z, ins.target),
        ]

    def _constant_assignment(self, ins: Instruction, names: FreshNames) -> list[Instruction]:
        v = ins.variable
        return [zero_variable(v, ins.label)] + [increase(v) for _ in range(ins.constant)]

    def _jump_zero(self, ins: Instruction, names: FreshNames) -> list[Instruction]:
        v = ins.variable
        skip = names.fresh_label()
        return [
            jump_not_zero(v, skip, ins.label),
            goto_label(ins.target),
            neutral(v, skip),
        ]

    def _assignment(self, ins: Instruction, names: FreshNames) -> list[Instruction]:
        dst, src = ins.variable, ins.source
        if dst == src:
            return [neutral(dst, ins.label)] if ins.label else []

        drain, restore, done = names.fresh_label(), names.fresh_label(), names.fresh_label()
        z = names.fresh_variable()
        return [
            zero_variable(dst, ins.label),
            jump_not_zero(src, drain),
            goto_label(done),
            decrease(src, drain),
            increase(z),
            jump_not_zero(src, drain),
            decrease(z, restore),
            increase(dst),
            increase(src),
            jump_not_zero(z, restore),
            neutral(dst, done),
        ]

    def _jump_equal_constant(self, ins: Instruction, names: FreshNames) -> list[Instruction]:
        v = ins.variable
        z = names.fresh_variable()
        differ = names.fresh_label()
        out = [assignment(z, v, ins.label)]
        for _ in range(ins.constant):
            out.append(jump_zero(z, differ))
            out.append(decrease(z))
        out += [
            jump_not_zero(z, differ),
            goto_label(ins.target),
            neutral(v, differ),
        ]
        return out

    def _jump_equal_variable(self, ins: Instruction, names: FreshNames) -> list[Instruction]:
        v, other = ins.variable, ins.source
        z1, z2 = names.fresh_variable(), names.fresh_variable()
        differ, loop, first_done = names.fresh_label(), names.fresh_label(), names.fresh_label()
        return [
            assignment(z1, v, ins.label),
            assignment(z2, other),
            jump_zero(z1, first_done, loop),
            jump_zero(z2, differ),
            decrease(z1),
            decrease(z2),
            goto_label(loop),
            jump_zero(z2, ins.target, first_done),
            neutral(v, differ),
        ]
