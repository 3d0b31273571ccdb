"""
S-Emulator Function Composition (Quotation)

Two ways to give a QUOTATION / JUMP_EQUAL_FUNCTION instruction meaning:

1. Direct evaluation (CallEvaluator): evaluate every argument in the
   caller's current environment, run the callee on the resulting inputs,
   and return (value, cycles). Nested argument calls are evaluated the same
   way, recursively. Cycles are an explicit return value folded by the
   caller; nothing is accumulated in shared state.

2. Inlining (Inliner): rewrite the instruction into a copy of the callee's
   body over fresh variables and labels, preceded by instructions that
   materialise the arguments and followed by a copy-back (QUOTATION) or a
   comparison (JUMP_EQUAL_FUNCTION).

Cost of direct evaluation:
    nested argument call   = QUOTATION base + its own evaluation cycles
    top-level instruction  = instruction base + argument cycles + callee run cycles

A nested argument call is charged exactly what the inlined path pays when
it later executes the nested QUOTATION it emitted for that argument.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Callable, Mapping, Sequence

from semulator.errors import ArgumentValueError, UnknownVariableError
from semulator.instructions import (
    Instruction,
    Opcode,
    assignment,
    constant_assignment,
    jump_equal_variable,
    neutral,
    quotation,
    zero_variable,
)
from semulator.model import EMPTY, EXIT, RESULT, Label, Variable
from semulator.names import FreshNames
from semulator import quote
from semulator.program import Program
from semulator.registry import FunctionRegistry

if TYPE_CHECKING:
    from semulator.runtime import ExecutionResult

logger = logging.getLogger(__name__)

QUOTATION_BASE_CYCLES = Opcode.QUOTATION.cycles


def resolve_bare_name(arg: quote.Name, registry: FunctionRegistry) -> quote.Call:
    """A bare non-variable name is a zero-argument call if such a function exists."""
    if arg.text in registry:
        return quote.Call(arg.text)
    raise UnknownVariableError(arg.text)


def bound_arguments(call: quote.Call, callee: Program) -> Sequence[quote.Argument]:
    """Arguments beyond the callee's input count are ignored."""
    return call.arguments[:callee.required_input_count]


# ============================================================================
# Direct evaluation
# ============================================================================

class CallEvaluator:
    """Evaluates quotations by running callees.

    `run(program, inputs)` executes a program from scratch and returns an
    ExecutionResult; the Runtime passes its own run method.
    """

    def __init__(
        self,
        registry: FunctionRegistry,
        run: Callable[[Program, list[int]], ExecutionResult],
    ) -> None:
        self._registry = registry
        self._run = run

    def evaluate(
        self, instruction: Instruction, env: Mapping[Variable, int], caller: str = ""
    ) -> tuple[int, int]:
        """Value of the instruction's call and the cycles it consumed (base cost excluded)."""
        return self.call(instruction.call, env, caller)

    def call(
        self, call: quote.Call, env: Mapping[Variable, int], caller: str = ""
    ) -> tuple[int, int]:
        callee = self._registry.get_program_by_name(call.function, caller)
        inputs: list[int] = []
        cycles = 0
        for arg in bound_arguments(call, callee):
            value, spent = self._argument(arg, env, callee.name, caller)
            inputs.append(value)
            cycles += spent
        inputs.extend([0] * (callee.required_input_count - len(inputs)))

        result = self._run(callee, inputs)
        logger.debug("%s%s = %d (%d cycles)", callee.name, tuple(inputs), result.result, result.cycles)
        return result.result, cycles + result.cycles

    def _argument(
        self, arg: quote.Argument, env: Mapping[Variable, int], function: str, caller: str
    ) -> tuple[int, int]:
        if isinstance(arg, quote.Constant):
            if arg.value < 0:
                raise ArgumentValueError(arg.value, function)
            return arg.value, 0
        if isinstance(arg, quote.Name):
            if arg.is_variable:
                return env.get(arg.variable, 0), 0
            arg = resolve_bare_name(arg, self._registry)
        value, spent = self.call(arg, env, caller)
        return value, QUOTATION_BASE_CYCLES + spent


# ============================================================================
# Inlining
# ============================================================================

class Inliner:
    """Expands a quotation into the callee's body over fresh names."""

    def __init__(self, registry: FunctionRegistry) -> None:
        self._registry = registry

    def inline(self, ins: Instruction, names: FreshNames) -> list[Instruction]:
        call = ins.call
        callee = self._registry.get_program_by_name(call.function)

        # Renaming tables, built once per inlining
        variables: dict[Variable, Variable] = {
            v: names.fresh_variable() for v in callee.variables
        }
        if RESULT not in variables:
            variables[RESULT] = names.fresh_variable()
        end = names.fresh_label()
        labels: dict[Label, Label] = {EXIT: end, EMPTY: EMPTY}
        for body in callee:
            for lbl in (body.label, body.target):
                if lbl.is_numbered and lbl not in labels:
                    labels[lbl] = names.fresh_label()

        out: list[Instruction] = []
        if ins.label:
            out.append(neutral(ins.variable, ins.label))

        supplied: set[Variable] = set()
        for i, arg in enumerate(bound_arguments(call, callee), start=1):
            parameter = Variable.input(i)
            if parameter not in variables:
                continue
            out.append(self._materialise(arg, variables[parameter], callee.name))
            supplied.add(parameter)

        for v, fresh in variables.items():
            if v not in supplied:
                out.append(zero_variable(fresh))

        out.extend(self._clone(body, variables, labels) for body in callee)

        fresh_result = variables[RESULT]
        if ins.opcode == Opcode.QUOTATION:
            out.append(assignment(ins.variable, fresh_result, end))
        else:
            out.append(jump_equal_variable(ins.variable, fresh_result, ins.target, end))

        logger.debug("inlined %s: %d instructions", callee.name, len(out))
        return out

    def _materialise(self, arg: quote.Argument, dst: Variable, function: str) -> Instruction:
        if isinstance(arg, quote.Constant):
            if arg.value < 0:
                raise ArgumentValueError(arg.value, function)
            return constant_assignment(dst, arg.value)
        if isinstance(arg, quote.Name):
            if arg.is_variable:
                return assignment(dst, arg.variable)
            arg = resolve_bare_name(arg, self._registry)
        return quotation(dst, arg.function, quote.render_arguments(arg.arguments))

    @staticmethod
    def _clone(
        ins: Instruction,
        variables: Mapping[Variable, Variable],
        labels: Mapping[Label, Label],
    ) -> Instruction:
        def var(v):
            return variables.get(v, v) if v is not None else None

        changes = dict(
            variable=var(ins.variable),
            source=var(ins.source),
            label=labels.get(ins.label, ins.label),
            target=labels.get(ins.target, ins.target),
        )
        if ins.opcode.is_quotation:
            args = quote.parse_arguments(ins.arguments)
            changes["arguments"] = quote.render_arguments(quote.rename(args, variables))
        return replace(ins, **changes)
