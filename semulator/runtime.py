"""
S-Emulator Execution Engine

Runs a program (at any expansion degree) against positional inputs.

The Runtime:
1. Validates the inputs and the program's labels before anything executes
2. Builds a fresh variable store (x<k> <- inputs[k-1], everything else 0)
3. Steps the program counter through the instruction list, resolving jump
   labels through the program's label table and adding each instruction's
   cycle cost (base + nested run cycles for quotations)
4. Halts on EXIT or when the counter runs off the end, and reports y, the
   final variable store and the total cycle count

States are Running(pc) and Halted; there is nothing else. A failed run
raises and produces no partial result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from semulator.compose import CallEvaluator
from semulator.errors import InsufficientInputError, InvalidInputError
from semulator.instructions import Instruction, Opcode
from semulator.model import EMPTY, EXIT, RESULT, Label, Variable
from semulator.program import Program
from semulator.registry import FunctionRegistry

logger = logging.getLogger(__name__)

Handler = Callable[[Instruction, "ExecutionState"], tuple[Label, int]]


def coerce_inputs(values: Iterable[Any]) -> list[int]:
    """Non-negative integers; strings of digits are accepted."""
    out: list[int] = []
    for i, value in enumerate(values):
        if isinstance(value, bool):
            raise InvalidInputError(value, i)
        if isinstance(value, str):
            text = value.strip()
            if not text.isdigit():
                raise InvalidInputError(value, i)
            value = int(text)
        if not isinstance(value, int) or value < 0:
            raise InvalidInputError(value, i)
        out.append(value)
    return out


@dataclass
class ExecutionState:
    """Mutable state of one run. Created by Runtime.start(), discarded at halt."""
    program: Program
    variables: dict[Variable, int]
    pc: int = 0
    cycles: int = 0
    steps: int = 0
    halted: bool = False
    trace: bool = False
    # Provenance log (one entry per executed instruction when tracing)
    provenance: list[dict[str, Any]] = field(default_factory=list)

    def value(self, variable: Variable) -> int:
        return self.variables.get(variable, 0)

    def set(self, variable: Variable, value: int) -> None:
        self.variables[variable] = max(value, 0)

    @property
    def current(self) -> Optional[Instruction]:
        if self.halted:
            return None
        return self.program[self.pc]

    def snapshot(self) -> dict[str, int]:
        """Variable values by name, inputs first, then y, then work variables."""
        ordered = sorted(self.variables, key=lambda v: v.sort_key)
        return {v.name: self.variables[v] for v in ordered}

    def log(self, details: dict[str, Any]) -> None:
        """Add to provenance trail."""
        entry = {
            "step": self.steps,
            **details,
            "total": self.cycles,
        }
        self.provenance.append(entry)


@dataclass
class ExecutionResult:
    """The observable outcome of a completed run."""
    program: Program
    result: int
    variables: dict[Variable, int]
    cycles: int
    steps: int
    trace: list[dict[str, Any]] = field(default_factory=list)

    @property
    def values(self) -> dict[str, int]:
        ordered = sorted(self.variables, key=lambda v: v.sort_key)
        return {v.name: self.variables[v] for v in ordered}

    def summary(self) -> str:
        lines = [
            f"Run of '{self.program.name}'",
            f"  y = {self.result}",
            f"  Cycles: {self.cycles}",
            f"  Steps: {self.steps}",
            "  Variables:",
        ]
        for name, value in self.values.items():
            lines.append(f"    {name} = {value}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"<ExecutionResult: y={self.result} cycles={self.cycles} steps={self.steps}>"


class Runtime:
    """S-language execution engine.

    Usage:
        runtime = Runtime(registry)
        result = runtime.run(program, [4])
        result.result, result.cycles

        # Or one instruction at a time:
        state = runtime.start(program, [4])
        while not state.halted:
            runtime.step(state)
    """

    def __init__(self, registry: Optional[FunctionRegistry] = None, trace: bool = False) -> None:
        self._registry = registry if registry is not None else FunctionRegistry()
        self._trace = trace
        self._quotes = CallEvaluator(self._registry, self._run_callee)
        self._handlers: dict[Opcode, Handler] = {
            Opcode.NEUTRAL: self._exec_neutral,
            Opcode.INCREASE: self._exec_increase,
            Opcode.DECREASE: self._exec_decrease,
            Opcode.JUMP_NOT_ZERO: self._exec_jump_not_zero,
            Opcode.ZERO_VARIABLE: self._exec_zero_variable,
            Opcode.GOTO_LABEL: self._exec_goto_label,
            Opcode.CONSTANT_ASSIGNMENT: self._exec_constant_assignment,
            Opcode.JUMP_ZERO: self._exec_jump_zero,
            Opcode.ASSIGNMENT: self._exec_assignment,
            Opcode.JUMP_EQUAL_CONSTANT: self._exec_jump_equal_constant,
            Opcode.JUMP_EQUAL_VARIABLE: self._exec_jump_equal_variable,
            Opcode.QUOTATION: self._exec_quotation,
            Opcode.JUMP_EQUAL_FUNCTION: self._exec_jump_equal_function,
        }

    @property
    def registry(self) -> FunctionRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self, program: Program, inputs: Iterable[Any] = ()) -> ExecutionResult:
        """Execute a program to completion."""
        state = self.start(program, inputs)
        while not state.halted:
            self.step(state)
        result = self.result_of(state)
        logger.debug("'%s' halted: y=%d after %d cycles", program.name, result.result, result.cycles)
        return result

    def start(self, program: Program, inputs: Iterable[Any] = (), trace: Optional[bool] = None) -> ExecutionState:
        """Validate and build the initial state, Running(0)."""
        program.validate()
        values = coerce_inputs(inputs)
        required = program.required_input_count
        if len(values) < required:
            raise InsufficientInputError(required, len(values), program.name)

        variables: dict[Variable, int] = {RESULT: 0}
        for v in program.variables:
            variables[v] = values[v.index - 1] if v.is_input else 0

        return ExecutionState(
            program=program,
            variables=variables,
            halted=len(program) == 0,
            trace=self._trace if trace is None else trace,
        )

    def step(self, state: ExecutionState) -> Label:
        """Execute the instruction at the program counter. Returns its outcome label."""
        if state.halted:
            return EXIT

        pc = state.pc
        ins = state.program[pc]
        handler = self._handlers[ins.opcode]
        outcome, cost = handler(ins, state)

        state.cycles += cost
        state.steps += 1
        if outcome.is_exit:
            state.halted = True
        elif outcome.is_empty:
            state.pc += 1
            state.halted = state.pc >= len(state.program)
        else:
            state.pc = state.program.index_of(outcome)

        if state.trace:
            from semulator.view import format_instruction
            state.log({
                "pc": pc,
                "instruction": format_instruction(ins),
                "next": outcome.name,
                "cycles": cost,
            })
        return outcome

    def result_of(self, state: ExecutionState) -> ExecutionResult:
        return ExecutionResult(
            program=state.program,
            result=state.value(RESULT),
            variables=dict(state.variables),
            cycles=state.cycles,
            steps=state.steps,
            trace=list(state.provenance),
        )

    def _run_callee(self, program: Program, inputs: list[int]) -> ExecutionResult:
        state = self.start(program, inputs, trace=False)
        while not state.halted:
            self.step(state)
        return self.result_of(state)

    # ------------------------------------------------------------------
    # Instruction Handlers
    # ------------------------------------------------------------------

    def _exec_neutral(self, ins: Instruction, state: ExecutionState) -> tuple[Label, int]:
        return EMPTY, ins.cycles

    def _exec_increase(self, ins: Instruction, state: ExecutionState) -> tuple[Label, int]:
        state.set(ins.variable, state.value(ins.variable) + 1)
        return EMPTY, ins.cycles

    def _exec_decrease(self, ins: Instruction, state: ExecutionState) -> tuple[Label, int]:
        state.set(ins.variable, state.value(ins.variable) - 1)
        return EMPTY, ins.cycles

    def _exec_jump_not_zero(self, ins: Instruction, state: ExecutionState) -> tuple[Label, int]:
        return (ins.target if state.value(ins.variable) != 0 else EMPTY), ins.cycles

    def _exec_zero_variable(self, ins: Instruction, state: ExecutionState) -> tuple[Label, int]:
        state.set(ins.variable, 0)
        return EMPTY, ins.cycles

    def _exec_goto_label(self, ins: Instruction, state: ExecutionState) -> tuple[Label, int]:
        return ins.target, ins.cycles

    def _exec_constant_assignment(self, ins: Instruction, state: ExecutionState) -> tuple[Label, int]:
        state.set(ins.variable, ins.constant)
        return EMPTY, ins.cycles

    def _exec_jump_zero(self, ins: Instruction, state: ExecutionState) -> tuple[Label, int]:
        return (ins.target if state.value(ins.variable) == 0 else EMPTY), ins.cycles

    def _exec_assignment(self, ins: Instruction, state: ExecutionState) -> tuple[Label, int]:
        state.set(ins.variable, state.value(ins.source))
        return EMPTY, ins.cycles

    def _exec_jump_equal_constant(self, ins: Instruction, state: ExecutionState) -> tuple[Label, int]:
        equal = state.value(ins.variable) == ins.constant
        return (ins.target if equal else EMPTY), ins.cycles

    def _exec_jump_equal_variable(self, ins: Instruction, state: ExecutionState) -> tuple[Label, int]:
        equal = state.value(ins.variable) == state.value(ins.source)
        return (ins.target if equal else EMPTY), ins.cycles

    def _exec_quotation(self, ins: Instruction, state: ExecutionState) -> tuple[Label, int]:
        value, spent = self._quotes.evaluate(ins, state.variables, state.program.name)
        state.set(ins.variable, value)
        return EMPTY, ins.cycles + spent

    def _exec_jump_equal_function(self, ins: Instruction, state: ExecutionState) -> tuple[Label, int]:
        value, spent = self._quotes.evaluate(ins, state.variables, state.program.name)
        equal = state.value(ins.variable) == value
        return (ins.target if equal else EMPTY), ins.cycles + spent
