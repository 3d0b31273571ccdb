"""
Step-wise debugging over the Runtime.

A Debugger owns one run. start() validates inputs and returns the
initial snapshot; step_over() executes one instruction; resume() runs to the
end; stop() abandons the run. Every call returns a DebugState.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from semulator.errors import DebuggerError
from semulator.program import Program
from semulator.runtime import ExecutionResult, ExecutionState, Runtime


@dataclass(frozen=True)
class DebugState:
    pc: Optional[int]          # next instruction to execute; None once finished
    variables: dict[str, int]
    cycles: int
    finished: bool

    def __repr__(self) -> str:
        where = "done" if self.finished else f"pc={self.pc}"
        return f"<DebugState {where} cycles={self.cycles}>"


class Debugger:
    def __init__(self, runtime: Runtime, program: Program, inputs: Iterable[Any] = ()) -> None:
        self._runtime = runtime
        self._program = program
        self._inputs = list(inputs)
        self._state: Optional[ExecutionState] = None
        self._stopped = False

    @property
    def program(self) -> Program:
        return self._program

    @property
    def is_alive(self) -> bool:
        return self._state is not None and not self._stopped and not self._state.halted

    def start(self) -> DebugState:
        if self._state is not None:
            raise DebuggerError("already started")
        self._state = self._runtime.start(self._program, self._inputs)
        return self.snapshot()

    def step_over(self) -> DebugState:
        self._require_alive("step")
        self._runtime.step(self._state)
        return self.snapshot()

    def resume(self) -> DebugState:
        self._require_alive("resume")
        while not self._state.halted:
            self._runtime.step(self._state)
        return self.snapshot()

    def stop(self) -> None:
        self._stopped = True

    def snapshot(self) -> DebugState:
        if self._state is None:
            raise DebuggerError("not started")
        finished = self._state.halted
        return DebugState(
            pc=None if finished else self._state.pc,
            variables=self._state.snapshot(),
            cycles=self._state.cycles,
            finished=finished,
        )

    def result(self) -> ExecutionResult:
        """Outcome of a finished run."""
        if self._state is None or not self._state.halted:
            raise DebuggerError("run has not finished")
        return self._runtime.result_of(self._state)

    def _require_alive(self, action: str) -> None:
        if self._state is None:
            raise DebuggerError(f"cannot {action}: not started")
        if self._stopped:
            raise DebuggerError(f"cannot {action}: session stopped")
        if self._state.halted:
            raise DebuggerError(f"cannot {action}: program finished")

    def __enter__(self) -> Debugger:
        return self

    def __exit__(self, *exc: object) -> None:
        self.stop()
