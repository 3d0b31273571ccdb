"""
S-Emulator Core: Engine

The Engine is the in-process entry point for front ends. It owns one
frozen function registry (the main program plus every callable function),
and answers the requests a front end makes:

- run:    degree + inputs -> result, variable snapshot, cycle count
- view:   degree -> instruction rows for display
- debug:  degree + inputs -> a step-wise Debugger
- cost:   static cycles per degree, credit cost per architecture

Usage:
    engine = Engine.from_file("programs/double.semu")
    engine.max_degree()                 # 3
    result = engine.run([4], degree=1)
    print(result.summary())

    view = engine.view(degree=2)
    print(view.render())
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from semulator.assembler import Assembly, assemble, load
from semulator.cost import (
    Architecture,
    CostCalculator,
    minimum_architecture,
    unsupported_instructions,
)
from semulator.debug import Debugger
from semulator.errors import ArchitectureError
from semulator.expansion import Expander
from semulator.program import Program
from semulator.registry import FunctionRegistry
from semulator.runtime import ExecutionResult, Runtime
from semulator.view import ProgramListing

logger = logging.getLogger(__name__)


class Engine:
    """Facade over registry, expander, runtime and cost calculator."""

    def __init__(
        self,
        program: Program,
        functions: Iterable[Program] = (),
        trace: bool = False,
    ) -> None:
        self._main = program.name
        self._registry = FunctionRegistry([program, *functions]).freeze()
        self._expander = Expander(self._registry)
        self._runtime = Runtime(self._registry, trace=trace)
        self._costs = CostCalculator(self._expander)
        logger.debug("engine ready: main '%s', %d programs", self._main, len(self._registry))

    @classmethod
    def from_assembly(cls, assembly: Assembly, trace: bool = False) -> Engine:
        return cls(assembly.main, assembly.functions, trace=trace)

    @classmethod
    def from_source(cls, source: str, trace: bool = False) -> Engine:
        return cls.from_assembly(assemble(source), trace=trace)

    @classmethod
    def from_file(cls, path: Union[str, Path], trace: bool = False) -> Engine:
        return cls.from_assembly(load(path), trace=trace)

    # ------------------------------------------------------------------
    # Programs
    # ------------------------------------------------------------------

    @property
    def registry(self) -> FunctionRegistry:
        return self._registry

    @property
    def expander(self) -> Expander:
        return self._expander

    @property
    def runtime(self) -> Runtime:
        return self._runtime

    @property
    def main(self) -> Program:
        return self._registry.get(self._main)

    @property
    def functions(self) -> list[str]:
        """Callable function names, callees first."""
        return [n for n in self._registry.dependency_order() if n != self._main]

    def get_program(self, name: Optional[str] = None) -> Program:
        """The main program, or a registered function by name."""
        if name is None:
            return self.main
        return self._registry.get_program_by_name(name)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def expand(self, degree: int, name: Optional[str] = None) -> Program:
        return self._expander.expand_to_degree(self.get_program(name), degree)

    def max_degree(self, name: Optional[str] = None) -> int:
        return self._expander.max_degree(self.get_program(name))

    def run(
        self,
        inputs: Iterable[Any] = (),
        degree: int = 0,
        name: Optional[str] = None,
        architecture: Optional[Architecture] = None,
    ) -> ExecutionResult:
        """Run the program expanded to `degree`.

        Raises:
            ArchitectureError: the expanded program uses instructions the
                requested architecture does not support
        """
        program = self.expand(degree, name)
        if architecture is not None:
            missing = unsupported_instructions(program, architecture)
            if missing:
                raise ArchitectureError(architecture.name, [ins.opcode.value for _, ins in missing])
        return self._runtime.run(program, inputs)

    def view(self, degree: int = 0, name: Optional[str] = None) -> ProgramListing:
        return ProgramListing.build(self.get_program(name), self._expander, degree)

    def debug(self, inputs: Iterable[Any] = (), degree: int = 0, name: Optional[str] = None) -> Debugger:
        return Debugger(self._runtime, self.expand(degree, name), inputs)

    # ------------------------------------------------------------------
    # Cost
    # ------------------------------------------------------------------

    def cycles_at_degree(self, degree: int, name: Optional[str] = None) -> int:
        return self._costs.cycles_at_degree(self.get_program(name), degree)

    def cycles_fully_expanded(self, name: Optional[str] = None) -> int:
        return self._costs.cycles_fully_expanded(self.get_program(name))

    def credit_cost(self, architecture: Architecture, name: Optional[str] = None) -> int:
        return self._costs.credit_cost(self.get_program(name), architecture)

    def minimum_architecture(self, degree: int = 0, name: Optional[str] = None) -> Architecture:
        return minimum_architecture(self.expand(degree, name))

    def __repr__(self) -> str:
        return f"<Engine main='{self._main}' programs={len(self._registry)}>"
