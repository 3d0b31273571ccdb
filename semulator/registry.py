"""
S-Emulator Function Registry

Maps function names to Programs so quotation instructions can resolve their
callees, and keeps the call graph between them.

The call graph is a NetworkX DiGraph:
- Nodes = registered program names
- Edges = caller -> callee, one per invoked function (nested argument calls
  and zero-argument bare-name calls included)

Recursion is not supported: every level of quotation must strictly lower
the remaining degree, so validate() rejects any cycle in the call graph.
After freeze() the registry is read-only and can be shared between runs.
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

import networkx as nx

from semulator.errors import (
    CyclicCallError,
    RegistryFrozenError,
    UnknownFunctionError,
)
from semulator import quote
from semulator.program import Program

logger = logging.getLogger(__name__)


class FunctionRegistry:
    """Name -> Program lookup plus the call graph between programs."""

    def __init__(self, programs: Optional[list[Program]] = None) -> None:
        self._programs: dict[str, Program] = {}
        self._folded: dict[str, str] = {}
        self._graph = nx.DiGraph()
        self._dirty = False
        self._frozen = False
        self._version = 0
        for p in programs or []:
            self.register(p)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, program: Program) -> None:
        """Register (or replace) a program under its own name."""
        if self._frozen:
            raise RegistryFrozenError(program.name)
        self._programs[program.name] = program
        self._folded.setdefault(program.name.lower(), program.name)
        self._dirty = True
        self._version += 1
        logger.debug("registered '%s' (%d instructions)", program.name, len(program))

    def freeze(self) -> FunctionRegistry:
        """Validate, then refuse further registration."""
        self.validate()
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def version(self) -> int:
        """Bumped by every register()."""
        return self._version

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def resolve_name(self, name: str) -> Optional[str]:
        """The registered spelling of a name (exact match first, then case-insensitive)."""
        if name in self._programs:
            return name
        return self._folded.get(name.lower())

    def get_program_by_name(self, name: str, caller: str = "") -> Program:
        resolved = self.resolve_name(name)
        if resolved is None:
            raise UnknownFunctionError(name, caller)
        return self._programs[resolved]

    get = get_program_by_name

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.resolve_name(name) is not None

    def __iter__(self) -> Iterator[Program]:
        return iter(self._programs.values())

    def __len__(self) -> int:
        return len(self._programs)

    @property
    def names(self) -> list[str]:
        return list(self._programs)

    # ------------------------------------------------------------------
    # Call graph
    # ------------------------------------------------------------------

    def _direct_calls(self, program: Program) -> set[str]:
        names = set(program.called_functions)
        for ins in program:
            if ins.opcode.is_quotation:
                args = quote.parse_arguments(ins.arguments)
                names |= {n for n in quote.bare_names_in(args) if n in self}
        return names

    def _rebuild(self) -> None:
        if not self._dirty:
            return
        graph = nx.DiGraph()
        for name, program in self._programs.items():
            graph.add_node(name, program=program)
        for name, program in self._programs.items():
            for callee in self._direct_calls(program):
                graph.add_edge(name, self.resolve_name(callee) or callee)
        self._graph = graph
        self._dirty = False

    @property
    def graph(self) -> nx.DiGraph:
        self._rebuild()
        return self._graph

    def callees(self, name: str) -> list[str]:
        """Functions called directly by `name`."""
        resolved = self.resolve_name(name)
        if resolved is None:
            raise UnknownFunctionError(name)
        return sorted(self.graph.successors(resolved))

    def validate(self) -> None:
        """Every call resolves, and the call graph is acyclic."""
        graph = self.graph
        for caller, callee in graph.edges:
            if callee not in self._programs:
                raise UnknownFunctionError(callee, caller)
        for program in self._programs.values():
            program.validate()
        try:
            cycle = nx.find_cycle(graph)
        except nx.NetworkXNoCycle:
            return
        raise CyclicCallError([edge[0] for edge in cycle])

    def dependency_order(self) -> list[str]:
        """Program names with every callee before its callers."""
        self.validate()
        return list(reversed(list(nx.topological_sort(self.graph))))

    def summary(self) -> str:
        lines = [f"Function registry: {len(self._programs)} programs"]
        for name in self._programs:
            callees = sorted(self.graph.successors(name))
            lines.append(f"  {name} -> {callees}" if callees else f"  {name}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"<FunctionRegistry: {len(self._programs)} programs, {state}>"
