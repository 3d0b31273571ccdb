# tests/test_core.py
"""
Tests for the Engine facade.
"""

import pytest

from semulator.core import Engine
from semulator.cost import Architecture
from semulator.errors import ArchitectureError, CyclicCallError, UnknownFunctionError
from semulator.instructions import quotation
from semulator.program import Program
from tests.conftest import ADDER_SOURCE, Y, add_function, countdown_program, succ_function


@pytest.fixture
def engine():
    return Engine.from_source(ADDER_SOURCE)


class TestEngine:

    def test_programs(self, engine):
        assert engine.main.name == "Adder"
        assert set(engine.functions) == {"ADD", "SUCC"}
        assert engine.get_program("succ").name == "SUCC"
        with pytest.raises(UnknownFunctionError):
            engine.get_program("NOPE")

    def test_degrees(self, engine):
        assert engine.max_degree() == 3
        assert engine.max_degree("ADD") == 2
        assert engine.expand(3).is_fully_basic

    def test_run_every_degree(self, engine):
        for degree in range(engine.max_degree() + 1):
            assert engine.run([3, 4], degree=degree).result == 14

    def test_architecture_check(self, engine):
        with pytest.raises(ArchitectureError) as exc:
            engine.run([3, 4], architecture=Architecture.III)
        assert "QUOTATION" in exc.value.opcodes
        assert engine.run([3, 4], degree=3, architecture=Architecture.I).result == 14

    def test_cost(self, engine):
        assert engine.credit_cost(Architecture.I) == 18 + 5
        assert engine.minimum_architecture() is Architecture.IV
        assert engine.minimum_architecture(3) is Architecture.I
        assert engine.cycles_at_degree(0) == 18
        assert engine.cycles_fully_expanded() == engine.cycles_at_degree(3)

    def test_view_and_debug(self, engine):
        view = engine.view(degree=1)
        assert view.max_degree == 3
        assert len(view.rows) == len(engine.expand(1))

        with engine.debug([1, 1], name="ADD") as session:
            session.start()
            assert session.resume().variables["y"] == 2

    def test_from_programs(self):
        engine = Engine(countdown_program())
        assert engine.functions == []
        assert engine.run([3]).result == 3

    def test_rejects_recursion(self):
        loop = Program("LOOP", [quotation(Y, "LOOP", "x1")])
        with pytest.raises(CyclicCallError):
            Engine(Program("main", [quotation(Y, "LOOP", "x1")]), [loop])

    def test_from_file(self, adder_file):
        engine = Engine.from_file(adder_file)
        assert engine.run(["2", "0"]).result == 4

    def test_with_functions(self):
        engine = Engine(Program("main", [quotation(Y, "ADD", "x1,(SUCC,x2)")]),
                        [add_function(), succ_function()])
        assert engine.registry.callees("main") == ["ADD", "SUCC"]
        assert engine.run([1, 1]).result == 3
        assert engine.run([1, 1], degree=engine.max_degree()).result == 3
