# tests/test_cli.py
"""
Tests for the semu command line.
"""

import pytest

from semulator.cli import main


def run_cli(capsys, *argv):
    code = main(["--no-color", *argv])
    return code, capsys.readouterr().out


class TestCommands:

    def test_run(self, capsys, adder_file):
        code, out = run_cli(capsys, "run", str(adder_file), "3", "4")
        assert code == 0
        assert "y = 14" in out
        assert "Cycles:" in out

    def test_run_expanded_with_trace(self, capsys, adder_file):
        code, out = run_cli(capsys, "run", "-d", "3", "-a", "I", "-t", str(adder_file), "1", "1")
        assert code == 0
        assert "y = 4" in out
        assert "Credits: 23 (I, Basic)" in out
        assert "IF " in out

    def test_run_function(self, capsys, adder_file):
        code, out = run_cli(capsys, "run", "-p", "SUCC", str(adder_file), "9")
        assert code == 0
        assert "y = 10" in out

    def test_view(self, capsys, adder_file):
        code, out = run_cli(capsys, "view", str(adder_file), "-d", "1", "--history")
        assert code == 0
        assert "(degree 1/3)" in out
        assert "<<< y <- (ADD,x1,x2)" in out

    def test_degree(self, capsys, adder_file):
        code, out = run_cli(capsys, "degree", str(adder_file))
        assert code == 0
        assert out.strip() == "Adder: max degree 3"

    def test_cost(self, capsys, adder_file):
        code, out = run_cli(capsys, "cost", str(adder_file))
        assert code == 0
        assert "degree  0: 18 cycles" in out
        assert "Minimum architecture: IV" in out
        assert "IV   1018 credits" in out

    def test_debug(self, capsys, adder_file):
        code, out = run_cli(capsys, "debug", str(adder_file), "1", "0")
        assert code == 0
        assert "finished: y = 2" in out

    def test_functions(self, capsys, adder_file):
        code, out = run_cli(capsys, "fn", str(adder_file))
        assert code == 0
        assert "ADD  degree 2" in out
        assert "main: Adder" in out


class TestFailures:

    def test_missing_inputs(self, capsys, adder_file):
        code, out = run_cli(capsys, "run", str(adder_file), "3")
        assert code == 1
        assert "needs 2 input(s)" in out

    def test_missing_file(self, capsys, tmp_path):
        code, out = run_cli(capsys, "run", str(tmp_path / "nope.semu"))
        assert code == 1
        assert "File not found" in out

    def test_unsupported_architecture(self, capsys, adder_file):
        code, out = run_cli(capsys, "run", "-a", "II", str(adder_file), "3", "4")
        assert code == 1
        assert "does not support" in out

    def test_unknown_architecture(self, capsys, adder_file):
        code, out = run_cli(capsys, "cost", str(adder_file), "-a", "V")
        assert code == 1
        assert "Unknown architecture" in out

    def test_assembly_error(self, capsys, tmp_path):
        path = tmp_path / "bad.semu"
        path.write_text("y <- y + 2\n")
        code, out = run_cli(capsys, "view", str(path))
        assert code == 1
        assert "Line 1" in out

    def test_no_command(self, capsys):
        code, out = run_cli(capsys)
        assert code == 0
        assert "usage: semu" in out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--version"])
        assert exc.value.code == 0
        assert "semu 0.4.0" in capsys.readouterr().out
