"""
S-Emulator Error Taxonomy

Every failure the core can report is a subclass of EngineError. The
hierarchy mirrors the three kinds of failure a caller has to tell apart:

- ProgramStructureError: the program (or the registry it lives in) is
  malformed. Duplicate labels, dangling jumps, unknown functions, missing
  operands, recursive call graphs. Fatal at construction/resolution time.
- InputError: a single run was requested with bad inputs. Reported
  before any instruction executes.
- ArgumentError: a quotation argument expression could not be parsed or
  resolved.

Decrementing a register at 0 is not an error (it saturates) and has no
class here.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence


class EngineError(Exception):
    """Base class for every error raised by the S-Emulator core."""


# ============================================================================
# Structural errors
# ============================================================================

class ProgramStructureError(EngineError):
    """The program or registry is malformed."""


class DuplicateLabelError(ProgramStructureError):
    def __init__(self, label: str, first_index: int, second_index: int, program: str = ""):
        where = f" in program '{program}'" if program else ""
        super().__init__(
            f"Duplicate label '{label}'{where} at instructions "
            f"#{first_index + 1} and #{second_index + 1}"
        )
        self.label = label
        self.first_index = first_index
        self.second_index = second_index
        self.program = program


class UnknownLabelError(ProgramStructureError):
    def __init__(self, label: str, program: str = "", index: Optional[int] = None):
        where = f" in program '{program}'" if program else ""
        at = f" (referenced by instruction #{index + 1})" if index is not None else ""
        super().__init__(f"Unknown label '{label}'{where}{at}")
        self.label = label
        self.program = program
        self.index = index


class UnknownFunctionError(ProgramStructureError):
    def __init__(self, name: str, caller: str = ""):
        by = f" (called from '{caller}')" if caller else ""
        super().__init__(f"Unknown function '{name}'{by}")
        self.name = name
        self.caller = caller


class MissingOperandError(ProgramStructureError):
    def __init__(self, opcode: str, operand: str):
        super().__init__(f"{opcode} is missing its '{operand}' operand")
        self.opcode = opcode
        self.operand = operand


class InvalidOperandError(ProgramStructureError):
    def __init__(self, opcode: str, operand: str, value: Any):
        super().__init__(f"{opcode} has an invalid '{operand}' operand: {value!r}")
        self.opcode = opcode
        self.operand = operand
        self.value = value


class InvalidVariableError(ProgramStructureError):
    def __init__(self, text: str):
        super().__init__(f"Not a variable name: {text!r} (expected x<n>, z<n> or y)")
        self.text = text


class InvalidLabelError(ProgramStructureError):
    def __init__(self, text: str):
        super().__init__(f"Not a label: {text!r} (expected L<n> with n >= 1, or EXIT)")
        self.text = text


class CyclicCallError(ProgramStructureError):
    def __init__(self, cycle: Sequence[str]):
        route = " -> ".join(list(cycle) + [cycle[0]]) if cycle else ""
        super().__init__(f"Recursive function calls are not supported: {route}")
        self.cycle = list(cycle)


class AssemblyError(ProgramStructureError):
    def __init__(self, message: str, line: int, col: int = 0):
        super().__init__(f"Line {line}, Col {col}: {message}")
        self.line = line
        self.col = col


class RegistryFrozenError(EngineError):
    def __init__(self, name: str):
        super().__init__(f"Cannot register '{name}': the function registry is frozen")
        self.name = name


# ============================================================================
# Input errors
# ============================================================================

class InputError(EngineError):
    """A run was requested with unusable inputs."""


class InsufficientInputError(InputError):
    def __init__(self, required: int, supplied: int, program: str = ""):
        of = f" '{program}'" if program else ""
        super().__init__(
            f"Program{of} needs {required} input(s) but {supplied} were supplied"
        )
        self.required = required
        self.supplied = supplied
        self.program = program


class InvalidInputError(InputError):
    def __init__(self, value: Any, position: int):
        super().__init__(
            f"Input x{position + 1} must be a non-negative integer, got {value!r}"
        )
        self.value = value
        self.position = position


# ============================================================================
# Quotation argument errors
# ============================================================================

class ArgumentError(EngineError):
    """A quotation argument expression is malformed or unresolvable."""


class ArgumentSyntaxError(ArgumentError):
    def __init__(self, message: str, text: str, position: int):
        super().__init__(f"{message} at position {position} in: {text!r}")
        self.text = text
        self.position = position


class UnknownVariableError(ArgumentError):
    def __init__(self, name: str):
        super().__init__(f"Unknown variable in function arguments: {name!r}")
        self.name = name


class ArgumentValueError(ArgumentError):
    def __init__(self, value: int, function: str):
        super().__init__(
            f"Argument {value} passed to '{function}' is negative; "
            f"registers only hold non-negative values"
        )
        self.value = value
        self.function = function


# ============================================================================
# Environment errors
# ============================================================================

class ArchitectureError(EngineError):
    def __init__(self, architecture: str, opcodes: Sequence[str]):
        names = ", ".join(sorted(set(opcodes)))
        super().__init__(
            f"Architecture {architecture} does not support: {names}"
        )
        self.architecture = architecture
        self.opcodes = list(opcodes)


class DebuggerError(EngineError):
    def __init__(self, message: str):
        super().__init__(f"Debug session: {message}")
