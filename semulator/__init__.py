"""
S-Emulator - interpreter and macro-expander for the S register-machine language.

Programs work on non-negative integer registers (inputs x1.., work z1.., the
result y) with labelled instructions. Four basic instructions are enough for
any computation; every other instruction is sugar with a canonical expansion
into lower-degree instructions, down to the basic set.

The Model: Variables, labels, instructions, programs
The Expander: Degree-by-degree expansion with fresh names, quotation inlining
The Runtime: Program-counter state machine with cycle accounting
"""

__version__ = "0.4.0"

from semulator.model import Variable, VariableKind, Label, RESULT, EMPTY, EXIT
from semulator.instructions import Instruction, Opcode
from semulator.program import Program
from semulator.registry import FunctionRegistry
from semulator.expansion import Expander
from semulator.runtime import Runtime, ExecutionResult
from semulator.debug import Debugger, DebugState
from semulator.cost import Architecture, CostCalculator
from semulator.view import ProgramListing, format_instruction
from semulator.assembler import assemble, load
from semulator.core import Engine
from semulator.errors import EngineError

__all__ = [
    "Variable",
    "VariableKind",
    "Label",
    "RESULT",
    "EMPTY",
    "EXIT",
    "Instruction",
    "Opcode",
    "Program",
    "FunctionRegistry",
    "Expander",
    "Runtime",
    "ExecutionResult",
    "Debugger",
    "DebugState",
    "Architecture",
    "CostCalculator",
    "ProgramListing",
    "format_instruction",
    "assemble",
    "load",
    "Engine",
    "EngineError",
]
