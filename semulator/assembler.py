"""
S-Emulator Assembler

Loads programs written in the textual instruction syntax (the same syntax
view.format_instruction produces) into validated Program objects.

Example source:
    PROGRAM Double            // main program
    [L1] x1 <- x1 - 1
         y <- (ADD,y,2)
         IF x1 != 0 GOTO L1

    FUNCTION ADD              # callable as (ADD,a,b)
         y <- x1
         z1 <- x2
    [L1] IF z1 = 0 GOTO EXIT
         z1 <- z1 - 1
         y <- y + 1
         GOTO L1

Statements:
    v <- v + 1     v <- v - 1     v <- v       v <- 0      v <- K
    v <- v'        v <- (F,args)  GOTO L
    IF v != 0 GOTO L   (also ≠)   IF v = 0 GOTO L          IF v = K GOTO L
    IF v = v' GOTO L              IF v = (F,args) GOTO L

Statements before any header belong to an implicit main program. Every
section becomes a Program; the assembly is checked for dangling labels and
for calls to functions it does not define.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Union

from semulator.errors import (
    ArgumentSyntaxError,
    AssemblyError,
    InvalidLabelError,
    InvalidVariableError,
)
from semulator.instructions import (
    Instruction,
    assignment,
    constant_assignment,
    decrease,
    goto_label,
    increase,
    jump_equal_constant,
    jump_equal_function,
    jump_equal_variable,
    jump_not_zero,
    jump_zero,
    neutral,
    quotation,
    zero_variable,
)
from semulator.model import EMPTY, Label, Variable
from semulator import quote
from semulator.program import Program
from semulator.registry import FunctionRegistry


# ============================================================================
# Token Types
# ============================================================================

class TokenType(Enum):
    PROGRAM = auto()
    FUNCTION = auto()
    IF = auto()
    GOTO = auto()
    LBRACKET = auto()     # [
    RBRACKET = auto()     # ]
    ARROW = auto()        # <-
    PLUS = auto()
    MINUS = auto()
    EQUAL = auto()        # =
    NOT_EQUAL = auto()    # != or ≠
    NUMBER = auto()
    IDENTIFIER = auto()
    CALL = auto()         # (F,args) or F(args), raw text
    NEWLINE = auto()
    EOF = auto()


@dataclass
class Token:
    type: TokenType
    value: str
    line: int
    col: int

    def __repr__(self) -> str:
        return f"<{self.type.name}:{self.value!r}>"


KEYWORDS = {
    "PROGRAM": TokenType.PROGRAM,
    "FUNCTION": TokenType.FUNCTION,
    "IF": TokenType.IF,
    "GOTO": TokenType.GOTO,
}

_COMMENT_RE = re.compile(r"//|#")


def _strip_comment(text: str) -> str:
    m = _COMMENT_RE.search(text)
    return text[:m.start()] if m else text


def _balanced_end(text: str, start: int, line: int) -> int:
    """Index just past the ')' matching the '(' at `start`."""
    depth = 0
    for i in range(start, len(text)):
        if text[i] == "(":
            depth += 1
        elif text[i] == ")":
            depth -= 1
            if depth == 0:
                return i + 1
    raise AssemblyError("Unbalanced '(' in function call", line, start)


def tokenize(source: str) -> list[Token]:
    """Tokenize assembler source into a token stream."""
    tokens: list[Token] = []
    lines = source.split("\n")

    for line_num, raw in enumerate(lines, 1):
        text = _strip_comment(raw)
        col = 0

        while col < len(text):
            ch = text[col]

            if ch in " \t\r":
                col += 1
                continue

            if text.startswith("<-", col):
                tokens.append(Token(TokenType.ARROW, "<-", line_num, col))
                col += 2
                continue
            if text.startswith("!=", col) or ch == "≠":
                width = 1 if ch == "≠" else 2
                tokens.append(Token(TokenType.NOT_EQUAL, text[col:col + width], line_num, col))
                col += width
                continue

            simple = {
                "[": TokenType.LBRACKET, "]": TokenType.RBRACKET,
                "+": TokenType.PLUS, "-": TokenType.MINUS, "=": TokenType.EQUAL,
            }
            if ch in simple:
                tokens.append(Token(simple[ch], ch, line_num, col))
                col += 1
                continue

            if ch == "(":
                end = _balanced_end(text, col, line_num)
                tokens.append(Token(TokenType.CALL, text[col:end], line_num, col))
                col = end
                continue
            if ch == ")":
                raise AssemblyError("Unbalanced ')'", line_num, col)

            if ch.isdigit():
                match = re.match(r"\d+", text[col:])
                tokens.append(Token(TokenType.NUMBER, match.group(), line_num, col))
                col += match.end()
                continue

            if ch.isalpha() or ch == "_":
                match = re.match(r"[A-Za-z_]\w*", text[col:])
                word = match.group()
                end = col + match.end()
                if end < len(text) and text[end] == "(":
                    # F(args) call form
                    close = _balanced_end(text, end, line_num)
                    tokens.append(Token(TokenType.CALL, text[col:close], line_num, col))
                    col = close
                    continue
                ttype = KEYWORDS.get(word.upper(), TokenType.IDENTIFIER)
                tokens.append(Token(ttype, word, line_num, col))
                col = end
                continue

            raise AssemblyError(f"Unexpected character: {ch!r}", line_num, col)

        tokens.append(Token(TokenType.NEWLINE, "", line_num, len(text)))

    tokens.append(Token(TokenType.EOF, "", len(lines), 0))
    return tokens


# ============================================================================
# Assembly
# ============================================================================

@dataclass
class Assembly:
    """The programs defined by one source text."""
    main: Program
    functions: list[Program] = field(default_factory=list)

    @property
    def programs(self) -> list[Program]:
        return [self.main] + self.functions

    def registry(self) -> FunctionRegistry:
        return FunctionRegistry(self.programs)


@dataclass
class _Section:
    name: str
    is_main: bool
    line: int
    instructions: list[Instruction] = field(default_factory=list)
    labels: dict[Label, int] = field(default_factory=dict)


# ============================================================================
# Parser
# ============================================================================

class Parser:
    """Parses an assembler token stream into programs."""

    def __init__(self, tokens: list[Token], default_name: str = "main"):
        self._tokens = tokens
        self._pos = 0
        self._default_name = default_name
        self._sections: list[_Section] = []

    def _peek(self) -> Token:
        return self._tokens[self._pos]

    def _advance(self) -> Token:
        tok = self._tokens[self._pos]
        self._pos += 1
        return tok

    def _expect(self, ttype: TokenType) -> Token:
        tok = self._advance()
        if tok.type != ttype:
            raise AssemblyError(f"Expected {ttype.name}, got {tok.type.name}", tok.line, tok.col)
        return tok

    def _at(self, ttype: TokenType) -> bool:
        return self._peek().type == ttype

    def parse(self) -> Assembly:
        while not self._at(TokenType.EOF):
            if self._at(TokenType.NEWLINE):
                self._advance()
                continue
            if self._at(TokenType.PROGRAM) or self._at(TokenType.FUNCTION):
                self._parse_header()
                continue
            self._parse_statement()

        mains = [s for s in self._sections if s.is_main]
        if not mains:
            tok = self._peek()
            raise AssemblyError("No main program (add a PROGRAM section)", tok.line, 0)
        if len(mains) > 1:
            raise AssemblyError("More than one main program", mains[1].line, 0)

        names: dict[str, int] = {}
        for s in self._sections:
            if s.name in names:
                raise AssemblyError(f"'{s.name}' is defined twice", s.line, 0)
            names[s.name] = s.line

        programs = {s.name: Program(s.name, s.instructions) for s in self._sections}
        main = programs[mains[0].name]
        functions = [programs[s.name] for s in self._sections if not s.is_main]
        return Assembly(main=main, functions=functions)

    def _parse_header(self) -> None:
        tok = self._advance()
        name = self._expect(TokenType.IDENTIFIER).value
        self._end_of_statement()
        self._sections.append(_Section(name, tok.type == TokenType.PROGRAM, tok.line))

    def _section(self, tok: Token) -> _Section:
        if not self._sections:
            self._sections.append(_Section(self._default_name, True, tok.line))
        return self._sections[-1]

    def _end_of_statement(self) -> None:
        tok = self._peek()
        if tok.type not in (TokenType.NEWLINE, TokenType.EOF):
            raise AssemblyError(f"Unexpected {tok.value!r} after statement", tok.line, tok.col)
        if tok.type == TokenType.NEWLINE:
            self._advance()

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _parse_statement(self) -> None:
        first = self._peek()
        section = self._section(first)

        label = EMPTY
        if self._at(TokenType.LBRACKET):
            self._advance()
            tok = self._expect(TokenType.IDENTIFIER)
            label = self._label(tok)
            if not label.is_numbered:
                raise AssemblyError(f"'{tok.value}' cannot label an instruction", tok.line, tok.col)
            if label in section.labels:
                raise AssemblyError(
                    f"Duplicate label '{label}' (first declared on line {section.labels[label]})",
                    tok.line, tok.col,
                )
            section.labels[label] = tok.line
            self._expect(TokenType.RBRACKET)

        tok = self._peek()
        if tok.type == TokenType.GOTO:
            self._advance()
            ins = goto_label(self._label(self._expect(TokenType.IDENTIFIER)), label)
        elif tok.type == TokenType.IF:
            ins = self._parse_if(label)
        elif tok.type == TokenType.IDENTIFIER:
            ins = self._parse_assignment(label)
        else:
            raise AssemblyError(f"Expected a statement, got {tok.type.name}", tok.line, tok.col)

        self._end_of_statement()
        section.instructions.append(ins)

    def _parse_if(self, label: Label) -> Instruction:
        self._expect(TokenType.IF)
        v = self._variable(self._expect(TokenType.IDENTIFIER))
        op = self._advance()

        if op.type == TokenType.NOT_EQUAL:
            zero = self._expect(TokenType.NUMBER)
            if int(zero.value) != 0:
                raise AssemblyError("Only 'IF v != 0' is supported", zero.line, zero.col)
            target = self._goto_target()
            return jump_not_zero(v, target, label)

        if op.type != TokenType.EQUAL:
            raise AssemblyError("Expected '=' or '!='", op.line, op.col)

        rhs = self._advance()
        if rhs.type == TokenType.NUMBER:
            k = int(rhs.value)
            target = self._goto_target()
            return jump_zero(v, target, label) if k == 0 else jump_equal_constant(v, k, target, label)
        if rhs.type == TokenType.IDENTIFIER:
            other = self._variable(rhs)
            return jump_equal_variable(v, other, self._goto_target(), label)
        if rhs.type == TokenType.CALL:
            call = self._call(rhs)
            return jump_equal_function(
                v, call.function, quote.render_arguments(call.arguments), self._goto_target(), label
            )
        raise AssemblyError("Expected a constant, variable or function call", rhs.line, rhs.col)

    def _parse_assignment(self, label: Label) -> Instruction:
        v = self._variable(self._advance())
        self._expect(TokenType.ARROW)
        rhs = self._advance()

        if rhs.type == TokenType.NUMBER:
            k = int(rhs.value)
            return zero_variable(v, label) if k == 0 else constant_assignment(v, k, label)

        if rhs.type == TokenType.CALL:
            call = self._call(rhs)
            return quotation(v, call.function, quote.render_arguments(call.arguments), label)

        if rhs.type == TokenType.IDENTIFIER:
            source = self._variable(rhs)
            if self._at(TokenType.PLUS) or self._at(TokenType.MINUS):
                sign = self._advance()
                one = self._expect(TokenType.NUMBER)
                if source != v or int(one.value) != 1:
                    raise AssemblyError(
                        f"Only '{v} <- {v} {sign.value} 1' is supported", sign.line, sign.col
                    )
                return increase(v, label) if sign.type == TokenType.PLUS else decrease(v, label)
            return neutral(v, label) if source == v else assignment(v, source, label)

        raise AssemblyError("Expected a constant, variable or function call", rhs.line, rhs.col)

    # ------------------------------------------------------------------
    # Operands
    # ------------------------------------------------------------------

    def _goto_target(self) -> Label:
        self._expect(TokenType.GOTO)
        return self._label(self._expect(TokenType.IDENTIFIER))

    @staticmethod
    def _variable(tok: Token) -> Variable:
        if tok.type != TokenType.IDENTIFIER:
            raise AssemblyError(f"Expected a variable, got {tok.type.name}", tok.line, tok.col)
        try:
            return Variable.parse(tok.value)
        except InvalidVariableError as e:
            raise AssemblyError(str(e), tok.line, tok.col) from e

    @staticmethod
    def _label(tok: Token) -> Label:
        try:
            return Label.parse(tok.value)
        except InvalidLabelError as e:
            raise AssemblyError(str(e), tok.line, tok.col) from e

    @staticmethod
    def _call(tok: Token) -> quote.Call:
        try:
            return quote.parse_call(tok.value)
        except ArgumentSyntaxError as e:
            raise AssemblyError(str(e), tok.line, tok.col) from e


# ============================================================================
# Public API
# ============================================================================

def assemble(source: str, default_name: str = "main", validate: bool = True) -> Assembly:
    """Assemble source text into programs.

    Args:
        source: Assembler source
        default_name: Name of the implicit main program (statements before any header)
        validate: Check labels and call references across the whole assembly

    Returns:
        Assembly with the main program and its functions
    """
    assembly = Parser(tokenize(source), default_name).parse()
    if validate:
        assembly.registry().validate()
    return assembly


def load(path: Union[str, Path], validate: bool = True) -> Assembly:
    """Assemble a source file. The implicit main program is named after the file."""
    path = Path(path)
    return assemble(path.read_text(encoding="utf-8"), default_name=path.stem, validate=validate)
