"""
S-Emulator Quotation Arguments

Parses the argument string of a QUOTATION / JUMP_EQUAL_FUNCTION instruction
into a small expression tree, and renders trees back to text.

Grammar (top-level, comma separated):

    arguments := [argument (',' argument)*]
    argument  := NUMBER                       signed integer literal
               | IDENTIFIER                   variable (x3, z1, y) or a
                                              zero-argument function
               | '(' IDENTIFIER (',' argument)* ')'    call, tuple form
               | IDENTIFIER '(' arguments ')'          call, function form

Commas inside a nested call belong to that call; only top-level commas split
arguments. Unbalanced parentheses are rejected.

Example:
    parse_arguments("(CONST7),x1,(ADD,x2,(SUCC,3))")
    -> (Call('CONST7', ()), Name('x1'), Call('ADD', (Name('x2'), Call('SUCC', (Constant(3),)))))
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Mapping, Union

from semulator.errors import ArgumentSyntaxError
from semulator.model import Variable


# ============================================================================
# Token Types
# ============================================================================

class TokenType(Enum):
    LPAREN = auto()       # (
    RPAREN = auto()       # )
    COMMA = auto()
    NUMBER = auto()       # optionally signed
    IDENTIFIER = auto()
    EOF = auto()


@dataclass
class Token:
    type: TokenType
    value: str
    pos: int

    def __repr__(self) -> str:
        return f"<{self.type.name}:{self.value!r}>"


_NUMBER_RE = re.compile(r"[+-]?\d+")
_IDENT_RE = re.compile(r"[A-Za-z_][\w]*")


def tokenize(text: str) -> list[Token]:
    """Tokenize an argument string."""
    tokens: list[Token] = []
    pos = 0
    depth = 0

    while pos < len(text):
        ch = text[pos]

        if ch.isspace():
            pos += 1
            continue

        if ch == "(":
            depth += 1
            tokens.append(Token(TokenType.LPAREN, ch, pos))
            pos += 1
            continue
        if ch == ")":
            depth -= 1
            if depth < 0:
                raise ArgumentSyntaxError("Unbalanced ')'", text, pos)
            tokens.append(Token(TokenType.RPAREN, ch, pos))
            pos += 1
            continue
        if ch == ",":
            tokens.append(Token(TokenType.COMMA, ch, pos))
            pos += 1
            continue

        m = _NUMBER_RE.match(text, pos)
        if m:
            tokens.append(Token(TokenType.NUMBER, m.group(), pos))
            pos = m.end()
            continue

        m = _IDENT_RE.match(text, pos)
        if m:
            tokens.append(Token(TokenType.IDENTIFIER, m.group(), pos))
            pos = m.end()
            continue

        raise ArgumentSyntaxError(f"Unexpected character {ch!r}", text, pos)

    if depth != 0:
        raise ArgumentSyntaxError("Unbalanced '('", text, len(text))

    tokens.append(Token(TokenType.EOF, "", len(text)))
    return tokens


# ============================================================================
# Expression Tree
# ============================================================================

@dataclass(frozen=True)
class Constant:
    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Name:
    """A bare identifier: a caller variable, or a zero-argument function."""
    text: str

    @property
    def is_variable(self) -> bool:
        return Variable.is_name(self.text)

    @property
    def variable(self) -> Variable:
        return Variable.parse(self.text)

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class Call:
    function: str
    arguments: tuple[Argument, ...] = ()

    def __str__(self) -> str:
        return render_call(self)


Argument = Union[Constant, Name, Call]


# ============================================================================
# Parser
# ============================================================================

class Parser:
    """Recursive-descent parser over the argument token stream."""

    def __init__(self, text: str):
        self._text = text
        self._tokens = tokenize(text)
        self._pos = 0

    def _peek(self, offset: int = 0) -> Token:
        idx = min(self._pos + offset, len(self._tokens) - 1)
        return self._tokens[idx]

    def _advance(self) -> Token:
        tok = self._tokens[self._pos]
        self._pos += 1
        return tok

    def _expect(self, ttype: TokenType) -> Token:
        tok = self._advance()
        if tok.type != ttype:
            raise ArgumentSyntaxError(
                f"Expected {ttype.name}, got {tok.type.name}", self._text, tok.pos
            )
        return tok

    def _at(self, ttype: TokenType) -> bool:
        return self._peek().type == ttype

    def parse(self) -> tuple[Argument, ...]:
        """Parse the whole text as a top-level argument list."""
        if self._at(TokenType.EOF):
            return ()
        args = self._parse_list(TokenType.EOF)
        self._expect(TokenType.EOF)
        return args

    def _parse_list(self, closer: TokenType) -> tuple[Argument, ...]:
        args = [self._parse_argument()]
        while self._at(TokenType.COMMA):
            self._advance()
            args.append(self._parse_argument())
        if not self._at(closer):
            tok = self._peek()
            raise ArgumentSyntaxError(
                f"Expected ',' or {closer.name}, got {tok.type.name}", self._text, tok.pos
            )
        return tuple(args)

    def _parse_argument(self) -> Argument:
        tok = self._peek()

        if tok.type == TokenType.NUMBER:
            self._advance()
            return Constant(int(tok.value))

        if tok.type == TokenType.LPAREN:
            # (NAME, arg, ...)
            self._advance()
            name = self._expect(TokenType.IDENTIFIER).value
            args: tuple[Argument, ...] = ()
            if self._at(TokenType.COMMA):
                self._advance()
                args = self._parse_list(TokenType.RPAREN)
            self._expect(TokenType.RPAREN)
            return Call(name, args)

        if tok.type == TokenType.IDENTIFIER:
            self._advance()
            if self._at(TokenType.LPAREN):
                # NAME(arg, ...)
                self._advance()
                args = ()
                if not self._at(TokenType.RPAREN):
                    args = self._parse_list(TokenType.RPAREN)
                self._expect(TokenType.RPAREN)
                return Call(tok.value, args)
            return Name(tok.value)

        raise ArgumentSyntaxError(
            f"Expected an argument, got {tok.type.name}", self._text, tok.pos
        )


def parse_arguments(text: str) -> tuple[Argument, ...]:
    """Parse a comma-separated argument string. Empty text means no arguments."""
    return Parser(text or "").parse()


def parse_call(text: str) -> Call:
    """Parse a single call expression such as '(ADD,x1,3)' or 'ADD(x1,3)'."""
    args = parse_arguments(text)
    if len(args) != 1 or not isinstance(args[0], Call):
        raise ArgumentSyntaxError("Expected a single function call", text, 0)
    return args[0]


# ============================================================================
# Rendering and traversal
# ============================================================================

def render(arg: Argument) -> str:
    if isinstance(arg, Call):
        return render_call(arg)
    return str(arg)


def render_call(call: Call) -> str:
    if not call.arguments:
        return f"({call.function})"
    return f"({call.function},{render_arguments(call.arguments)})"


def render_arguments(args: tuple[Argument, ...]) -> str:
    return ",".join(render(a) for a in args)


def walk(args: tuple[Argument, ...]) -> Iterator[Argument]:
    """Depth-first iteration over every node in an argument list."""
    for arg in args:
        yield arg
        if isinstance(arg, Call):
            yield from walk(arg.arguments)


def variables_in(args: tuple[Argument, ...]) -> set[Variable]:
    return {a.variable for a in walk(args) if isinstance(a, Name) and a.is_variable}


def calls_in(args: tuple[Argument, ...]) -> set[str]:
    """Names of explicitly called functions (nested calls included)."""
    return {a.function for a in walk(args) if isinstance(a, Call)}


def bare_names_in(args: tuple[Argument, ...]) -> set[str]:
    """Bare identifiers that are not variable names (zero-argument call candidates)."""
    return {a.text for a in walk(args) if isinstance(a, Name) and not a.is_variable}


def rename(args: tuple[Argument, ...], mapping: Mapping[Variable, Variable]) -> tuple[Argument, ...]:
    """Substitute variables throughout an argument list."""
    out: list[Argument] = []
    for arg in args:
        if isinstance(arg, Name) and arg.is_variable and arg.variable in mapping:
            out.append(Name(mapping[arg.variable].name))
        elif isinstance(arg, Call):
            out.append(Call(arg.function, rename(arg.arguments, mapping)))
        else:
            out.append(arg)
    return tuple(out)
