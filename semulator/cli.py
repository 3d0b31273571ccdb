#!/usr/bin/env python3
"""
semu — S-Emulator command line

Run, expand and inspect S-language programs.

Usage:
    semu run <file> [inputs...]         Run the main program (or -p NAME)
    semu view <file> -d 2               Show the program expanded to degree 2
    semu degree <file>                  Show the maximum expansion degree
    semu cost <file> -a III             Static cycles per degree and credit cost
    semu debug <file> [inputs...]       Step through a run, one line per step
    semu functions <file>               List functions and their call order
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import textwrap

from semulator import __version__
from semulator.core import Engine
from semulator.cost import Architecture, unsupported_instructions
from semulator.errors import EngineError


# ============================================================================
# Formatting helpers
# ============================================================================

class C:
    """ANSI colors."""
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    RESET = "\033[0m"

    @staticmethod
    def off():
        C.BOLD = C.DIM = C.RED = C.GREEN = C.YELLOW = ""
        C.BLUE = C.MAGENTA = C.CYAN = C.RESET = ""


def header(text: str) -> str:
    return f"\n{C.BOLD}{C.CYAN}{'─' * 60}{C.RESET}\n{C.BOLD}  {text}{C.RESET}\n{C.BOLD}{C.CYAN}{'─' * 60}{C.RESET}"


def ok(text: str) -> str:
    return f"  {C.GREEN}✓{C.RESET} {text}"


def warn(text: str) -> str:
    return f"  {C.YELLOW}⚠{C.RESET} {text}"


def fail(text: str) -> str:
    return f"  {C.RED}✗{C.RESET} {text}"


def dim(text: str) -> str:
    return f"{C.DIM}{text}{C.RESET}"


def variables_line(values: dict[str, int]) -> str:
    return "  ".join(f"{C.CYAN}{k}{C.RESET}={v}" for k, v in values.items())


# ============================================================================
# Commands
# ============================================================================

def cmd_run(args):
    """Run a program at a degree."""
    engine = Engine.from_file(args.file, trace=args.trace)
    arch = Architecture.parse(args.arch) if args.arch else None
    program = engine.get_program(args.program)

    print(header(f"RUN: {program.name}  (degree {args.degree}/{engine.max_degree(args.program)})"))
    result = engine.run(args.inputs, degree=args.degree, name=args.program, architecture=arch)

    if args.trace:
        for entry in result.trace:
            print(dim(f"    [{entry['step']:4d}] #{entry['pc'] + 1:<4} {entry['instruction']:32s} "
                      f"-> {entry['next'] or '·':5s} +{entry['cycles']}"))

    print(ok(f"y = {C.BOLD}{result.result}{C.RESET}"))
    print(f"  Cycles: {result.cycles}   Steps: {result.steps}")
    print(f"  {variables_line(result.values)}")
    if arch is not None:
        print(dim(f"  Credits: {engine.credit_cost(arch, args.program)} ({arch.name}, {arch.description})"))
    return 0


def cmd_view(args):
    """Show a program expanded to a degree."""
    engine = Engine.from_file(args.file)
    view = engine.view(degree=args.degree, name=args.program)

    print(header(f"VIEW: {view.name}  (degree {view.degree}/{view.max_degree})"))
    for row in view.rows:
        kind = f"{C.GREEN}B{C.RESET}" if row.basic else f"{C.YELLOW}S{C.RESET}"
        label = f"[{row.label}]" if row.label else ""
        line = f"  #{row.index + 1:<4} ({kind}) {label:<6} {row.text}  {dim(f'({row.cycles})')}"
        if args.history and row.history:
            line += dim("  <<< " + " <<< ".join(row.history))
        print(line)

    print(f"\n  Instructions: {len(view.rows)}   Static cycles: {view.total_cycles}")
    if view.input_variables:
        print(f"  Inputs: {', '.join(view.input_variables)}")
    return 0


def cmd_degree(args):
    """Show the maximum expansion degree."""
    engine = Engine.from_file(args.file)
    program = engine.get_program(args.program)
    print(f"{program.name}: max degree {engine.max_degree(args.program)}")
    return 0


def cmd_cost(args):
    """Static cycle cost per degree and credit cost."""
    engine = Engine.from_file(args.file)
    program = engine.get_program(args.program)
    top = engine.max_degree(args.program)

    print(header(f"COST: {program.name}"))
    for degree in range(top + 1):
        cycles = engine.cycles_at_degree(degree, args.program)
        print(f"  degree {degree:2d}: {cycles} cycles")

    minimum = engine.minimum_architecture(0, args.program)
    print(f"\n  Minimum architecture: {minimum.name} ({minimum.description})")
    archs = [Architecture.parse(args.arch)] if args.arch else list(Architecture)
    for arch in archs:
        mark = warn if unsupported_instructions(program, arch) else ok
        print(mark(f"{arch.name:4s} {engine.credit_cost(arch, args.program)} credits"))
    return 0


def cmd_debug(args):
    """Step through a run, one line per executed instruction."""
    engine = Engine.from_file(args.file)
    program = engine.expand(args.degree, args.program)

    print(header(f"DEBUG: {program.name}  (degree {args.degree})"))
    with engine.debug(args.inputs, degree=args.degree, name=args.program) as session:
        snap = session.start()
        while not snap.finished:
            pc = snap.pc
            ins = program[pc]
            snap = session.step_over()
            print(f"  #{pc + 1:<4} "
                  f"{str(ins):32s} {dim(f'cycles={snap.cycles}')}  {variables_line(snap.variables)}")
        print(ok(f"finished: y = {snap.variables.get('y', 0)}, {snap.cycles} cycles"))
    return 0


def cmd_functions(args):
    """List the functions and the order they depend on each other."""
    engine = Engine.from_file(args.file)

    print(header(f"FUNCTIONS: {args.file}"))
    if not engine.functions:
        print(warn("No functions defined"))
    for name in engine.functions:
        callees = engine.registry.callees(name)
        calls = f" -> {', '.join(callees)}" if callees else ""
        print(f"  {C.BOLD}{name}{C.RESET}  degree {engine.max_degree(name)}{dim(calls)}")
    print(dim(f"\n  main: {engine.main.name}"))
    return 0


# ============================================================================
# CLI setup
# ============================================================================

def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="semu",
        description="S-Emulator — run and expand S-language programs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""
        examples:
          semu run adder.semu 3 4
          semu run -d 2 -a III adder.semu 3 4
          semu view adder.semu -d 1 --history
          semu cost adder.semu
          semu debug -d 1 adder.semu 3 4
        """),
    )
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="command")

    def program_args(p, degree=True):
        p.add_argument("file", help="Program source file")
        p.add_argument("-p", "--program", help="Function to use instead of the main program")
        if degree:
            p.add_argument("-d", "--degree", type=int, default=0, help="Expansion degree (default: 0)")

    # run
    p = sub.add_parser("run", help="Run a program")
    program_args(p)
    p.add_argument("-a", "--arch", help="Architecture tier (I, II, III, IV)")
    p.add_argument("-t", "--trace", action="store_true", help="Print every executed step")
    p.add_argument("inputs", nargs="*", help="Input values x1 x2 ...")

    # view
    p = sub.add_parser("view", help="Show a program at a degree")
    program_args(p)
    p.add_argument("--history", action="store_true", help="Show what each instruction was expanded from")

    # degree
    p = sub.add_parser("degree", help="Show the maximum expansion degree")
    program_args(p, degree=False)

    # cost
    p = sub.add_parser("cost", help="Static cycle cost and credit cost")
    program_args(p, degree=False)
    p.add_argument("-a", "--arch", help="Only this architecture tier")

    # debug
    p = sub.add_parser("debug", help="Step through a run")
    program_args(p)
    p.add_argument("inputs", nargs="*", help="Input values x1 x2 ...")

    # functions
    p = sub.add_parser("functions", aliases=["fn"], help="List functions")
    p.add_argument("file", help="Program source file")

    args = parser.parse_args(argv)

    if args.no_color or os.environ.get("NO_COLOR"):
        C.off()
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if not args.command:
        parser.print_help()
        return 0

    # Dispatch
    commands = {
        "run": cmd_run,
        "view": cmd_view,
        "degree": cmd_degree,
        "cost": cmd_cost,
        "debug": cmd_debug,
        "functions": cmd_functions, "fn": cmd_functions,
    }

    handler = commands[args.command]
    try:
        return handler(args)
    except FileNotFoundError as e:
        print(fail(f"File not found: {e.filename}"))
        return 1
    except (EngineError, KeyError) as e:
        print(fail(f"Error: {e}"))
        return 1


if __name__ == "__main__":
    sys.exit(main())
