"""Command-line front end: load a TAM binary and run it, optionally tracing."""

from __future__ import annotations

import sys
from typing import Sequence, TextIO

from .errors import TamError
from .machine import Emulator, Instruction, Opcode, Register

_USAGE_ERROR = "must specify program file"


class _LocatedError(TamError):
    """A machine error together with the code address it occurred at."""

    def __init__(self, error: TamError, location: int) -> None:
        super().__init__(error.kind)
        self.location = location

    def __str__(self) -> str:
        return f"{self.kind.message} at loc {self.location:04x}"


def format_instruction(instr: Instruction) -> str:
    """Render an instruction in TAM assembly notation."""
    op, r, n, d = instr.op, int(instr.r), instr.n, instr.d
    formats = {
        Opcode.LOAD: f"LOAD({n}) {d}[{r}]",
        Opcode.LOADA: f"LOADA {d}[{r}]",
        Opcode.LOADI: f"LOADI ({n})",
        Opcode.LOADL: f"LOADL {d}",
        Opcode.STORE: f"STORE({n}) {d}[{r}]",
        Opcode.STOREI: f"STOREI({n})",
        Opcode.CALL: f"CALL({n}) {d}[{r}]",
        Opcode.CALLI: "CALLI",
        Opcode.RETURN: f"RETURN({n}) {d}",
        Opcode.PUSH: f"PUSH {d}",
        Opcode.POP: f"POP({n}) {d}",
        Opcode.JUMP: f"JUMP {d}[{r}]",
        Opcode.JUMPI: "JUMPI",
        Opcode.JUMPIF: f"JUMPIF({n}) {d}[{r}]",
        Opcode.HALT: "HALT",
    }
    return formats.get(op, f"?? ({int(op)})")


def run(emulator: Emulator, trace: bool = False, out: TextIO | None = None) -> None:
    """Run a loaded program until HALT.

    With ``trace`` set, each fetched instruction is written to ``out``.
    Failures raise a TamError whose ``location`` is the offending code address.
    """
    if out is None:
        out = sys.stdout
    while True:
        try:
            instr = emulator.fetch_decode()
        except TamError as exc:
            raise _LocatedError(exc, emulator.registers[Register.CP]) from exc

        here = (emulator.registers[Register.CP] - 1) & 0xFFFF
        if trace:
            out.write(f"0x{here:04x}: {format_instruction(instr)}\n")

        if instr.op == Opcode.HALT:
            return

        try:
            emulator.execute(instr)
        except TamError as exc:
            location = (emulator.registers[Register.CP] - 1) & 0xFFFF
            raise _LocatedError(exc, location) from exc


def _is_trace_flag(arg: str) -> bool:
    return arg.startswith("-t") or arg.startswith("--trace")


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point: ``tam [-t|--trace] PROGRAM``; returns the exit status."""
    args = list(sys.argv[1:] if argv is None else argv)

    if not args:
        print(_USAGE_ERROR, file=sys.stderr)
        return 1

    trace = _is_trace_flag(args[0])
    if trace and len(args) < 2:
        print(_USAGE_ERROR, file=sys.stderr)
        return 1

    filename = args[1] if trace else args[0]
    emulator = Emulator()
    try:
        emulator.load_program(filename)
    except TamError as exc:
        print(exc.kind.message, file=sys.stderr)
        return exc.exit_code

    try:
        run(emulator, trace, sys.stdout)
    except TamError as exc:
        print(str(exc), file=sys.stderr)
        return exc.exit_code
    return 0


if __name__ == "__main__":
    sys.exit(main())