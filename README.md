# tamvm

An emulator for the Triangle Abstract Machine (TAM), the stack machine
targeted by the Triangle teaching compiler. It loads a TAM binary, a file of
big-endian 32-bit instruction words, and runs it until `HALT`.

## Installation

```
pip install .
```

## Running a program

```
tam program.tam
```

To print every instruction as it is fetched, pass `-t` or `--trace` before
the file name:

```
tam --trace program.tam
```

Each trace line goes to standard output and shows the code address and the
decoded instruction, for example `0x0003: LOADL 42`. The final `HALT` is
traced as well.

If loading fails, the command prints the error message to standard error.
If execution fails, the message is followed by the code location, for example
`stack underflow at loc 0004`. In both cases the command exits with a
non-zero status:

| Status | Meaning |
|-------:|---------|
| 1 | no program file given, or input file not found |
| 2 | input file was too long or contained incomplete instructions |
| 3 | there was a problem while reading the input file |
| 4 | code access violation |
| 5 | data access violation |
| 6 | stack overflow |
| 7 | stack underflow |
| 8 | unrecognised opcode |

## Using it from Python

```python
import io
from tamvm.machine import Emulator, Opcode
from tamvm.errors import TamError

out = io.StringIO()
emu = Emulator(stdin=io.StringIO(), stdout=out)
emu.load_program("program.tam")

try:
    while True:
        instr = emu.fetch_decode()
        if instr.op is Opcode.HALT:
            break
        emu.execute(instr)
except TamError as err:
    print(err.kind, err, err.exit_code)

print(out.getvalue())
```

- `Emulator.load_program(path)` reads a binary file; `Emulator.load_bytes(data)`
  loads a program from bytes already in memory. Both reset the data store and
  registers.
- `Emulator.fetch_decode()` returns the `Instruction` at `CP` and advances it;
  `Emulator.execute(instr)` runs one instruction.
- `tamvm.machine.decode(word)` turns one 32-bit word into an `Instruction`
  with fields `op`, `r`, `n` and `d`.
- The machine state is exposed as `emu.code`, `emu.data` and `emu.registers`,
  the last indexed by `tamvm.machine.Register` (`CB`, `CT`, `PB`, ..., `CP`).
- Failures raise `tamvm.errors.TamError`; its `kind` is an `ErrorKind` member
  and `exit_code` the status listed above.

The whole fetch–execute loop, with optional tracing, is available as
`tamvm.cli.run(emulator, trace, out)`; a `TamError` it raises also carries a
`location` attribute with the offending code address.
`tamvm.cli.format_instruction(instr)` gives the trace text for a single
instruction, and `tamvm.cli.main(argv)` is the command itself, returning the
exit status.

Primitive routines that read and write characters and integers use the
`stdin` and `stdout` streams given to the `Emulator` (the process's own
streams by default).

## Limitations

- Only binaries are run: there is no assembler or compiler.
- `CALLI` is decoded and traced, but executing it raises an
  "unrecognised opcode" error.

## Tests

```
pip install .[test]
pytest
```