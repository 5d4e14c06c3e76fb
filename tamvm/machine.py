"""Triangle Abstract Machine: instruction decoding and execution."""

from __future__ import annotations

import string
import struct
import sys
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, TextIO

from .errors import ErrorKind, TamError

MEMORY_SIZE = 65536
PRIMITIVE_SLOTS = 29


class Opcode(IntEnum):
    LOAD = 0
    LOADA = 1
    LOADI = 2
    LOADL = 3
    STORE = 4
    STOREI = 5
    CALL = 6
    CALLI = 7
    RETURN = 8
    PUSH = 10
    POP = 11
    JUMP = 12
    JUMPI = 13
    JUMPIF = 14
    HALT = 15


class Register(IntEnum):
    CB = 0
    CT = 1
    PB = 2
    PT = 3
    SB = 4
    ST = 5
    HB = 6
    HT = 7
    LB = 8
    L1 = 9
    L2 = 10
    L3 = 11
    L4 = 12
    L5 = 13
    L6 = 14
    CP = 15


def _to_word(value: int) -> int:
    """Wrap an integer to a signed 16-bit data word."""
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


def _to_address(value: int) -> int:
    """Wrap an integer to an unsigned 16-bit address."""
    return value & 0xFFFF


def _c_div(a: int, b: int) -> int:
    quotient = abs(a) // abs(b)
    return quotient if (a < 0) == (b < 0) else -quotient


def _c_mod(a: int, b: int) -> int:
    return a - b * _c_div(a, b)


@dataclass(frozen=True)
class Instruction:
    """A decoded 32-bit instruction; ``op`` is a raw int when not a known opcode."""

    op: Opcode | int
    r: Register
    n: int
    d: int


def decode(word: int) -> Instruction:
    """Split a 32-bit code word into its opcode, register and operands."""
    word &= 0xFFFFFFFF
    raw_op = word >> 28
    try:
        op: Opcode | int = Opcode(raw_op)
    except ValueError:
        op = raw_op
    return Instruction(
        op=op,
        r=Register((word >> 24) & 0xF),
        n=(word >> 16) & 0xFF,
        d=_to_word(word),
    )


# Primitive routines taking one argument (popped first).
_UNARY: dict[int, Callable[[int], int]] = {
    2: lambda a: 0 if a else 1,  # not
    5: lambda a: a + 1,  # succ
    6: lambda a: a - 1,  # pred
    7: lambda a: -a,  # neg
}

# Primitive routines taking two arguments: top of stack first, then the one below.
_BINARY: dict[int, Callable[[int, int], int]] = {
    3: lambda a, b: 1 if a * b else 0,  # and
    4: lambda a, b: 1 if a + b else 0,  # or
    8: lambda a, b: a + b,  # add
    9: lambda a, b: a - b,  # sub
    10: lambda a, b: a * b,  # mult
    11: _c_div,  # div
    12: _c_mod,  # mod
    13: lambda a, b: 1 if a < b else 0,  # lt
    14: lambda a, b: 1 if a <= b else 0,  # le
    15: lambda a, b: 1 if a >= b else 0,  # ge
    16: lambda a, b: 1 if a >= b else 0,  # gt
}


class Emulator:
    """A single TAM machine with its code store, data store and registers."""

    def __init__(self, stdin: TextIO | None = None, stdout: TextIO | None = None) -> None:
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self.code: list[int] = []
        self.data: list[int] = [0] * MEMORY_SIZE
        self.registers: list[int] = [0] * len(Register)
        self._pushback: list[str] = []
        self._handlers: dict[int, Callable[[Instruction], None]] = {
            Opcode.LOAD: self._exec_load,
            Opcode.LOADA: self._exec_loada,
            Opcode.LOADI: self._exec_loadi,
            Opcode.LOADL: self._exec_loadl,
            Opcode.STORE: self._exec_store,
            Opcode.STOREI: self._exec_storei,
            Opcode.CALL: self._exec_call,
            Opcode.RETURN: self._exec_return,
            Opcode.PUSH: self._exec_push,
            Opcode.POP: self._exec_pop,
            Opcode.JUMP: self._exec_jump,
            Opcode.JUMPI: self._exec_jumpi,
            Opcode.JUMPIF: self._exec_jumpif,
            Opcode.HALT: lambda instr: None,
        }

    # ----- loading -------------------------------------------------------

    def _reset(self) -> None:
        self.code = []
        self.data = [0] * MEMORY_SIZE
        self.registers = [0] * len(Register)

    def load_program(self, path) -> None:
        """Read a TAM binary file into the code store."""
        self._reset()
        try:
            handle = open(path, "rb")
        except OSError as exc:
            raise TamError(ErrorKind.FILE_NOT_FOUND) from exc
        with handle:
            try:
                data = handle.read()
            except OSError as exc:
                raise TamError(ErrorKind.FILE_READ) from exc
        self.load_bytes(data)

    def load_bytes(self, data: bytes) -> None:
        """Load big-endian 32-bit code words and set up the registers."""
        self._reset()
        if len(data) % 4 or len(data) // 4 > MEMORY_SIZE:
            raise TamError(ErrorKind.FILE_LENGTH)
        self.code = [word for (word,) in struct.iter_unpack(">I", bytes(data))]
        regs = self.registers
        regs[Register.CT] = len(self.code)
        regs[Register.HB] = MEMORY_SIZE - 1
        regs[Register.HT] = MEMORY_SIZE - 1
        regs[Register.PB] = regs[Register.CT]
        regs[Register.PT] = _to_address(regs[Register.PB] + PRIMITIVE_SLOTS)

    # ----- fetch / execute -----------------------------------------------

    def fetch_decode(self) -> Instruction:
        """Fetch the instruction at CP, advance CP and return it decoded."""
        index = self.registers[Register.CP]
        if index >= self.registers[Register.CT]:
            raise TamError(ErrorKind.CODE_ACCESS_VIOLATION)
        instr = decode(self.code[index])
        self.registers[Register.CP] = _to_address(index + 1)
        return instr

    def execute(self, instr: Instruction) -> None:
        """Execute one decoded instruction."""
        handler = self._handlers.get(instr.op)
        if handler is None:
            raise TamError(ErrorKind.UNRECOGNISED_OPCODE)
        handler(instr)

    # ----- stack and memory helpers --------------------------------------

    def _push(self, value: int) -> None:
        top = self.registers[Register.ST]
        if top >= self.registers[Register.HT]:
            raise TamError(ErrorKind.STACK_OVERFLOW)
        self.data[top] = _to_word(value)
        self.registers[Register.ST] = _to_address(top + 1)

    def _pop(self) -> int:
        if not self.registers[Register.ST]:
            raise TamError(ErrorKind.STACK_UNDERFLOW)
        self.registers[Register.ST] -= 1
        return self.data[self.registers[Register.ST]]

    def _pop_many(self, count: int) -> list[int]:
        """Pop ``count`` words; the former top of stack comes first."""
        return [self._pop() for _ in range(count)]

    def _address(self, instr: Instruction) -> int:
        return _to_address(self.registers[instr.r] + instr.d)

    def _check_data(self, address: int) -> None:
        if self.registers[Register.ST] <= address <= self.registers[Register.HT]:
            raise TamError(ErrorKind.DATA_ACCESS_VIOLATION)

    def _check_code(self, address: int) -> None:
        if address >= self.registers[Register.CT]:
            raise TamError(ErrorKind.CODE_ACCESS_VIOLATION)

    def _load_from(self, base: int, count: int) -> None:
        for offset in range(count):
            address = _to_address(base + offset)
            self._check_data(address)
            self._push(self.data[address])

    def _store_to(self, base: int, values: list[int]) -> None:
        for offset, value in enumerate(reversed(values)):
            address = _to_address(base + offset)
            self._check_data(address)
            self.data[address] = value

    # ----- instructions --------------------------------------------------

    def _exec_load(self, instr: Instruction) -> None:
        self._load_from(self._address(instr), instr.n)

    def _exec_loada(self, instr: Instruction) -> None:
        self._push(self._address(instr))

    def _exec_loadi(self, instr: Instruction) -> None:
        base = _to_address(self._pop())
        self._load_from(base, instr.n)

    def _exec_loadl(self, instr: Instruction) -> None:
        self._push(instr.d)

    def _exec_store(self, instr: Instruction) -> None:
        values = self._pop_many(instr.n)
        self._store_to(self._address(instr), values)

    def _exec_storei(self, instr: Instruction) -> None:
        values = self._pop_many(instr.n)
        base = _to_address(self._pop())
        self._store_to(base, values)

    def _exec_call(self, instr: Instruction) -> None:
        if instr.r == Register.PB and 0 < instr.d < PRIMITIVE_SLOTS:
            self._call_primitive(instr.d)
            return
        regs = self.registers
        # The static-link operand names a register; anything beyond them yields 0.
        static_link = regs[instr.n] if instr.n < len(regs) else 0
        dynamic_link = regs[Register.LB]
        return_address = regs[Register.CP]
        target = self._address(instr)
        self._check_code(target)
        self._push(static_link)
        self._push(dynamic_link)
        self._push(return_address)
        regs[Register.LB] = _to_address(regs[Register.ST] - 3)
        regs[Register.CP] = target

    def _exec_return(self, instr: Instruction) -> None:
        results = self._pop_many(instr.n)
        regs = self.registers
        frame = regs[Register.LB]
        return_address = _to_address(self.data[_to_address(frame + 2)])
        dynamic_link = _to_address(self.data[_to_address(frame + 1)])
        regs[Register.ST] = frame
        for _ in range(instr.d):
            self._pop()
        for value in reversed(results):
            self._push(value)
        regs[Register.LB] = dynamic_link
        regs[Register.CP] = return_address

    def _exec_push(self, instr: Instruction) -> None:
        top = self.registers[Register.ST]
        if top + instr.d >= self.registers[Register.HT]:
            raise TamError(ErrorKind.STACK_OVERFLOW)
        self.registers[Register.ST] = _to_address(top + instr.d)

    def _exec_pop(self, instr: Instruction) -> None:
        values = self._pop_many(instr.n)
        for _ in range(instr.d):
            self._pop()
        for value in reversed(values):
            self._push(value)

    def _exec_jump(self, instr: Instruction) -> None:
        target = self._address(instr)
        self._check_code(target)
        self.registers[Register.CP] = target

    def _exec_jumpi(self, instr: Instruction) -> None:
        target = _to_address(self._pop())
        self._check_code(target)
        self.registers[Register.CP] = target

    def _exec_jumpif(self, instr: Instruction) -> None:
        if self._pop() != instr.n:
            return
        self._exec_jump(instr)

    # ----- primitives ----------------------------------------------------

    def _call_primitive(self, code: int) -> None:
        if code in _UNARY:
            self._push(_UNARY[code](self._pop()))
        elif code in _BINARY:
            first = self._pop()
            second = self._pop()
            self._push(_BINARY[code](first, second))
        elif code in (17, 18):
            size = self._pop()
            left = self._pop_many(size)
            right = self._pop_many(size)
            equal = left == right
            self._push(1 if equal == (code == 17) else 0)
        elif code == 19:  # eol
            self._push(1 if self._peekc() == "\n" else 0)
        elif code == 20:  # eof
            self._push(1 if self._peekc() == "" else 0)
        elif code == 21:  # get
            address = self._pop_data_address()
            char = self._getc()
            self.data[address] = _to_word(ord(char)) if char else -1
        elif code == 22:  # put
            self.stdout.write(chr(self._pop() & 0xFF))
        elif code == 23:  # geteol
            while (char := self._getc()) and char != "\n":
                pass
        elif code == 24:  # puteol
            self.stdout.write("\n")
        elif code == 25:  # getint
            address = self._pop_data_address()
            value = self._read_int()
            self.data[address] = 0 if value is None else value
        elif code == 26:  # putint
            self.stdout.write(str(self._pop()))

    def _pop_data_address(self) -> int:
        address = _to_address(self._pop())
        self._check_data(address)
        return address

    # ----- input ---------------------------------------------------------

    def _getc(self) -> str:
        if self._pushback:
            return self._pushback.pop()
        return self.stdin.read(1)

    def _ungetc(self, char: str) -> None:
        if char:
            self._pushback.append(char)

    def _peekc(self) -> str:
        char = self._getc()
        self._ungetc(char)
        return char

    def _read_int(self) -> int | None:
        """Read a decimal integer, skipping leading whitespace; None if none."""
        char = self._getc()
        while char and char.isspace():
            char = self._getc()
        sign = ""
        if char and char in "+-":
            sign = char
            char = self._getc()
        digits = ""
        while char and char in string.digits:
            digits += char
            char = self._getc()
        self._ungetc(char)
        if not digits:
            return None
        return _to_word(int(sign + digits))