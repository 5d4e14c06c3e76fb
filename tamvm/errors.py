"""Errors raised by the TAM emulator."""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Kinds of failure; the value doubles as the process exit status."""

    FILE_NOT_FOUND = 1
    FILE_LENGTH = 2
    FILE_READ = 3
    CODE_ACCESS_VIOLATION = 4
    DATA_ACCESS_VIOLATION = 5
    STACK_OVERFLOW = 6
    STACK_UNDERFLOW = 7
    UNRECOGNISED_OPCODE = 8

    @property
    def message(self) -> str:
        """Human-readable description of this kind of error."""
        return _MESSAGES[self]


_MESSAGES = {
    ErrorKind.FILE_NOT_FOUND: "input file not found",
    ErrorKind.FILE_LENGTH: (
        "input file was too long or contained incomplete instructions"
    ),
    ErrorKind.FILE_READ: "there was a problem while reading the input file",
    ErrorKind.CODE_ACCESS_VIOLATION: "code access violation",
    ErrorKind.DATA_ACCESS_VIOLATION: "data access violation",
    ErrorKind.STACK_OVERFLOW: "stack overflow",
    ErrorKind.STACK_UNDERFLOW: "stack underflow",
    ErrorKind.UNRECOGNISED_OPCODE: "unrecognised opcode",
}


class TamError(Exception):
    """Raised when loading or running a TAM program fails."""

    def __init__(self, kind: ErrorKind) -> None:
        super().__init__(kind.message)
        self.kind = kind

    @property
    def exit_code(self) -> int:
        """Exit status a command should report for this error."""
        return self.kind.value