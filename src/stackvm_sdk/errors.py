"""
StackVM SDK Error Hierarchy
===========================

This module defines the exception hierarchy for the entire StackVM SDK.
All exceptions inherit from StackVMError, allowing callers to catch all
SDK-related errors with a single except clause if desired.

Exception Hierarchy
-------------------
StackVMError (base)
├── AssemblerError (assembler-related)
│   ├── AssemblySyntaxError - malformed operand or missing tokens
│   ├── UnknownInstructionError - mnemonic not in the instruction table
│   ├── UndefinedSymbolError - reference to an undeclared label
│   ├── DuplicateSymbolError - label declared twice (strict mode only)
│   └── OperandRangeError - operand value too wide for its field
└── DisassemblerError (image decoding)

Every assembler error is fatal: the run aborts and no image is produced.

Error messages follow this format:
    filename:line:column: error: description
        source_line_text
        ^~~~ (underline of the offending token)
    hint: suggestion for fixing (when available)
"""

import re
from dataclasses import dataclass
from typing import Optional

_TOKEN_RE = re.compile(r"\S+")


# =============================================================================
# Base Exception Class
# =============================================================================

class StackVMError(Exception):
    """
    Base exception for all StackVM SDK errors.

        try:
            assemble(lines)
        except StackVMError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    A location in source text, used for error reporting and listings.

    Attributes:
        filename: Name of the source file (or "<input>" for in-memory lines)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int = 1

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"


# =============================================================================
# Assembler Exceptions
# =============================================================================

def _did_you_mean(candidates: list[str]) -> Optional[str]:
    """Turn close matches into a hint, or None when there are none."""
    if not candidates:
        return None
    return "did you mean " + " or ".join(f"'{c}'" for c in candidates) + "?"


def _excerpt(source_line: str, column: int) -> list[str]:
    """The source line, indented, with the token at `column` underlined."""
    start = max(column - 1, 0)
    token = _TOKEN_RE.match(source_line, start)
    width = len(token.group()) if token else 1
    return [
        f"    {source_line}",
        "    " + " " * start + "^" + "~" * (width - 1),
    ]


class AssemblerError(StackVMError):
    """
    An error that aborts the assembly run.

    str() renders a compiler-style diagnostic:

        demo.asm:3:6: error: undefined label 'lop'
            jump lop
                 ^~~
        hint: did you mean 'loop'?

    Attributes:
        message: What went wrong
        location: Where it went wrong, if known
        hint: How to fix it, if there is a likely fix
        source_line: Text of the offending line, for the excerpt
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self.render())

    def render(self) -> str:
        where = f"{self.location}: " if self.location else ""
        lines = [f"{where}error: {self.message}"]
        if self.location is not None and self.source_line is not None:
            lines += _excerpt(self.source_line, self.location.column)
        if self.hint:
            lines.append(f"hint: {self.hint}")
        return "\n".join(lines)


class AssemblySyntaxError(AssemblerError):
    """
    A line that cannot be split into the tokens its mnemonic expects.

    Examples:
        - Invalid hex digits after a 0x prefix (load 0xZZ)
        - Missing operand at the end of the line (jump)
        - A label declaration with no statement after it (end:)
        - Numeric literal wider than a 32-bit word
    """
    pass


class UnknownInstructionError(AssemblerError):
    """Mnemonic not present in the instruction table."""

    def __init__(
        self,
        mnemonic: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        suggestions: Optional[list[str]] = None,
    ):
        self.mnemonic = mnemonic
        self.suggestions = list(suggestions or [])
        super().__init__(
            f"unknown instruction '{mnemonic}'",
            location, _did_you_mean(self.suggestions), source_line,
        )


class UndefinedSymbolError(AssemblerError):
    """A label operand that no line declares (raised by pass 2)."""

    def __init__(
        self,
        symbol: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
        similar_symbols: Optional[list[str]] = None,
    ):
        self.symbol = symbol
        self.similar_symbols = list(similar_symbols or [])
        super().__init__(
            f"undefined label '{symbol}'",
            location, hint or _did_you_mean(self.similar_symbols[:3]), source_line,
        )


class DuplicateSymbolError(AssemblerError):
    """
    A label declared on more than one line.

    Only raised with strict_labels; otherwise the later declaration wins.
    """

    def __init__(
        self,
        symbol: str,
        location: Optional[SourceLocation] = None,
        original_location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.symbol = symbol
        self.original_location = original_location
        previous = f"previous declaration at {original_location}" if original_location else None
        super().__init__(f"duplicate label '{symbol}'", location, previous, source_line)


class OperandRangeError(AssemblerError):
    """Operand value does not fit the encoded operand field."""

    def __init__(
        self,
        value: int,
        width: int,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.value = value
        self.width = width
        limit = (1 << (8 * width)) - 1
        super().__init__(
            f"operand 0x{value:X} does not fit in {width} byte(s)",
            location, f"maximum value is 0x{limit:X}", source_line,
        )


# =============================================================================
# Disassembler Exceptions
# =============================================================================

class DisassemblerError(StackVMError):
    """Raised when an image cannot be decoded at the requested offset."""
    pass
