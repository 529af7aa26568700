"""
StackVM Assembly Language Parser
================================

This module turns source lines into statements. Each line holds at most
one label declaration and exactly one statement:

    [label:] mnemonic [operand | data...]

Statement Types
---------------
1. **Instruction**: an opcode plus an optional operand
   ```asm
   loop: load counter
         inc
         jumpnz loop
   ```

2. **RawBytes**: ASCII text from the `.db` directive
   ```asm
   msg: .db hello world
   ```

Operand Types
-------------
| Syntax   | Parsed as  | Example |
|----------|------------|---------|
| 0x...    | Address    | 0x10    |
| digits   | Address    | 16      |
| anything | LabelRef   | loop    |

Label references are resolved to addresses by the second pass in
`codegen.resolve_labels`; after that point no LabelRef remains.

Example
-------
>>> from stackvm_sdk.assembler.parser import parse_line
>>> parsed = parse_line("start: jump end")
>>> parsed.label
'start'
>>> parsed.statement.operand
LabelRef(name='end')
"""

import difflib
import re
from dataclasses import dataclass, field
from typing import Optional, Union

from stackvm_sdk.errors import (
    AssemblySyntaxError,
    UnknownInstructionError,
    SourceLocation,
)
from stackvm_sdk.assembler.opcodes import (
    DIRECTIVE_DB,
    DIRECTIVES,
    MNEMONICS,
    OPCODE_NAMES,
    WORD_MAX,
    Opcode,
    instruction_size,
)


HEX_PREFIX = "0x"

_TOKEN_RE = re.compile(r"\S+")
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


# =============================================================================
# Operands
# =============================================================================

@dataclass(frozen=True)
class Address:
    """A concrete unsigned 32-bit operand value."""
    value: int

    def __post_init__(self) -> None:
        if not 0 <= self.value <= WORD_MAX:
            raise ValueError(f"address {self.value} out of range 0..0x{WORD_MAX:X}")


@dataclass(frozen=True)
class LabelRef:
    """A symbolic operand, valid only until labels are resolved."""
    name: str


Operand = Union[Address, LabelRef]


# =============================================================================
# Statements
# =============================================================================

@dataclass(frozen=True)
class Instruction:
    """
    Machine instruction statement.

    Attributes:
        opcode: The opcode to emit
        operand: Operand for opcodes whose size class carries one
        location: Source line the instruction came from
    """
    opcode: Opcode
    operand: Optional[Operand] = None
    location: Optional[SourceLocation] = field(default=None, compare=False)

    @property
    def size(self) -> int:
        return instruction_size(self.opcode)

    @property
    def mnemonic(self) -> str:
        return OPCODE_NAMES.get(int(self.opcode), f"${int(self.opcode):02X}")


@dataclass(frozen=True)
class RawBytes:
    """
    Data statement produced by `.db`.

    The encoder appends a zero terminator after `data`, so the encoded
    size is one byte longer than the data itself.
    """
    data: bytes
    location: Optional[SourceLocation] = field(default=None, compare=False)

    @property
    def size(self) -> int:
        return len(self.data) + 1


Statement = Union[Instruction, RawBytes]


@dataclass(frozen=True)
class ParsedLine:
    """
    Result of parsing one source line.

    Attributes:
        label: Name declared on this line, if any
        statement: The instruction or data statement
    """
    label: Optional[str]
    statement: Statement


# =============================================================================
# Operand Parser
# =============================================================================

def parse_operand(
    token: str,
    location: Optional[SourceLocation] = None,
    source_line: Optional[str] = None,
) -> Operand:
    """
    Classify an operand token as an address literal or a label reference.

    - `0x` prefix: the remainder is hexadecimal
    - all decimal digits: decimal
    - anything else: a label name, taken verbatim

    Raises:
        AssemblySyntaxError: Malformed hex literal or value wider than a word
    """
    if token.startswith(HEX_PREFIX):
        digits = token[len(HEX_PREFIX):]
        if not digits or not set(digits) <= _HEX_DIGITS:
            raise AssemblySyntaxError(
                f"invalid hexadecimal literal '{token}'",
                location=location,
                hint="hex literals use 0x followed by digits 0-9, a-f",
                source_line=source_line,
            )
        value = int(digits, 16)
    elif token.isascii() and token.isdigit():
        value = int(token, 10)
    else:
        return LabelRef(token)

    if value > WORD_MAX:
        raise AssemblySyntaxError(
            f"literal '{token}' does not fit in a 32-bit word",
            location=location,
            source_line=source_line,
        )
    return Address(value)


# =============================================================================
# Line Parser
# =============================================================================

def parse_line(text: str, location: Optional[SourceLocation] = None) -> ParsedLine:
    """
    Parse one source line into an optional label and a statement.

    Tokens are separated by runs of whitespace. The `.db` directive takes
    the rest of the line verbatim, so spacing inside the data is kept.

    Args:
        text: The source line (a trailing newline is ignored)
        location: Location of the line; columns are filled in per token

    Raises:
        AssemblySyntaxError: Missing mnemonic or operand, bad literal
        UnknownInstructionError: Mnemonic not in the instruction table
    """
    text = text.rstrip("\r\n")
    if location is None:
        location = SourceLocation("<input>", 1)

    def at(match: re.Match) -> SourceLocation:
        return SourceLocation(location.filename, location.line, match.start() + 1)

    tokens = list(_TOKEN_RE.finditer(text))
    index = 0

    label = None
    if tokens and tokens[0].group().endswith(":"):
        label = tokens[0].group()[:-1]
        if not label:
            raise AssemblySyntaxError(
                "empty label name", location=at(tokens[0]), source_line=text,
            )
        index = 1

    if index >= len(tokens):
        raise AssemblySyntaxError(
            "expected an instruction",
            location=SourceLocation(location.filename, location.line, len(text) + 1),
            hint=f"label '{label}' must be followed by a statement on the same line" if label else None,
            source_line=text,
        )

    mnemonic_token = tokens[index]
    mnemonic = mnemonic_token.group().lower()

    if mnemonic == DIRECTIVE_DB:
        data_text = text[mnemonic_token.end() + 1:]
        try:
            data = data_text.encode("ascii")
        except UnicodeEncodeError:
            raise AssemblySyntaxError(
                "'.db' data must be ASCII text",
                location=at(mnemonic_token),
                source_line=text,
            ) from None
        return ParsedLine(label, RawBytes(data, location=at(mnemonic_token)))

    info = MNEMONICS.get(mnemonic)
    if info is None:
        suggestions = difflib.get_close_matches(
            mnemonic, list(MNEMONICS) + sorted(DIRECTIVES), n=3,
        )
        raise UnknownInstructionError(
            mnemonic_token.group(),
            location=at(mnemonic_token),
            source_line=text,
            suggestions=suggestions,
        )

    operand = None
    if info.operand_count:
        if index + 1 >= len(tokens):
            raise AssemblySyntaxError(
                f"'{info.mnemonic}' requires an operand",
                location=SourceLocation(location.filename, location.line, len(text) + 1),
                hint="operand is a 0x hex value, a decimal value or a label",
                source_line=text,
            )
        operand_token = tokens[index + 1]
        operand = parse_operand(operand_token.group(), at(operand_token), text)

    return ParsedLine(label, Instruction(info.opcode, operand, location=at(mnemonic_token)))
