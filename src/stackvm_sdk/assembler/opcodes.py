"""
StackVM Instruction Set Definition
==================================

This module defines the StackVM instruction set: opcode values, mnemonics,
operand arity, and the size rule that both the assembler and the
disassembler derive instruction lengths from.

Opcode Layout
-------------
The two most significant bits of an opcode byte select its size class,
which fixes how many operand bytes follow the opcode:

    00xxxxxx - nothing follows              (1 byte total)
    01xxxxxx - 1 byte follows               (2 bytes total)
    10xxxxxx - one 32-bit word follows      (5 bytes total)
    11xxxxxx - reserved, treated as 1 byte

Opcode values were chosen so that every stack operation lives in
$00-$3F and every instruction taking an address lives in $80-$BF.
Words are little-endian.

Instruction Table
-----------------
| Mnemonic | Opcode | Operand |
|----------|--------|---------|
| nop      | $00    |         |
| and      | $01    |         |
| or       | $02    |         |
| not      | $03    |         |
| dup      | $04    |         |
| cmp      | $05    |         |
| inc      | $06    |         |
| pop      | $07    |         |
| ldi.1    | $08    |         |
| ret      | $3E    |         |
| halt     | $3F    |         |
| load     | $80    | address |
| loadi    | $81    | word    |
| jump     | $82    | address |
| call     | $83    | address |
| jumpz    | $84    | address |
| jumpnz   | $85    | address |
| store    | $86    | address |

The `.db` directive is not an opcode: it emits ASCII text followed by a
zero terminator.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional


# Size in bytes of a machine word (the class 2 operand)
WORD_SIZE = 4

# Largest value a word operand can hold
WORD_MAX = (1 << (8 * WORD_SIZE)) - 1


# =============================================================================
# Opcodes
# =============================================================================

class Opcode(IntEnum):
    """StackVM opcode byte values."""
    NOP = 0x00
    AND = 0x01
    OR = 0x02
    NOT = 0x03
    DUP = 0x04
    CMP = 0x05
    INC = 0x06
    POP = 0x07
    LDI1 = 0x08
    RET = 0x3E
    HALT = 0x3F
    LOAD = 0x80
    LOADI = 0x81
    JUMP = 0x82
    CALL = 0x83
    JUMPZ = 0x84
    JUMPNZ = 0x85
    STORE = 0x86


class SizeClass(IntEnum):
    """
    Operand-size class, taken from the top two bits of an opcode byte.
    """
    NO_EXTRA = 0      # opcode only
    BYTE_EXTRA = 1    # opcode + 1 byte
    WORD_EXTRA = 2    # opcode + WORD_SIZE bytes
    RESERVED = 3      # encoded like NO_EXTRA

    @property
    def operand_width(self) -> int:
        """Number of operand bytes that follow the opcode."""
        if self is SizeClass.WORD_EXTRA:
            return WORD_SIZE
        if self is SizeClass.BYTE_EXTRA:
            return 1
        return 0


# =============================================================================
# Instruction Information
# =============================================================================

@dataclass(frozen=True)
class InstructionInfo:
    """
    Table entry describing how a mnemonic is assembled.

    Attributes:
        mnemonic: Canonical (lower-case) mnemonic
        opcode: Opcode emitted for the mnemonic
        operand_count: Number of operand tokens the mnemonic consumes (0 or 1)
    """
    mnemonic: str
    opcode: Opcode
    operand_count: int = 0

    @property
    def size(self) -> int:
        """Encoded instruction size in bytes."""
        return instruction_size(self.opcode)

    def __repr__(self) -> str:
        return f"InstructionInfo({self.mnemonic!r}, opcode=${int(self.opcode):02X}, size={self.size})"


def _entry(mnemonic: str, opcode: Opcode, operand_count: int = 0) -> tuple[str, InstructionInfo]:
    return mnemonic, InstructionInfo(mnemonic, opcode, operand_count)


# =============================================================================
# Mnemonic Table
# =============================================================================
# Keyed by lower-case mnemonic. The line parser does a single lookup here
# instead of branching per mnemonic.
# =============================================================================

MNEMONICS: dict[str, InstructionInfo] = dict([
    # Stack operations (no operand)
    _entry("nop", Opcode.NOP),
    _entry("and", Opcode.AND),
    _entry("or", Opcode.OR),
    _entry("not", Opcode.NOT),
    _entry("dup", Opcode.DUP),
    _entry("cmp", Opcode.CMP),
    _entry("inc", Opcode.INC),
    _entry("pop", Opcode.POP),
    _entry("ldi.1", Opcode.LDI1),     # Load indirect byte
    _entry("ret", Opcode.RET),
    _entry("halt", Opcode.HALT),

    # Word operand
    _entry("load", Opcode.LOAD, 1),
    _entry("loadi", Opcode.LOADI, 1),
    _entry("jump", Opcode.JUMP, 1),
    _entry("call", Opcode.CALL, 1),
    _entry("jumpz", Opcode.JUMPZ, 1),
    _entry("jumpnz", Opcode.JUMPNZ, 1),
    _entry("store", Opcode.STORE, 1),
])

# Reverse table used by the disassembler
OPCODE_NAMES: dict[int, str] = {int(info.opcode): name for name, info in MNEMONICS.items()}

# Data directive: emits raw ASCII bytes plus a zero terminator
DIRECTIVE_DB = ".db"

DIRECTIVES: frozenset[str] = frozenset({DIRECTIVE_DB})


# =============================================================================
# Size Rule
# =============================================================================

def size_class(opcode: int) -> SizeClass:
    """Return the size class of an opcode byte (its two high bits)."""
    return SizeClass((opcode & 0xFF) >> 6)


def operand_width(opcode: int) -> int:
    """Return the number of operand bytes encoded after the opcode."""
    return size_class(opcode).operand_width


def instruction_size(opcode: int) -> int:
    """
    Return the encoded size of an instruction.

    The size depends only on the opcode, never on the operand's value.

    >>> instruction_size(Opcode.JUMP)
    5
    >>> instruction_size(Opcode.HALT)
    1
    """
    return 1 + operand_width(opcode)


def requires_operand(opcode: int) -> bool:
    """True if instructions with this opcode must carry an operand."""
    return operand_width(opcode) > 0


# =============================================================================
# Lookup Functions
# =============================================================================

def get_instruction_info(mnemonic: str) -> Optional[InstructionInfo]:
    """
    Look up a mnemonic (case-insensitive).

    Returns:
        InstructionInfo if found, None for unknown mnemonics and directives
    """
    return MNEMONICS.get(mnemonic.lower())


def is_valid_instruction(mnemonic: str) -> bool:
    """Check if a mnemonic is a StackVM instruction or directive."""
    name = mnemonic.lower()
    return name in MNEMONICS or name in DIRECTIVES
