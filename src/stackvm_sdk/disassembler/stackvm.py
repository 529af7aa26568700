"""
StackVM Disassembler
====================

Disassembles a raw StackVM image into assembler syntax. This is the inverse
of the assembler's encoder and walks the image the same way the VM does:
the two high bits of each opcode give the instruction length.

Usage:
    disasm = StackVMDisassembler()

    # Disassemble a whole image
    instructions = disasm.disassemble(image)

    # Disassemble a single instruction
    instr = disasm.disassemble_one(image, address=5, offset=5)
    print(f"{instr.address:08X}: {instr.mnemonic} {instr.operand_str}")

Data written with `.db` cannot be told apart from code in a flat image and
is decoded as instructions.
"""

import logging
import struct
from dataclasses import dataclass
from typing import Dict, List, Optional

from stackvm_sdk.assembler.opcodes import OPCODE_NAMES, SizeClass, size_class
from stackvm_sdk.errors import DisassemblerError

logger = logging.getLogger(__name__)


# =============================================================================
# Data Structures
# =============================================================================

@dataclass
class DisassembledInstruction:
    """
    A single decoded instruction.

    Attributes:
        address: Address of the opcode byte
        opcode: The opcode byte
        mnemonic: Mnemonic, or ".byte" for opcodes not in the table
        operand: Decoded operand value (None when there is none)
        operand_str: Operand formatted in assembler syntax
        size: Bytes consumed
        raw_bytes: All bytes of the instruction
        comment: Symbol name for the operand, or a decoding note
    """
    address: int
    opcode: int
    mnemonic: str
    operand: Optional[int]
    operand_str: str
    size: int
    raw_bytes: bytes
    comment: str = ""

    def __str__(self) -> str:
        """Format as listing line: ADDRESS: BYTES  MNEMONIC OPERAND"""
        hex_bytes = " ".join(f"{b:02X}" for b in self.raw_bytes).ljust(14)

        asm = f"{self.mnemonic} {self.operand_str}" if self.operand_str else self.mnemonic

        if self.comment:
            return f"${self.address:08X}: {hex_bytes}  {asm:<18} ; {self.comment}"
        return f"${self.address:08X}: {hex_bytes}  {asm}"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "address": self.address,
            "opcode": f"0x{self.opcode:02X}",
            "mnemonic": self.mnemonic,
            "operand": self.operand,
            "size": self.size,
            "bytes": self.raw_bytes.hex(),
            "comment": self.comment,
        }


# =============================================================================
# StackVM Disassembler
# =============================================================================

class StackVMDisassembler:
    """
    Disassembler for StackVM images.

    Attributes:
        _symbol_table: Maps addresses to label names for annotation
    """

    def __init__(self, symbol_table: Optional[Dict[int, str]] = None):
        """
        Initialize the disassembler.

        Args:
            symbol_table: Optional dict mapping addresses to label names.
                          Operands that match an entry are annotated.
        """
        self._symbol_table = dict(symbol_table or {})

    def disassemble_one(self, data: bytes, address: int = 0, offset: int = 0) -> DisassembledInstruction:
        """
        Disassemble the instruction starting at `offset`.

        Args:
            data: Image bytes
            address: Address of the instruction (for display)
            offset: Index into data where the instruction starts

        Raises:
            DisassemblerError: If offset is outside the data
        """
        if not 0 <= offset < len(data):
            raise DisassemblerError(f"offset {offset} beyond data length {len(data)}")

        opcode = data[offset]
        cls = size_class(opcode)
        width = cls.operand_width
        size = 1 + width

        mnemonic = OPCODE_NAMES.get(opcode)
        comment = ""
        if mnemonic is None:
            mnemonic = ".byte"
            comment = "reserved opcode" if cls is SizeClass.RESERVED else "unknown opcode"

        if offset + size > len(data):
            partial = bytes(data[offset:])
            return DisassembledInstruction(
                address=address,
                opcode=opcode,
                mnemonic=mnemonic,
                operand=None,
                operand_str="???",
                size=len(partial),
                raw_bytes=partial,
                comment="incomplete instruction",
            )

        raw_bytes = bytes(data[offset:offset + size])
        operand = None
        operand_str = ""
        if width:
            operand = struct.unpack("<I", raw_bytes[1:].ljust(4, b"\x00"))[0]
            operand_str = f"0x{operand:X}"
            if not comment and operand in self._symbol_table:
                comment = self._symbol_table[operand]

        return DisassembledInstruction(
            address=address,
            opcode=opcode,
            mnemonic=mnemonic,
            operand=operand,
            operand_str=operand_str,
            size=size,
            raw_bytes=raw_bytes,
            comment=comment,
        )

    def disassemble(
        self,
        data: bytes,
        start_address: int = 0,
        count: Optional[int] = None,
    ) -> List[DisassembledInstruction]:
        """
        Disassemble instructions until the data or `count` runs out.

        Args:
            data: Image bytes
            start_address: Address of the first byte
            count: Maximum number of instructions (None = all)
        """
        result = []
        offset = 0

        while offset < len(data):
            if count is not None and len(result) >= count:
                break

            instr = self.disassemble_one(data, start_address + offset, offset)
            result.append(instr)
            offset += instr.size

        logger.debug("disassembled %d instructions from %d bytes", len(result), offset)
        return result

    def disassemble_to_text(self, data: bytes, start_address: int = 0, count: Optional[int] = None) -> str:
        """Disassemble and return one formatted line per instruction."""
        lines = []
        for instr in self.disassemble(data, start_address, count):
            label = self._symbol_table.get(instr.address)
            if label:
                lines.append(f"{label}:")
            lines.append(str(instr))
        return "\n".join(lines)

    def add_symbol(self, address: int, name: str) -> None:
        """Add a label to the symbol table."""
        self._symbol_table[address] = name

    def add_symbols(self, symbols: Dict[int, str]) -> None:
        """Add multiple labels to the symbol table."""
        self._symbol_table.update(symbols)


def load_symbol_file(text: str) -> Dict[int, str]:
    """
    Parse a symbol file written by `svasm -s` into address -> name.

    Lines are `name $ADDRESS`; blank lines and `#` comments are skipped.
    """
    symbols = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        name, _, value = line.partition(" ")
        value = value.strip()
        if not value.startswith("$"):
            raise DisassemblerError(f"malformed symbol line: {line!r}")
        try:
            symbols[int(value[1:], 16)] = name
        except ValueError:
            raise DisassemblerError(f"malformed symbol line: {line!r}") from None
    return symbols
