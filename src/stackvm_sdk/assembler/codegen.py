"""
StackVM Code Generator
======================

This module implements the two-pass assembly process and the encoder.

Pass 1 (first_pass)
-------------------
- Parse every line in order
- Bind each declared label to the current address
- Advance the address by each statement's encoded size

Sizes depend only on the opcode's size class (or the `.db` byte count),
never on operand values, so addresses are final after one pass and both
forward and backward references work.

Pass 2 (resolve_labels)
-----------------------
- Replace each label operand with the address from the label table

Encoding (encode)
-----------------
```
Statement      Bytes
-----------    -----------------------------------------------
Instruction    opcode, then operand little-endian (0, 1 or 4 bytes)
RawBytes       data bytes, then $00
```

The image has no header: it is loaded at address 0.

All pass state is local to each call and returned in a Program, so runs
never share anything.
"""

import difflib
import logging
import struct
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from stackvm_sdk.errors import (
    AssemblerError,
    DuplicateSymbolError,
    OperandRangeError,
    SourceLocation,
    UndefinedSymbolError,
)
from stackvm_sdk.assembler.opcodes import size_class, SizeClass
from stackvm_sdk.assembler.parser import (
    Address,
    Instruction,
    LabelRef,
    RawBytes,
    Statement,
    parse_line,
)

logger = logging.getLogger(__name__)

# struct formats for each operand width (little-endian)
_OPERAND_FORMATS = {1: "<B", 4: "<I"}


# =============================================================================
# Program
# =============================================================================

@dataclass
class Program:
    """
    Output of pass one, consumed by pass two and the encoder.

    Attributes:
        statements: Statements in source order
        labels: Label name -> address (case-sensitive)
        size: Address after the last statement (the image length)
        source_lines: Source text of each statement, parallel to statements
        label_locations: Where each label was (last) declared
    """
    statements: list[Statement] = field(default_factory=list)
    labels: dict[str, int] = field(default_factory=dict)
    size: int = 0
    source_lines: list[str] = field(default_factory=list)
    label_locations: dict[str, SourceLocation] = field(default_factory=dict)

    def addresses(self) -> list[int]:
        """Start address of each statement."""
        result = []
        address = 0
        for stmt in self.statements:
            result.append(address)
            address += stmt.size
        return result

    def is_resolved(self) -> bool:
        """True once no statement carries a label operand."""
        return not any(
            isinstance(stmt, Instruction) and isinstance(stmt.operand, LabelRef)
            for stmt in self.statements
        )


# =============================================================================
# Pass 1: Statements and Labels
# =============================================================================

def first_pass(
    lines: Iterable[str],
    filename: str = "<input>",
    strict_labels: bool = False,
) -> Program:
    """
    First pass: parse lines, record label addresses, compute sizes.

    Args:
        lines: Source lines in file order
        filename: Name used in error locations
        strict_labels: If True, a redeclared label raises DuplicateSymbolError;
                       otherwise the later declaration wins

    Returns:
        Program with statements, label table and final address

    Raises:
        AssemblySyntaxError, UnknownInstructionError: From the line parser
        DuplicateSymbolError: Redeclared label in strict mode
    """
    program = Program()
    address = 0

    for line_number, text in enumerate(lines, start=1):
        text = text.rstrip("\r\n")
        if not text.strip():
            continue

        location = SourceLocation(filename, line_number)
        parsed = parse_line(text, location)

        if parsed.label is not None:
            _define_label(program, parsed.label, address, location, text, strict_labels)

        program.statements.append(parsed.statement)
        program.source_lines.append(text)
        address += parsed.statement.size

    program.size = address
    logger.debug(
        "pass 1: %d statements, %d labels, %d bytes",
        len(program.statements), len(program.labels), program.size,
    )
    return program


def _define_label(
    program: Program,
    name: str,
    address: int,
    location: SourceLocation,
    source_line: str,
    strict: bool,
) -> None:
    """Bind a label to an address in the program's label table."""
    if name in program.labels:
        original = program.label_locations.get(name)
        if strict:
            raise DuplicateSymbolError(
                name,
                location=location,
                original_location=original,
                source_line=source_line,
            )
        logger.warning(
            "%s: label '%s' redefined (was $%04X, now $%04X)",
            location, name, program.labels[name], address,
        )

    program.labels[name] = address
    program.label_locations[name] = location


# =============================================================================
# Pass 2: Label Resolution
# =============================================================================

def resolve_labels(program: Program) -> Program:
    """
    Second pass: replace label operands with their addresses.

    The input program is left untouched; a new Program is returned whose
    statements carry only Address operands.

    Raises:
        UndefinedSymbolError: A referenced label is never declared
    """
    resolved = []
    for index, stmt in enumerate(program.statements):
        source_line = program.source_lines[index] if index < len(program.source_lines) else None
        if isinstance(stmt, Instruction) and isinstance(stmt.operand, LabelRef):
            name = stmt.operand.name
            if name not in program.labels:
                raise UndefinedSymbolError(
                    name,
                    location=_operand_location(stmt, source_line),
                    source_line=source_line,
                    similar_symbols=difflib.get_close_matches(name, list(program.labels), n=3),
                )
            stmt = replace(stmt, operand=Address(program.labels[name]))
        resolved.append(stmt)

    logger.debug("pass 2: resolved %d statements", len(resolved))
    return replace(program, statements=resolved)


def _operand_location(stmt: Instruction, source_line: Optional[str]) -> Optional[SourceLocation]:
    """Point at the operand token following the mnemonic."""
    loc = stmt.location
    if loc is None or source_line is None:
        return loc
    start = loc.column - 1
    end = start
    while end < len(source_line) and not source_line[end].isspace():
        end += 1
    while end < len(source_line) and source_line[end].isspace():
        end += 1
    return SourceLocation(loc.filename, loc.line, end + 1)


# =============================================================================
# Encoder
# =============================================================================

def encode_statement(stmt: Statement) -> bytes:
    """
    Encode a single resolved statement.

    Raises:
        AssemblerError: The instruction still holds a label operand, or
                        lacks an operand its size class requires
        OperandRangeError: The operand does not fit its field
    """
    if isinstance(stmt, RawBytes):
        return bytes(stmt.data) + b"\x00"

    cls = size_class(stmt.opcode)
    width = cls.operand_width
    code = bytearray([int(stmt.opcode)])

    if width == 0:
        # NO_EXTRA and RESERVED: any operand is ignored
        return bytes(code)

    operand = stmt.operand
    if isinstance(operand, LabelRef):
        raise AssemblerError(
            f"unresolved label '{operand.name}' reached the encoder",
            location=stmt.location,
            hint="run resolve_labels() before encoding",
        )
    if operand is None:
        raise AssemblerError(
            f"'{stmt.mnemonic}' requires an operand",
            location=stmt.location,
        )
    if cls is SizeClass.BYTE_EXTRA and operand.value > 0xFF:
        raise OperandRangeError(operand.value, width, location=stmt.location)

    code.extend(struct.pack(_OPERAND_FORMATS[width], operand.value))
    return bytes(code)


def encode(statements: Iterable[Statement]) -> bytes:
    """
    Serialize resolved statements into a flat image.

    Statements are emitted in order with no padding; the image length is the
    sum of statement sizes.
    """
    code = bytearray()
    for stmt in statements:
        encoded = encode_statement(stmt)
        if len(encoded) != stmt.size:
            raise AssemblerError(
                f"size mismatch: encoded {len(encoded)} bytes, pass 1 counted {stmt.size}",
                location=stmt.location,
            )
        code.extend(encoded)
    return bytes(code)
