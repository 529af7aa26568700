"""
StackVM Assembler
=================

This module provides a two-pass assembler for the StackVM instruction set.
It turns mnemonic source lines into a flat binary image that the VM loads
at address 0.

Main Components
---------------
- **Assembler**: Runs the pipeline and keeps the last run's results
- **parse_line / parse_operand**: Split a source line into label and statement
- **first_pass**: Builds statements and the label table
- **resolve_labels**: Replaces label operands with addresses
- **encode**: Serializes statements to bytes

Assembly Process
----------------
1. **Pass 1 (first_pass)**:
   - Parse each line into an optional label and one statement
   - Record label addresses; advance by each statement's size

2. **Pass 2 (resolve_labels)**:
   - Substitute label operands using the completed label table

3. **Encoding (encode)**:
   - Opcode byte plus little-endian operand, or `.db` data plus $00

Example Usage
-------------
>>> from stackvm_sdk.assembler import assemble
>>> assemble([".db hello"])
b'hello\\x00'
"""

from stackvm_sdk.assembler.assembler import Assembler, assemble, assemble_file
from stackvm_sdk.assembler.parser import (
    Address,
    Instruction,
    LabelRef,
    Operand,
    ParsedLine,
    RawBytes,
    Statement,
    parse_line,
    parse_operand,
)
from stackvm_sdk.assembler.codegen import (
    Program,
    encode,
    encode_statement,
    first_pass,
    resolve_labels,
)
from stackvm_sdk.assembler.opcodes import (
    InstructionInfo,
    MNEMONICS,
    Opcode,
    SizeClass,
    WORD_SIZE,
    instruction_size,
    size_class,
)

__all__ = [
    # Main class and functions
    "Assembler",
    "assemble",
    "assemble_file",
    # Parser
    "Address",
    "Instruction",
    "LabelRef",
    "Operand",
    "ParsedLine",
    "RawBytes",
    "Statement",
    "parse_line",
    "parse_operand",
    # Passes and encoder
    "Program",
    "encode",
    "encode_statement",
    "first_pass",
    "resolve_labels",
    # Opcodes
    "InstructionInfo",
    "MNEMONICS",
    "Opcode",
    "SizeClass",
    "WORD_SIZE",
    "instruction_size",
    "size_class",
]
