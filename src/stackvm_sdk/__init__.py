"""
StackVM SDK - Assembler Toolchain for the StackVM Virtual Machine
=================================================================

This package provides a toolchain for writing programs for StackVM, a small
32-bit stack machine. Programs are flat binary images loaded at address 0.

Main Components
---------------
- **assembler**: Two-pass StackVM assembler (svasm)
    Converts assembly source (.asm) into a raw image (.bin)

- **disassembler**: StackVM disassembler (svdisasm)
    Decodes a raw image back into assembler syntax

Quick Start
-----------
Assemble a program:
    >>> from stackvm_sdk.assembler import Assembler
    >>> asm = Assembler()
    >>> code = asm.assemble_file("hello.asm")
    >>> asm.write_binary("hello.bin")

Or from a list of lines:
    >>> from stackvm_sdk import assemble
    >>> assemble(["jump end", "end: halt"])
    b'\\x82\\x05\\x00\\x00\\x00?'

Or use the command-line tools:
    $ svasm hello.asm -o hello.bin
    $ svdisasm hello.bin
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from stackvm_sdk.assembler import Assembler, assemble, assemble_file
from stackvm_sdk.disassembler import StackVMDisassembler
from stackvm_sdk.errors import (
    StackVMError,
    SourceLocation,
    AssemblerError,
    AssemblySyntaxError,
    UnknownInstructionError,
    UndefinedSymbolError,
    DuplicateSymbolError,
    OperandRangeError,
    DisassemblerError,
)

__all__ = [
    # Version info
    "__version__",
    # Assembler
    "Assembler",
    "assemble",
    "assemble_file",
    # Disassembler
    "StackVMDisassembler",
    # Exception hierarchy
    "StackVMError",
    "SourceLocation",
    "AssemblerError",
    "AssemblySyntaxError",
    "UnknownInstructionError",
    "UndefinedSymbolError",
    "DuplicateSymbolError",
    "OperandRangeError",
    "DisassemblerError",
]
