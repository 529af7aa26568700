"""
StackVM SDK Disassembler Module
===============================

Decodes raw StackVM images back into assembler syntax, using the same
opcode table and size rule as the assembler.

Usage:
    from stackvm_sdk.disassembler import StackVMDisassembler

    disasm = StackVMDisassembler()
    for instr in disasm.disassemble(image):
        print(instr)
"""

from .stackvm import DisassembledInstruction, StackVMDisassembler, load_symbol_file

__all__ = [
    "StackVMDisassembler",
    "DisassembledInstruction",
    "load_symbol_file",
]
