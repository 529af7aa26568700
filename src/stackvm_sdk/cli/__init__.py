"""
StackVM SDK Command-Line Interface
==================================

This package provides command-line tools for the StackVM SDK:

- **svasm**: StackVM assembler
- **svdisasm**: StackVM disassembler

Each tool is implemented as a Click-based CLI application with
comprehensive help and error reporting.
"""

__all__ = ["svasm", "svdisasm"]
