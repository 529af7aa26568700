"""
StackVM Assembler - Main Interface
==================================

This module provides the Assembler class, the primary interface for
assembling StackVM source. It runs the line parser, both passes and the
encoder, and keeps the results of the last run for output.

Example Usage
-------------
>>> from stackvm_sdk.assembler import Assembler
>>>
>>> asm = Assembler()
>>> code = asm.assemble_string('''
... start: loadi 1
... loop: inc
... jump loop
... ''')
>>> code.hex()
'8101000000068205000000'
>>> asm.get_symbols()
{'start': 0, 'loop': 5}

For the common case a single function call is enough:

>>> from stackvm_sdk.assembler import assemble
>>> assemble(["load 0x10"]).hex()
'8010000000'

Command-Line Usage
------------------
    $ svasm program.asm -o program.bin -l program.lst -s program.sym

Options:
    -o, --output FILE      Output image (default: input with .bin suffix)
    -l, --listing FILE     Generate listing file
    -s, --symbols FILE     Generate symbol file
    --strict-labels        Reject labels declared more than once
    -v, --verbose          Verbose output
"""

import logging
import re
from pathlib import Path
from typing import Iterable, Optional

from stackvm_sdk.assembler.codegen import Program, encode, first_pass, resolve_labels
from stackvm_sdk.errors import AssemblerError

logger = logging.getLogger(__name__)

# Line terminators: CR LF, lone CR or lone LF. Other control characters
# (form feed, file separator, ...) are ordinary text.
_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


class Assembler:
    """
    Main StackVM assembler class.

    Each assemble_* call is an independent run: the results of the previous
    run are replaced, and a failed run leaves no code behind.

    Attributes:
        strict_labels: If True, a label declared twice is an error
    """

    def __init__(self, strict_labels: bool = False, verbose: bool = False):
        """
        Initialize the assembler.

        Args:
            strict_labels: Raise DuplicateSymbolError when a label is declared
                           again instead of overwriting its address
            verbose: Log pass progress at INFO level
        """
        self.strict_labels = strict_labels
        self._verbose = verbose
        self._program: Optional[Program] = None
        self._code: Optional[bytes] = None
        self._source_name: Optional[str] = None

    # =========================================================================
    # Assembly Methods
    # =========================================================================

    def assemble_lines(self, lines: Iterable[str], filename: str = "<input>") -> bytes:
        """
        Assemble a sequence of source lines.

        Args:
            lines: Source lines in file order
            filename: Name used in error messages

        Returns:
            The raw image

        Raises:
            AssemblerError: If assembly fails (no image is kept)
        """
        self._program = None
        self._code = None
        self._source_name = None

        program = first_pass(lines, filename=filename, strict_labels=self.strict_labels)
        program = resolve_labels(program)
        code = encode(program.statements)

        if len(code) != program.size:
            raise AssemblerError(
                f"encoded {len(code)} bytes but pass 1 counted {program.size}"
            )

        self._program = program
        self._code = code
        self._source_name = filename

        log = logger.info if self._verbose else logger.debug
        log("Assembled %s: %d bytes, %d labels", filename, len(code), len(program.labels))
        return code

    def assemble_string(self, source: str, filename: str = "<input>") -> bytes:
        """Assemble source text held in a string. Lines end at CR LF, CR or LF."""
        return self.assemble_lines(_LINE_BREAK_RE.split(source), filename)

    def assemble_file(self, filepath: str | Path) -> bytes:
        """
        Assemble a source file.

        Raises:
            AssemblerError: If assembly fails
            FileNotFoundError: If the source file does not exist
        """
        filepath = Path(filepath)

        if self._verbose:
            logger.info("Assembling %s...", filepath)

        source = filepath.read_text(encoding="utf-8")
        return self.assemble_string(source, str(filepath))

    # =========================================================================
    # Output Methods
    # =========================================================================

    def _require_result(self) -> tuple[Program, bytes]:
        if self._program is None or self._code is None:
            raise RuntimeError("nothing assembled yet; call an assemble_* method first")
        return self._program, self._code

    def get_code(self) -> bytes:
        """Return the image produced by the last successful run."""
        return self._require_result()[1]

    def get_program(self) -> Program:
        """Return the resolved program from the last successful run."""
        return self._require_result()[0]

    def get_symbols(self) -> dict[str, int]:
        """Return label name -> address from the last successful run."""
        return dict(self._require_result()[0].labels)

    def get_listing(self) -> str:
        """
        Get the assembly listing as a string.

        Each statement is shown with its address, encoded bytes, source line
        number and source text, followed by the label table.
        """
        program, code = self._require_result()

        lines = []
        lines.append("StackVM Assembler Listing")
        lines.append(f"Source: {self._source_name}")
        lines.append("=" * 60)
        lines.append("")
        lines.append("Addr      Code            Line  Source")
        lines.append("-" * 60)

        for address, stmt, text in zip(program.addresses(), program.statements, program.source_lines):
            chunk = code[address:address + stmt.size]
            hex_str = " ".join(f"{b:02X}" for b in chunk[:5])
            if len(chunk) > 5:
                hex_str += " .."
            line_no = stmt.location.line if stmt.location else 0
            lines.append(f"${address:08X} {hex_str:15s} {line_no:5d}  {text.strip()}")

        lines.append("")
        lines.append("Symbol Table")
        lines.append("-" * 30)
        for name, value in sorted(program.labels.items()):
            lines.append(f"{name:20s} = ${value:08X}")
        return "\n".join(lines) + "\n"

    def write_binary(self, filepath: str | Path) -> None:
        """Write the raw image (no header, loaded at address 0)."""
        Path(filepath).write_bytes(self.get_code())

    def write_listing(self, filepath: str | Path) -> None:
        """Write the assembly listing file."""
        Path(filepath).write_text(self.get_listing(), encoding="utf-8")

    def write_symbols(self, filepath: str | Path) -> None:
        """
        Write symbol table file.

        Format: name $ADDRESS (one per line, sorted by name)
        """
        symbols = self.get_symbols()
        with open(filepath, "w", encoding="utf-8") as f:
            f.write("# Symbol table\n")
            f.write("# Generated by svasm\n")
            for name, value in sorted(symbols.items()):
                f.write(f"{name} ${value:08X}\n")


# =============================================================================
# Convenience Functions
# =============================================================================

def assemble(lines: Iterable[str], filename: str = "<input>", strict_labels: bool = False) -> bytes:
    """
    Assemble source lines into a raw image.

    This is the core entry point: it takes lines and returns bytes, or raises
    an AssemblerError subclass naming the failure and its location.
    """
    return Assembler(strict_labels=strict_labels).assemble_lines(lines, filename)


def assemble_file(filepath: str | Path, strict_labels: bool = False) -> bytes:
    """Assemble a source file into a raw image."""
    return Assembler(strict_labels=strict_labels).assemble_file(filepath)
