"""
svdisasm - StackVM Disassembler Command-Line Interface
======================================================

Usage Examples
--------------
Disassemble an image:
    $ svdisasm program.bin

Annotate with the labels written by `svasm -s`:
    $ svdisasm program.bin --symbols program.sym

Limit number of instructions:
    $ svdisasm program.bin --count 20

Output to file:
    $ svdisasm program.bin -o program.dis
"""

import sys
from pathlib import Path
from typing import Optional

import click

from stackvm_sdk import __version__
from stackvm_sdk.assembler.opcodes import WORD_MAX
from stackvm_sdk.disassembler import StackVMDisassembler, load_symbol_file
from stackvm_sdk.cli.errors import ExitCode, configure_logging, handle_cli_exception


def parse_address(text: str) -> int:
    """Parse a base address given as 0x hex, $ hex or decimal (0 to $FFFFFFFF)."""
    try:
        if text.lower().startswith("0x"):
            value = int(text, 16)
        elif text.startswith("$"):
            value = int(text[1:], 16)
        else:
            value = int(text)
    except ValueError:
        raise click.BadParameter(f"invalid address '{text}'") from None
    if not 0 <= value <= WORD_MAX:
        raise click.BadParameter(f"address '{text}' out of range 0..$FFFFFFFF")
    return value


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file (default: stdout)",
)
@click.option(
    "-a", "--address",
    type=str,
    default="0",
    help="Base address for disassembly (hex with 0x prefix or decimal). Default: 0",
)
@click.option(
    "-c", "--count",
    type=int,
    default=None,
    help="Maximum number of instructions to disassemble (default: all)",
)
@click.option(
    "-s", "--symbols",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Symbol file from svasm -s, used to annotate addresses",
)
@click.option(
    "--no-bytes",
    is_flag=True,
    help="Omit raw bytes from output (show only mnemonic and operand)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="svdisasm")
def main(
    input_file: Path,
    output: Optional[Path],
    address: str,
    count: Optional[int],
    symbols: Optional[Path],
    no_bytes: bool,
    verbose: bool,
) -> None:
    """
    Disassemble a StackVM binary image.

    INPUT_FILE is the raw image produced by svasm.
    """
    configure_logging(verbose)

    try:
        base_address = parse_address(address)
        data = input_file.read_bytes()
        symbol_table = load_symbol_file(symbols.read_text(encoding="utf-8")) if symbols else None
    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Disassembly")

    if len(data) == 0:
        click.echo(f"Error: {input_file} is empty", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    if verbose:
        click.echo(f"Input file: {input_file} ({len(data)} bytes)", err=True)
        click.echo(f"Base address: ${base_address:08X}", err=True)

    disasm = StackVMDisassembler(symbol_table=symbol_table)
    instructions = disasm.disassemble(data, start_address=base_address, count=count)

    output_lines = [
        f"; Disassembly of {input_file.name}",
        f"; Size: {len(data)} bytes",
        f"; Base address: ${base_address:08X}",
        "",
    ]
    for instr in instructions:
        label = symbol_table.get(instr.address) if symbol_table else None
        if label:
            output_lines.append(f"{label}:")
        if no_bytes:
            line = f"    {instr.mnemonic} {instr.operand_str}".rstrip()
            if instr.comment:
                line += f"  ; {instr.comment}"
            output_lines.append(line)
        else:
            output_lines.append(str(instr))

    result = "\n".join(output_lines) + "\n"

    if output:
        try:
            output.write_text(result, encoding="utf-8")
        except OSError as e:
            handle_cli_exception(e, verbose=verbose, error_type="Disassembly")
        if verbose:
            click.echo(f"Output written to: {output}", err=True)
    else:
        click.echo(result, nl=False)

    if verbose:
        click.echo(f"Instructions disassembled: {len(instructions)}", err=True)


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    main()
