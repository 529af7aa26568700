"""
svasm - StackVM Assembler Command-Line Interface
================================================

This module implements the command-line interface for the StackVM
assembler. It is the boundary layer around the assembler core: it reads
the source file, hands its lines to the assembler and writes the image.

Usage Examples
--------------
Basic assembly (writes program.bin):
    $ svasm program.asm

With output file:
    $ svasm program.asm -o out.bin

Generate listing and symbol files:
    $ svasm program.asm -l program.lst -s program.sym

Reject labels declared twice:
    $ svasm --strict-labels program.asm
"""

from pathlib import Path
from typing import Optional

import click

from stackvm_sdk import __version__
from stackvm_sdk.assembler import Assembler
from stackvm_sdk.cli.errors import configure_logging, handle_cli_exception


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
    help="Output image file (default: input.bin)",
)
@click.option(
    "-l", "--listing",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Generate listing file",
)
@click.option(
    "-s", "--symbols",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Generate symbol file",
)
@click.option(
    "--strict-labels",
    is_flag=True,
    help="Treat a label declared more than once as an error "
         "(default: the later declaration wins, with a warning)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="svasm")
def main(
    input_file: Path,
    output: Optional[Path],
    listing: Optional[Path],
    symbols: Optional[Path],
    strict_labels: bool,
    verbose: bool,
) -> None:
    """
    Assemble StackVM source into a raw binary image.

    INPUT_FILE is the assembly source file. One statement per line:

    \b
        [label:] mnemonic [operand | data...]

    \b
    Examples:
        svasm hello.asm              # Outputs hello.bin
        svasm hello.asm -o out.bin   # Specify output file
        svasm hello.asm -l hello.lst # Also write a listing
    """
    configure_logging(verbose)

    output_file = output if output is not None else input_file.with_suffix(".bin")
    asm = Assembler(strict_labels=strict_labels, verbose=verbose)

    try:
        code = asm.assemble_file(input_file)
        asm.write_binary(output_file)
        if verbose:
            click.echo(f"Wrote {len(code)} bytes to {output_file}")

        if listing:
            asm.write_listing(listing)
            if verbose:
                click.echo(f"Wrote listing to {listing}")

        if symbols:
            asm.write_symbols(symbols)
            if verbose:
                click.echo(f"Wrote symbols to {symbols}")

        if verbose:
            click.echo(f"Assembly complete: {len(code)} bytes, {len(asm.get_symbols())} labels")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Assembly")


if __name__ == "__main__":
    main()
