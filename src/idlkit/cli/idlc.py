"""
idlc - IDL Front End Command-Line Interface
===========================================

This module implements the command-line interface for the IDL front
end. It preprocesses and parses one IDL file, reports diagnostics, and
writes canonical IDL, the preprocessed text, or a model dump.

Usage Examples
--------------
Re-emit canonical IDL to stdout:
    $ idlc types.idl

With output file:
    $ idlc types.idl -o types.out.idl

With include path and a predefined macro:
    $ idlc -I ./include -D USE_KEYS types.idl

Preprocess only:
    $ idlc -E types.idl

Dump the parsed model:
    $ idlc --model types.idl
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from idlkit import __version__
from idlkit.cli.errors import ExitCode, handle_cli_exception
from idlkit.idl import CompilerOptions, IdlCompiler, IdlGenerator, ModelPrinter
from idlkit.idl.preprocessor import Preprocessor


logger = logging.getLogger(__name__)


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.ERROR
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(name)s: %(message)s" if verbose else "%(message)s",
    )


def parse_defines(defines: tuple[str, ...]) -> dict[str, str]:
    """
    Turn -D arguments into a macro table.

    ``NAME`` defines NAME as "1"; ``NAME=VALUE`` defines it as VALUE.

    Raises:
        click.BadParameter: For an empty or invalid macro name
    """
    result: dict[str, str] = {}
    for item in defines:
        name, sep, value = item.partition("=")
        name = name.strip()
        if not name or not (name[0].isalpha() or name[0] == "_"):
            raise click.BadParameter(f"invalid macro definition '{item}'", param_hint="-D")
        result[name] = value if sep else "1"
    return result


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
    help="Output IDL file (default: stdout)",
)
@click.option(
    "-I", "--include",
    multiple=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Add include search path (can be repeated)",
)
@click.option(
    "-D", "--define",
    "defines",
    multiple=True,
    metavar="NAME[=VALUE]",
    help="Predefine a macro (can be repeated)",
)
@click.option(
    "-E", "--preprocess-only",
    is_flag=True,
    help="Preprocess only, output to stdout",
)
@click.option(
    "--model",
    "print_model",
    is_flag=True,
    help="Print the parsed model and exit (for debugging)",
)
@click.option(
    "--strict",
    is_flag=True,
    help="Fail when any warning is reported",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="idlc")
def main(
    input_file: Path,
    output: Optional[Path],
    include: tuple[Path, ...],
    defines: tuple[str, ...],
    preprocess_only: bool,
    print_model: bool,
    strict: bool,
    verbose: bool,
) -> None:
    """
    Parse an OMG IDL (subset) file.

    INPUT_FILE is the IDL source file to read.

    \b
    Examples:
        idlc types.idl                 # Canonical IDL to stdout
        idlc types.idl -o out.idl      # Specify output file
        idlc -I inc/ types.idl         # Add include path
        idlc -D USE_KEYS types.idl     # Predefine a macro
        idlc -E types.idl              # Preprocess only
        idlc --model types.idl         # Dump the parsed model

    \b
    Supported IDL:
        - module NAME { ... }
        - struct NAME { [@key] TYPE NAME; ... };
        - typedef TYPE NAME;  typedef sequence<TYPE[,N]> NAME;
        - #include, #define, #undef, #ifdef, #ifndef, #else, #endif, #pragma
    """
    setup_logging(verbose)

    try:
        include_paths = [str(input_file.parent)] + [str(p) for p in include]
        options = CompilerOptions(
            include_paths=include_paths,
            defines=parse_defines(defines),
            strict=strict,
        )
        logger.debug(f"Options: {options}")

        if verbose:
            click.echo(f"Parsing {input_file}...", err=True)
            click.echo(f"Include paths: {', '.join(include_paths)}", err=True)

        # Preprocess only mode
        if preprocess_only:
            source = input_file.read_text(encoding="utf-8")
            preprocessor = Preprocessor(
                source,
                str(input_file),
                options.include_paths,
                options.defines,
                options.max_include_depth,
            )
            click.echo(preprocessor.process())
            return

        compiler = IdlCompiler(options, generator=IdlGenerator())
        result = compiler.compile_file(str(input_file))

        for diagnostic in result.diagnostics:
            click.echo(str(diagnostic), err=True)

        if result.fatal_error is not None:
            click.echo(str(result.fatal_error), err=True)
            sys.exit(ExitCode.PARSE_ERROR)

        if not result.success:
            click.echo(
                f"error: {len(result.warnings)} warning(s) with --strict",
                err=True,
            )
            sys.exit(ExitCode.PARSE_ERROR)

        # Model dump mode
        if print_model:
            click.echo(ModelPrinter().print(result.model))
            return

        if output is None:
            click.echo(result.output, nl=False)
            return

        output.write_text(result.output, encoding="utf-8")
        if verbose:
            model = result.model
            click.echo(
                f"Parsed: {len(model.structs)} struct(s), "
                f"{len(model.typedefs)} typedef(s), {len(model.modules)} module(s)",
                err=True,
            )
        click.echo(f"Wrote {input_file} -> {output}", err=True)

    except Exception as e:
        handle_cli_exception(e, verbose=verbose)


if __name__ == "__main__":
    main()
