"""
ddfdump - ISO 8211 File Inspector Command-Line Interface
========================================================

This module implements the command-line interface for inspecting ISO 8211
files: the DDR leader, the field/subfield schema, and decoded records.

Commands
--------
- **info**: Show the DDR leader and counts
- **schema**: Show field and subfield definitions
- **records**: Dump decoded data records
- **get**: Print one subfield value per record

Usage Examples
--------------
Show file summary:
    $ ddfdump info US5NY1CM.000

Show the definition of one field:
    $ ddfdump schema US5NY1CM.000 -t FRID

Dump the first ten records:
    $ ddfdump records -n 10 US5NY1CM.000

Dump only the coordinate fields:
    $ ddfdump records -t SG2D US5NY1CM.000

Print every object class code:
    $ ddfdump get US5NY1CM.000 FRID OBJL --as int

Debug output from the decoder:
    $ ddfdump -v records US5NY1CM.000
"""

import logging
from pathlib import Path
from typing import Optional

import click

from ddf_reader import __version__
from ddf_reader.cli.errors import ExitCode, handle_cli_exception
from ddf_reader.config import ReaderConfig
from ddf_reader.iso8211 import DDFModule, Record


# =============================================================================
# CLI Context
# =============================================================================

class Context:
    """
    Shared context for CLI commands.

    Stores verbosity and the reader configuration.
    """

    def __init__(self) -> None:
        self.verbose: bool = False
        self.config: ReaderConfig = ReaderConfig.from_env()

    def setup_logging(self) -> None:
        """Configure logging based on verbosity."""
        level = logging.DEBUG if self.verbose else logging.WARNING
        logging.basicConfig(
            level=level,
            format="%(levelname)s: %(message)s" if self.verbose else "%(message)s",
        )

    def open_module(self, path: Path) -> DDFModule:
        return DDFModule.from_file(path, config=self.config)


pass_context = click.make_pass_decorator(Context, ensure=True)


# =============================================================================
# Main CLI Group
# =============================================================================

@click.group()
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Enable debug output from the decoder",
)
@click.option(
    "-e", "--encoding",
    type=str,
    default=None,
    help="Text encoding for character subfields (default: latin-1)",
)
@click.version_option(__version__, "--version", "-V", prog_name="ddfdump")
@pass_context
def main(ctx: Context, verbose: bool, encoding: Optional[str]) -> None:
    """
    Inspect ISO/IEC 8211 data descriptive files.

    Reads S-57 cells (.000), catalogues (CATALOG.031) and other ISO 8211
    files and prints their schema and decoded records.

    \b
    Commands:
      info     Show DDR leader and counts
      schema   Show field and subfield definitions
      records  Dump decoded data records
      get      Print one subfield value per record

    \b
    Examples:
      ddfdump info US5NY1CM.000
      ddfdump schema -t FRID US5NY1CM.000
      ddfdump records -n 5 US5NY1CM.000
      ddfdump get US5NY1CM.000 FRID OBJL
    """
    ctx.verbose = verbose
    if encoding:
        ctx.config.encoding = encoding
    ctx.setup_logging()


# =============================================================================
# Info Command
# =============================================================================

@main.command("info")
@click.argument(
    "ddf_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@pass_context
def cmd_info(ctx: Context, ddf_file: Path) -> None:
    """
    Show the DDR leader and field definition counts.

    \b
    Example:
      ddfdump info US5NY1CM.000
    """
    try:
        with ctx.open_module(ddf_file) as module:
            info = module.get_info()

            click.echo(f"ISO 8211 File: {ddf_file}")
            click.echo("=" * 40)
            click.echo(f"Record Length:       {info['record_length']}")
            click.echo(f"Interchange Level:   {info['interchange_level']}")
            click.echo(f"Leader Identifier:   {info['leader_identifier']}")
            click.echo(f"Version:             {info['version_number']!r}")
            click.echo(f"Field Control Len:   {info['field_control_length']}")
            click.echo(f"Field Area Start:    {info['field_area_start']}")
            click.echo(f"Extended Char Set:   {info['extended_char_set']!r}")
            click.echo(
                f"Entry Sizes:         length={info['size_field_length']} "
                f"pos={info['size_field_pos']} tag={info['size_field_tag']}"
            )
            click.echo()
            click.echo(f"Field Definitions:   {info['field_definition_count']}")
            click.echo(f"  {' '.join(info['tags'])}")
            click.echo(f"First Record At:     {info['first_record_offset']}")

            record_count = sum(1 for _ in module.iter_records())
            click.echo(f"Data Records:        {record_count}")

    except Exception as e:
        handle_cli_exception(e, ctx.verbose)


# =============================================================================
# Schema Command
# =============================================================================

@main.command("schema")
@click.argument(
    "ddf_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-t", "--tag",
    help="Show only this field definition",
)
@pass_context
def cmd_schema(ctx: Context, ddf_file: Path, tag: Optional[str]) -> None:
    """
    Show field and subfield definitions from the DDR.

    \b
    Example:
      ddfdump schema US5NY1CM.000
      ddfdump schema -t VRPT US5NY1CM.000
    """
    try:
        with ctx.open_module(ddf_file) as module:
            if tag is None:
                click.echo(module.describe(), nl=False)
                return

            definition = module.find_field_definition(tag)
            if definition is None:
                click.echo(f"Error: no field definition for tag '{tag}'", err=True)
                raise SystemExit(ExitCode.INVALID_ARGS)

            click.echo(definition.describe(), nl=False)

    except Exception as e:
        handle_cli_exception(e, ctx.verbose)


# =============================================================================
# Records Command
# =============================================================================

def _echo_record(index: int, record: Record, tag: Optional[str]) -> None:
    if tag is None:
        click.echo(f"  Record {index}({record.data_size} bytes)")
        for field in record.fields:
            click.echo(field.describe(), nl=False)
        return

    for field in record.fields:
        if field.tag.upper() == tag.upper():
            click.echo(f"  Record {index}")
            click.echo(field.describe(), nl=False)


@main.command("records")
@click.argument(
    "ddf_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-n", "--limit",
    type=click.IntRange(min=1),
    default=None,
    help="Stop after this many records",
)
@click.option(
    "-t", "--tag",
    help="Show only fields with this tag",
)
@pass_context
def cmd_records(
    ctx: Context,
    ddf_file: Path,
    limit: Optional[int],
    tag: Optional[str],
) -> None:
    """
    Dump decoded data records.

    \b
    Example:
      ddfdump records US5NY1CM.000
      ddfdump records -n 10 -t FRID US5NY1CM.000
    """
    try:
        with ctx.open_module(ddf_file) as module:
            for index, record in enumerate(module.iter_records()):
                if limit is not None and index >= limit:
                    break
                _echo_record(index, record, tag)

    except Exception as e:
        handle_cli_exception(e, ctx.verbose)


# =============================================================================
# Get Command
# =============================================================================

@main.command("get")
@click.argument(
    "ddf_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.argument("field_tag")
@click.argument("subfield_name")
@click.option(
    "-i", "--index",
    type=click.IntRange(min=0),
    default=0,
    help="Subfield occurrence within the field (default: 0)",
)
@click.option(
    "--as", "as_type",
    type=click.Choice(["int", "float", "string"], case_sensitive=False),
    default=None,
    help="Convert the value (default: the subfield's own type)",
)
@pass_context
def cmd_get(
    ctx: Context,
    ddf_file: Path,
    field_tag: str,
    subfield_name: str,
    index: int,
    as_type: Optional[str],
) -> None:
    """
    Print one subfield value for every record that has the field.

    Each output line is the record number and the value.

    \b
    Example:
      ddfdump get US5NY1CM.000 FRID OBJL
      ddfdump get --index 2 --as float US5NY1CM.000 SG2D XCOO
    """
    try:
        with ctx.open_module(ddf_file) as module:
            definition = module.find_field_definition(field_tag)
            if definition is None:
                click.echo(f"Error: no field definition for tag '{field_tag}'", err=True)
                raise SystemExit(ExitCode.INVALID_ARGS)
            if definition.find_subfield_definition(subfield_name) is None:
                click.echo(
                    f"Error: field '{field_tag}' has no subfield '{subfield_name}'",
                    err=True,
                )
                raise SystemExit(ExitCode.INVALID_ARGS)

            for number, record in enumerate(module.iter_records()):
                field = record.find_field(field_tag)
                if field is None:
                    continue

                if as_type == "int":
                    value = field.get_int_subfield(subfield_name, index)
                elif as_type == "float":
                    value = field.get_float_subfield(subfield_name, index)
                elif as_type == "string":
                    value = field.get_string_subfield(subfield_name, index)
                else:
                    value = field.get_subfield_value(subfield_name, index)

                if value is None:
                    continue
                if isinstance(value, bytes):
                    value = value.hex().upper()
                click.echo(f"{number}\t{value}")

    except Exception as e:
        handle_cli_exception(e, ctx.verbose)


if __name__ == "__main__":
    main()
