#!/usr/bin/env python3
"""RecordCloak CLI - mask fixed-width and delimited record files."""

import sys
from pathlib import Path
from typing import NoReturn, Optional

import click
import yaml

from recordcloak.core.config import GlobalConfig, InputMode
from recordcloak.core.exceptions import LineProcessingError, RecordCloakError
from recordcloak.core.hashing import HashAlgorithm
from recordcloak.core.rule_loader import RuleLoader
from recordcloak.observability.logging import configure_logging
from recordcloak.pipeline import MaskingPipeline, PipelineResult

ON_ERROR_CHOICES = {
    "pass-through": "pass_through",
    "skip-field": "skip_field",
    "abort": "abort",
}


def _fail(error: RecordCloakError) -> NoReturn:
    """Report a fatal error, naming the failed prerequisite."""
    message = f"[{error.component}] {error.message}"
    for suggestion in error.recovery_suggestions:
        message += f"\n  - {suggestion}"
    raise click.ClickException(message)


def _print_summary(result: PipelineResult, verbose: bool) -> None:
    click.echo(f"✓ Processed {result.lines_processed} lines")
    click.echo(f"   Masked: {result.lines_masked}")
    click.echo(f"   Unmatched prefix: {result.lines_unmatched}")
    if result.lines_short:
        click.echo(f"   Too short for prefix: {result.lines_short}")
    if result.lines_failed or result.fields_skipped:
        click.echo(f"⚠️  Failed lines (passed through): {result.lines_failed}")
        click.echo(f"⚠️  Skipped fields: {result.fields_skipped}")
        if verbose:
            for error in result.errors:
                click.echo(f"   • line {error['line_number']}: {error['message']}")
    if result.dry_run:
        click.echo("   Dry run: no output written")
    elif result.output_path:
        click.echo(f"   Output: {result.output_path}")
    click.echo(f"   Duration: {result.duration_ms / 1000:.2f} seconds")


@click.group()
@click.version_option(package_name="recordcloak", prog_name="RecordCloak")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Log level for diagnostic output on stderr",
)
@click.option(
    "--log-format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Diagnostic log format",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str, log_format: str) -> None:
    """RecordCloak: deterministic hash masking for fixed-width record files."""
    ctx.ensure_object(dict)
    configure_logging(level=log_level, fmt=log_format)


@cli.command()
@click.argument("input_file", type=click.Path(path_type=Path))
@click.option(
    "--rules",
    "-r",
    "rules_file",
    type=click.Path(path_type=Path),
    required=True,
    help="Path to the YAML or JSON rules file",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="Output file path (default: input_masked.ext)",
)
@click.option("--salt", help="Salt appended to every field before hashing (env: RECORDCLOAK_SALT)")
@click.option(
    "--algorithm",
    "-a",
    type=click.Choice([a.value for a in HashAlgorithm], case_sensitive=False),
    help="Hash algorithm (default: md5)",
)
@click.option("--prefix-width", type=click.IntRange(min=1), help="Prefix length used for rule lookup (default: 2)")
@click.option(
    "--encoding",
    "-e",
    type=click.Choice(["utf-8", "latin-1"], case_sensitive=False),
    help="Text encoding of input and output (default: utf-8)",
)
@click.option("--dry-run", is_flag=True, help="Transform all lines but write nothing")
@click.option("--csv", "csv_mode", is_flag=True, default=False, help="Treat input as delimited (CSV) records")
@click.option("--delimiter", help="Column delimiter in CSV mode (default: ,)")
@click.option("--workers", "-w", type=click.IntRange(min=1), help="Maximum worker threads (default: 8)")
@click.option("--chunk-size", type=click.IntRange(min=1), help="Lines per work unit (default: 500)")
@click.option(
    "--on-error",
    type=click.Choice(list(ON_ERROR_CHOICES)),
    help="Handling of fields past the end of a line (default: pass-through)",
)
@click.option("--verbose", "-v", is_flag=True, help="List per-line errors in the summary")
def mask(
    input_file: Path,
    rules_file: Path,
    output: Optional[Path],
    salt: Optional[str],
    algorithm: Optional[str],
    prefix_width: Optional[int],
    encoding: Optional[str],
    dry_run: bool,
    csv_mode: bool,
    delimiter: Optional[str],
    workers: Optional[int],
    chunk_size: Optional[int],
    on_error: Optional[str],
    verbose: bool,
) -> None:
    """Mask the fields of INPUT_FILE described by a rules file.

    Examples:
        # Mask with MD5 and a salt
        recordcloak mask accounts.dat -r rules.yaml --salt s3cret

        # Check counts without writing anything
        recordcloak mask accounts.dat -r rules.yaml --dry-run
    """
    try:
        config = GlobalConfig.from_environment(
            salt=salt,
            algorithm=algorithm,
            prefix_width=prefix_width,
            encoding=encoding,
            dry_run=True if dry_run else None,
            input_mode=InputMode.DELIMITED if csv_mode else None,
            delimiter=delimiter,
            max_workers=workers,
            chunk_size=chunk_size,
            on_range_error=ON_ERROR_CHOICES[on_error] if on_error else None,
        )
    except RecordCloakError as e:
        _fail(e)

    output_path = None
    if not config.dry_run:
        output_path = output or input_file.parent / f"{input_file.stem}_masked{input_file.suffix}"

    try:
        rules = RuleLoader().load(rules_file)
        pipeline = MaskingPipeline(config, rules)
        result = pipeline.run(input_file, output_path)
    except LineProcessingError as e:
        click.echo(f"🛑 Run aborted at line {e.line_number}; no output written", err=True)
        _fail(e)
    except RecordCloakError as e:
        _fail(e)

    _print_summary(result, verbose)


@cli.group()
def rules() -> None:
    """Inspect and validate rules files."""


@rules.command("validate")
@click.argument("rules_file", type=click.Path(path_type=Path))
@click.option("--prefix-width", type=click.IntRange(min=1), default=2, show_default=True)
def validate_rules(rules_file: Path, prefix_width: int) -> None:
    """Check that RULES_FILE loads and report what it contains."""
    try:
        table = RuleLoader().load(rules_file)
    except RecordCloakError as e:
        _fail(e)

    click.echo(f"✓ {rules_file}: {len(table)} prefixes, {table.field_count()} field rules")
    for prefix in table.prefixes:
        field_rules = table.lookup(prefix) or ()
        marker = "" if len(prefix) == prefix_width else "  ⚠️  never matches prefix width"
        click.echo(f"   '{prefix}': {len(field_rules)} fields{marker}")


@rules.command("show")
@click.argument("rules_file", type=click.Path(path_type=Path))
def show_rules(rules_file: Path) -> None:
    """Print RULES_FILE in normalized form."""
    try:
        table = RuleLoader().load(rules_file)
    except RecordCloakError as e:
        _fail(e)

    document = {"name": table.name, "rules": table.to_dict()} if table.name else table.to_dict()
    click.echo(yaml.safe_dump(document, sort_keys=False), nl=False)


@cli.command()
def version() -> None:
    """Show RecordCloak version."""
    from recordcloak import __version__

    click.echo(f"RecordCloak v{__version__}")


def main() -> int:
    """Main entry point."""
    try:
        cli(standalone_mode=False)
        return 0
    except click.ClickException as e:
        e.show()
        return e.exit_code
    except click.Abort:
        click.echo("Aborted!", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
