from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import typer
from loguru import logger

from rulebook.config import RulebookSettings, resolve_settings
from rulebook.exceptions import RulebookError, SectionRegistryError
from rulebook.model import ValidationReport
from rulebook.pipeline import run_build, run_validate
from rulebook.store import DiskFileStore

app = typer.Typer(
    add_completion=False,
    help="Compile and validate Markdown rule documents.",
)

EXIT_OK = 0
EXIT_DEFECTS = 1
EXIT_CONFIG = 2


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "WARNING",
        format="<level>{level: <7}</level> {message}",
        colorize=False,
    )


def _settings(
    *,
    root: Path,
    config: Optional[Path],
    rules_dir: Optional[str],
    sections: Optional[str],
    output: Optional[str] = None,
) -> RulebookSettings:
    return resolve_settings(
        root=root,
        config_path=config,
        overrides={"rules_dir": rules_dir, "sections": sections, "output": output},
    )


def _fail(exc: RulebookError) -> typer.Exit:
    typer.secho(str(exc), err=True, fg=typer.colors.RED)
    code = EXIT_CONFIG if isinstance(exc, SectionRegistryError) else EXIT_DEFECTS
    return typer.Exit(code=code)


def _echo_report(report: ValidationReport) -> None:
    typer.echo("Rule validation summary")
    if report.warnings:
        typer.echo("Warnings:")
        for problem in report.warnings:
            typer.echo(f"- {problem.render()}")
    if report.errors:
        typer.echo("Errors:")
        for problem in report.errors:
            typer.echo(f"- {problem.render()}")
    if report.is_empty:
        typer.echo("No issues detected.")
    else:
        typer.echo(
            f"{len(report.errors)} error(s), {len(report.warnings)} warning(s)"
        )


@app.callback()
def _root(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress to stderr."),
) -> None:
    _configure_logging(verbose)


@app.command("build")
def build(
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    rules_dir: Optional[str] = typer.Option(None, "--rules-dir"),
    sections: Optional[str] = typer.Option(None, "--sections"),
    output: Optional[str] = typer.Option(None, "--output"),
    check: bool = typer.Option(
        False,
        "--check",
        help="Exit non-zero if the compiled output is stale; write nothing.",
    ),
) -> None:
    """Compile every rule file into a single reference document."""
    settings = _settings(
        root=root, config=config, rules_dir=rules_dir, sections=sections, output=output
    )
    try:
        result = run_build(DiskFileStore(root), settings, check=check)
    except RulebookError as exc:
        raise _fail(exc) from exc
    rule_count = len(result.document.rules())
    if check:
        if result.up_to_date:
            typer.echo(f"{result.output} is up to date ({rule_count} rules)")
            raise typer.Exit(code=EXIT_OK)
        typer.secho(f"{result.output} is stale; run `rulebook build`", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=EXIT_DEFECTS)
    typer.echo(
        f"Wrote {result.output}: {rule_count} rules in {len(result.document.blocks)} sections"
    )


@app.command("validate")
def validate(
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    rules_dir: Optional[str] = typer.Option(None, "--rules-dir"),
    sections: Optional[str] = typer.Option(None, "--sections"),
    strict: bool = typer.Option(False, "--strict", help="Treat warnings as failures."),
    json_output: bool = typer.Option(False, "--json", help="Print the report as JSON."),
    report_path: Optional[Path] = typer.Option(None, "--report", help="Write the JSON report to a file."),
) -> None:
    """Check every rule file's metadata and report all problems."""
    settings = _settings(root=root, config=config, rules_dir=rules_dir, sections=sections)
    try:
        report = run_validate(DiskFileStore(root), settings)
    except RulebookError as exc:
        raise _fail(exc) from exc
    payload = json.dumps(report.payload(), indent=2)
    if json_output:
        typer.echo(payload)
    else:
        _echo_report(report)
    if report_path is not None:
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(payload + "\n", encoding="utf-8")
    failed = not report.ok or (strict and bool(report.warnings))
    raise typer.Exit(code=EXIT_DEFECTS if failed else EXIT_OK)


def main() -> None:
    app()
