from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from rulebook.aggregate import compile_document, render_document
from rulebook.config import RulebookSettings
from rulebook.exceptions import BuildError, FrontmatterError, SectionRegistryError
from rulebook.frontmatter import ParseOutcome, is_excluded, parse_rules
from rulebook.model import CompiledDocument, SectionRegistry, ValidationReport
from rulebook.sections import parse_sections
from rulebook.store import FileStore
from rulebook.validate import validate_rules


@dataclass(frozen=True)
class BuildResult:
    document: CompiledDocument
    text: str
    output: str
    report: ValidationReport
    written: bool
    up_to_date: bool


def load_registry(store: FileStore, settings: RulebookSettings) -> SectionRegistry:
    if not store.exists(settings.sections):
        raise SectionRegistryError(settings.sections, ["section document not found"])
    try:
        text = store.read_text(settings.sections)
    except (UnicodeDecodeError, OSError) as exc:
        raise SectionRegistryError(settings.sections, [f"unreadable: {exc}"]) from exc
    return parse_sections(text, path=settings.sections)


def load_rules(store: FileStore, settings: RulebookSettings) -> ParseOutcome:
    """Read and parse every rule file; unreadable files become parse failures."""
    paths = store.list_files(settings.rules_dir, suffix=".md")
    logger.debug(f"found {len(paths)} markdown file(s) under {settings.rules_dir}")
    sources: list[tuple[str, str]] = []
    unreadable: list[FrontmatterError] = []
    for path in paths:
        if is_excluded(path):
            continue
        try:
            sources.append((path, store.read_text(path)))
        except (UnicodeDecodeError, OSError) as exc:
            unreadable.append(FrontmatterError(path, f"unreadable: {exc}"))
    outcome = parse_rules(sources)
    return ParseOutcome(
        records=outcome.records,
        failures=tuple(sorted((*unreadable, *outcome.failures), key=lambda exc: exc.path)),
    )


def run_validate(store: FileStore, settings: RulebookSettings) -> ValidationReport:
    registry = load_registry(store, settings)
    outcome = load_rules(store, settings)
    return validate_rules(outcome.records, registry, failures=outcome.failures)


def run_build(
    store: FileStore,
    settings: RulebookSettings,
    *,
    check: bool = False,
) -> BuildResult:
    """Compile and write the output document, or fail without writing anything."""
    registry = load_registry(store, settings)
    outcome = load_rules(store, settings)
    report = validate_rules(outcome.records, registry, failures=outcome.failures)
    if not report.ok:
        raise BuildError(problem.render() for problem in report.errors)
    for warning in report.warnings:
        logger.warning(warning.render())

    document = compile_document(outcome.records, registry, metadata=settings.metadata)
    text = render_document(document)
    current = store.read_text(settings.output) if store.exists(settings.output) else None
    up_to_date = current == text
    written = False
    if not check:
        store.write_text(settings.output, text)
        written = True
    return BuildResult(
        document=document,
        text=text,
        output=settings.output,
        report=report,
        written=written,
        up_to_date=up_to_date,
    )
