"""Rule metadata validation.

Every check runs against every record; nothing short-circuits, so one pass
surfaces the complete defect list.
"""

from __future__ import annotations

from typing import Iterable, List

from loguru import logger

from rulebook.exceptions import FrontmatterError
from rulebook.model import (
    SEVERITY_ERROR,
    SEVERITY_WARNING,
    Impact,
    Problem,
    RuleRecord,
    SectionDescriptor,
    SectionRegistry,
    ValidationReport,
)


def _filename_prefix_matches(record: RuleRecord, section: SectionDescriptor) -> bool:
    stem = record.filename.rsplit(".", 1)[0]
    return stem == section.id or stem.startswith(f"{section.id}-")


def _check_record(
    record: RuleRecord,
    registry: SectionRegistry,
    problems: List[Problem],
) -> SectionDescriptor | None:
    path = record.path
    if not record.title:
        problems.append(Problem(path, "title", "missing or empty"))
    if record.impact is not None and record.impact_level is None:
        problems.append(
            Problem(
                path,
                "impact",
                f"'{record.impact}' is not one of {', '.join(Impact.choices())}",
            )
        )
    section: SectionDescriptor | None = None
    if record.section is None:
        problems.append(Problem(path, "section", "missing or empty"))
    else:
        section = registry.resolve(record.section)
        if section is None:
            problems.append(
                Problem(
                    path,
                    "section",
                    f"unknown section '{record.section}' "
                    f"(known: {', '.join(registry.ids())})",
                )
            )
        elif not _filename_prefix_matches(record, section):
            problems.append(
                Problem(
                    path,
                    "section",
                    f"file name does not start with section prefix '{section.id}-'",
                    SEVERITY_WARNING,
                )
            )
    for key in sorted(record.extras):
        problems.append(
            Problem(path, key, "unrecognised frontmatter field", SEVERITY_WARNING)
        )
    if not record.body.strip():
        problems.append(Problem(path, "body", "rule body is empty", SEVERITY_WARNING))
    return section


def validate_rules(
    records: Iterable[RuleRecord],
    registry: SectionRegistry,
    *,
    failures: Iterable[FrontmatterError] = (),
) -> ValidationReport:
    problems: List[Problem] = [
        Problem(failure.path, "frontmatter", failure.reason, SEVERITY_ERROR)
        for failure in failures
    ]
    seen_titles: dict[tuple[str, str], str] = {}
    for record in sorted(records, key=lambda item: item.path):
        section = _check_record(record, registry, problems)
        if section is None or not record.title:
            continue
        key = (section.id, record.title.casefold())
        first = seen_titles.get(key)
        if first is None:
            seen_titles[key] = record.path
            continue
        problems.append(
            Problem(
                record.path,
                "title",
                f"duplicate title '{record.title}' in section '{section.id}' "
                f"(also in {first}); ordered by file name",
                SEVERITY_WARNING,
            )
        )
    report = ValidationReport(problems=tuple(problems))
    logger.debug(
        f"validation found {len(report.errors)} error(s), "
        f"{len(report.warnings)} warning(s)"
    )
    return report
