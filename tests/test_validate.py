from __future__ import annotations

from rulebook.frontmatter import parse_rules
from rulebook.model import SEVERITY_ERROR, SEVERITY_WARNING, RuleRecord
from rulebook.validate import validate_rules
from tests.rule_helpers import rule_text


def _validate(sources, registry):
    outcome = parse_rules(sources)
    return validate_rules(outcome.records, registry, failures=outcome.failures)


def test_clean_rules_produce_empty_report(memory_store, registry) -> None:
    sources = [(path, memory_store.read_text(path)) for path in memory_store.list_files("rules")]
    report = _validate(sources, registry)
    assert report.is_empty
    assert report.ok


def test_one_entry_per_defect_across_files(registry) -> None:
    report = _validate(
        [
            ("rules/security-a.md", rule_text("Rule A", section=1, impact="EXTREME")),
            ("rules/security-b.md", rule_text("Rule B", section=1)),
            ("rules/security-c.md", rule_text(None, section=1)),
        ],
        registry,
    )
    assert len(report.problems) == 2
    assert [(p.path, p.field) for p in report.problems] == [
        ("rules/security-a.md", "impact"),
        ("rules/security-c.md", "title"),
    ]
    assert not report.ok


def test_parse_failures_are_reported_alongside_record_defects(registry) -> None:
    report = _validate(
        [
            ("rules/security-raw.md", "# no frontmatter\n"),
            ("rules/security-nosection.md", rule_text("Homeless Rule")),
        ],
        registry,
    )
    fields = sorted((p.path, p.field) for p in report.errors)
    assert fields == [
        ("rules/security-nosection.md", "section"),
        ("rules/security-raw.md", "frontmatter"),
    ]


def test_unknown_section_is_an_error(registry) -> None:
    report = _validate(
        [("rules/security-x.md", rule_text("Lost", section="nonexistent"))], registry
    )
    (problem,) = report.problems
    assert problem.severity == SEVERITY_ERROR
    assert "nonexistent" in problem.message


def test_duplicate_titles_in_section_are_warnings(registry) -> None:
    report = _validate(
        [
            ("rules/security-one.md", rule_text("Use Guards", section=1)),
            ("rules/security-two.md", rule_text("use guards", section="security")),
            ("rules/database-three.md", rule_text("Use Guards", section=2)),
        ],
        registry,
    )
    assert report.ok
    (warning,) = report.warnings
    assert warning.path == "rules/security-two.md"
    assert "duplicate title" in warning.message


def test_unknown_fields_prefix_mismatch_and_empty_body_warn(registry) -> None:
    report = _validate(
        [
            (
                "rules/misc-guard.md",
                rule_text("Guard", section=1, extra={"owner": "platform"}, body=""),
            )
        ],
        registry,
    )
    assert report.ok
    assert all(p.severity == SEVERITY_WARNING for p in report.problems)
    assert sorted(p.field for p in report.problems) == ["body", "owner", "section"]


def test_payload_shape(registry) -> None:
    record = RuleRecord(path="rules/security-z.md", title="", body="x", section=1)
    payload = validate_rules([record], registry).payload()
    assert payload["ok"] is False
    assert payload["summary"] == {"errors": 1, "warnings": 0}
    assert payload["errors"][0]["field"] == "title"


def test_superscript_section_is_an_unknown_section(registry) -> None:
    report = _validate(
        [("rules/security-sup.md", rule_text("Superscript", section='"²"'))], registry
    )
    (problem,) = report.problems
    assert problem.field == "section"
    assert "unknown section" in problem.message
