from __future__ import annotations

import pytest

from rulebook.aggregate import anchor, compile_document, render_document
from rulebook.exceptions import BuildError, SectionReferenceError
from rulebook.frontmatter import parse_rules
from rulebook.model import DocumentMetadata, RuleRecord


def _records(memory_store) -> tuple[RuleRecord, ...]:
    sources = [(path, memory_store.read_text(path)) for path in memory_store.list_files("rules")]
    outcome = parse_rules(sources)
    assert outcome.failures == ()
    return outcome.records


def test_rules_sorted_case_insensitively_within_section(memory_store, registry) -> None:
    document = compile_document(_records(memory_store), registry)
    security = document.blocks[0]
    assert [rule.record.title for rule in security.rules] == [
        "Use Helmet Middleware",
        "Validate All Inputs with DTOs",
    ]
    assert [rule.display_id for rule in security.rules] == ["1.1", "1.2"]


def test_display_id_uses_section_display_number(memory_store, registry) -> None:
    document = compile_document(_records(memory_store), registry)
    assert document.display_ids()["rules/testing-isolation.md"] == "6.1"
    assert document.display_ids()["rules/database-transactions.md"] == "2.1"


def test_sections_ordered_and_empty_sections_kept(registry) -> None:
    record = RuleRecord(path="rules/testing-a.md", title="A", body="x", section=6)
    document = compile_document([record], registry)
    assert [block.section.number for block in document.blocks] == [1, 2, 6]
    assert [len(block.rules) for block in document.blocks] == [0, 0, 1]


def test_identical_titles_tie_break_on_path(registry) -> None:
    later = RuleRecord(path="rules/security-b.md", title="Same Title", body="b", section=1)
    earlier = RuleRecord(path="rules/security-a.md", title="same title", body="a", section=1)
    document = compile_document([later, earlier], registry)
    assert [rule.record.path for rule in document.blocks[0].rules] == [
        "rules/security-a.md",
        "rules/security-b.md",
    ]


def test_compile_is_deterministic_across_input_orderings(memory_store, registry) -> None:
    records = _records(memory_store)
    forward = render_document(compile_document(records, registry))
    backward = render_document(compile_document(tuple(reversed(records)), registry))
    assert forward == backward


def test_every_rule_rendered_exactly_once(memory_store, registry) -> None:
    records = _records(memory_store)
    text = render_document(compile_document(records, registry))
    for record in records:
        assert text.count(f"Guidance for {record.title}.") == 1


def test_unknown_section_fails_whole_aggregation(registry) -> None:
    good = RuleRecord(path="rules/security-ok.md", title="Ok Rule", body="ok", section=1)
    bad = RuleRecord(
        path="rules/security-lost.md", title="Lost Rule", body="lost", section="nonexistent"
    )
    with pytest.raises(SectionReferenceError) as excinfo:
        compile_document([good, bad], registry)
    message = str(excinfo.value)
    assert "nonexistent" in message
    assert "Lost Rule" in message
    assert "rules/security-lost.md" in message


def test_missing_title_refuses_to_compile(registry) -> None:
    record = RuleRecord(path="rules/security-untitled.md", title="", body="x", section=1)
    with pytest.raises(BuildError, match="security-untitled.md"):
        compile_document([record], registry)


def test_render_document_layout(memory_store, registry) -> None:
    metadata = DocumentMetadata(
        title="NestJS Best Practices",
        version="1.0.0",
        organization="Platform Team",
        abstract="Guidance for agents.",
        references=("https://docs.nestjs.com",),
    )
    text = render_document(compile_document(_records(memory_store), registry, metadata=metadata))
    assert text.startswith("# NestJS Best Practices\n")
    assert "**Version 1.0.0**" in text
    assert "## Abstract\n\nGuidance for agents." in text
    assert "1. [Security](#1-security) **CRITICAL**" in text
    assert "   - 1.1 [Use Helmet Middleware](#11-use-helmet-middleware)" in text
    assert "### 1.2 Validate All Inputs with DTOs" in text
    assert "**Impact: CRITICAL (prevents injection)**" in text
    assert "**Impact: MEDIUM-HIGH**" in text
    assert "1. [https://docs.nestjs.com](https://docs.nestjs.com)" in text
    assert text.index("## 1. Security") < text.index("## 2. Database") < text.index("## 6. Testing")
    assert text.endswith("\n") and not text.endswith("\n\n")


def test_anchor_matches_github_slugs() -> None:
    assert anchor("1.1 Use Helmet Middleware") == "11-use-helmet-middleware"
    assert anchor("2. Database & ORM") == "2-database--orm"


def test_toc_link_text_escapes_brackets(registry) -> None:
    record = RuleRecord(
        path="rules/security-arrays.md",
        title="Validate [nested] DTO arrays",
        body="x",
        section=1,
    )
    text = render_document(compile_document([record], registry))
    assert (
        "   - 1.1 [Validate \\[nested\\] DTO arrays](#11-validate-nested-dto-arrays)" in text
    )
    assert "### 1.1 Validate [nested] DTO arrays" in text
