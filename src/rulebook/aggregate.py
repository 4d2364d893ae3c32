from __future__ import annotations

import re
from typing import Iterable, List

from loguru import logger

from rulebook.exceptions import BuildError, SectionReferenceError
from rulebook.model import (
    CompiledDocument,
    CompiledRule,
    DocumentMetadata,
    RuleRecord,
    SectionBlock,
    SectionRegistry,
)

_ANCHOR_DROP_RE = re.compile(r"[^\w\- ]", re.UNICODE)
_LINK_TEXT_RE = re.compile(r"([\\\[\]])")


def rule_sort_key(record: RuleRecord) -> tuple[str, str]:
    return (record.title.casefold(), record.path)


def compile_document(
    records: Iterable[RuleRecord],
    registry: SectionRegistry,
    *,
    metadata: DocumentMetadata | None = None,
) -> CompiledDocument:
    """Group, order and number rules; fails before building anything partial."""
    grouped: dict[str, List[RuleRecord]] = {section.id: [] for section in registry}
    for record in records:
        if not record.title:
            raise BuildError([f"{record.path}: [title] missing or empty"])
        section = registry.resolve(record.section)
        if section is None:
            raise SectionReferenceError(record.path, record.title, record.section)
        grouped[section.id].append(record)

    blocks: List[SectionBlock] = []
    for section in registry:
        ordered = sorted(grouped[section.id], key=rule_sort_key)
        rules = tuple(
            CompiledRule(display_id=f"{section.number}.{index}", record=record)
            for index, record in enumerate(ordered, start=1)
        )
        blocks.append(SectionBlock(section=section, rules=rules))
    document = CompiledDocument(
        metadata=metadata or DocumentMetadata(),
        blocks=tuple(blocks),
    )
    logger.debug(
        f"compiled {len(document.rules())} rule(s) into {len(blocks)} section(s)"
    )
    return document


def anchor(text: str) -> str:
    """GitHub-style heading slug."""
    slug = _ANCHOR_DROP_RE.sub("", text.strip().lower())
    return slug.replace(" ", "-")


def link_text(text: str) -> str:
    return _LINK_TEXT_RE.sub(r"\\\1", text)


def _impact_line(rule: CompiledRule) -> str | None:
    record = rule.record
    level = record.impact_level
    label = level.value if level is not None else record.impact
    if not label:
        return None
    if record.impact_description:
        return f"**Impact: {label} ({record.impact_description})**"
    return f"**Impact: {label}**"


def _render_header(metadata: DocumentMetadata) -> List[str]:
    lines = [f"# {metadata.title}", ""]
    byline = []
    if metadata.version:
        byline.append(f"**Version {metadata.version}**")
    if metadata.organization:
        byline.append(metadata.organization)
    if byline:
        lines.append("  \n".join(byline))
        lines.append("")
    if metadata.abstract:
        lines.extend(["## Abstract", "", metadata.abstract.strip(), ""])
    lines.extend(["---", ""])
    return lines


def _render_toc(document: CompiledDocument) -> List[str]:
    lines = ["## Table of Contents", ""]
    for block in document.blocks:
        section = block.section
        heading = f"{section.number}. {section.name}"
        lines.append(
            f"{section.number}. [{link_text(section.name)}](#{anchor(heading)}) "
            f"**{section.impact.value}**"
        )
        for rule in block.rules:
            heading = f"{rule.display_id} {rule.record.title}"
            lines.append(
                f"   - {rule.display_id} [{link_text(rule.record.title)}](#{anchor(heading)})"
            )
    lines.extend(["", "---", ""])
    return lines


def _render_block(block: SectionBlock) -> List[str]:
    section = block.section
    lines = [
        f"## {section.number}. {section.name}",
        "",
        f"**Impact: {section.impact.value}**",
        "",
    ]
    if section.description:
        lines.extend([section.description, ""])
    for rule in block.rules:
        lines.extend([f"### {rule.display_id} {rule.record.title}", ""])
        impact = _impact_line(rule)
        if impact is not None:
            lines.extend([impact, ""])
        if rule.record.body:
            lines.extend([rule.record.body, ""])
    lines.extend(["---", ""])
    return lines


def render_document(document: CompiledDocument) -> str:
    lines = _render_header(document.metadata)
    lines.extend(_render_toc(document))
    for block in document.blocks:
        lines.extend(_render_block(block))
    references = document.metadata.references
    if references:
        lines.extend(["## References", ""])
        lines.extend(
            f"{index}. [{ref}]({ref})" for index, ref in enumerate(references, start=1)
        )
        lines.append("")
    while lines and lines[-1] in {"", "---"}:
        lines.pop()
    return "\n".join(lines) + "\n"
