"""Section registry loading.

The section document is a sequence of blocks::

    ## 1. Security (security)

    **Impact:** CRITICAL
    **Description:** Protect the application boundary.

Text before the first `##` heading is ignored.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List

from loguru import logger

from rulebook.exceptions import SectionRegistryError
from rulebook.model import Impact, SectionDescriptor, SectionRegistry

_HEADING_RE = re.compile(r"^##\s+(?P<number>\d+)\.\s+(?P<name>.+?)\s+\((?P<id>[^()\s]+)\)\s*$")
_FIELD_RE = re.compile(
    r"^\*{0,2}(?P<label>Impact|Description)\s*:\s*\*{0,2}\s*(?P<value>.*?)\s*$",
    re.IGNORECASE,
)


@dataclass
class _PendingSection:
    line: int
    number: int
    name: str
    id: str
    impact: str | None = None
    description: List[str] = field(default_factory=list)
    in_description: bool = False


def _parse_blocks(text: str, problems: List[str]) -> List[_PendingSection]:
    blocks: List[_PendingSection] = []
    current: _PendingSection | None = None
    for lineno, raw in enumerate(text.replace("\r\n", "\n").split("\n"), start=1):
        line = raw.strip()
        if line.startswith("## "):
            match = _HEADING_RE.match(line)
            if match is None:
                problems.append(
                    f"line {lineno}: malformed section heading {line!r} "
                    "(expected '## <number>. <Name> (<id>)')"
                )
                current = None
                continue
            current = _PendingSection(
                line=lineno,
                number=int(match.group("number")),
                name=match.group("name").strip(),
                id=match.group("id").strip(),
            )
            blocks.append(current)
            continue
        if current is None:
            continue
        if not line:
            current.in_description = False
            continue
        field_match = _FIELD_RE.match(line)
        if field_match is not None:
            label = field_match.group("label").lower()
            value = field_match.group("value").rstrip("*").strip()
            if label == "impact":
                current.impact = value
                current.in_description = False
            else:
                current.description = [value] if value else []
                current.in_description = True
            continue
        if current.in_description:
            current.description.append(line)
    return blocks


def parse_sections(text: str, *, path: str = "_sections.md") -> SectionRegistry:
    problems: List[str] = []
    blocks = _parse_blocks(text, problems)
    if not blocks and not problems:
        problems.append("no sections defined")

    descriptors: List[SectionDescriptor] = []
    seen_numbers: dict[int, str] = {}
    seen_ids: dict[str, int] = {}
    for block in blocks:
        label = f"line {block.line}: section {block.number} ({block.id})"
        if block.impact is None:
            problems.append(f"{label}: missing Impact")
            impact = None
        else:
            impact = Impact.parse(block.impact)
            if impact is None:
                problems.append(
                    f"{label}: invalid Impact '{block.impact}' "
                    f"(expected one of {', '.join(Impact.choices())})"
                )
        if block.number in seen_numbers:
            problems.append(
                f"{label}: duplicate display number {block.number} "
                f"(already used by '{seen_numbers[block.number]}')"
            )
        else:
            seen_numbers[block.number] = block.id
        if block.id in seen_ids:
            problems.append(
                f"{label}: duplicate section id '{block.id}' "
                f"(already used by section {seen_ids[block.id]})"
            )
        else:
            seen_ids[block.id] = block.number
        if impact is not None:
            descriptors.append(
                SectionDescriptor(
                    id=block.id,
                    number=block.number,
                    name=block.name,
                    impact=impact,
                    description=" ".join(block.description).strip(),
                )
            )

    if problems:
        raise SectionRegistryError(path, problems)
    ordered = tuple(sorted(descriptors, key=lambda section: section.number))
    logger.debug(f"loaded {len(ordered)} section(s) from {path}")
    return SectionRegistry(sections=ordered)
