"""Rule file parsing.

Treats the leading `---` block as the rule's metadata and everything after
it as presentation, passed through untouched.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Iterable, Mapping

import yaml
from loguru import logger

from rulebook.exceptions import FrontmatterError
from rulebook.model import RuleRecord, SectionRef

DELIMITER = "---"
EXCLUDED_PREFIX = "_"
KNOWN_FIELDS = frozenset({"title", "impact", "impactDescription", "section", "tags"})


@dataclass(frozen=True)
class ParseOutcome:
    records: tuple[RuleRecord, ...]
    failures: tuple[FrontmatterError, ...]


def _yaml_loader():
    class Loader(yaml.SafeLoader):
        pass

    # `impact: yes` or `title: On` must stay text.
    for key, values in list(Loader.yaml_implicit_resolvers.items()):
        Loader.yaml_implicit_resolvers[key] = [
            (tag, regexp) for tag, regexp in values if tag != "tag:yaml.org,2002:bool"
        ]
    return Loader


_LOADER = _yaml_loader()


def is_excluded(identifier: str) -> bool:
    return PurePosixPath(identifier.replace("\\", "/")).name.startswith(EXCLUDED_PREFIX)


def split_frontmatter(text: str, *, path: str) -> tuple[str, str]:
    normalized = text.lstrip("\ufeff").replace("\r\n", "\n")
    lines = normalized.split("\n")
    if not lines or lines[0].strip() != DELIMITER:
        raise FrontmatterError(path, "missing metadata delimiter '---' on first line")
    for idx in range(1, len(lines)):
        if lines[idx].strip() == DELIMITER:
            block = "\n".join(lines[1:idx])
            body = "\n".join(lines[idx + 1 :])
            return block, body
    raise FrontmatterError(path, "unterminated metadata block (no closing '---')")


def _load_block(block: str, *, path: str) -> dict[str, object]:
    try:
        data = yaml.load(block, Loader=_LOADER)
    except yaml.YAMLError as exc:
        problem = getattr(exc, "problem", None) or str(exc)
        mark = getattr(exc, "problem_mark", None)
        where = f" (line {mark.line + 2})" if mark is not None else ""
        raise FrontmatterError(path, f"malformed key-value syntax{where}: {problem}") from exc
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise FrontmatterError(path, "metadata block is not a key-value mapping")
    return {str(key): value for key, value in data.items()}


def _text(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, (list, dict)):
        return None
    text = str(value).strip()
    return text or None


def _section(value: object) -> SectionRef | None:
    if isinstance(value, int):
        return value
    return _text(value)


def _tags(value: object) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        items = [str(item) for item in value if item is not None]
    else:
        items = [str(value)]
    return frozenset(item.strip() for item in items if item.strip())


def parse_rule(text: str, *, path: str) -> RuleRecord:
    block, body = split_frontmatter(text, path=path)
    data = _load_block(block, path=path)
    extras = {key: value for key, value in data.items() if key not in KNOWN_FIELDS}
    return RuleRecord(
        path=path,
        title=_text(data.get("title")) or "",
        body=body.strip("\n"),
        impact=_text(data.get("impact")),
        section=_section(data.get("section")),
        impact_description=_text(data.get("impactDescription")),
        tags=_tags(data.get("tags")),
        extras=extras,
    )


def parse_rules(sources: Iterable[tuple[str, str]]) -> ParseOutcome:
    """Parse every `(path, text)` pair, collecting failures instead of stopping."""
    records: list[RuleRecord] = []
    failures: list[FrontmatterError] = []
    for path, text in sources:
        if is_excluded(path):
            logger.debug(f"skipping auxiliary document {path}")
            continue
        try:
            records.append(parse_rule(text, path=path))
        except FrontmatterError as exc:
            failures.append(exc)
    logger.debug(f"parsed {len(records)} rule(s), {len(failures)} failure(s)")
    return ParseOutcome(records=tuple(records), failures=tuple(failures))
