"""Project settings from `rulebook.toml` plus command-line overrides.

Recognised tables::

    [build]
    rules_dir = "rules"
    sections = "rules/_sections.md"
    output = "AGENTS.md"

    [document]
    title = "NestJS Best Practices"
    version = "1.0.0"
    organization = "..."
    abstract = "..."
    references = ["https://docs.nestjs.com"]
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping
import tomllib

from loguru import logger

from rulebook.model import DocumentMetadata

DEFAULT_CONFIG_NAME = "rulebook.toml"
BUILD_KEYS = ("rules_dir", "sections", "output")


@dataclass(frozen=True)
class RulebookSettings:
    rules_dir: str = "rules"
    sections: str = "rules/_sections.md"
    output: str = "AGENTS.md"
    metadata: DocumentMetadata = DocumentMetadata()


def read_config(path: Path) -> dict[str, object]:
    """Parsed config file; a missing, unreadable or malformed file counts as empty."""
    if not path.is_file():
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        logger.warning(f"ignoring config {path}: {exc}")
        return {}


def _table(config: Mapping[str, object], name: str) -> Mapping[str, object]:
    table = config.get(name)
    if table is None:
        return {}
    if not isinstance(table, Mapping):
        logger.warning(f"ignoring [{name}]: expected a table")
        return {}
    return table


def _setting(value: object) -> str | None:
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return str(value).strip() or None
    return None


def _references(value: object) -> tuple[str, ...]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(ref.strip() for ref in value if isinstance(ref, str) and ref.strip())


def document_metadata(table: Mapping[str, object]) -> DocumentMetadata:
    return DocumentMetadata(
        title=_setting(table.get("title")) or DocumentMetadata.title,
        version=_setting(table.get("version")),
        organization=_setting(table.get("organization")),
        abstract=_setting(table.get("abstract")),
        references=_references(table.get("references")),
    )


def resolve_settings(
    *,
    root: Path | None = None,
    config_path: Path | None = None,
    overrides: Mapping[str, str | None] | None = None,
) -> RulebookSettings:
    """Settings from the config file, then overrides that are not None."""
    if config_path is None:
        config_path = (root if root is not None else Path.cwd()) / DEFAULT_CONFIG_NAME
    config = read_config(config_path)
    build = _table(config, "build")
    settings = RulebookSettings(metadata=document_metadata(_table(config, "document")))
    changes: dict[str, str] = {}
    for key in BUILD_KEYS:
        value = (overrides or {}).get(key)
        if value is None:
            value = _setting(build.get(key))
        if value:
            changes[key] = value
    return replace(settings, **changes)
