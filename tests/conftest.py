from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


import pytest
from loguru import logger

from rulebook.sections import parse_sections
from rulebook.store import MemoryFileStore
from tests.rule_helpers import SECTIONS_TEXT, rule_text


@pytest.fixture(autouse=True)
def _silence_loguru():
    logger.remove()
    yield
    logger.remove()


@pytest.fixture
def registry():
    return parse_sections(SECTIONS_TEXT, path="rules/_sections.md")


@pytest.fixture
def memory_store() -> MemoryFileStore:
    return MemoryFileStore(
        files={
            "rules/_sections.md": SECTIONS_TEXT,
            "rules/_template.md": "no frontmatter here\n",
            "rules/security-validate-inputs.md": rule_text(
                "Validate All Inputs with DTOs",
                section="security",
                impact="CRITICAL",
                impact_description="prevents injection",
            ),
            "rules/security-use-helmet.md": rule_text(
                "Use Helmet Middleware",
                section=1,
            ),
            "rules/database-transactions.md": rule_text(
                "Wrap Writes in Transactions",
                section="database",
                impact="MEDIUM-HIGH",
            ),
            "rules/testing-isolation.md": rule_text(
                "isolate tests from the network",
                section=6,
                impact="LOW",
            ),
        }
    )


@pytest.fixture
def project_root(tmp_path: Path, memory_store: MemoryFileStore) -> Path:
    for identifier, text in memory_store.files.items():
        path = tmp_path / identifier
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    return tmp_path
