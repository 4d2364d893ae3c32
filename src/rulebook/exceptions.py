"""Error taxonomy for rule compilation.

Every error names the file it came from so the command line can report it
without further context.
"""

from __future__ import annotations

from typing import Iterable


class RulebookError(RuntimeError):
    """Base class for every failure the tooling reports to the user."""


class FrontmatterError(RulebookError):
    """A rule file has a missing or malformed metadata block."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class SectionRegistryError(RulebookError):
    """The section metadata document is unusable; no partial registry exists."""

    def __init__(self, path: str, problems: Iterable[str]):
        self.path = path
        self.problems = tuple(problems)
        lines = [f"{path}: invalid section registry"]
        lines.extend(f"- {problem}" for problem in self.problems)
        super().__init__("\n".join(lines))


class SectionReferenceError(RulebookError):
    """A rule names a section that is not in the registry."""

    def __init__(self, path: str, title: str, reference: object):
        self.path = path
        self.title = title
        self.reference = reference
        super().__init__(
            f"{path}: rule '{title}' references unknown section '{reference}'"
        )


class BuildError(RulebookError):
    """Compilation refused because at least one rule is defective."""

    def __init__(self, problems: Iterable[str]):
        self.problems = tuple(problems)
        lines = [f"build failed: {len(self.problems)} problem(s)"]
        lines.extend(f"- {problem}" for problem in self.problems)
        super().__init__("\n".join(lines))
