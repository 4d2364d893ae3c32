from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, TypeAlias


SectionRef: TypeAlias = int | str


class Impact(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM_HIGH = "MEDIUM-HIGH"
    MEDIUM = "MEDIUM"
    LOW_MEDIUM = "LOW-MEDIUM"
    LOW = "LOW"

    @classmethod
    def parse(cls, raw: object) -> "Impact | None":
        if not isinstance(raw, str):
            return None
        normalized = raw.strip().upper().replace("_", "-")
        for member in cls:
            if member.value == normalized:
                return member
        return None

    @classmethod
    def choices(cls) -> tuple[str, ...]:
        return tuple(member.value for member in cls)


@dataclass(frozen=True)
class RuleRecord:
    path: str
    title: str
    body: str
    impact: str | None = None
    section: SectionRef | None = None
    impact_description: str | None = None
    tags: frozenset[str] = frozenset()
    extras: Mapping[str, object] = field(default_factory=dict)

    @property
    def impact_level(self) -> Impact | None:
        return Impact.parse(self.impact)

    @property
    def filename(self) -> str:
        return self.path.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class SectionDescriptor:
    id: str
    number: int
    name: str
    impact: Impact
    description: str = ""


@dataclass(frozen=True)
class SectionRegistry:
    """Immutable section table, ordered by display number."""

    sections: tuple[SectionDescriptor, ...]

    def __iter__(self):
        return iter(self.sections)

    def __len__(self) -> int:
        return len(self.sections)

    def ids(self) -> tuple[str, ...]:
        return tuple(section.id for section in self.sections)

    def resolve(self, reference: object) -> SectionDescriptor | None:
        if isinstance(reference, bool) or reference is None:
            return None
        if isinstance(reference, int):
            number = reference
        elif isinstance(reference, str):
            text = reference.strip()
            if not text:
                return None
            for section in self.sections:
                if section.id == text:
                    return section
            # isdigit() also admits superscripts that int() rejects.
            if not text.isdecimal():
                return None
            number = int(text)
        else:
            return None
        for section in self.sections:
            if section.number == number:
                return section
        return None


@dataclass(frozen=True)
class DocumentMetadata:
    title: str = "Best Practices"
    version: str | None = None
    organization: str | None = None
    abstract: str | None = None
    references: tuple[str, ...] = ()


@dataclass(frozen=True)
class CompiledRule:
    display_id: str
    record: RuleRecord


@dataclass(frozen=True)
class SectionBlock:
    section: SectionDescriptor
    rules: tuple[CompiledRule, ...]


@dataclass(frozen=True)
class CompiledDocument:
    metadata: DocumentMetadata
    blocks: tuple[SectionBlock, ...]

    def rules(self) -> tuple[CompiledRule, ...]:
        return tuple(rule for block in self.blocks for rule in block.rules)

    def display_ids(self) -> dict[str, str]:
        """Map each rule path to its assigned display id."""
        return {rule.record.path: rule.display_id for rule in self.rules()}


SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"


@dataclass(frozen=True)
class Problem:
    path: str
    field: str
    message: str
    severity: str = SEVERITY_ERROR

    def render(self) -> str:
        return f"{self.path}: [{self.field}] {self.message}"

    def payload(self) -> dict[str, str]:
        return {
            "path": self.path,
            "field": self.field,
            "message": self.message,
            "severity": self.severity,
        }


@dataclass(frozen=True)
class ValidationReport:
    problems: tuple[Problem, ...] = ()

    @property
    def errors(self) -> tuple[Problem, ...]:
        return tuple(p for p in self.problems if p.severity == SEVERITY_ERROR)

    @property
    def warnings(self) -> tuple[Problem, ...]:
        return tuple(p for p in self.problems if p.severity == SEVERITY_WARNING)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def is_empty(self) -> bool:
        return not self.problems

    def payload(self) -> dict[str, object]:
        return {
            "ok": self.ok,
            "summary": {
                "errors": len(self.errors),
                "warnings": len(self.warnings),
            },
            "errors": [problem.payload() for problem in self.errors],
            "warnings": [problem.payload() for problem in self.warnings],
        }
