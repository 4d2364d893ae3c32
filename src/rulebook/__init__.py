"""Rulebook package root."""

from rulebook.exceptions import (
    BuildError,
    FrontmatterError,
    RulebookError,
    SectionReferenceError,
    SectionRegistryError,
)

__all__ = [
    "__version__",
    "BuildError",
    "FrontmatterError",
    "RulebookError",
    "SectionReferenceError",
    "SectionRegistryError",
]

__version__ = "0.1.0"
