"""Document categories: frontmatter first, path conventions second."""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any

import yaml

logger = logging.getLogger(__name__)

_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\n(.*?)\n---[ \t]*(?:\n|\Z)", re.DOTALL)


class DocType(str, Enum):
    """Documentation category. ``UNCATEGORIZED`` absorbs anything unrecognised."""

    TESTING_PATTERN = "testing-pattern"
    ARCHITECTURE = "architecture"
    CONTRACT = "contract"
    META = "meta"
    TEMPLATE = "template"
    UNCATEGORIZED = "uncategorized"

    @classmethod
    def parse(cls, value: object) -> DocType:
        """Map a stored or declared value to a member; unknown values are uncategorized."""
        if isinstance(value, DocType):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.UNCATEGORIZED


# Ordered: the first rule whose fragment appears in "/" + path wins.
_PATH_RULES: tuple[tuple[DocType, tuple[str, ...]], ...] = (
    (DocType.ARCHITECTURE, ("project-overview", "tech-stack", "repo-structure", "/architecture/")),
    (DocType.TESTING_PATTERN, ("testing-pattern", "coding-conventions", "/patterns/")),
    (DocType.CONTRACT, ("api-schemas", "database-models", "shared-types", "/contracts/")),
    (DocType.META, ("/meta/", "validation-log")),
    (DocType.TEMPLATE, ("/templates/",)),
)


def parse_frontmatter(content: str) -> dict[str, Any]:
    """Return the YAML frontmatter mapping of *content* (empty if absent or invalid)."""
    match = _FRONTMATTER_RE.match(content)
    if not match:
        return {}
    try:
        parsed = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError:
        logger.debug("Ignoring unparseable frontmatter")
        return {}
    return parsed if isinstance(parsed, dict) else {}


def infer_from_path(file_path: str) -> DocType:
    """Classify by path conventions alone."""
    padded = "/" + file_path.lower().lstrip("/")
    for doc_type, fragments in _PATH_RULES:
        if any(f in padded for f in fragments):
            return doc_type
    return DocType.UNCATEGORIZED


def extract_doc_type(file_path: str, content: str) -> DocType:
    """Resolve the category for a document being synced.

    A valid frontmatter ``type:`` wins; otherwise path conventions apply.
    """
    declared = DocType.parse(parse_frontmatter(content).get("type"))
    if declared is not DocType.UNCATEGORIZED:
        return declared
    return infer_from_path(file_path)
