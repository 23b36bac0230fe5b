"""Vocabulary file loading and validation."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from dutch_drill.exceptions import ContentValidationError
from dutch_drill.models.word import WORD_CATEGORIES

logger = logging.getLogger(__name__)


@dataclass
class VocabularyEntry:
    """One English-Dutch pair read from a vocabulary file."""

    english: str
    dutch: str
    category: str


def parse_vocabulary(data: dict) -> list[VocabularyEntry]:
    """Validate decoded vocabulary JSON and return its entries.

    Expects ``{"english_dutch": [{"word": ..., "translation": ..., "category": ...}]}``.

    Raises:
        ContentValidationError: On a missing field or an unknown category.
    """
    if not isinstance(data, dict) or not isinstance(data.get("english_dutch"), list):
        raise ContentValidationError("Vocabulary file must contain an 'english_dutch' list")

    entries = []
    for i, raw in enumerate(data["english_dutch"]):
        if not isinstance(raw, dict):
            raise ContentValidationError(f"Entry {i} is not an object")
        missing = [key for key in ("word", "translation", "category") if not raw.get(key)]
        if missing:
            raise ContentValidationError(f"Entry {i} is missing {', '.join(missing)}")
        if raw["category"] not in WORD_CATEGORIES:
            raise ContentValidationError(f"Entry {i} has invalid category: {raw['category']}")
        entries.append(
            VocabularyEntry(
                english=raw["word"].strip(),
                dutch=raw["translation"].strip(),
                category=raw["category"],
            )
        )
    return entries


def load_vocabulary(path: Path) -> list[VocabularyEntry]:
    """Read and validate a vocabulary JSON file."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ContentValidationError(f"Failed to decode vocabulary JSON in {path}: {e}") from e
    entries = parse_vocabulary(data)
    logger.info("Read %d vocabulary entries from %s", len(entries), path.name)
    return entries
