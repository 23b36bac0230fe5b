"""Deduplication and normalization for vocabulary entries."""

import logging
import unicodedata

from ingestion.vocabulary import VocabularyEntry

logger = logging.getLogger(__name__)


def normalize_text(text: str) -> str:
    """Normalize a word for comparison.

    - Unicode NFC normalization
    - Collapse and strip whitespace
    - Case-fold
    """
    text = unicodedata.normalize("NFC", text)
    text = text.replace("\ufeff", "")  # BOM
    return " ".join(text.split()).casefold()


def deduplicate_words(entries: list[VocabularyEntry]) -> list[VocabularyEntry]:
    """Drop repeated English-Dutch pairs, keeping the first occurrence."""
    seen: set[tuple[str, str]] = set()
    deduped = []
    for entry in entries:
        key = (normalize_text(entry.english), normalize_text(entry.dutch))
        if key in seen:
            continue
        seen.add(key)
        deduped.append(entry)

    logger.info(
        "Deduplication: %d entries -> %d unique (%d duplicates dropped)",
        len(entries),
        len(deduped),
        len(entries) - len(deduped),
    )
    return deduped
