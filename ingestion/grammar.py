"""Grammar tip file loading and validation."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from dutch_drill.exceptions import ContentValidationError
from dutch_drill.models.grammar_tip import GRAMMAR_CATEGORIES

logger = logging.getLogger(__name__)


@dataclass
class GrammarTipEntry:
    """A grammar tip read from a grammar file."""

    title: str
    explanation: str
    category: str
    dutch_example: str = ""
    english_example: str = ""
    applicable_categories: list[str] = field(default_factory=list)
    word_patterns: list[str] = field(default_factory=list)
    specific_words: list[str] = field(default_factory=list)


def _string_list(raw: dict, key: str, index: int) -> list[str]:
    value = raw.get(key) or []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ContentValidationError(f"Grammar tip {index}: '{key}' must be a list of strings")
    return value


def parse_grammar_tips(data: dict) -> list[GrammarTipEntry]:
    """Validate decoded grammar JSON and return its tips.

    Raises:
        ContentValidationError: On a missing field or an unknown grammar category.
    """
    if not isinstance(data, dict) or not isinstance(data.get("grammar_tips"), list):
        raise ContentValidationError("Grammar file must contain a 'grammar_tips' list")

    tips = []
    for i, raw in enumerate(data["grammar_tips"]):
        if not isinstance(raw, dict):
            raise ContentValidationError(f"Grammar tip {i} is not an object")
        missing = [key for key in ("title", "explanation", "category") if not raw.get(key)]
        if missing:
            raise ContentValidationError(f"Grammar tip {i} is missing {', '.join(missing)}")
        if raw["category"] not in GRAMMAR_CATEGORIES:
            raise ContentValidationError(f"Grammar tip {i} has invalid category: {raw['category']}")
        tips.append(
            GrammarTipEntry(
                title=raw["title"],
                explanation=raw["explanation"],
                category=raw["category"],
                dutch_example=raw.get("dutch_example", ""),
                english_example=raw.get("english_example", ""),
                applicable_categories=_string_list(raw, "applicable_categories", i),
                word_patterns=_string_list(raw, "word_patterns", i),
                specific_words=_string_list(raw, "specific_words", i),
            )
        )
    return tips


def load_grammar_tips(path: Path) -> list[GrammarTipEntry]:
    """Read and validate a grammar tips JSON file."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ContentValidationError(f"Failed to decode grammar JSON in {path}: {e}") from e
    tips = parse_grammar_tips(data)
    logger.info("Read %d grammar tips from %s", len(tips), path.name)
    return tips
