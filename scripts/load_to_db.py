"""Load vocabulary and grammar tips into the database.

Usage:
    python -m scripts.load_to_db data/vocabulary.json
    python -m scripts.load_to_db data/vocabulary.json --grammar data/grammar_tips.json
"""

import argparse
import asyncio
import json
import logging
from pathlib import Path

from sqlalchemy import select

from dutch_drill.database import async_session, engine
from dutch_drill.models import Base
from dutch_drill.models.grammar_tip import GrammarTip
from dutch_drill.models.word import Word
from ingestion.dedup import deduplicate_words
from ingestion.grammar import GrammarTipEntry, load_grammar_tips
from ingestion.vocabulary import VocabularyEntry, load_vocabulary


async def load_words(entries: list[VocabularyEntry]) -> int:
    """Insert vocabulary entries, skipping pairs already in the database.

    Returns the number of words inserted.
    """
    loaded = 0
    async with async_session() as session:
        existing = {
            (english, dutch)
            for english, dutch in (await session.execute(select(Word.english, Word.dutch))).all()
        }
        for entry in deduplicate_words(entries):
            if (entry.english, entry.dutch) in existing:
                logging.info("Skipping duplicate: %s / %s", entry.english, entry.dutch)
                continue
            session.add(Word(english=entry.english, dutch=entry.dutch, category=entry.category))
            existing.add((entry.english, entry.dutch))
            loaded += 1

        await session.commit()

    logging.info("Loaded %d words", loaded)
    return loaded


async def load_tips(entries: list[GrammarTipEntry]) -> int:
    """Insert grammar tips, skipping titles already in the database."""
    loaded = 0
    async with async_session() as session:
        existing = set((await session.execute(select(GrammarTip.title))).scalars().all())
        for entry in entries:
            if entry.title in existing:
                logging.info("Skipping duplicate grammar tip: %s", entry.title)
                continue
            session.add(
                GrammarTip(
                    title=entry.title,
                    explanation=entry.explanation,
                    dutch_example=entry.dutch_example,
                    english_example=entry.english_example,
                    category=entry.category,
                    applicable_categories=json.dumps(entry.applicable_categories, ensure_ascii=False),
                    word_patterns=json.dumps(entry.word_patterns, ensure_ascii=False),
                    specific_words=json.dumps(entry.specific_words, ensure_ascii=False),
                )
            )
            existing.add(entry.title)
            loaded += 1

        await session.commit()

    logging.info("Loaded %d grammar tips", loaded)
    return loaded


async def main_async(args: argparse.Namespace) -> None:
    # Ensure tables exist
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    words = await load_words(load_vocabulary(args.vocabulary))
    print(f"Loaded {words} words.")

    if args.grammar:
        tips = await load_tips(load_grammar_tips(args.grammar))
        print(f"Loaded {tips} grammar tips.")


def main() -> None:
    parser = argparse.ArgumentParser(description="Load vocabulary and grammar tips into the database")
    parser.add_argument("vocabulary", type=Path, help="Path to the vocabulary JSON file")
    parser.add_argument(
        "--grammar",
        type=Path,
        default=None,
        help="Path to the grammar tips JSON file (optional)",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    asyncio.run(main_async(args))
    print("Done.")


if __name__ == "__main__":
    main()
