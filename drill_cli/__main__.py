"""CLI interface for Dutch Drill.

Usage:
    python -m drill_cli review                  Start a drill session
    python -m drill_cli stats                   Show your statistics
    python -m drill_cli due                     Show how many words are due
    python -m drill_cli prefs --grammar-tips on Toggle grammar tips
"""

import argparse
import asyncio
import logging

from sqlalchemy import select

from dutch_drill.config import utcnow
from dutch_drill.database import async_session, engine
from dutch_drill.exceptions import InsufficientDataError, InvalidRatingError
from dutch_drill.models import Base
from dutch_drill.models.learner import Learner
from dutch_drill.srs.choices import NUM_OPTIONS
from dutch_drill.srs.fsrs import Rating
from dutch_drill.srs.session import DrillService, SessionStore
from dutch_drill.srs.stats import learner_stats

OPTION_LABELS = "ABCD"


async def ensure_db() -> None:
    """Create tables if they don't exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ensure_learner() -> int:
    """Ensure there's a default learner and return the ID."""
    async with async_session() as db:
        stmt = select(Learner).order_by(Learner.id).limit(1)
        result = await db.execute(stmt)
        learner = result.scalar_one_or_none()
        if learner:
            return learner.id

        learner = Learner(name="Learner")
        db.add(learner)
        await db.commit()
        await db.refresh(learner)
        return learner.id


def parse_option(text: str) -> int | None:
    """Turn ``A``-``D`` or ``1``-``4`` into an option index."""
    text = text.strip().upper()
    if len(text) == 1 and text in OPTION_LABELS:
        return OPTION_LABELS.index(text)
    if text.isdigit() and 1 <= int(text) <= NUM_OPTIONS:
        return int(text) - 1
    return None


def parse_on_off(value: str) -> bool:
    """argparse type for ``on``/``off`` flags."""
    lowered = value.lower()
    if lowered in ("on", "true", "yes", "1"):
        return True
    if lowered in ("off", "false", "no", "0"):
        return False
    raise argparse.ArgumentTypeError(f"expected on or off, got {value!r}")


async def cmd_review(args: argparse.Namespace) -> None:
    """Run an interactive drill session."""
    await ensure_db()
    learner_id = await ensure_learner()
    service = DrillService()
    store = SessionStore()

    print("\n  Drill Session")
    print("  Pick A-D, then rate how well you knew it: 1=Again  2=Hard  3=Good  4=Easy")
    print("  Type 'q' to quit\n")

    correct = 0
    reviewed = 0

    async with async_session() as db:
        for i in range(1, args.max_cards + 1):
            try:
                quiz = await service.next_quiz(db, learner_id, store)
            except InsufficientDataError as e:
                if reviewed == 0:
                    print(f"  {e}")
                break

            label = f"  [{i}/{args.max_cards}]"
            if quiz.candidate.is_new:
                label += " (NEW)"
            print(label)
            print(f"  {quiz.prompt}")
            for j, option in enumerate(quiz.options):
                print(f"    {OPTION_LABELS[j]}. {option}")

            response = input("\n  Your answer: ").strip()
            if response.lower() == "q":
                print("\n  Session ended early.")
                break
            while (index := parse_option(response)) is None:
                response = input(f"  Choose {OPTION_LABELS[0]}-{OPTION_LABELS[-1]}: ")

            if service.answer(store, learner_id, index):
                print("  Correct!")
                correct += 1
            else:
                print(f"  The answer is {OPTION_LABELS[quiz.correct_index]}. {quiz.correct_answer}")
            print(f"  {quiz.word.english} = {quiz.word.dutch}")

            if quiz.grammar_tip is not None:
                print(f"\n  Tip: {quiz.grammar_tip.title}")
                print(f"  {quiz.grammar_tip.explanation}")

            suggested = Rating.GOOD if quiz.was_correct else Rating.AGAIN
            while True:
                rate_input = input(f"  Rate [1-4, enter={int(suggested)}]: ").strip()
                try:
                    rating = Rating.parse(rate_input) if rate_input else suggested
                except InvalidRatingError:
                    continue
                break

            result = await service.rate(db, learner_id, store, rating)
            reviewed += 1
            print(f"  Next review in {result.interval_days:.1f} days\n")

    # Summary
    accuracy = correct / reviewed * 100 if reviewed else 0
    print("\n  Session Complete!")
    print(f"  Reviewed: {reviewed}  Correct: {correct}  Accuracy: {accuracy:.0f}%\n")


async def cmd_stats(args: argparse.Namespace) -> None:
    """Show learner statistics."""
    await ensure_db()
    learner_id = await ensure_learner()

    async with async_session() as db:
        stats = await learner_stats(db, learner_id, utcnow())

    print("\n  Dutch Drill Statistics")
    print(f"  {'Total words:':<20} {stats.total_words}")
    print(f"  {'Due now:':<20} {stats.due_words}")
    print(f"  {'New (unseen):':<20} {stats.new_words}")
    print(f"  {'Learning:':<20} {stats.learning_words}")
    print(f"  {'In review:':<20} {stats.review_words}")
    print(f"  {'Total reviews:':<20} {stats.total_reviews}")
    if stats.accuracy is not None:
        print(f"  {'Accuracy:':<20} {stats.accuracy:.0%}")
    if stats.average_retrievability is not None:
        print(f"  {'Est. recall:':<20} {stats.average_retrievability:.0%}")
    print()


async def cmd_due(args: argparse.Namespace) -> None:
    """Show how many words are due."""
    await ensure_db()
    learner_id = await ensure_learner()

    async with async_session() as db:
        stats = await learner_stats(db, learner_id, utcnow())

    print(f"  {stats.due_words} words due, {stats.new_words} new words available")


async def cmd_prefs(args: argparse.Namespace) -> None:
    """Show or change learner preferences."""
    await ensure_db()
    learner_id = await ensure_learner()

    async with async_session() as db:
        learner = await db.get(Learner, learner_id)
        if args.grammar_tips is not None:
            learner.grammar_tips_enabled = args.grammar_tips
        if args.reminders is not None:
            learner.smart_reminders_enabled = args.reminders
        await db.commit()

        print(f"  {'Grammar tips:':<20} {'on' if learner.grammar_tips_enabled else 'off'}")
        print(f"  {'Smart reminders:':<20} {'on' if learner.smart_reminders_enabled else 'off'}")


def main() -> None:
    """Entry point for the Dutch Drill CLI application."""
    parser = argparse.ArgumentParser(
        prog="drill_cli",
        description="Dutch vocabulary drills with spaced repetition",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # review
    review_parser = subparsers.add_parser("review", help="Start a drill session")
    review_parser.add_argument("--max-cards", type=int, default=20, help="Max words per session")

    # stats
    subparsers.add_parser("stats", help="Show your statistics")

    # due
    subparsers.add_parser("due", help="Show words due for review")

    # prefs
    prefs_parser = subparsers.add_parser("prefs", help="Show or change preferences")
    prefs_parser.add_argument("--grammar-tips", type=parse_on_off, default=None, help="on or off")
    prefs_parser.add_argument("--reminders", type=parse_on_off, default=None, help="on or off")

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    if not args.command:
        parser.print_help()
        return

    cmd_map = {
        "review": cmd_review,
        "stats": cmd_stats,
        "due": cmd_due,
        "prefs": cmd_prefs,
    }

    asyncio.run(cmd_map[args.command](args))


if __name__ == "__main__":
    main()
