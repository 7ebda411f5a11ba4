"""CLI interface for the Sage SRS scheduler.

Usage:
    python -m sage_srs preview                         Preview ratings for a new card
    python -m sage_srs preview --state review -s 12    Preview a card in review
    python -m sage_srs simulate good good hard again   Replay a rating sequence
"""

import argparse
import logging
from datetime import datetime, timedelta

from backend.config import settings, utcnow
from backend.srs.fsrs import DEFAULT_WEIGHTS, FSRS, CardState, Rating, State
from backend.srs.intervals import due_label, preview_labels


def build_scheduler(args: argparse.Namespace) -> FSRS:
    """Create a scheduler from settings, overridden by CLI flags."""
    return FSRS(
        weights=settings.weights or DEFAULT_WEIGHTS,
        request_retention=args.retention,
        maximum_interval=args.maximum_interval,
    )


def parse_rating(value: str) -> Rating:
    """argparse type for ratings given as 1-4 or a rating name."""
    try:
        return Rating.coerce(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _format_due(due: datetime, now: datetime) -> str:
    return due.strftime("%Y-%m-%d %H:%M") if due - now >= timedelta(days=1) else due.strftime("%H:%M")


def cmd_preview(args: argparse.Namespace) -> None:
    """Print the outcome of each rating for one card."""
    fsrs = build_scheduler(args)
    now = utcnow()
    state = State(args.state)

    if state is State.NEW:
        card = fsrs.create_new_card(now)
    else:
        card = CardState(
            stability=args.stability,
            difficulty=args.difficulty,
            due=now,
            reps=1,
            lapses=0,
            state=state,
            last_review=now - timedelta(days=args.elapsed_days),
        )

    result = fsrs.schedule(card, now)
    labels = preview_labels(result, now)

    print(f"\n  Preview ({state.value} card)")
    if state is not State.NEW:
        print(
            f"  stability={card.stability:.2f}  difficulty={card.difficulty:.2f}"
            f"  elapsed={args.elapsed_days:g}d"
        )
    print()
    print(f"  {'Rating':<8} {'Next state':<12} {'Interval':<10} Due")
    for rating, option in result:
        print(
            f"  {rating.key:<8} {option.state.value:<12} "
            f"{labels[rating.key]:<10} {_format_due(option.due, now)}"
        )
    print()


def cmd_simulate(args: argparse.Namespace) -> None:
    """Replay a rating sequence on a new card and print each transition."""
    fsrs = build_scheduler(args)
    now = utcnow()
    card = fsrs.create_new_card(now)

    print(f"\n  {'#':>3}  {'Rating':<7} {'State':<24} {'S':>8} {'D':>6}  Next")
    for i, rating in enumerate(args.ratings, 1):
        if card.last_review is not None:
            if args.gap_days is not None:
                now = card.last_review + timedelta(days=args.gap_days)
            else:
                now = max(card.due, now)

        prior = card.state
        card = fsrs.review(card, rating, now)
        transition = f"{prior.value} -> {card.state.value}"
        print(
            f"  {i:>3}  {rating.key:<7} {transition:<24} {card.stability:>8.2f} "
            f"{card.difficulty:>6.2f}  {due_label(card.due, card.scheduled_days, now)}"
        )

    print(f"\n  reps={card.reps}  lapses={card.lapses}  due={card.due.isoformat(timespec='minutes')}\n")


def main(argv: list[str] | None = None) -> None:
    """Entry point for the Sage SRS CLI application."""
    parser = argparse.ArgumentParser(
        prog="sage_srs",
        description="Sage SRS scheduling tools",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument(
        "--retention",
        type=float,
        default=settings.request_retention,
        help=f"Target retention (default: {settings.request_retention})",
    )
    parser.add_argument(
        "--maximum-interval",
        type=int,
        default=settings.maximum_interval,
        help=f"Longest interval in days (default: {settings.maximum_interval})",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # preview
    preview_parser = subparsers.add_parser("preview", help="Preview the four rating outcomes")
    preview_parser.add_argument(
        "--state",
        choices=[s.value for s in State],
        default=State.NEW.value,
        help="Card state (default: new)",
    )
    preview_parser.add_argument("-s", "--stability", type=float, default=1.0)
    preview_parser.add_argument("-d", "--difficulty", type=float, default=5.0)
    preview_parser.add_argument(
        "-e", "--elapsed-days", type=float, default=0.0, help="Days since the last review"
    )

    # simulate
    simulate_parser = subparsers.add_parser("simulate", help="Replay ratings on a new card")
    simulate_parser.add_argument(
        "ratings", nargs="+", type=parse_rating, help="Ratings: 1-4 or again/hard/good/easy"
    )
    simulate_parser.add_argument(
        "-g",
        "--gap-days",
        type=float,
        default=None,
        help="Days between reviews (default: review each card when due)",
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    if not args.command:
        parser.print_help()
        return

    try:
        build_scheduler(args)
    except ValueError as exc:
        parser.error(str(exc))

    cmd_map = {
        "preview": cmd_preview,
        "simulate": cmd_simulate,
    }
    cmd_map[args.command](args)


if __name__ == "__main__":
    main()
