"""
fsrs_lite.deck
--------------

Operations over a whole collection of cards.

Functions:
    get_due_cards: The cards due now, New cards first.
    calculate_stats: Per-state counts and average review metrics.
"""

from __future__ import annotations
from collections.abc import Iterable
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
import logging
from fsrs_lite.card import Card
from fsrs_lite.state import State

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StudyStats:
    """
    Summary of a card collection.

    Attributes:
        total_cards: Number of cards in the collection.
        new_cards: Cards never reviewed.
        learning_cards: Cards in the Learning or Relearning state.
        review_cards: Cards in the Review state.
        due_now: Cards whose next review is at or before now.
        average_ease: Mean ease over Review-state cards, 0 if there are none.
        average_interval: Mean interval in days over Review-state cards, 0 if there are none.
        total_reviews: Successful reviews plus lapses across the collection.
        retention_rate: Share of those reviews that were successful, 0 if there are none.
    """

    total_cards: int = 0
    new_cards: int = 0
    learning_cards: int = 0
    review_cards: int = 0
    due_now: int = 0
    average_ease: float = 0.0
    average_interval: float = 0.0
    total_reviews: int = 0
    retention_rate: float = 0.0

    def to_dict(self) -> dict[str, int | float]:
        return asdict(self)


def get_due_cards(cards: Iterable[Card], now: datetime | None = None) -> list[Card]:
    """
    Returns the cards whose next review is at or before `now`.

    New cards come first, then the rest by ascending next review. The sort is stable,
    so cards that tie keep their order from `cards`.

    Args:
        cards: A snapshot of the collection. It must not be modified during the call.
        now: The current date and time. Defaults to the current time.
    """

    if now is None:
        now = datetime.now(timezone.utc)

    due_cards = [card for card in cards if card.is_due(now)]

    return sorted(
        due_cards,
        key=lambda card: (card.state != State.New, card.next_review),
    )


def calculate_stats(cards: Iterable[Card], now: datetime | None = None) -> StudyStats:
    """
    Summarizes a card collection.

    Args:
        cards: A snapshot of the collection. It must not be modified during the call.
        now: The current date and time used to count due cards. Defaults to the current time.

    Returns:
        StudyStats: All zeros for an empty collection.

    Raises:
        ValueError: If a card's state is not a known State.
    """

    if now is None:
        now = datetime.now(timezone.utc)

    total_cards = 0
    counts = {State.New: 0, State.Learning: 0, State.Review: 0}
    due_now = 0
    total_ease = 0.0
    total_interval = 0.0
    successes = 0
    failures = 0

    for card in cards:
        total_cards += 1

        match card.state:
            case State.New:
                counts[State.New] += 1
            case State.Learning | State.Relearning:
                counts[State.Learning] += 1
            case State.Review:
                counts[State.Review] += 1
                total_ease += card.ease
                total_interval += card.interval
            case _:
                raise ValueError(
                    f"Card {card.card_id} has unknown state {card.state!r}"
                )

        if card.is_due(now):
            due_now += 1

        successes += card.reps
        failures += card.lapses

    review_cards = counts[State.Review]
    total_reviews = successes + failures

    stats = StudyStats(
        total_cards=total_cards,
        new_cards=counts[State.New],
        learning_cards=counts[State.Learning],
        review_cards=review_cards,
        due_now=due_now,
        average_ease=total_ease / review_cards if review_cards > 0 else 0.0,
        average_interval=total_interval / review_cards if review_cards > 0 else 0.0,
        total_reviews=total_reviews,
        retention_rate=successes / total_reviews if total_reviews > 0 else 0.0,
    )

    logger.debug("collection stats: %s", stats)

    return stats


__all__ = ["StudyStats", "get_due_cards", "calculate_stats"]
