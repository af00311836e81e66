"""
fsrs_lite.card
--------------

This module defines the Card class.

Classes:
    Card: The memory state of a single flashcard.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
import json
import time
from typing import TypedDict
from typing_extensions import Self
from fsrs_lite.state import State

DEFAULT_EASE = 2.5


def parse_utc_datetime(value: str) -> datetime:
    """
    Parses a stored ISO 8601 timestamp, refusing ones without a timezone.
    """

    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp {value!r} must be timezone-aware")

    return parsed


class CardDict(TypedDict):
    """
    JSON-serializable dictionary representation of a Card object.
    """

    card_id: int
    state: int
    interval: float
    ease: float
    stability: float | None
    difficulty: float | None
    reps: int
    lapses: int
    next_review: str
    last_review: str | None


@dataclass(init=False)
class Card:
    """
    Represents the memory state of a flashcard.

    The scheduler never mutates a Card; every review produces a replacement.

    Attributes:
        card_id: The id of the card. Defaults to the epoch milliseconds of when the card was created.
        state: The card's current learning state.
        interval: Days between the last review and the next one. Fractional values are sub-day learning steps.
        ease: Display-only ease factor derived from difficulty.
        stability: Days until the probability of recall decays to 90%, or None for a New card.
        difficulty: Intrinsic hardness of the card in [1, 10], or None for a New card.
        reps: Successful reviews since creation or the last lapse.
        lapses: Number of times the card was forgotten.
        next_review: The date and time when the card is due next.
        last_review: The date and time of the card's last review.
    """

    card_id: int
    state: State
    interval: float
    ease: float
    stability: float | None
    difficulty: float | None
    reps: int
    lapses: int
    next_review: datetime
    last_review: datetime | None

    def __init__(
        self,
        card_id: int | None = None,
        state: State = State.New,
        interval: float = 0.0,
        ease: float = DEFAULT_EASE,
        stability: float | None = None,
        difficulty: float | None = None,
        reps: int = 0,
        lapses: int = 0,
        next_review: datetime | None = None,
        last_review: datetime | None = None,
    ) -> None:
        if card_id is None:
            # epoch milliseconds of when the card was created
            card_id = int(datetime.now(timezone.utc).timestamp() * 1000)
            # wait 1ms to prevent potential card_id collision on next Card creation
            time.sleep(0.001)
        self.card_id = card_id

        self.state = state
        self.interval = interval
        self.ease = ease
        self.stability = stability
        self.difficulty = difficulty
        self.reps = reps
        self.lapses = lapses

        if next_review is None:
            next_review = datetime.now(timezone.utc)
        self.next_review = next_review

        self.last_review = last_review

    def is_due(self, now: datetime | None = None) -> bool:
        """
        Whether the card's next review is at or before `now`.
        """

        if now is None:
            now = datetime.now(timezone.utc)

        if self.next_review.tzinfo is None:
            raise ValueError(
                f"Card {self.card_id} has a naive next_review; timestamps must be timezone-aware"
            )

        return self.next_review <= now

    def to_dict(self) -> CardDict:
        """
        Returns a JSON-serializable dictionary representation of the Card object.

        This method is specifically useful for storing Card objects in a database.

        Returns:
            A dictionary representation of the Card object.
        """

        return {
            "card_id": self.card_id,
            "state": self.state.value,
            "interval": self.interval,
            "ease": self.ease,
            "stability": self.stability,
            "difficulty": self.difficulty,
            "reps": self.reps,
            "lapses": self.lapses,
            "next_review": self.next_review.isoformat(),
            "last_review": self.last_review.isoformat() if self.last_review else None,
        }

    @classmethod
    def from_dict(cls, source_dict: CardDict) -> Self:
        """
        Creates a Card object from an existing dictionary.

        Args:
            source_dict: A dictionary representing an existing Card object.

        Returns:
            A Card object created from the provided dictionary.

        Raises:
            ValueError: If the stored state is not a known State value or a timestamp has no timezone.
        """

        return cls(
            card_id=int(source_dict["card_id"]),
            state=State(int(source_dict["state"])),
            interval=float(source_dict["interval"]),
            ease=float(source_dict["ease"]),
            stability=(
                float(source_dict["stability"])
                if source_dict["stability"] is not None
                else None
            ),
            difficulty=(
                float(source_dict["difficulty"])
                if source_dict["difficulty"] is not None
                else None
            ),
            reps=int(source_dict["reps"]),
            lapses=int(source_dict["lapses"]),
            next_review=parse_utc_datetime(source_dict["next_review"]),
            last_review=(
                parse_utc_datetime(source_dict["last_review"])
                if source_dict["last_review"] is not None
                else None
            ),
        )

    def to_json(self, indent: int | str | None = None) -> str:
        """
        Returns a JSON-serialized string of the Card object.

        Args:
            indent: Equivalent argument to the indent in json.dumps()
        """

        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, source_json: str) -> Self:
        source_dict: CardDict = json.loads(source_json)
        return cls.from_dict(source_dict=source_dict)


__all__ = ["Card", "DEFAULT_EASE", "parse_utc_datetime"]
