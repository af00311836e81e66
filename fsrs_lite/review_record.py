"""
fsrs_lite.review_record
-----------------------

One entry of a card's review history. Persisting history is up to the caller;
`Scheduler.review_card` only builds the entry.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from fsrs_lite.card import parse_utc_datetime
from fsrs_lite.rating import Rating
from fsrs_lite.state import State


@dataclass(frozen=True)
class ReviewRecord:
    """
    What happened to a card during a single review.

    Attributes:
        card_id: The reviewed card.
        rating: The rating the user gave.
        reviewed_at: When the rating was committed.
        time_spent: Milliseconds spent on the card, or None when not measured.
        previous_state: State before the review.
        new_state: State after the review.
    """

    card_id: int
    rating: Rating
    reviewed_at: datetime
    time_spent: int | None
    previous_state: State
    new_state: State

    @property
    def is_correct(self) -> bool:
        return self.rating != Rating.Again

    @property
    def is_lapse(self) -> bool:
        """A Review-state card that was forgotten."""
        return self.previous_state == State.Review and self.rating == Rating.Again

    def to_dict(self) -> dict[str, Any]:
        return {
            "card_id": self.card_id,
            "rating": self.rating.name.lower(),
            "reviewed_at": self.reviewed_at.isoformat(),
            "time_spent": self.time_spent,
            "previous_state": self.previous_state.name.lower(),
            "new_state": self.new_state.name.lower(),
        }

    @classmethod
    def from_dict(cls, source_dict: dict[str, Any]) -> ReviewRecord:
        """
        Rebuilds a record stored with `to_dict`.

        Raises:
            KeyError: If the rating or a state name is unknown.
            ValueError: If `reviewed_at` has no timezone.
        """

        return cls(
            card_id=int(source_dict["card_id"]),
            rating=Rating[source_dict["rating"].capitalize()],
            reviewed_at=parse_utc_datetime(source_dict["reviewed_at"]),
            time_spent=source_dict["time_spent"],
            previous_state=State[source_dict["previous_state"].capitalize()],
            new_state=State[source_dict["new_state"].capitalize()],
        )


__all__ = ["ReviewRecord"]
