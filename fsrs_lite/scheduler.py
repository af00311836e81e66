"""
fsrs_lite.scheduler
-------------------

This module defines the Scheduler class as well as the various constants used in its calculations.

Classes:
    SchedulingResult: The memory state produced by reviewing a card once.
    Scheduler: The spaced-repetition scheduler.
"""

from __future__ import annotations
from collections.abc import Sequence
import logging
import math
from datetime import datetime, timezone, timedelta
import json
from dataclasses import dataclass
from fsrs_lite.state import State
from fsrs_lite.card import Card
from fsrs_lite.rating import Rating
from fsrs_lite.review_record import ReviewRecord
from typing import TypedDict
from typing_extensions import Self

logger = logging.getLogger(__name__)

DEFAULT_DECAY = -0.5
DEFAULT_PARAMETERS = (
    0.4,
    0.6,
    2.4,
    5.8,
    4.93,
    0.94,
    0.86,
    0.01,
    1.49,
    0.14,
    0.94,
    2.18,
    0.05,
    0.34,
    1.26,
    0.29,
    2.61,
)

# w[0..16] drive every formula; w[17] and w[18] are the optional short-term weights
BASE_PARAMETER_COUNT = 17
EXTENDED_PARAMETER_COUNT = 19

STABILITY_MIN = 0.1
MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 10.0

MIN_EASE = 1.3
BASE_EASE = 2.5
EASE_PER_DIFFICULTY = 0.15

ONE_DAY = timedelta(days=1)


def round_half_up(value: float) -> int:
    """
    Rounds to the nearest integer, with ties going up (2.5 -> 3).
    """

    return math.floor(value + 0.5)


class SchedulerDict(TypedDict):
    """
    JSON-serializable dictionary representation of a Scheduler object.
    """

    parameters: list[float]
    decay: float
    desired_retention: float
    learning_steps: list[int]
    relearning_steps: list[int]
    hard_interval_factor: float
    easy_interval_factor: float
    maximum_interval: int


@dataclass(frozen=True)
class SchedulingResult:
    """
    The complete memory state of a card after one review.

    Attributes:
        state: The card's new learning state.
        interval: Days until the next review. Sub-day learning steps are fractions of a day.
        ease: Display-only ease factor derived from the new difficulty.
        stability: The card's new stability.
        difficulty: The card's new difficulty.
        next_review: When the card is due next.
        reps: Successful reviews since creation or the last lapse.
        lapses: Number of times the card was forgotten.
        last_review: When this review took place.
    """

    state: State
    interval: float
    ease: float
    stability: float
    difficulty: float
    next_review: datetime
    reps: int
    lapses: int
    last_review: datetime

    @property
    def interval_timedelta(self) -> timedelta:
        return self.next_review - self.last_review

    def apply_to(self, card: Card) -> Card:
        """
        Returns a new Card carrying `card`'s identity and this result's memory state.
        """

        return Card(
            card_id=card.card_id,
            state=self.state,
            interval=self.interval,
            ease=self.ease,
            stability=self.stability,
            difficulty=self.difficulty,
            reps=self.reps,
            lapses=self.lapses,
            next_review=self.next_review,
            last_review=self.last_review,
        )


@dataclass(init=False)
class Scheduler:
    """
    The spaced-repetition scheduler.

    Computes how a card's memory state evolves after a review and when it is due next.
    A Scheduler holds no per-card state, so one instance may serve any number of cards
    and several instances with different parameters may coexist.

    Attributes:
        parameters: The model weights of the scheduler, 17 or 19 of them.
        decay: Negative exponent of the forgetting curve.
        desired_retention: The desired retention rate of cards in the Review state.
        learning_steps: Sub-day intervals for cards that stay in the Learning state (Again uses the first, Hard the last).
        relearning_steps: Sub-day intervals for cards that stay in the Relearning state (Again uses the first, Hard the last).
        hard_interval_factor: Multiplier applied to Review intervals rated Hard.
        easy_interval_factor: Multiplier applied to Review intervals rated Easy.
        maximum_interval: The maximum number of days a Review-state card can be scheduled into the future.
    """

    parameters: tuple[float, ...]
    decay: float
    desired_retention: float
    learning_steps: tuple[timedelta, ...]
    relearning_steps: tuple[timedelta, ...]
    hard_interval_factor: float
    easy_interval_factor: float
    maximum_interval: int

    def __init__(
        self,
        parameters: Sequence[float] = DEFAULT_PARAMETERS,
        decay: float = DEFAULT_DECAY,
        desired_retention: float = 0.9,
        learning_steps: tuple[timedelta, ...] | list[timedelta] = (
            timedelta(minutes=1),
            timedelta(minutes=10),
        ),
        relearning_steps: tuple[timedelta, ...] | list[timedelta] = (
            timedelta(minutes=10),
        ),
        hard_interval_factor: float = 0.8,
        easy_interval_factor: float = 1.3,
        maximum_interval: int = 365,
    ) -> None:
        self.parameters = tuple(float(parameter) for parameter in parameters)
        self.decay = decay
        self.desired_retention = desired_retention
        self.learning_steps = tuple(learning_steps)
        self.relearning_steps = tuple(relearning_steps)
        self.hard_interval_factor = hard_interval_factor
        self.easy_interval_factor = easy_interval_factor
        self.maximum_interval = maximum_interval

        self._validate()

        self._DECAY = self.decay
        self._FACTOR = 0.9 ** (1 / self._DECAY) - 1

    def _validate(self) -> None:
        if len(self.parameters) not in (
            BASE_PARAMETER_COUNT,
            EXTENDED_PARAMETER_COUNT,
        ):
            raise ValueError(
                f"Expected {BASE_PARAMETER_COUNT} or {EXTENDED_PARAMETER_COUNT} parameters, got {len(self.parameters)}."
            )

        error_messages = []
        for index, parameter in enumerate(self.parameters):
            if not math.isfinite(parameter):
                error_messages.append(f"parameters[{index}] = {parameter} is not finite")

        if not self.decay < 0:
            error_messages.append(f"decay = {self.decay} must be negative")
        if not 0 < self.desired_retention < 1:
            error_messages.append(
                f"desired_retention = {self.desired_retention} must be between 0 and 1"
            )
        if len(self.learning_steps) == 0:
            error_messages.append("learning_steps must not be empty")
        if len(self.relearning_steps) == 0:
            error_messages.append("relearning_steps must not be empty")
        if not self.hard_interval_factor > 0:
            error_messages.append(
                f"hard_interval_factor = {self.hard_interval_factor} must be positive"
            )
        if not self.easy_interval_factor > 0:
            error_messages.append(
                f"easy_interval_factor = {self.easy_interval_factor} must be positive"
            )
        if self.maximum_interval < 1:
            error_messages.append(
                f"maximum_interval = {self.maximum_interval} must be at least 1 day"
            )

        if len(error_messages) > 0:
            raise ValueError(
                "Invalid scheduler configuration:\n" + "\n".join(error_messages)
            )

    def get_card_retrievability(self, card: Card, now: datetime | None = None) -> float:
        """
        Calculates a Card object's current retrievability for a given date and time.

        The retrievability of a card is the predicted probability that the card is correctly recalled at the provided datetime.

        Args:
            card: The card whose retrievability is to be calculated
            now: The current date and time

        Returns:
            float: The retrievability of the Card object, or 0 for a card that was never reviewed.
        """

        if card.last_review is None or not card.stability:
            return 0

        now = self._resolve_now(now)

        return self._retrievability(
            elapsed_days=self._elapsed_days(card=card, now=now),
            stability=card.stability,
        )

    def schedule_card(
        self,
        card: Card,
        rating: Rating | int,
        now: datetime | None = None,
    ) -> SchedulingResult:
        """
        Computes the memory state a card would have after being reviewed with `rating` at `now`.

        The card itself is left untouched.

        Args:
            card: The card being reviewed.
            rating: The chosen rating for the card being reviewed.
            now: The date and time of the review. Defaults to the current time.

        Returns:
            SchedulingResult: The card's complete replacement memory state.

        Raises:
            ValueError: If the rating or the card's state is invalid, or `now` is not timezone-aware UTC.
        """

        rating = self._validate_rating(rating)
        if not isinstance(card.state, State):
            raise ValueError(
                f"Card {card.card_id} has unknown state {card.state!r}; expected one of {[s.name for s in State]}"
            )
        now = self._resolve_now(now)

        reps = card.reps
        lapses = card.lapses

        match card.state:
            case State.New:
                stability = self._initial_stability(rating=rating)
                difficulty = self._initial_difficulty(rating=rating)
                reps = 0

                match rating:
                    case Rating.Again:
                        state = State.Learning
                        lapses += 1
                    case Rating.Hard:
                        state = State.Learning
                    case Rating.Good | Rating.Easy:
                        state = State.Review
                        reps = 1

            case State.Learning | State.Relearning:
                stability, difficulty = self._current_memory_state(
                    card=card, rating=rating
                )
                state = card.state

                match rating:
                    case Rating.Again:
                        stability = self._initial_stability(rating=Rating.Again)
                        if card.state == State.Learning:
                            lapses += 1
                    case Rating.Hard:
                        stability = self._short_term_stability(
                            stability=stability, rating=rating
                        )
                    case Rating.Good | Rating.Easy:
                        stability = self._short_term_stability(
                            stability=stability, rating=rating
                        )
                        state = State.Review
                        reps += 1

            case State.Review:
                stability, difficulty = self._current_memory_state(
                    card=card, rating=rating
                )
                retrievability = self._retrievability(
                    elapsed_days=self._elapsed_days(card=card, now=now),
                    stability=stability,
                )

                match rating:
                    case Rating.Again:
                        stability = self._next_forget_stability(
                            difficulty=difficulty,
                            stability=stability,
                            retrievability=retrievability,
                        )
                        state = State.Relearning
                        lapses += 1
                        reps = 0
                    case Rating.Hard | Rating.Good | Rating.Easy:
                        stability = self._next_recall_stability(
                            difficulty=difficulty,
                            stability=stability,
                            retrievability=retrievability,
                            rating=rating,
                        )
                        state = State.Review
                        reps += 1

                difficulty = self._next_difficulty(difficulty=difficulty, rating=rating)

        next_interval = self._next_interval(
            state=state, rating=rating, stability=stability
        )

        logger.debug(
            "card %s: %s -> %s on %s, next interval %s",
            card.card_id,
            card.state.name,
            state.name,
            rating.name,
            next_interval,
        )

        return SchedulingResult(
            state=state,
            interval=next_interval / ONE_DAY,
            ease=self._ease(difficulty=difficulty),
            stability=stability,
            difficulty=difficulty,
            next_review=now + next_interval,
            reps=reps,
            lapses=lapses,
            last_review=now,
        )

    def preview_schedule(
        self, card: Card, now: datetime | None = None
    ) -> dict[Rating, float]:
        """
        Returns the interval in days each rating would give `card`, without committing any of them.

        Args:
            card: The card about to be rated.
            now: The date and time of the review. Defaults to the current time.

        Returns:
            dict[Rating, float]: The would-be interval for every rating.
        """

        now = self._resolve_now(now)

        return {
            rating: self.schedule_card(card=card, rating=rating, now=now).interval
            for rating in Rating
        }

    def review_card(
        self,
        card: Card,
        rating: Rating | int,
        reviewed_at: datetime | None = None,
        time_spent: int | None = None,
    ) -> tuple[Card, ReviewRecord]:
        """
        Commits a rating: schedules the card and describes the review for the caller's history.

        Args:
            card: The card being reviewed.
            rating: The chosen rating for the card being reviewed.
            reviewed_at: The date and time of the review. Defaults to the current time.
            time_spent: Milliseconds the user spent on the card, if measured.

        Returns:
            tuple[Card, ReviewRecord]: The replacement card and the history entry.

        Raises:
            ValueError: If the rating or the card's state is invalid, or `reviewed_at` is not timezone-aware UTC.
        """

        result = self.schedule_card(card=card, rating=rating, now=reviewed_at)

        review_record = ReviewRecord(
            card_id=card.card_id,
            rating=Rating(rating),
            reviewed_at=result.last_review,
            time_spent=time_spent,
            previous_state=card.state,
            new_state=result.state,
        )

        return result.apply_to(card), review_record

    def to_dict(
        self,
    ) -> SchedulerDict:
        """
        Returns a dictionary representation of the Scheduler object.

        Returns:
            SchedulerDict: A dictionary representation of the Scheduler object.
        """

        return {
            "parameters": list(self.parameters),
            "decay": self.decay,
            "desired_retention": self.desired_retention,
            "learning_steps": [
                int(learning_step.total_seconds())
                for learning_step in self.learning_steps
            ],
            "relearning_steps": [
                int(relearning_step.total_seconds())
                for relearning_step in self.relearning_steps
            ],
            "hard_interval_factor": self.hard_interval_factor,
            "easy_interval_factor": self.easy_interval_factor,
            "maximum_interval": self.maximum_interval,
        }

    @classmethod
    def from_dict(cls, source_dict: SchedulerDict) -> Self:
        """
        Creates a Scheduler object from an existing dictionary.

        Args:
            source_dict: A dictionary representing an existing Scheduler object.

        Returns:
            Self: A Scheduler object created from the provided dictionary.
        """

        return cls(
            parameters=source_dict["parameters"],
            decay=source_dict["decay"],
            desired_retention=source_dict["desired_retention"],
            learning_steps=[
                timedelta(seconds=learning_step)
                for learning_step in source_dict["learning_steps"]
            ],
            relearning_steps=[
                timedelta(seconds=relearning_step)
                for relearning_step in source_dict["relearning_steps"]
            ],
            hard_interval_factor=source_dict["hard_interval_factor"],
            easy_interval_factor=source_dict["easy_interval_factor"],
            maximum_interval=source_dict["maximum_interval"],
        )

    def to_json(self, indent: int | str | None = None) -> str:
        """
        Returns a JSON-serialized string of the Scheduler object.

        Args:
            indent: Equivalent argument to the indent in json.dumps()

        Returns:
            str: A JSON-serialized string of the Scheduler object.
        """

        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, source_json: str) -> Self:
        source_dict: SchedulerDict = json.loads(source_json)
        return cls.from_dict(source_dict=source_dict)

    def _validate_rating(self, rating: Rating | int) -> Rating:
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise ValueError(
                f"rating must be one of {[int(r) for r in Rating]}, got {rating!r}"
            )
        if rating not in tuple(Rating):
            raise ValueError(
                f"rating must be one of {[int(r) for r in Rating]}, got {rating}"
            )

        return Rating(rating)

    def _resolve_now(self, now: datetime | None) -> datetime:
        if now is None:
            return datetime.now(timezone.utc)

        if now.tzinfo is None or now.tzinfo != timezone.utc:
            raise ValueError("datetime must be timezone-aware and set to UTC")

        return now

    def _elapsed_days(self, *, card: Card, now: datetime) -> float:
        if card.last_review is None:
            return 0.0

        return max((now - card.last_review) / ONE_DAY, 0.0)

    def _current_memory_state(
        self, *, card: Card, rating: Rating
    ) -> tuple[float, float]:
        stability = card.stability
        difficulty = card.difficulty

        # zero or missing values come from legacy records
        if not stability:
            stability = self._initial_stability(rating=rating)
            logger.debug(
                "card %s: unset stability replaced with %s", card.card_id, stability
            )
        if not difficulty:
            difficulty = self._initial_difficulty(rating=rating)
            logger.debug(
                "card %s: unset difficulty replaced with %s", card.card_id, difficulty
            )

        return stability, self._clamp_difficulty(difficulty=difficulty)

    def _clamp_difficulty(self, *, difficulty: float) -> float:
        return min(max(difficulty, MIN_DIFFICULTY), MAX_DIFFICULTY)

    def _initial_stability(self, *, rating: Rating) -> float:
        return max(self.parameters[rating - 1], STABILITY_MIN)

    def _initial_difficulty(self, *, rating: Rating) -> float:
        initial_difficulty = (
            self.parameters[4] - (math.e ** (self.parameters[5] * (rating - 1))) + 1
        )

        return self._clamp_difficulty(difficulty=initial_difficulty)

    def _retrievability(self, *, elapsed_days: float, stability: float) -> float:
        return (1 + self._FACTOR * elapsed_days / stability) ** self._DECAY

    def _next_difficulty(self, *, difficulty: float, rating: Rating) -> float:
        next_difficulty = (
            self.parameters[7] * self._initial_difficulty(rating=Rating.Good)
            + (1 - self.parameters[7])
            * (difficulty - self.parameters[6] * (rating - 3))
        )

        return self._clamp_difficulty(difficulty=next_difficulty)

    def _short_term_stability(self, *, stability: float, rating: Rating) -> float:
        # a 17-weight vector carries no short-term weights: stability is kept as is
        if len(self.parameters) < EXTENDED_PARAMETER_COUNT:
            return stability

        return stability * (
            math.e ** (self.parameters[17] * (rating - 3 + self.parameters[18]))
        )

    def _next_recall_stability(
        self,
        *,
        difficulty: float,
        stability: float,
        retrievability: float,
        rating: Rating,
    ) -> float:
        hard_penalty = self.parameters[15] if rating == Rating.Hard else 1
        easy_bonus = self.parameters[16] if rating == Rating.Easy else 1

        return stability * (
            1
            + (math.e ** (self.parameters[8]))
            * (11 - difficulty)
            * (stability ** -self.parameters[9])
            * ((math.e ** ((1 - retrievability) * self.parameters[10])) - 1)
            * hard_penalty
            * easy_bonus
        )

    def _next_forget_stability(
        self, *, difficulty: float, stability: float, retrievability: float
    ) -> float:
        next_forget_stability = (
            self.parameters[11]
            * (difficulty ** -self.parameters[12])
            * (((stability + 1) ** (self.parameters[13])) - 1)
            * (math.e ** ((1 - retrievability) * self.parameters[14]))
        )

        # forgetting never strengthens a memory
        return min(next_forget_stability, stability)

    def _next_interval(
        self, *, state: State, rating: Rating, stability: float
    ) -> timedelta:
        match state:
            case State.Learning:
                steps = self.learning_steps
            case State.Relearning:
                steps = self.relearning_steps
            case State.Review:
                return timedelta(
                    days=self._next_review_interval(stability=stability, rating=rating)
                )
            case _:
                raise ValueError(f"no interval is defined for state {state!r}")

        # Good and Easy always leave the learning states, so only Again and Hard get here
        if rating == Rating.Again:
            return steps[0]

        return steps[-1]

    def _next_review_interval(self, *, stability: float, rating: Rating) -> int:
        next_interval = round_half_up(
            (stability / self._FACTOR)
            * ((self.desired_retention ** (1 / self._DECAY)) - 1)
        )

        match rating:
            case Rating.Hard:
                next_interval = max(
                    round_half_up(next_interval * self.hard_interval_factor), 1
                )
            case Rating.Easy:
                next_interval = round_half_up(
                    next_interval * self.easy_interval_factor
                )

        # must be at least 1 day long
        next_interval = max(next_interval, 1)

        # can not be longer than the maximum interval
        next_interval = min(next_interval, self.maximum_interval)

        return next_interval

    def _ease(self, *, difficulty: float) -> float:
        return max(MIN_EASE, BASE_EASE - (difficulty - 1) * EASE_PER_DIFFICULTY)


__all__ = ["Scheduler", "SchedulingResult", "round_half_up"]
