"""
fsrs-lite
---------

fsrs-lite is a compact spaced-repetition scheduling engine built on the FSRS memory model.
It decides how a card's stability and difficulty evolve after each review and when the card is due next.
"""

from fsrs_lite.scheduler import Scheduler, SchedulingResult
from fsrs_lite.state import State
from fsrs_lite.card import Card
from fsrs_lite.rating import Rating
from fsrs_lite.review_record import ReviewRecord
from fsrs_lite.deck import StudyStats, get_due_cards, calculate_stats
from fsrs_lite.formatting import format_interval, format_preview

__all__ = [
    "Scheduler",
    "SchedulingResult",
    "Card",
    "Rating",
    "ReviewRecord",
    "State",
    "StudyStats",
    "get_due_cards",
    "calculate_stats",
    "format_interval",
    "format_preview",
]
