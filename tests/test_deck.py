from fsrs_lite import Card, State, StudyStats, get_due_cards, calculate_stats

from datetime import datetime, timedelta, timezone
import pytest

NOW = datetime(2024, 3, 1, 12, 0, 0, 0, timezone.utc)


def make_card(card_id, state, due_in_days, interval=0.0, ease=2.5, reps=0, lapses=0):
    return Card(
        card_id=card_id,
        state=state,
        interval=interval,
        ease=ease,
        reps=reps,
        lapses=lapses,
        next_review=NOW + timedelta(days=due_in_days),
    )


class TestGetDueCards:
    def test_only_due_cards_are_returned(self):
        cards = [
            make_card(1, State.Review, -2),
            make_card(2, State.Review, 1),
            make_card(3, State.Learning, 0),
            make_card(4, State.Relearning, 0.001),
            make_card(5, State.New, 5),
        ]

        due_cards = get_due_cards(cards, now=NOW)

        assert {card.card_id for card in due_cards} == {1, 3}

    def test_new_cards_first_then_by_next_review(self):
        cards = [
            make_card(1, State.Review, -1),
            make_card(2, State.New, -0.5),
            make_card(3, State.Relearning, -3),
            make_card(4, State.New, -2),
            make_card(5, State.Learning, -0.1),
        ]

        due_cards = get_due_cards(cards, now=NOW)

        assert [card.card_id for card in due_cards] == [4, 2, 3, 1, 5]

    def test_ties_keep_collection_order(self):
        cards = [
            make_card(3, State.Review, -1),
            make_card(1, State.New, -1),
            make_card(2, State.Review, -1),
            make_card(4, State.New, -1),
        ]

        assert [card.card_id for card in get_due_cards(cards, now=NOW)] == [1, 4, 3, 2]
        assert [card.card_id for card in get_due_cards(cards, now=NOW)] == [1, 4, 3, 2]

    def test_empty_collection(self):
        assert get_due_cards([], now=NOW) == []

    def test_naive_next_review_is_rejected(self):
        cards = [
            make_card(1, State.Review, -1),
            Card(card_id=2, next_review=datetime(2024, 3, 1, 11)),
        ]

        with pytest.raises(ValueError, match="timezone-aware"):
            get_due_cards(cards, now=NOW)

        with pytest.raises(ValueError, match="timezone-aware"):
            calculate_stats(cards, now=NOW)

    def test_accepts_any_iterable(self):
        cards = (make_card(card_id, State.Review, -card_id) for card_id in range(3))

        due_cards = get_due_cards(cards, now=NOW)

        assert [card.card_id for card in due_cards] == [2, 1, 0]


class TestCalculateStats:
    def test_empty_collection(self):
        stats = calculate_stats([], now=NOW)

        assert stats == StudyStats()
        assert stats.total_cards == 0
        assert stats.average_ease == 0
        assert stats.average_interval == 0
        assert stats.retention_rate == 0

    def test_counts_and_averages(self):
        cards = [
            make_card(1, State.New, -1),
            make_card(2, State.New, 1),
            make_card(3, State.Learning, -1, reps=0, lapses=1),
            make_card(4, State.Relearning, 1, reps=0, lapses=2),
            make_card(5, State.Review, -1, interval=4, ease=2.2, reps=3),
            make_card(6, State.Review, 2, interval=10, ease=1.8, reps=6),
        ]

        stats = calculate_stats(cards, now=NOW)

        assert stats.total_cards == 6
        assert stats.new_cards == 2
        assert stats.learning_cards == 2
        assert stats.review_cards == 2
        assert stats.due_now == 3
        assert stats.average_ease == pytest.approx(2.0)
        assert stats.average_interval == pytest.approx(7.0)
        assert stats.total_reviews == 12
        assert stats.retention_rate == pytest.approx(9 / 12)

    def test_no_review_cards(self):
        cards = [
            make_card(1, State.New, -1),
            make_card(2, State.Learning, 1, interval=10 / 1440, ease=2.0),
        ]

        stats = calculate_stats(cards, now=NOW)

        assert stats.review_cards == 0
        assert stats.average_ease == 0
        assert stats.average_interval == 0

    def test_unknown_state(self):
        cards = [make_card(1, "review", -1)]

        with pytest.raises(ValueError):
            calculate_stats(cards, now=NOW)

    def test_to_dict(self):
        stats = calculate_stats([make_card(1, State.New, -1)], now=NOW)

        assert stats.to_dict()["new_cards"] == 1
        assert set(stats.to_dict()) == {
            "total_cards",
            "new_cards",
            "learning_cards",
            "review_cards",
            "due_now",
            "average_ease",
            "average_interval",
            "total_reviews",
            "retention_rate",
        }
