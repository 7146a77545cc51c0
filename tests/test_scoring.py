from unittest.mock import MagicMock

import pytest

from database import LeadStoreError
from leads.scoring import clamp_lead_score, get_activity_score_points, record_activity_score


@pytest.mark.parametrize(
    "activity_type, expected",
    [("call", 6), ("email", 3), ("meeting", 10), ("note", 1), ("whatsapp", 5), ("nda", 8), ("fax", 1)],
)
def test_base_points(activity_type, expected):
    assert get_activity_score_points(activity_type, "sent intro") == expected


def test_email_reply_bonus():
    assert get_activity_score_points("email", "Client REPLIED asking for pricing") == 11
    # Bonus only applies to emails
    assert get_activity_score_points("call", "they replied") == 6


def test_clamp_lead_score():
    assert clamp_lead_score(120) == 100
    assert clamp_lead_score(-4) == 0
    assert clamp_lead_score(42.4) == 42


def test_record_activity_score_updates_store(make_store):
    store = make_store()
    store.scores = {"lead-1": 95, "lead-2": None}

    assert record_activity_score(store, "lead-1", "meeting") == 100
    assert record_activity_score(store, "lead-2", "email", "interested, booked a demo") == 11
    assert store.scores == {"lead-1": 100, "lead-2": 11}


def test_record_activity_score_unknown_lead(make_store):
    with pytest.raises(LeadStoreError):
        record_activity_score(make_store(), "missing", "call")


def test_record_activity_score_sends_points_to_the_store():
    store = MagicMock()
    store.increment_lead_score.return_value = 61

    assert record_activity_score(store, "lead-1", "email", "they replied") == 61
    store.increment_lead_score.assert_called_once_with("lead-1", 11)
    store.get_lead_score.assert_not_called()
