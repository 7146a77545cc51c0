"""
Lead score points awarded when an activity is logged.

Higher-engagement activities (outbound call, meeting, NDA) earn more points,
and emails showing a client reply get a bonus.
"""

import logging
import re
from typing import Dict

logger = logging.getLogger(__name__)

BASE_POINTS: Dict[str, int] = {
    "call": 6,       # outbound call done
    "email": 3,      # email sent / received
    "meeting": 10,   # meeting held
    "note": 1,       # general note
    "whatsapp": 5,   # WhatsApp message / conversation
    "nda": 8,        # NDA sent or received
}

CLIENT_REPLY_BONUS = 8
CLIENT_REPLY_KEYWORDS = re.compile(
    r"replied|reply|responded|response|interested|confirmed|agreed|scheduled|booked",
    re.IGNORECASE,
)

ACTIVITY_SCORE_MIN = 0
ACTIVITY_SCORE_MAX = 100


def get_activity_score_points(activity_type: str, description: str = "") -> int:
    """Points to add to lead_score for a newly logged activity."""
    base = BASE_POINTS.get(activity_type, 1)
    if activity_type == "email" and CLIENT_REPLY_KEYWORDS.search(description or ""):
        return base + CLIENT_REPLY_BONUS
    return base


def clamp_lead_score(score: float) -> int:
    return max(ACTIVITY_SCORE_MIN, min(ACTIVITY_SCORE_MAX, int(round(score))))


def record_activity_score(store, lead_id: str, activity_type: str, description: str = "") -> int:
    """
    Bump a stored lead's score for a logged activity.

    Args:
        store: Lead store exposing increment_lead_score
        lead_id: Lead to update
        activity_type: call, email, meeting, note, whatsapp or nda
        description: Activity text, checked for client-reply keywords

    Returns:
        The new, clamped score
    """
    points = get_activity_score_points(activity_type, description)
    # Read, add and clamp happen in one statement on the store side
    score = store.increment_lead_score(lead_id, points)

    logger.debug("Lead %s score +%d -> %d (%s)", lead_id, points, score, activity_type)
    return score
