from app.models.match_pair import MatchPair
from app.models.preset_aggregate import PresetAggregate
from app.models.push_subscription import PushSubscription
from app.models.sent_message import SentMessage

__all__ = [
    "MatchPair",
    "PresetAggregate",
    "PushSubscription",
    "SentMessage",
]
