from swipematch.db.models.user import User
from swipematch.db.models.swipe import Swipe
from swipematch.db.models.match import Match
from swipematch.db.models.connection_request import ConnectionRequest, RequestStatus
from swipematch.db.models.connection import Connection
from swipematch.db.models.reset_request import ResetRequest

__all__ = [
    "User",
    "Swipe",
    "Match",
    "ConnectionRequest",
    "RequestStatus",
    "Connection",
    "ResetRequest",
]
