from .catalog import Catalog, StaticCatalog
from .swipe_ledger import (
    record_swipe,
    list_swipes,
    get_user_swipes,
    delete_swipe,
    get_unswiped_items,
    reset_all_swipes,
)
from .match_detector import MatchView, detect_matches, get_user_matches
from .connections import (
    SendOutcome,
    SendResult,
    send_request,
    send_request_by_username,
    accept_request,
    reject_request,
    remove_connection,
    get_connections,
    is_connected,
    get_sent_requests,
    get_received_requests,
)
from .resets import (
    ResetOutcome,
    ResetSendResult,
    ResetSummary,
    send_reset_request,
    accept_reset_request,
    reject_reset_request,
    get_sent_reset_requests,
    get_received_reset_requests,
)

__all__ = [
    "Catalog",
    "StaticCatalog",
    "record_swipe",
    "list_swipes",
    "get_user_swipes",
    "delete_swipe",
    "get_unswiped_items",
    "reset_all_swipes",
    "MatchView",
    "detect_matches",
    "get_user_matches",
    "SendOutcome",
    "SendResult",
    "send_request",
    "send_request_by_username",
    "accept_request",
    "reject_request",
    "remove_connection",
    "get_connections",
    "is_connected",
    "get_sent_requests",
    "get_received_requests",
    "ResetOutcome",
    "ResetSendResult",
    "ResetSummary",
    "send_reset_request",
    "accept_reset_request",
    "reject_reset_request",
    "get_sent_reset_requests",
    "get_received_reset_requests",
]
