from .base import BaseRepository
from .user import user_repo
from .swipe_repo import swipe_repo
from .connection_repo import connection_repo
from .request_repo import connection_request_repo, reset_request_repo
from . import match_repo

__all__ = [
    "BaseRepository",
    "user_repo",
    "swipe_repo",
    "connection_repo",
    "connection_request_repo",
    "reset_request_repo",
    "match_repo",
]
