from swipematch.db.base import Base, async_session_factory, get_engine, get_session, init_models

__all__ = ["Base", "async_session_factory", "get_engine", "get_session", "init_models"]
