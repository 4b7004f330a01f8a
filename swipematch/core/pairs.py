"""Canonical ordering of user pairs.

Every key built from two user ids goes through ``canonical_pair`` so that
(A, B) and (B, A) always produce the same key.
"""


def canonical_pair(user_a: str, user_b: str) -> tuple[str, str]:
    """Order two user ids by string comparison."""
    return (user_a, user_b) if user_a <= user_b else (user_b, user_a)


def pair_key(user_a: str, user_b: str) -> str:
    first, second = canonical_pair(user_a, user_b)
    return f"{first}_{second}"


def match_id(user_a: str, user_b: str, item_id: str) -> str:
    """Deterministic id of the match between two users on one item."""
    return f"{pair_key(user_a, user_b)}_{item_id}"
