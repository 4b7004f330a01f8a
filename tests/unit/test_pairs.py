from swipematch.core.pairs import canonical_pair, match_id, pair_key


def test_canonical_pair_is_order_independent():
    assert canonical_pair("b", "a") == ("a", "b")
    assert canonical_pair("a", "b") == ("a", "b")


def test_pair_key_same_for_both_orders():
    assert pair_key("uid-bob", "uid-alice") == pair_key("uid-alice", "uid-bob") == "uid-alice_uid-bob"


def test_match_id_includes_item():
    assert match_id("u2", "u1", "hike-1") == "u1_u2_hike-1"
    assert match_id("u1", "u2", "hike-1") != match_id("u1", "u2", "hike-2")
