import pytest

from swipematch.core.errors import InvalidOperation, NotFound
from swipematch.db.repositories import match_repo, swipe_repo
from swipematch.matching import (
    delete_swipe,
    get_unswiped_items,
    get_user_swipes,
    list_swipes,
    record_swipe,
    reset_all_swipes,
)


@pytest.mark.swipes
async def test_record_swipe(test_session, alice):
    swipe = await record_swipe(test_session, alice.id, "hike-1", "hikes", True)

    assert swipe.user_id == alice.id
    assert swipe.liked is True
    assert await list_swipes(test_session, alice.id) == ["hike-1"]


@pytest.mark.swipes
async def test_second_swipe_replaces_first(test_session, alice):
    await record_swipe(test_session, alice.id, "hike-1", "hikes", True)
    await record_swipe(test_session, alice.id, "hike-1", "hikes", False)

    swipes = await get_user_swipes(test_session, alice.id)
    assert len(swipes) == 1
    assert swipes[0].liked is False


@pytest.mark.swipes
async def test_get_user_swipes_filters_by_category(test_session, alice):
    await record_swipe(test_session, alice.id, "hike-1", "hikes", True)
    await record_swipe(test_session, alice.id, "movie-1", "movies", False)

    hikes = await get_user_swipes(test_session, alice.id, "hikes")
    assert [s.item_id for s in hikes] == ["hike-1"]


@pytest.mark.swipes
async def test_swipe_for_unknown_user(test_session):
    with pytest.raises(NotFound):
        await record_swipe(test_session, "uid-nobody", "hike-1", "hikes", True)


@pytest.mark.swipes
async def test_swipe_in_unknown_category(test_session, alice):
    with pytest.raises(InvalidOperation):
        await record_swipe(test_session, alice.id, "book-1", "books", True)


@pytest.mark.swipes
async def test_delete_swipe_keeps_matches(test_session, alice, bob):
    await record_swipe(test_session, alice.id, "hike-1", "hikes", True)
    await record_swipe(test_session, bob.id, "hike-1", "hikes", True)

    assert await delete_swipe(test_session, alice.id, "hike-1") is True
    assert await delete_swipe(test_session, alice.id, "hike-1") is False

    assert await list_swipes(test_session, alice.id) == []
    assert len(await match_repo.get_matches_for_user(test_session, alice.id)) == 1


@pytest.mark.swipes
async def test_get_unswiped_items(test_session, alice, catalog):
    await record_swipe(test_session, alice.id, "hike-1", "hikes", True)
    await record_swipe(test_session, alice.id, "hike-2", "hikes", False)

    items = await get_unswiped_items(test_session, alice.id, "hikes", catalog)
    assert [item["id"] for item in items] == ["hike-3"]


@pytest.mark.swipes
async def test_reset_all_swipes(test_session, alice, bob, carol):
    await record_swipe(test_session, alice.id, "hike-1", "hikes", True)
    await record_swipe(test_session, bob.id, "hike-1", "hikes", True)
    await record_swipe(test_session, carol.id, "hike-1", "hikes", True)
    await record_swipe(test_session, alice.id, "movie-1", "movies", False)

    swipes_deleted, matches_deleted = await reset_all_swipes(test_session, alice.id)

    assert swipes_deleted == 2
    assert matches_deleted == 2
    assert await list_swipes(test_session, alice.id) == []
    # Bob and Carol keep their own swipes and their match
    assert await swipe_repo.list_item_ids(test_session, bob.id) == ["hike-1"]
    remaining = await match_repo.get_matches_for_item(test_session, "hike-1")
    assert [m.user_ids for m in remaining] == [[bob.id, carol.id]]
