import pytest

from swipematch.core.errors import InvalidOperation, TransientStoreFailure
from swipematch.db.utils.session_management import with_retry


async def test_retries_transient_failures_until_success():
    calls = []

    @with_retry(max_attempts=3, base_delay=0, max_delay=0)
    async def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise TransientStoreFailure("store unavailable")
        return "done"

    assert await flaky() == "done"
    assert len(calls) == 3


async def test_gives_up_after_max_attempts():
    calls = []

    @with_retry(max_attempts=2, base_delay=0, max_delay=0)
    async def always_failing():
        calls.append(1)
        raise TransientStoreFailure("store unavailable")

    with pytest.raises(TransientStoreFailure):
        await always_failing()
    assert len(calls) == 2


async def test_does_not_retry_protocol_errors():
    calls = []

    @with_retry(max_attempts=3, base_delay=0, max_delay=0)
    async def invalid():
        calls.append(1)
        raise InvalidOperation("nope")

    with pytest.raises(InvalidOperation):
        await invalid()
    assert len(calls) == 1


async def test_uses_settings_defaults(fast_retries, monkeypatch):
    monkeypatch.setattr(fast_retries, "STORE_RETRY_ATTEMPTS", 4)
    calls = []

    @with_retry()
    async def always_failing():
        calls.append(1)
        raise TransientStoreFailure("store unavailable")

    with pytest.raises(TransientStoreFailure):
        await always_failing()
    assert len(calls) == 4
