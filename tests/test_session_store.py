import pytest

from conftest import FakeScheduler
from features.fingerprint_cache import FingerprintCache
from features.session_store import InMemorySessionStore, SessionConflictError


@pytest.fixture
def jobs():
    return FakeScheduler()


def test_create_rejects_duplicates(sessions):
    session = sessions.create("u1", ["carrot"])

    with pytest.raises(SessionConflictError):
        sessions.create("u1", [])
    assert sessions.get("u1") is session


def test_destroy_cancels_timer_and_runs_hooks(sessions, jobs):
    destroyed = []
    sessions.on_destroy(destroyed.append)
    session = sessions.create("u1", [])
    job = jobs.add_job(print, trigger="date", id="session:u1:1")
    sessions.set_timer("u1", job)

    assert sessions.destroy("u1") is True

    assert job.removed
    assert session.is_cancelled
    assert session.timer is None
    assert destroyed == ["u1"]
    assert sessions.destroy("u1") is False


def test_destroy_with_expected_ignores_newer_session(sessions):
    old = sessions.create("u1", [])
    sessions.destroy("u1")
    new = sessions.create("u1", [])

    assert sessions.destroy("u1", expected=old) is False
    assert sessions.get("u1") is new


def test_set_timer_cancels_previous_handle(sessions, jobs):
    sessions.create("u1", [])
    first = jobs.add_job(print, trigger="date", id="session:u1:1")
    second = jobs.add_job(print, trigger="date", id="session:u1:2")

    sessions.set_timer("u1", first)
    sessions.set_timer("u1", second)

    assert first.removed
    assert not second.removed
    assert sessions.get("u1").timer is second


def test_set_timer_without_session_cancels_handle(sessions, jobs):
    job = jobs.add_job(print, trigger="date", id="session:ghost:1")

    assert sessions.set_timer("ghost", job) is False
    assert job.removed


def test_expired_uses_idle_time(sessions, clock):
    sessions.create("old", [])
    clock.advance(31 * 60)
    sessions.create("new", [])

    assert [session.user_id for session in sessions.expired(30 * 60)] == ["old"]

    sessions.touch("old")
    assert sessions.expired(30 * 60) == []


def test_teardown_hook_failure_does_not_block_destroy(sessions):
    def broken(user_id):
        raise RuntimeError("hook failed")

    sessions.on_destroy(broken)
    sessions.create("u1", [])

    assert sessions.destroy("u1") is True
    assert "u1" not in sessions


def test_clear_destroys_everything(clock):
    store = InMemorySessionStore(clock=clock)
    cache = FingerprintCache()
    store.on_destroy(cache.discard)
    for user_id in ("a", "b", "c"):
        store.create(user_id, [])
        cache.set(user_id, "digest")

    assert store.clear() == 3
    assert len(store) == 0
    assert len(cache) == 0


class TestFingerprintCache:
    def test_pending_clear_is_flagged_once(self):
        cache = FingerprintCache()
        assert cache.mark_clear_pending("u1") is True
        assert cache.mark_clear_pending("u1") is False

        cache.discard("u1")
        assert cache.is_clear_pending("u1") is False

    def test_prune_drops_users_without_sessions(self):
        cache = FingerprintCache()
        cache.set("a", "1")
        cache.set("b", "2")
        cache.mark_clear_pending("b")

        assert cache.prune(["a"]) == ["b"]
        assert "a" in cache
        assert "b" not in cache
        assert not cache.is_clear_pending("b")
