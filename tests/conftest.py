from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import MagicMock

import pytest
import pytz
from apscheduler.jobstores.base import JobLookupError

from features.fingerprint_cache import FingerprintCache
from features.session_store import InMemorySessionStore
from features.stock_tracker import StockTracker
from services.auth_service import AuthService
from utils.config import Config
from utils.rate_limiter import UserRateLimiter
from utils.stock_client import StockFetchError

MANILA = pytz.timezone("Asia/Manila")


class FakeJob:
    def __init__(self, scheduler: "FakeScheduler", func: Callable, kwargs: Dict[str, Any]):
        self.scheduler = scheduler
        self.func = func
        self.id = kwargs.get("id")
        self.trigger = kwargs.get("trigger")
        self.run_date = kwargs.get("run_date")
        self.args = kwargs.get("args") or []
        self.removed = False

    def remove(self) -> None:
        if self.removed:
            raise JobLookupError(self.id)
        self.removed = True

    def fire(self) -> None:
        # One-shot jobs leave the job store before they run
        self.removed = True
        self.func(*self.args)


class FakeScheduler:
    """Records jobs instead of running them."""

    def __init__(self) -> None:
        self.jobs: List[FakeJob] = []
        self.running = False

    def add_job(self, func=None, trigger=None, **kwargs) -> FakeJob:
        kwargs["trigger"] = trigger
        job = FakeJob(self, func, kwargs)
        self.jobs.append(job)
        return job

    def pending(self, prefix: str = "") -> List[FakeJob]:
        return [job for job in self.jobs if not job.removed and (job.id or "").startswith(prefix)]


class StubStockClient:
    """Returns queued snapshots or raises queued errors."""

    def __init__(self, snapshot: Optional[dict] = None) -> None:
        self.snapshot = snapshot
        self.error: Optional[Exception] = None
        self.calls = 0
        self.on_fetch: Optional[Callable[[], None]] = None

    def fetch_snapshot(self) -> dict:
        self.calls += 1
        if self.on_fetch is not None:
            self.on_fetch()
        if self.error is not None:
            raise self.error
        return self.snapshot

    def fetch_all_items(self) -> list:
        if self.error is not None:
            raise self.error
        return [item for cat in ("gear", "seed", "egg", "cosmetics", "honey") for item in self.snapshot[cat]]


def make_snapshot(gear=None, seed=None, egg=None, cosmetics=None, honey=None, weather=None) -> dict:
    def items(pairs):
        return [{"name": name, "value": value} for name, value in (pairs or [])]

    return {
        "gear": items(gear if gear is not None else [("Trowel", 5), ("Watering Can", 3)]),
        "seed": items(seed if seed is not None else [("Carrot", 10), ("Strawberry", 2)]),
        "egg": items(egg if egg is not None else [("Common Egg", 1)]),
        "cosmetics": items(cosmetics),
        "honey": items(honey),
        "weather": weather
        or {
            "current_weather": "Sunny",
            "icon": "☀️",
            "crop_bonuses": "None",
            "updated_at": "2025-06-01T02:00:00Z",
        },
    }


class FakeClock:
    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def config(monkeypatch):
    for name in ("PAGE_ACCESS_TOKEN", "VERIFY_TOKEN", "ADMIN_USER_ID", "VOICE_MESSAGE_URL"):
        monkeypatch.delenv(name, raising=False)
    cfg = Config(validate=False)
    cfg.PAGE_ACCESS_TOKEN = "page-token"
    cfg.VERIFY_TOKEN = "verify-me"
    cfg.ADMIN_USER_ID = "admin1"
    return cfg


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def notifier():
    mock = MagicMock()
    mock.send_message.return_value = True
    mock.send_typing.return_value = True
    mock.send_audio.return_value = True
    mock.get_first_name.return_value = "Tester"
    return mock


@pytest.fixture
def stock_client():
    return StubStockClient(make_snapshot())


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sessions(clock):
    return InMemorySessionStore(clock=clock)


@pytest.fixture
def fingerprints():
    return FingerprintCache()


@pytest.fixture
def now():
    return MANILA.localize(datetime(2025, 6, 1, 10, 2, 10))


@pytest.fixture
def tracker(sessions, fingerprints, stock_client, notifier, scheduler, config, now):
    return StockTracker(
        sessions=sessions,
        fingerprints=fingerprints,
        stock_client=stock_client,
        notification_service=notifier,
        scheduler=scheduler,
        config=config,
        now=lambda: now,
    )


@pytest.fixture
def auth():
    return AuthService(admin_user_id="admin1")


@pytest.fixture
def rate_limiter(clock):
    return UserRateLimiter(max_requests=10, window_seconds=60, clock=clock)


@pytest.fixture
def fetch_error():
    return StockFetchError("Network error for stock", url="http://stock")
