from datetime import datetime

import pytest
from apscheduler.triggers.cron import CronTrigger

from conftest import MANILA
from features.quiet_hours import QuietHours
from utils.messages import QUIET_END_MESSAGE, QUIET_START_MESSAGE


@pytest.fixture
def quiet_hours(tracker, notifier, auth, config):
    return QuietHours(tracker, notifier, auth, config)


def at(hour, minute=0):
    return MANILA.localize(datetime(2025, 6, 1, hour, minute))


@pytest.mark.parametrize(
    "moment, expected",
    [(at(0), True), (at(2, 30), True), (at(4, 59), True), (at(5), False), (at(23, 59), False)],
)
def test_default_window(quiet_hours, moment, expected):
    assert quiet_hours.is_quiet_time(moment) is expected


def test_window_wrapping_midnight(tracker, notifier, auth, config):
    config.QUIET_START = "22:00"
    config.QUIET_END = "05:00"
    quiet = QuietHours(tracker, notifier, auth, config)

    assert quiet.is_quiet_time(at(23))
    assert quiet.is_quiet_time(at(1))
    assert not quiet.is_quiet_time(at(12))


def test_go_offline_notifies_and_ends_sessions(quiet_hours, tracker, notifier, config):
    config.VOICE_MESSAGE_URL = "https://example.com/night.mp3"
    for user_id in ("a", "b"):
        tracker.sessions.create(user_id, [])

    assert quiet_hours.go_offline() == 2

    assert tracker.online is False
    assert len(tracker.sessions) == 0
    assert notifier.send_audio.call_count == 2
    notifier.send_message.assert_any_call("a", QUIET_START_MESSAGE)
    notifier.send_message.assert_any_call("b", QUIET_START_MESSAGE)


def test_go_offline_ends_session_even_when_notify_raises(quiet_hours, tracker, notifier):
    tracker.sessions.create("a", [])
    notifier.send_message.side_effect = RuntimeError("network down")

    quiet_hours.go_offline()

    assert "a" not in tracker.sessions


def test_go_online_notifies_admin(quiet_hours, tracker, notifier):
    tracker.set_online(False)

    quiet_hours.go_online()

    assert tracker.online is True
    notifier.send_message.assert_called_once_with("admin1", QUIET_END_MESSAGE)


def test_register_adds_cron_jobs(quiet_hours, scheduler, tracker):
    quiet_hours.register(scheduler)

    jobs = {job.id: job for job in scheduler.jobs}
    assert set(jobs) == {"quiet_hours_start", "quiet_hours_end"}
    assert isinstance(jobs["quiet_hours_start"].trigger, CronTrigger)
    # 10:02 is outside the window
    assert tracker.online is True


def test_register_inside_window_starts_offline(tracker, notifier, auth, config, scheduler):
    config.QUIET_START = "10:00"
    config.QUIET_END = "11:00"
    QuietHours(tracker, notifier, auth, config).register(scheduler)
    assert tracker.online is False
