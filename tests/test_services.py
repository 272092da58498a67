from unittest.mock import MagicMock, patch

import pytest
import requests

from conftest import FakeScheduler
from services.auth_service import AuthService
from services.notification_service import MAX_TEXT_LENGTH, STOCK_QUICK_REPLIES, NotificationService
from utils.config import Config, parse_clock_time
from utils.scheduler import cancel_job, create_cleanup_job


class TestNotificationService:
    @pytest.fixture
    def service(self):
        return NotificationService("page-token", "https://graph.example/v19.0", timeout=10)

    def test_requires_token(self):
        with pytest.raises(ValueError):
            NotificationService("")

    @patch("services.notification_service.requests.post")
    def test_send_message_with_quick_replies(self, mock_post, service):
        assert service.send_message("u1", "hello", quick_replies=STOCK_QUICK_REPLIES) is True

        args, kwargs = mock_post.call_args
        assert args[0] == "https://graph.example/v19.0/me/messages"
        assert kwargs["params"] == {"access_token": "page-token"}
        assert kwargs["json"]["recipient"] == {"id": "u1"}
        assert kwargs["json"]["message"]["quick_replies"][0]["payload"] == "REFRESH_STOCK"
        assert kwargs["timeout"] == 10

    @patch("services.notification_service.requests.post")
    def test_long_text_is_truncated(self, mock_post, service):
        service.send_message("u1", "x" * 3000)
        assert len(mock_post.call_args.kwargs["json"]["message"]["text"]) == MAX_TEXT_LENGTH

    @patch("services.notification_service.requests.post")
    def test_send_failure_returns_false(self, mock_post, service):
        mock_post.side_effect = requests.ConnectionError("down")
        assert service.send_message("u1", "hello") is False

    @patch("services.notification_service.requests.get")
    def test_first_name_falls_back(self, mock_get, service):
        mock_get.return_value = MagicMock(json=MagicMock(return_value={"first_name": "Ana"}))
        assert service.get_first_name("u1") == "Ana"

        mock_get.side_effect = requests.Timeout("slow")
        assert service.get_first_name("u1") == "Friend"


class TestAuthService:
    def test_admin_and_grants(self):
        auth = AuthService(admin_user_id="admin1")

        assert auth.is_admin("admin1")
        assert auth.is_authorized("admin1")
        assert not auth.is_authorized("u2")

        assert auth.grant("u2") is True
        assert auth.grant("u2") is False
        assert auth.authorized_users() == ["u2"]
        assert auth.revoke("u2") is True
        assert not auth.is_authorized("u2")

    def test_no_admin_configured(self):
        auth = AuthService()
        assert not auth.is_admin("anyone")
        assert not auth.is_admin("")


class TestSchedulerUtils:
    def test_cancel_job_tolerates_missing_jobs(self):
        job = FakeScheduler().add_job(print, trigger="date", id="x")

        assert cancel_job(None) is False
        assert cancel_job(job) is True
        assert cancel_job(job) is False

    def test_cleanup_job_swallows_errors(self):
        tracker = MagicMock()
        tracker.cleanup_inactive.side_effect = RuntimeError("boom")
        limiter = MagicMock()

        create_cleanup_job(tracker, limiter)()

        tracker.cleanup_inactive.assert_called_once()

    def test_cleanup_job_prunes_rate_limits(self):
        tracker = MagicMock()
        tracker.cleanup_inactive.return_value = ["u1"]
        limiter = MagicMock()

        create_cleanup_job(tracker, limiter)()

        limiter.prune_idle.assert_called_once()


class TestConfig:
    def test_defaults(self, monkeypatch):
        for name in ("MAX_REQUESTS_PER_MINUTE", "TIMEZONE", "QUIET_HOURS_ENABLED", "PORT", "QUIET_START", "QUIET_END"):
            monkeypatch.delenv(name, raising=False)
        config = Config(validate=False)

        assert config.MAX_REQUESTS_PER_MINUTE == 10
        assert config.PORT == 1337
        assert config.QUIET_HOURS_ENABLED is True
        assert config.quiet_window == ((0, 0), (5, 0))
        assert config.timezone.zone == "Asia/Manila"

    def test_missing_tokens_fail_validation(self, monkeypatch):
        monkeypatch.delenv("PAGE_ACCESS_TOKEN", raising=False)
        monkeypatch.setenv("VERIFY_TOKEN", "v")
        with pytest.raises(ValueError, match="PAGE_ACCESS_TOKEN"):
            Config()

    def test_summary_hides_secrets(self, monkeypatch):
        monkeypatch.setenv("PAGE_ACCESS_TOKEN", "secret-token")
        monkeypatch.setenv("VERIFY_TOKEN", "v")
        summary = Config().get_config_summary()
        assert summary["PAGE_ACCESS_TOKEN"] is True
        assert "secret-token" not in str(summary)

    @pytest.mark.parametrize("value", ["25:00", "noon", "7"])
    def test_parse_clock_time_rejects_bad_values(self, value):
        with pytest.raises(ValueError):
            parse_clock_time(value)
