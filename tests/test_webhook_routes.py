import pytest

from app import create_app
from features.command_dispatcher import CommandDispatcher
from features.webhook_handler import WebhookHandler


@pytest.fixture
def dispatcher(tracker, notifier, auth, rate_limiter, config):
    return CommandDispatcher(tracker, notifier, auth, rate_limiter, config)


@pytest.fixture
def client(config, tracker, dispatcher, scheduler):
    components = {
        "scheduler": scheduler,
        "stock_tracker": tracker,
        "command_dispatcher": dispatcher,
        "webhook_handler": WebhookHandler(dispatcher, config.VERIFY_TOKEN),
    }
    app = create_app(config, components=components, start_scheduler=False)
    app.config["TESTING"] = True
    return app.test_client()


def message_event(sender_id="u1", text="help", **message):
    message.setdefault("text", text)
    return {
        "object": "page",
        "entry": [{"id": "page", "messaging": [{"sender": {"id": sender_id}, "message": message}]}],
    }


class TestVerification:
    def test_matching_token_echoes_challenge(self, client):
        response = client.get(
            "/webhook",
            query_string={"hub.mode": "subscribe", "hub.verify_token": "verify-me", "hub.challenge": "12345"},
        )
        assert response.status_code == 200
        assert response.get_data(as_text=True) == "12345"

    def test_wrong_token_is_forbidden(self, client):
        response = client.get(
            "/webhook",
            query_string={"hub.mode": "subscribe", "hub.verify_token": "nope", "hub.challenge": "12345"},
        )
        assert response.status_code == 403

    def test_missing_parameters(self, client):
        response = client.get("/webhook", query_string={"hub.mode": "subscribe"})
        assert response.status_code == 400


class TestEvents:
    def test_text_message_is_dispatched(self, client, notifier):
        response = client.post("/webhook", json=message_event(text="help"))

        assert response.status_code == 200
        assert response.get_data(as_text=True) == "EVENT_RECEIVED"
        assert notifier.send_message.call_args.args[0] == "u1"

    def test_quick_reply_payload_is_dispatched(self, client, notifier):
        event = message_event(text="Weather", quick_reply={"payload": "WEATHER_INFO"})
        client.post("/webhook", json=event)
        assert "weather" in notifier.send_message.call_args.args[1].lower()

    def test_non_page_object_is_not_found(self, client):
        response = client.post("/webhook", json={"object": "user", "entry": []})
        assert response.status_code == 404

    def test_missing_entry_list_is_bad_request(self, client):
        response = client.post("/webhook", json={"object": "page", "entry": "oops"})
        assert response.status_code == 400

    def test_echo_and_senderless_events_are_skipped(self, client, notifier):
        client.post("/webhook", json=message_event(text="help", is_echo=True))
        client.post(
            "/webhook",
            json={"object": "page", "entry": [{"messaging": [{"message": {"text": "help"}}]}]},
        )
        notifier.send_message.assert_not_called()

    def test_dispatch_error_still_acknowledges(self, client, dispatcher, monkeypatch):
        def explode(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(dispatcher, "handle_message", explode)
        response = client.post("/webhook", json=message_event())
        assert response.status_code == 200


class TestBackgroundDispatch:
    @pytest.fixture
    def queued_client(self, config, tracker, dispatcher, scheduler):
        components = {
            "scheduler": scheduler,
            "stock_tracker": tracker,
            "command_dispatcher": dispatcher,
            "webhook_handler": WebhookHandler(dispatcher, config.VERIFY_TOKEN, scheduler=scheduler),
        }
        app = create_app(config, components=components, start_scheduler=False)
        app.config["TESTING"] = True
        return app.test_client()

    def test_acknowledges_before_the_command_runs(self, queued_client, scheduler, stock_client, notifier):
        response = queued_client.post("/webhook", json=message_event(text="gagstock on"))

        assert response.status_code == 200
        assert response.get_data(as_text=True) == "EVENT_RECEIVED"
        assert stock_client.calls == 0
        notifier.send_message.assert_not_called()

        [job] = scheduler.pending("message:u1:")
        job.fire()

        assert stock_client.calls == 1
        assert "u1" in queued_client.application.stock_tracker.sessions

    def test_queued_dispatch_error_is_logged_not_raised(self, queued_client, scheduler, dispatcher, monkeypatch):
        def explode(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(dispatcher, "handle_message", explode)
        assert queued_client.post("/webhook", json=message_event()).status_code == 200

        scheduler.pending("message:")[0].fire()


class TestHealth:
    def test_reports_sessions_and_status(self, client, tracker):
        tracker.open_session("u1", [])

        response = client.get("/health")

        assert response.status_code == 200
        body = response.get_json()
        assert body["status"] == "healthy"
        assert body["version"] == "3.1.0"
        assert body["active_sessions"] == 1
        assert body["bot_online"] is True
        assert body["uptime_seconds"] >= 0

    def test_unknown_route_returns_json_404(self, client):
        response = client.get("/nope")
        assert response.status_code == 404
        assert response.get_json() == {"error": "Not Found"}
