"""Tests for the match notification."""

import httpx
import pytest

import notifier


class TestNotifyNewMatch:

    def test_skipped_without_webhook(self, monkeypatch):
        def fail(*args, **kwargs):
            raise AssertionError("no request expected")

        monkeypatch.setattr(notifier, "PUSH_WEBHOOK_URL", "")
        monkeypatch.setattr(notifier.httpx, "post", fail)
        notifier.notify_new_match("alice", "m1", "Bob")

    def test_posts_to_webhook(self, monkeypatch):
        sent = {}

        def fake_post(url, json=None, timeout=None):
            sent.update(url=url, json=json)
            return httpx.Response(200, request=httpx.Request("POST", url))

        monkeypatch.setattr(notifier, "PUSH_WEBHOOK_URL", "https://push.example/send")
        monkeypatch.setattr(notifier.httpx, "post", fake_post)
        notifier.notify_new_match("alice", "m1", "Bob")

        assert sent["url"] == "https://push.example/send"
        assert sent["json"]["to"] == "alice"
        assert sent["json"]["data"] == {"type": "match", "match_id": "m1"}
        assert "Bob" in sent["json"]["body"]

    def test_gateway_error_raises(self, monkeypatch):
        def fake_post(url, json=None, timeout=None):
            return httpx.Response(503, request=httpx.Request("POST", url))

        monkeypatch.setattr(notifier, "PUSH_WEBHOOK_URL", "https://push.example/send")
        monkeypatch.setattr(notifier.httpx, "post", fake_post)
        with pytest.raises(httpx.HTTPStatusError):
            notifier.notify_new_match("alice", "m1", "Bob")
