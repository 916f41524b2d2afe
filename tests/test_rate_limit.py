"""Tests for per-caller rate limiting and the request access log."""

import logging

import pytest
from starlette.requests import Request

from folio.core.config import settings
from folio.middleware.request_context import TokenBucketLimiter, identify_caller, rate_limiter
from tests.conftest import auth_headers, make_user


def _request(headers: dict | None = None, client=("203.0.113.7", 5000)) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/api/documents", "headers": raw, "client": client})


class TestTokenBucketLimiter:

    def test_bucket_starts_full_and_drains(self):
        limiter = TokenBucketLimiter()
        results = [limiter.check("user:a", 3, now=10.0)[0] for _ in range(4)]
        assert results == [True, True, True, False]

    def test_retry_after_reflects_refill_rate(self):
        limiter = TokenBucketLimiter()
        limiter.check("user:a", 1, now=0.0)
        allowed, retry_after = limiter.check("user:a", 1, now=0.0)
        assert not allowed
        assert retry_after == pytest.approx(60.0)

    def test_refills_with_time(self):
        limiter = TokenBucketLimiter()
        for _ in range(60):
            limiter.check("user:a", 60, now=0.0)
        assert not limiter.check("user:a", 60, now=0.5)[0]
        assert limiter.check("user:a", 60, now=1.5)[0]

    def test_keys_have_separate_budgets(self):
        limiter = TokenBucketLimiter()
        limiter.check("user:a", 1, now=0.0)
        assert limiter.check("user:b", 1, now=0.0)[0]

    def test_non_positive_limit_disables(self):
        limiter = TokenBucketLimiter()
        assert limiter.check("ip:x", 0, now=0.0) == (True, 0.0)
        assert len(limiter) == 0

    def test_idle_buckets_swept(self):
        limiter = TokenBucketLimiter(sweep_every=2, idle_seconds=10.0)
        limiter.check("user:old", 5, now=0.0)
        limiter.check("user:new", 5, now=100.0)
        assert len(limiter) == 1


class TestIdentifyCaller:

    def test_valid_token_keys_by_subject(self):
        caller = identify_caller(_request(auth_headers("usr-alice")))
        assert caller.key == "user:usr-alice"
        assert caller.user_id == "usr-alice"
        assert caller.per_minute == settings.rate_limit_per_minute

    def test_same_user_shares_budget_across_addresses(self):
        a = identify_caller(_request(auth_headers("usr-alice"), client=("198.51.100.1", 1)))
        b = identify_caller(_request(auth_headers("usr-alice"), client=("198.51.100.2", 1)))
        assert a.key == b.key

    def test_forged_token_falls_back_to_address(self):
        caller = identify_caller(_request({"Authorization": "Bearer not.a.token"}))
        assert caller.key == "ip:203.0.113.7"
        assert caller.user_id is None
        assert caller.per_minute == settings.anonymous_rate_limit_per_minute

    def test_forwarded_for_wins_over_peer(self):
        caller = identify_caller(_request({"X-Forwarded-For": "192.0.2.9, 10.0.0.1"}))
        assert caller.key == "ip:192.0.2.9"


class TestRateLimitMiddleware:

    def test_user_budget_is_per_user(self, client, db, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_per_minute", 2)
        alice = auth_headers(make_user(db, "alice").user_id)
        bob = auth_headers(make_user(db, "bob").user_id)

        statuses = [client.get("/api/users/me", headers=alice).status_code for _ in range(3)]
        assert statuses == [200, 200, 429]
        assert client.get("/api/users/me", headers=bob).status_code == 200

    def test_anonymous_budget_is_separate(self, client, monkeypatch):
        monkeypatch.setattr(settings, "anonymous_rate_limit_per_minute", 1)
        assert client.get("/api/users/me").status_code == 401
        resp = client.get("/api/users/me")
        assert resp.status_code == 429
        assert resp.json()["error"] == "RATE_LIMITED"
        assert int(resp.headers["retry-after"]) >= 1
        assert resp.headers["x-request-id"]

    def test_health_is_exempt(self, client, monkeypatch):
        monkeypatch.setattr(settings, "anonymous_rate_limit_per_minute", 1)
        for _ in range(3):
            assert client.get("/health").status_code == 200
        assert len(rate_limiter) == 0


class TestAccessLog:

    def test_logs_authenticated_user(self, client, db, caplog):
        alice = make_user(db, "alice")
        with caplog.at_level(logging.INFO, logger="folio.middleware.request_context"):
            client.get("/api/users/me", headers=auth_headers(alice.user_id))
        record = next(r for r in caplog.records if r.getMessage() == "Request completed")
        assert record.user_id == alice.user_id
        assert record.status_code == 200
        assert record.path == "/api/users/me"

    def test_propagates_request_id(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert resp.headers["x-request-id"] == "req-123"
