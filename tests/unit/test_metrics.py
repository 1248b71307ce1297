"""Tests for run counters and the Pushgateway hand-off."""

from __future__ import annotations

from unittest.mock import patch

from resealer.kube.gateway import RateLimitedGateway
from resealer.kube.ratelimit import TokenBucket
from resealer.observability.metrics import REGISTRY, push_metrics

from tests.factories import FakeCluster, make_sealed_secret


def _sample(name: str, **labels: str) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestRateLimitedGateway:
    async def test_requests_are_counted_by_verb(self) -> None:
        inner = FakeCluster()
        inner.add_sealed_secret(make_sealed_secret("team", "db-creds", {"k": "v"}))
        gateway = RateLimitedGateway(inner, TokenBucket(rate=1000.0, burst=100))
        before_get = _sample("resealer_api_requests_total", verb="get")
        before_list = _sample("resealer_api_requests_total", verb="list")

        await gateway.get_sealed_secret("team", "db-creds")
        await gateway.read_secret("team", "db-creds")
        await gateway.list_sealed_secrets(None, None, 10, None)

        assert _sample("resealer_api_requests_total", verb="get") == before_get + 2
        assert _sample("resealer_api_requests_total", verb="list") == before_list + 1

    async def test_close_reaches_inner_gateway(self) -> None:
        inner = FakeCluster()
        await RateLimitedGateway(inner, TokenBucket(rate=1.0, burst=1)).close()
        assert inner.closed


class TestPushMetrics:
    def test_no_gateway_configured(self) -> None:
        assert push_metrics("", "resealer") is False

    def test_push_success(self) -> None:
        with patch("resealer.observability.metrics.push_to_gateway") as push:
            assert push_metrics("pushgateway:9091", "resealer") is True
        push.assert_called_once_with("pushgateway:9091", job="resealer", registry=REGISTRY)

    def test_unreachable_gateway_is_not_fatal(self) -> None:
        with patch("resealer.observability.metrics.push_to_gateway", side_effect=OSError("connection refused")):
            assert push_metrics("pushgateway:9091", "resealer") is False
