"""Shared fixtures for resealer tests.

Provides session-scoped RSA key pairs for two key generations (K1 = old,
K2 = active), their KeyMaterial, an in-memory cluster serving both
certificates, and a config tuned for fast retries.
"""

from __future__ import annotations

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from resealer.models.config import RateLimitConfig, ResealerConfig, RetryConfig
from resealer.models.resources import KeyMaterial

from tests.factories import ROTATED_K1, ROTATED_K2, FakeCluster, key_material, make_cert_pem, make_private_key

# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def k1_private() -> rsa.RSAPrivateKey:
    return make_private_key()


@pytest.fixture(scope="session")
def k2_private() -> rsa.RSAPrivateKey:
    return make_private_key()


@pytest.fixture(scope="session")
def k1(k1_private: rsa.RSAPrivateKey) -> KeyMaterial:
    return key_material(k1_private, ROTATED_K1)


@pytest.fixture(scope="session")
def k2(k2_private: rsa.RSAPrivateKey) -> KeyMaterial:
    return key_material(k2_private, ROTATED_K2)


# ---------------------------------------------------------------------------
# Cluster and config
# ---------------------------------------------------------------------------


@pytest.fixture
def cluster(k1_private: rsa.RSAPrivateKey, k2_private: rsa.RSAPrivateKey) -> FakeCluster:
    """Empty cluster whose controller publishes K1 (historical) and K2 (active)."""
    bundle = make_cert_pem(k1_private, ROTATED_K1) + make_cert_pem(k2_private, ROTATED_K2)
    return FakeCluster(cert_pem=bundle)


@pytest.fixture
def fast_retry() -> RetryConfig:
    return RetryConfig(
        conflict_attempts=3,
        transport_attempts=3,
        backoff_base=0.001,
        backoff_max=0.002,
        conflict_backoff_max=0.001,
    )


@pytest.fixture
def config(fast_retry: RetryConfig) -> ResealerConfig:
    return ResealerConfig(
        concurrency=4,
        retry=fast_retry,
        rate_limit=RateLimitConfig(qps=10_000.0, burst=10_000),
    )
