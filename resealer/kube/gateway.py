"""The narrow view of the cluster API that resealer needs.

Every method either returns plain JSON-shaped data or raises one of the
``resealer.errors`` types; no kubernetes-asyncio type leaks past this seam.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from resealer.kube.ratelimit import TokenBucket
from resealer.observability.metrics import api_requests_total, write_attempts_total


class ClusterGateway(ABC):
    """Abstract cluster API used by the Enumerator, Reconciler, Applier and KeyProvider.

    Error contract:
        AuthenticationError -- 401/403 on any call.
        VersionConflict     -- 409 from ``replace_sealed_secret``.
        ResourceGoneError   -- 404 from ``replace_sealed_secret`` (deleted since it was read).
        TransportError      -- anything else that went wrong on the wire.
    """

    @abstractmethod
    async def list_sealed_secrets(
        self,
        namespace: str | None,
        label_selector: str | None,
        limit: int,
        continue_token: str | None,
    ) -> dict[str, Any]:
        """Return one page of the SealedSecret list (``items`` + ``metadata.continue``)."""

    @abstractmethod
    async def get_sealed_secret(self, namespace: str, name: str) -> dict[str, Any] | None:
        """Return the SealedSecret, or None when it does not exist."""

    @abstractmethod
    async def replace_sealed_secret(self, namespace: str, name: str, body: dict[str, Any]) -> dict[str, Any]:
        """Replace the SealedSecret; ``body.metadata.resourceVersion`` is the precondition."""

    @abstractmethod
    async def read_secret(self, namespace: str, name: str) -> dict[str, str] | None:
        """Return the Secret's base64 ``data`` mapping, or None when it does not exist."""

    @abstractmethod
    async def fetch_controller_cert(self, namespace: str, service: str, port: str) -> str:
        """Return the controller's PEM certificate bundle via the service proxy."""

    async def close(self) -> None:  # noqa: B027
        """Release connections. Optional."""


class RateLimitedGateway(ClusterGateway):
    """Decorator that charges every call against one shared token bucket."""

    def __init__(self, inner: ClusterGateway, bucket: TokenBucket) -> None:
        self._inner = inner
        self._bucket = bucket

    async def _charge(self, verb: str) -> None:
        await self._bucket.acquire()
        api_requests_total.labels(verb=verb).inc()

    async def list_sealed_secrets(
        self,
        namespace: str | None,
        label_selector: str | None,
        limit: int,
        continue_token: str | None,
    ) -> dict[str, Any]:
        await self._charge("list")
        return await self._inner.list_sealed_secrets(namespace, label_selector, limit, continue_token)

    async def get_sealed_secret(self, namespace: str, name: str) -> dict[str, Any] | None:
        await self._charge("get")
        return await self._inner.get_sealed_secret(namespace, name)

    async def replace_sealed_secret(self, namespace: str, name: str, body: dict[str, Any]) -> dict[str, Any]:
        await self._charge("update")
        write_attempts_total.inc()
        return await self._inner.replace_sealed_secret(namespace, name, body)

    async def read_secret(self, namespace: str, name: str) -> dict[str, str] | None:
        await self._charge("get")
        return await self._inner.read_secret(namespace, name)

    async def fetch_controller_cert(self, namespace: str, service: str, port: str) -> str:
        await self._charge("proxy")
        return await self._inner.fetch_controller_cert(namespace, service, port)

    async def close(self) -> None:
        await self._inner.close()
