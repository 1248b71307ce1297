"""Enumerator: a flat, lazy stream of SealedSecrets across paginated list calls."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import structlog

from resealer.errors import DiscoveryError, TransportError
from resealer.kube.gateway import ClusterGateway
from resealer.models.resources import (
    FINGERPRINT_ANNOTATION,
    EncryptedResourceRef,
    ListScope,
    SealingScope,
)

_log = structlog.get_logger(component="discovery.enumerator")


def parse_sealed_secret(obj: dict[str, Any]) -> EncryptedResourceRef | None:
    """Build an EncryptedResourceRef from a SealedSecret object.

    Returns None when the object lacks the identity fields we need.
    """
    metadata = obj.get("metadata") or {}
    namespace = str(metadata.get("namespace") or "")
    name = str(metadata.get("name") or "")
    resource_version = str(metadata.get("resourceVersion") or "")
    if not (namespace and name and resource_version):
        return None
    annotations = metadata.get("annotations") or {}
    spec = obj.get("spec") or {}
    return EncryptedResourceRef(
        namespace=namespace,
        name=name,
        resource_version=resource_version,
        encrypted_data={str(k): str(v) for k, v in (spec.get("encryptedData") or {}).items()},
        key_fingerprint=annotations.get(FINGERPRINT_ANNOTATION) or None,
        scope=SealingScope.from_annotations(annotations),
        raw=obj,
    )


class SealedSecretEnumerator:
    """Lists SealedSecrets page by page and yields them one at a time.

    Each ``list()`` call starts a fresh listing; nothing carries over between
    calls.
    """

    def __init__(self, gateway: ClusterGateway, page_size: int = 100) -> None:
        self._gateway = gateway
        self._page_size = page_size

    async def list(self, scope: ListScope) -> AsyncIterator[EncryptedResourceRef]:
        """Yield every SealedSecret in *scope*.

        Raises:
            DiscoveryError: the API is unreachable or rejected a continue token.
        """
        continue_token: str | None = None
        pages = 0
        yielded = 0
        while True:
            try:
                page = await self._gateway.list_sealed_secrets(
                    scope.namespace,
                    scope.label_selector,
                    self._page_size,
                    continue_token,
                )
            except TransportError as exc:
                if exc.status == 410:
                    raise DiscoveryError(
                        f"continue token rejected after {pages} page(s) ({scope.describe()}); relist required"
                    ) from exc
                raise DiscoveryError(f"listing sealedsecrets failed ({scope.describe()}): {exc}") from exc

            pages += 1
            for obj in page.get("items") or []:
                ref = parse_sealed_secret(obj)
                if ref is None:
                    _log.warning("sealedsecret_malformed", metadata=obj.get("metadata"))
                    continue
                yielded += 1
                yield ref

            continue_token = (page.get("metadata") or {}).get("continue") or None
            if continue_token is None:
                break

        _log.info("discovery_complete", scope=scope.describe(), pages=pages, items=yielded)
