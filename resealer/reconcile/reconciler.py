"""Reconciler: decide whether a SealedSecret is stale and re-seal it if so.

Staleness is read from the ``resealer.io/key-fingerprint`` annotation alone;
the ciphertext is never inspected. A SealedSecret re-sealed by hand must drop
that annotation, otherwise the old fingerprint is trusted and the item is
skipped as up to date.
"""

from __future__ import annotations

import asyncio
import base64
import binascii

import structlog

from resealer.errors import EncryptionError, ResealerError
from resealer.kube.gateway import ClusterGateway
from resealer.models.config import RetryConfig
from resealer.models.outcomes import ReconcileOutcome, ReencryptionPlan
from resealer.models.resources import EncryptedResourceRef, KeyMaterial, PlainSnapshot
from resealer.reconcile.retry import retry_transport
from resealer.sealing.base import Sealer

_log = structlog.get_logger(component="reconcile.reconciler")


class Reconciler:
    """Turns one EncryptedResourceRef into either a skip outcome or a ReencryptionPlan."""

    def __init__(self, gateway: ClusterGateway, sealer: Sealer, retry: RetryConfig) -> None:
        self._gateway = gateway
        self._sealer = sealer
        self._retry = retry

    async def reconcile(self, ref: EncryptedResourceRef, active_key: KeyMaterial) -> ReconcileOutcome | ReencryptionPlan:
        """Run one reconcile attempt for *ref*.

        Raises:
            EncryptionError: the sealer failed on any field.
            TransportError:  the Secret could not be read after retries.
        """
        snapshot = await self.read_plaintext(ref)
        if snapshot is None:
            _log.info("dependent_secret_missing", namespace=ref.namespace, name=ref.name)
            return ReconcileOutcome.missing_dependent(ref)

        if ref.key_fingerprint == active_key.fingerprint:
            _log.debug("sealedsecret_up_to_date", namespace=ref.namespace, name=ref.name)
            return ReconcileOutcome.up_to_date(ref)

        encrypted = await self._seal(ref, snapshot, active_key)

        dropped = sorted(set(ref.encrypted_data) - set(encrypted))
        added = sorted(set(encrypted) - set(ref.encrypted_data))
        _log.debug(
            "sealedsecret_resealed",
            namespace=ref.namespace,
            name=ref.name,
            fields=len(encrypted),
            dropped_fields=dropped,
            added_fields=added,
            previous_fingerprint=(ref.key_fingerprint or "")[:16] or None,
        )
        return ReencryptionPlan(
            ref=ref,
            encrypted_data=encrypted,
            expected_version=ref.resource_version,
            fingerprint=active_key.fingerprint,
        )

    async def read_plaintext(self, ref: EncryptedResourceRef) -> PlainSnapshot | None:
        data = await retry_transport(
            lambda: self._gateway.read_secret(ref.namespace, ref.name),
            self._retry,
            description="read secret",
            namespace=ref.namespace,
            name=ref.name,
        )
        if data is None:
            return None
        return PlainSnapshot(namespace=ref.namespace, name=ref.name, data=_decode_fields(data))

    async def _seal(self, ref: EncryptedResourceRef, snapshot: PlainSnapshot, key: KeyMaterial) -> dict[str, str]:
        try:
            encrypted = await asyncio.to_thread(self._sealer.encrypt, snapshot.data, key, ref.binding())
        except ResealerError:
            raise
        except Exception as exc:
            raise EncryptionError(ref.namespace, ref.name, exc) from exc
        if set(encrypted) != set(snapshot.data):
            raise EncryptionError(
                ref.namespace,
                ref.name,
                ValueError(f"sealer returned fields {sorted(encrypted)} for plaintext fields {sorted(snapshot.data)}"),
            )
        return encrypted


def _decode_fields(data: dict[str, str]) -> dict[str, bytes]:
    decoded: dict[str, bytes] = {}
    for field_name, value in data.items():
        try:
            decoded[field_name] = base64.b64decode(value or "", validate=True)
        except binascii.Error as exc:
            raise ValueError(f"secret field {field_name!r} is not valid base64") from exc
    return decoded
