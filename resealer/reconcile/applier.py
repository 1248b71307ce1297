"""Applier: submit new ciphertext guarded by the resourceVersion we read."""

from __future__ import annotations

import copy
from typing import Any

import structlog

from resealer.kube.gateway import ClusterGateway
from resealer.models.config import RetryConfig
from resealer.models.outcomes import ReencryptionPlan
from resealer.models.resources import FINGERPRINT_ANNOTATION
from resealer.reconcile.retry import retry_transport

_log = structlog.get_logger(component="reconcile.applier")


def build_update_body(plan: ReencryptionPlan) -> dict[str, Any]:
    """Return the replace body: the observed object with new ciphertext and precondition."""
    body: dict[str, Any] = copy.deepcopy(plan.ref.raw)
    metadata = body.setdefault("metadata", {})
    metadata["namespace"] = plan.ref.namespace
    metadata["name"] = plan.ref.name
    metadata["resourceVersion"] = plan.expected_version
    annotations = metadata.get("annotations") or {}
    annotations[FINGERPRINT_ANNOTATION] = plan.fingerprint
    metadata["annotations"] = annotations
    # server-managed
    metadata.pop("managedFields", None)
    metadata.pop("generation", None)
    body.pop("status", None)

    spec = body.setdefault("spec", {})
    spec["encryptedData"] = dict(plan.encrypted_data)
    return body


class Applier:
    """Performs the conditional write for one ReencryptionPlan."""

    def __init__(self, gateway: ClusterGateway, retry: RetryConfig) -> None:
        self._gateway = gateway
        self._retry = retry

    async def apply(self, plan: ReencryptionPlan) -> str:
        """Replace the SealedSecret if it is still at ``plan.expected_version``.

        Returns the new resourceVersion.

        Raises:
            VersionConflict: someone else wrote the object since we read it.
            ResourceGoneError: the object was deleted since we read it.
            TransportError:  transient failures outlasted the retry budget.
        """
        ref = plan.ref
        body = build_update_body(plan)
        result = await retry_transport(
            lambda: self._gateway.replace_sealed_secret(ref.namespace, ref.name, body),
            self._retry,
            description="replace sealedsecret",
            namespace=ref.namespace,
            name=ref.name,
        )
        new_version = str((result.get("metadata") or {}).get("resourceVersion", ""))
        _log.info(
            "sealedsecret_updated",
            namespace=ref.namespace,
            name=ref.name,
            previous_version=plan.expected_version,
            resource_version=new_version,
            fingerprint=plan.fingerprint[:16],
        )
        return new_version
