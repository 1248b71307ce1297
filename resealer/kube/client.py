"""kubernetes-asyncio implementation of the ClusterGateway.

``load_api_client`` follows the usual order: in-cluster service account first,
kubeconfig second.
"""

from __future__ import annotations

from typing import Any

import aiohttp
import structlog
from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
from kubernetes_asyncio import config as k8s_config  # type: ignore[import-untyped]
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from resealer.errors import AuthenticationError, ResourceGoneError, TransportError, VersionConflict
from resealer.kube.gateway import ClusterGateway
from resealer.models.config import KubeConfig
from resealer.models.resources import SEALED_SECRET_GROUP, SEALED_SECRET_PLURAL, SEALED_SECRET_VERSION

_log = structlog.get_logger(component="kube.client")

_CERT_PATH = "v1/cert.pem"


async def load_api_client(config: KubeConfig) -> k8s_client.ApiClient:
    """Build an ApiClient from in-cluster config or kubeconfig.

    An explicit ``kubeconfig`` or ``context`` skips in-cluster detection.
    """
    if not config.kubeconfig and not config.context:
        try:
            # load_incluster_config() is synchronous in kubernetes-asyncio
            k8s_config.load_incluster_config()
            _log.info("k8s client configured from in-cluster service account")
            return k8s_client.ApiClient()
        except k8s_config.ConfigException:
            pass

    await k8s_config.load_kube_config(
        config_file=config.kubeconfig or None,
        context=config.context or None,
    )
    _log.info("k8s client configured from kubeconfig", context=config.context or "<current>")
    return k8s_client.ApiClient()


def _translate(exc: Exception, operation: str) -> Exception:
    """Map a client exception onto the gateway's error contract."""
    if isinstance(exc, ApiException):
        status = int(exc.status or 0)
        if status in (401, 403):
            return AuthenticationError(status, str(exc.reason or ""))
        return TransportError(operation, f"HTTP {status}: {exc.reason}", status=status or None)
    if isinstance(exc, (aiohttp.ClientError, TimeoutError)):
        return TransportError(operation, str(exc) or type(exc).__name__)
    return exc


class KubernetesGateway(ClusterGateway):
    """ClusterGateway backed by a kubernetes-asyncio ApiClient."""

    def __init__(self, api_client: k8s_client.ApiClient) -> None:
        self._api_client = api_client
        self._custom = k8s_client.CustomObjectsApi(api_client)
        self._core = k8s_client.CoreV1Api(api_client)

    async def list_sealed_secrets(
        self,
        namespace: str | None,
        label_selector: str | None,
        limit: int,
        continue_token: str | None,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"limit": limit}
        if label_selector:
            kwargs["label_selector"] = label_selector
        if continue_token:
            kwargs["_continue"] = continue_token
        try:
            if namespace:
                return await self._custom.list_namespaced_custom_object(  # type: ignore[no-any-return]
                    SEALED_SECRET_GROUP, SEALED_SECRET_VERSION, namespace, SEALED_SECRET_PLURAL, **kwargs
                )
            return await self._custom.list_cluster_custom_object(  # type: ignore[no-any-return]
                SEALED_SECRET_GROUP, SEALED_SECRET_VERSION, SEALED_SECRET_PLURAL, **kwargs
            )
        except (ApiException, aiohttp.ClientError, TimeoutError) as exc:
            raise _translate(exc, "list sealedsecrets") from exc

    async def get_sealed_secret(self, namespace: str, name: str) -> dict[str, Any] | None:
        try:
            return await self._custom.get_namespaced_custom_object(  # type: ignore[no-any-return]
                SEALED_SECRET_GROUP, SEALED_SECRET_VERSION, namespace, SEALED_SECRET_PLURAL, name
            )
        except ApiException as exc:
            if exc.status == 404:
                return None
            raise _translate(exc, f"get sealedsecret {namespace}/{name}") from exc
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise _translate(exc, f"get sealedsecret {namespace}/{name}") from exc

    async def replace_sealed_secret(self, namespace: str, name: str, body: dict[str, Any]) -> dict[str, Any]:
        try:
            return await self._custom.replace_namespaced_custom_object(  # type: ignore[no-any-return]
                SEALED_SECRET_GROUP, SEALED_SECRET_VERSION, namespace, SEALED_SECRET_PLURAL, name, body
            )
        except ApiException as exc:
            if exc.status == 409:
                expected = str(body.get("metadata", {}).get("resourceVersion", ""))
                raise VersionConflict(namespace, name, expected) from exc
            if exc.status == 404:
                raise ResourceGoneError(namespace, name) from exc
            raise _translate(exc, f"replace sealedsecret {namespace}/{name}") from exc
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise _translate(exc, f"replace sealedsecret {namespace}/{name}") from exc

    async def read_secret(self, namespace: str, name: str) -> dict[str, str] | None:
        try:
            secret = await self._core.read_namespaced_secret(name, namespace)
        except ApiException as exc:
            if exc.status == 404:
                return None
            raise _translate(exc, f"read secret {namespace}/{name}") from exc
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise _translate(exc, f"read secret {namespace}/{name}") from exc
        return dict(secret.data or {})

    async def fetch_controller_cert(self, namespace: str, service: str, port: str) -> str:
        try:
            return await self._core.connect_get_namespaced_service_proxy_with_path(  # type: ignore[no-any-return]
                f"{service}:{port}", namespace, _CERT_PATH
            )
        except (ApiException, aiohttp.ClientError, TimeoutError) as exc:
            raise _translate(exc, f"fetch certificate from {namespace}/{service}") from exc

    async def close(self) -> None:
        try:
            await self._api_client.close()
        except (aiohttp.ClientError, RuntimeError) as exc:
            _log.debug("k8s client close raised (non-fatal)", error=str(exc))
