"""KeyProvider: fetch the controller's certificates and pick the active one.

The controller publishes its sealing certificate(s) as a PEM bundle. When the
bundle carries historical certificates too, the one with the newest
``notBefore`` is active. A tie between different keys is never resolved by
guessing.
"""

from __future__ import annotations

import asyncio
import hashlib
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

import httpx
import structlog
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from resealer.errors import AmbiguousKeyError, KeyFetchError, TransportError
from resealer.kube.gateway import ClusterGateway
from resealer.models.config import ControllerConfig
from resealer.models.resources import KeyMaterial

_log = structlog.get_logger(component="keys.provider")


class CertSource(ABC):
    """Somewhere a PEM certificate bundle can be read from."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Where the bundle comes from, for logs."""

    @abstractmethod
    async def fetch(self) -> bytes:
        """Return the raw PEM bundle. Raises KeyFetchError on failure."""


class ControllerCertSource(CertSource):
    """Reads ``/v1/cert.pem`` through the API server's service proxy."""

    def __init__(self, gateway: ClusterGateway, controller: ControllerConfig) -> None:
        self._gateway = gateway
        self._controller = controller

    @property
    def description(self) -> str:
        c = self._controller
        return f"service/{c.namespace}/{c.name}:{c.port}"

    async def fetch(self) -> bytes:
        c = self._controller
        try:
            pem = await self._gateway.fetch_controller_cert(c.namespace, c.name, c.port)
        except TransportError as exc:
            raise KeyFetchError(f"cannot fetch certificate from {self.description}: {exc}") from exc
        return pem.encode() if isinstance(pem, str) else pem


class URLCertSource(CertSource):
    """Reads the bundle from an HTTP(S) URL."""

    def __init__(self, url: str, timeout: float = 10.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
        if not url:
            raise ValueError("Certificate url must not be empty")
        self._url = url
        self._timeout = timeout
        self._transport = transport

    @property
    def description(self) -> str:
        return self._url

    async def fetch(self) -> bytes:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(self._url)
        except httpx.HTTPError as exc:
            raise KeyFetchError(f"cannot fetch certificate from {self._url}: {exc}") from exc
        if not response.is_success:
            raise KeyFetchError(f"cannot fetch certificate from {self._url}: HTTP {response.status_code}")
        return response.content


class FileCertSource(CertSource):
    """Reads the bundle from a local file (offline certificate)."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def description(self) -> str:
        return str(self._path)

    async def fetch(self) -> bytes:
        try:
            return await asyncio.to_thread(self._path.read_bytes)
        except OSError as exc:
            raise KeyFetchError(f"cannot read certificate {self._path}: {exc}") from exc


def build_cert_source(controller: ControllerConfig, gateway: ClusterGateway | None) -> CertSource:
    """Pick the source: explicit URL, explicit file, or the controller service."""
    cert = controller.cert
    if cert.startswith(("http://", "https://")):
        return URLCertSource(cert)
    if cert:
        return FileCertSource(cert)
    if gateway is None:
        raise ValueError("a cluster gateway is required to read the certificate from the controller")
    return ControllerCertSource(gateway, controller)


def parse_certificates(pem: bytes, fetched_at: datetime) -> list[KeyMaterial]:
    """Parse every certificate in *pem* into a KeyMaterial candidate.

    Raises:
        KeyFetchError: the bundle is empty, unparsable, or holds a non-RSA key.
    """
    try:
        certs = x509.load_pem_x509_certificates(pem)
    except ValueError as exc:
        raise KeyFetchError(f"certificate bundle is not valid PEM: {exc}") from exc

    candidates: list[KeyMaterial] = []
    for cert in certs:
        public_key = cert.public_key()
        if not isinstance(public_key, rsa.RSAPublicKey):
            raise KeyFetchError(f"certificate {cert.serial_number} carries a non-RSA key")
        der = public_key.public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        candidates.append(
            KeyMaterial(
                fingerprint=hashlib.sha256(der).hexdigest(),
                public_key_der=der,
                rotated_at=cert.not_valid_before_utc,
                fetched_at=fetched_at,
            )
        )
    return candidates


def select_active(candidates: list[KeyMaterial]) -> KeyMaterial:
    """Return the candidate with the newest rotation timestamp.

    Raises:
        KeyFetchError:     no candidates at all.
        AmbiguousKeyError: different keys share the newest timestamp.
    """
    if not candidates:
        raise KeyFetchError("certificate bundle contains no certificates")
    newest = max(c.rotated_at for c in candidates)
    at_newest: dict[str, KeyMaterial] = {}
    for candidate in candidates:
        if candidate.rotated_at == newest:
            at_newest.setdefault(candidate.fingerprint, candidate)
    if len(at_newest) > 1:
        raise AmbiguousKeyError(sorted(at_newest), newest.isoformat())
    return next(iter(at_newest.values()))


class KeyProvider:
    """Fetches the active KeyMaterial once per run."""

    def __init__(self, source: CertSource, clock: Callable[[], datetime] = lambda: datetime.now(tz=UTC)) -> None:
        self._source = source
        self._clock = clock

    async def fetch_active_key(self) -> KeyMaterial:
        pem = await self._source.fetch()
        candidates = parse_certificates(pem, fetched_at=self._clock())
        active = select_active(candidates)
        _log.info(
            "active_key_selected",
            source=self._source.description,
            fingerprint=active.short_fingerprint,
            rotated_at=active.rotated_at.isoformat(),
            candidates=len(candidates),
        )
        return active
