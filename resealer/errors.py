"""Exception hierarchy for resealer.

Fatal errors abort the whole run before any further item is dispatched.
Everything else is scoped to a single SealedSecret and never cancels sibling
work.
"""

from __future__ import annotations


class ResealerError(Exception):
    """Base class for every error raised by resealer."""


class FatalError(ResealerError):
    """A run-wide condition: stop dispatching, cancel in-flight work."""


class DiscoveryError(FatalError):
    """Listing SealedSecrets failed (API unreachable, continue token rejected)."""


class KeyFetchError(FatalError):
    """The active public key could not be obtained."""


class AmbiguousKeyError(KeyFetchError):
    """Two or more candidate keys share the newest rotation timestamp."""

    def __init__(self, fingerprints: list[str], rotated_at: str) -> None:
        super().__init__(
            f"{len(fingerprints)} keys share the newest rotation timestamp {rotated_at}: {', '.join(fingerprints)}"
        )
        self.fingerprints = fingerprints
        self.rotated_at = rotated_at


class AuthenticationError(FatalError):
    """The cluster API rejected our credentials (401/403)."""

    def __init__(self, status: int, detail: str = "") -> None:
        super().__init__(f"cluster API refused credentials (HTTP {status}){': ' + detail if detail else ''}")
        self.status = status


class EncryptionError(ResealerError):
    """The sealing capability failed to encrypt a field."""

    def __init__(self, namespace: str, name: str, cause: Exception) -> None:
        super().__init__(f"sealing {namespace}/{name} failed: {cause}")
        self.namespace = namespace
        self.name = name
        self.cause = cause


class VersionConflict(ResealerError):
    """The stored resourceVersion no longer matches the one we read."""

    def __init__(self, namespace: str, name: str, expected_version: str) -> None:
        super().__init__(f"{namespace}/{name} changed since resourceVersion {expected_version}")
        self.namespace = namespace
        self.name = name
        self.expected_version = expected_version


class TransportError(ResealerError):
    """A transient cluster API failure (connection error, timeout, 429, 5xx)."""

    def __init__(self, operation: str, detail: str, status: int | None = None) -> None:
        super().__init__(f"{operation} failed: {detail}")
        self.operation = operation
        self.detail = detail
        self.status = status

    @property
    def retryable(self) -> bool:
        """Connection-level failures, throttling and server errors are worth retrying."""
        return self.status is None or self.status == 429 or self.status >= 500


class ResourceGoneError(ResealerError):
    """The SealedSecret was deleted while we were working on it."""

    def __init__(self, namespace: str, name: str) -> None:
        super().__init__(f"{namespace}/{name} no longer exists")
        self.namespace = namespace
        self.name = name
