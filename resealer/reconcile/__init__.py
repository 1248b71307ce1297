"""Per-item reconcile and apply.

Submodules
----------
reconciler -- read the plaintext Secret, decide staleness, compute new ciphertext.
applier    -- conditional replace guarded by resourceVersion.
retry      -- exponential backoff with jitter for transient transport errors.
"""

from resealer.reconcile.applier import Applier
from resealer.reconcile.reconciler import Reconciler

__all__ = ["Applier", "Reconciler"]
