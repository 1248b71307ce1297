"""resealer: re-encrypt SealedSecrets after the controller's sealing key rotated."""

__version__ = "0.1.0"
