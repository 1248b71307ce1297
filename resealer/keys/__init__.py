"""Active public key discovery."""

from resealer.keys.provider import (
    CertSource,
    ControllerCertSource,
    FileCertSource,
    KeyProvider,
    URLCertSource,
    build_cert_source,
    parse_certificates,
    select_active,
)

__all__ = [
    "CertSource",
    "ControllerCertSource",
    "FileCertSource",
    "KeyProvider",
    "URLCertSource",
    "build_cert_source",
    "parse_certificates",
    "select_active",
]
