"""Loading of trusted certificate authorities for client connections."""

import os
import re
from pathlib import Path

from cryptography import x509

__all__ = ["CertificateError", "load_root_store"]

_PEM_CERTIFICATE = re.compile(
    rb"-----BEGIN CERTIFICATE-----.+?-----END CERTIFICATE-----", re.DOTALL
)


class CertificateError(Exception):
    """Raised when no usable certificate can be loaded."""


def load_root_store(ca_file: str | os.PathLike) -> list[x509.Certificate]:
    """Return the certificates found in the PEM file ``ca_file``.

    Blocks that are not certificates, or that fail to parse, are skipped.
    Raises :class:`CertificateError` if no certificate could be loaded, and
    ``OSError`` if the file cannot be read.
    """
    path = Path(ca_file)
    data = path.read_bytes()
    certificates = []
    for match in _PEM_CERTIFICATE.finditer(data):
        try:
            certificates.append(x509.load_pem_x509_certificate(match.group(0)))
        except ValueError:
            continue
    if not certificates:
        raise CertificateError(f"No valid certs found in file {str(path)!r}")
    return certificates