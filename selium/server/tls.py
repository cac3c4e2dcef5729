"""TLS configuration and certificate loading for the server."""

import os
import re
import ssl
import sys
import tempfile
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

__all__ = [
    "ALPN_PROTOCOLS",
    "ConfigOptions",
    "server_config",
    "read_certs",
    "generate_self_signed_cert",
]

ALPN_PROTOCOLS = ["hq-29"]


def _pem_blocks(data: bytes, label: str) -> list[bytes]:
    pattern = re.compile(
        b"-----BEGIN " + re.escape(label.encode()) + b"-----.+?-----END "
        + re.escape(label.encode()) + b"-----",
        re.DOTALL,
    )
    return [match.group(0) for match in pattern.finditer(data)]


@dataclass
class ConfigOptions:
    """Server options. ``max_idle_timeout`` is in milliseconds.

    Stateless retries have no meaning over TCP and are accepted but unused.
    """

    keylog: bool = False
    stateless_retry: bool = False
    max_idle_timeout: int = 15000


def server_config(certs: list[x509.Certificate], key: Any, options: ConfigOptions) -> ssl.SSLContext:
    """Build a server TLS context presenting ``certs`` signed by ``key``.

    Raises ``ValueError`` with no certificates and ``ssl.SSLError`` if the
    key does not match the certificate.
    """
    if not certs:
        raise ValueError("no certificates given")
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    chain = b"".join(cert.public_bytes(serialization.Encoding.PEM) for cert in certs)
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    with tempfile.TemporaryDirectory() as directory:
        cert_file = Path(directory, "cert.pem")
        key_file = Path(directory, "key.pem")
        cert_file.write_bytes(chain)
        key_file.write_bytes(key_pem)
        context.load_cert_chain(cert_file, key_file)
    context.set_alpn_protocols(ALPN_PROTOCOLS)
    if options.keylog:
        path = os.environ.get("SSLKEYLOGFILE")
        if path:
            context.keylog_filename = path
    return context


def read_certs(cert_path: str | os.PathLike, key_path: str | os.PathLike) -> tuple[list[x509.Certificate], Any]:
    """Read a certificate chain and private key, in DER or PEM form.

    PEM keys may be PKCS #8 or PKCS #1. Raises ``ValueError`` if no key is
    found and ``OSError`` if a file cannot be read.
    """
    key_path = Path(key_path)
    key_data = key_path.read_bytes()
    if key_path.suffix == ".der":
        key = serialization.load_der_private_key(key_data, None)
    else:
        blocks = _pem_blocks(key_data, "PRIVATE KEY") or _pem_blocks(key_data, "RSA PRIVATE KEY")
        if not blocks:
            raise ValueError("no private keys found")
        key = serialization.load_pem_private_key(blocks[0], None)

    cert_path = Path(cert_path)
    cert_data = cert_path.read_bytes()
    if cert_path.suffix == ".der":
        chain = [x509.load_der_x509_certificate(cert_data)]
    else:
        chain = [
            x509.load_pem_x509_certificate(block)
            for block in _pem_blocks(cert_data, "CERTIFICATE")
        ]
    return chain, key


def generate_self_signed_cert() -> tuple[list[x509.Certificate], Any]:
    """Create a self-signed certificate for ``localhost`` and print it."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "selium self signed cert")])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(datetime(4096, 1, 1, tzinfo=timezone.utc))
        .add_extension(x509.SubjectAlternativeName([x509.DNSName("localhost")]), critical=False)
        .sign(key, hashes.SHA256())
    )
    print(
        "Warning! Using a self-signed certificate does not protect from\n"
        "        person-in-the-middle attacks.",
        file=sys.stderr,
    )
    pem = cert.public_bytes(serialization.Encoding.PEM).decode("ascii")
    print(f"Your self-signed certificate public key is:\n{pem}")
    return [cert], key