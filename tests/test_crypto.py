import datetime

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from selium.crypto import CertificateError, load_root_store


def _make_cert(common_name):
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=1))
        .sign(key, hashes.SHA256())
    )
    return cert


def _pem(cert):
    return cert.public_bytes(serialization.Encoding.PEM)


def test_loads_certificates_in_order(tmp_path):
    first, second = _make_cert("first"), _make_cert("second")
    path = tmp_path / "ca.crt"
    path.write_bytes(b"junk before\n" + _pem(first) + b"\n" + _pem(second))
    store = load_root_store(path)
    assert [c.subject for c in store] == [first.subject, second.subject]


def test_skips_unparsable_blocks(tmp_path):
    good = _make_cert("good")
    bad = b"-----BEGIN CERTIFICATE-----\nbm90IGEgY2VydA==\n-----END CERTIFICATE-----\n"
    path = tmp_path / "ca.crt"
    path.write_bytes(bad + _pem(good))
    store = load_root_store(str(path))
    assert len(store) == 1
    assert store[0].subject == good.subject


def test_empty_file_raises(tmp_path):
    path = tmp_path / "empty.crt"
    path.write_bytes(b"")
    with pytest.raises(CertificateError):
        load_root_store(path)


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_root_store(tmp_path / "missing.crt")