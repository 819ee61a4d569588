"""
Account key and content cipher tests
"""

import base64

import pytest

from app.exceptions import DecryptionError, IntegrityError
from app.models import User
from app.utils.cipher import (
    HEADER_SIZE,
    NONCE_SIZE,
    TAG_SIZE,
    content_fingerprint,
    decrypt,
    decrypt_bytes,
    encrypt,
    encrypt_bytes,
)
from app.utils.keys import KEY_SIZE, generate_key, get_key_for_user, key_bytes


PLAINTEXTS = ["", "hello", "sk-live-0123456789abcdef", "multi\nline\tcode()", "ünïcødé ✓ 秘密"]


def test_generate_key_is_256_bit_hex():
    key = generate_key()
    assert len(key) == 2 * KEY_SIZE
    assert len(bytes.fromhex(key)) == 32


def test_generated_keys_are_distinct():
    assert len({generate_key() for _ in range(50)}) == 50


def test_key_bytes_accepts_hex_and_raw():
    raw = bytes(range(32))
    assert key_bytes(raw) == raw
    assert key_bytes(raw.hex()) == raw


@pytest.mark.parametrize("bad", ["zz" * 32, "ab" * 16, b"short", 12345])
def test_key_bytes_rejects_bad_keys(bad):
    with pytest.raises(ValueError):
        key_bytes(bad)


def test_get_key_for_user_returns_raw_key():
    key = generate_key()
    user = User(id=1, email="a@example.com", password_hash="x", encryption_key=key)
    assert get_key_for_user(user) == bytes.fromhex(key)


@pytest.mark.parametrize("stored", [None, "", "not-hex"])
def test_get_key_for_user_missing_key_is_integrity_error(stored):
    user = User(id=1, email="a@example.com", password_hash="x", encryption_key=stored)
    with pytest.raises(IntegrityError):
        get_key_for_user(user)


@pytest.mark.parametrize("plaintext", PLAINTEXTS)
def test_round_trip(plaintext):
    key = generate_key()
    assert decrypt(encrypt(plaintext, key), key) == plaintext


def test_round_trip_with_raw_key():
    key = bytes.fromhex(generate_key())
    assert decrypt_bytes(encrypt_bytes(b"\x00\x01binary", key), key) == b"\x00\x01binary"


def test_layout_is_nonce_tag_ciphertext():
    key = generate_key()
    blob = encrypt_bytes(b"abcdef", key)
    assert len(blob) == NONCE_SIZE + TAG_SIZE + 6
    assert HEADER_SIZE == 32


def test_nonce_is_fresh_per_call():
    key = generate_key()
    first = encrypt_bytes(b"same", key)
    second = encrypt_bytes(b"same", key)
    assert first[:NONCE_SIZE] != second[:NONCE_SIZE]
    assert first != second


@pytest.mark.parametrize("plaintext", PLAINTEXTS)
def test_wrong_key_fails(plaintext):
    ciphertext = encrypt(plaintext, generate_key())
    with pytest.raises(DecryptionError):
        decrypt(ciphertext, generate_key())


def test_every_flipped_byte_is_detected():
    key = generate_key()
    blob = encrypt_bytes(b"tamper me", key)
    for index in range(len(blob)):
        tampered = bytearray(blob)
        tampered[index] ^= 0x01
        with pytest.raises(DecryptionError):
            decrypt_bytes(bytes(tampered), key)


@pytest.mark.parametrize("length", [0, 1, NONCE_SIZE, HEADER_SIZE - 1])
def test_truncated_ciphertext_fails(length):
    key = generate_key()
    blob = encrypt_bytes(b"payload", key)
    with pytest.raises(DecryptionError):
        decrypt_bytes(blob[:length], key)


def test_dropping_body_bytes_fails():
    key = generate_key()
    blob = encrypt_bytes(b"payload", key)
    with pytest.raises(DecryptionError):
        decrypt_bytes(blob[:-1], key)


def test_invalid_base64_fails():
    with pytest.raises(DecryptionError):
        decrypt("not base64 at all!!", generate_key())


def test_non_utf8_plaintext_fails_text_decrypt():
    key = generate_key()
    ciphertext = base64.b64encode(encrypt_bytes(b"\xff\xfe\xfd", key)).decode("ascii")
    with pytest.raises(DecryptionError):
        decrypt(ciphertext, key)


def test_fingerprint_is_stable_and_keyed():
    key = generate_key()
    assert content_fingerprint("secret", key) == content_fingerprint("secret", key)
    assert content_fingerprint("secret", key) != content_fingerprint("other", key)
    assert content_fingerprint("secret", key) != content_fingerprint("secret", generate_key())
    assert len(content_fingerprint("secret", key)) == 64


@pytest.mark.parametrize("bad", ["zz" * 32, "ab" * 16])
def test_malformed_key_on_encrypt_is_value_error(bad):
    with pytest.raises(ValueError):
        encrypt("hello", bad)
    with pytest.raises(ValueError):
        encrypt_bytes(b"hello", bad)


def test_malformed_key_on_decrypt_is_decryption_error():
    ciphertext = encrypt("hello", generate_key())
    with pytest.raises(DecryptionError):
        decrypt(ciphertext, "ab" * 16)
