"""Lead payload encryption (XSalsa20-Poly1305 secretbox)."""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any

import nacl.exceptions
import nacl.secret
import nacl.utils

from autoagent_mcp.config import Settings

logger = logging.getLogger(__name__)

KEY_SIZE = nacl.secret.SecretBox.KEY_SIZE


class CryptoKeyError(ValueError):
    """LEAD_ENC_KEY is missing or malformed."""


def decode_key(key_b64: str) -> bytes:
    try:
        key = base64.b64decode(key_b64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise CryptoKeyError("LEAD_ENC_KEY must be valid base64 and 32 bytes") from exc
    if len(key) != KEY_SIZE:
        raise CryptoKeyError("LEAD_ENC_KEY must be 32 bytes (base64 encoded)")
    return key


def generate_key() -> str:
    return base64.b64encode(nacl.utils.random(KEY_SIZE)).decode("ascii")


def load_key(settings: Settings) -> bytes:
    """Key used by the MCP server to seal leads.

    Outside production a missing key is replaced by a random one, which
    changes on every restart.
    """
    if settings.lead_enc_key:
        return decode_key(settings.lead_enc_key)
    if settings.is_production:
        raise CryptoKeyError("LEAD_ENC_KEY must be set in production")
    generated = generate_key()
    logger.warning(
        "LEAD_ENC_KEY not set. Generated a random development key; "
        "add LEAD_ENC_KEY=%s to .env to keep leads readable across restarts.",
        generated,
    )
    return decode_key(generated)


def encrypt_json(obj: Any, key: bytes) -> str:
    """Return base64(nonce || ciphertext) of ``obj`` serialized as JSON."""
    box = nacl.secret.SecretBox(key)
    plaintext = json.dumps(obj, separators=(",", ":")).encode("utf-8")
    # encrypt() prepends the random 24-byte nonce to the ciphertext.
    sealed = box.encrypt(plaintext)
    return base64.b64encode(bytes(sealed)).decode("ascii")


def decrypt_json(payload_b64: str, key: bytes) -> Any:
    box = nacl.secret.SecretBox(key)
    try:
        combined = base64.b64decode(payload_b64, validate=True)
        plaintext = box.decrypt(combined)
    except (binascii.Error, nacl.exceptions.CryptoError) as exc:
        raise ValueError("Lead payload could not be decrypted") from exc
    return json.loads(plaintext.decode("utf-8"))
