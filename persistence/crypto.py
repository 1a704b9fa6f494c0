import os
import base64
from functools import lru_cache

from dotenv import load_dotenv
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

load_dotenv()


@lru_cache(maxsize=None)
def _decode_key(key_b64: str) -> bytes:
    key = base64.b64decode(key_b64)
    if len(key) != 32:
        raise RuntimeError(
            f"ENCRYPTION_KEY must decode to 32 bytes for AES-256. Got {len(key)} bytes."
        )
    return key


class CryptoUtils:
    VERSION = b"v1"

    @staticmethod
    def key() -> bytes:
        key_b64 = os.getenv("ENCRYPTION_KEY")
        if not key_b64:
            raise RuntimeError("ENCRYPTION_KEY missing in .env")
        return _decode_key(key_b64)

    @staticmethod
    def should_encrypt(key: str, encrypt_keys: set[str]) -> bool:
        return key in encrypt_keys

    @classmethod
    def encrypt_bytes(cls, plaintext: bytes, aad: bytes) -> str:
        aesgcm = AESGCM(cls.key())
        nonce = os.urandom(12)
        ct = aesgcm.encrypt(nonce, plaintext, aad)
        payload = cls.VERSION + nonce + ct
        return base64.b64encode(payload).decode("utf-8")

    @classmethod
    def decrypt_bytes(cls, payload_b64: str, aad: bytes) -> bytes:
        raw = base64.b64decode(payload_b64.encode("utf-8"))
        if raw[:2] != cls.VERSION:
            raise ValueError("Not encrypted with expected format/version header")
        nonce = raw[2:14]
        ct = raw[14:]
        aesgcm = AESGCM(cls.key())
        return aesgcm.decrypt(nonce, ct, aad)
