# crypto.py

from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey


def verify_ed25519(public_key_hex: str, timestamp: str, body: bytes, signature_hex: str) -> bool:
    """Check Discord's request signature over ``timestamp + body``."""
    if not public_key_hex or not signature_hex:
        return False
    try:
        key = VerifyKey(bytes.fromhex(public_key_hex))
        key.verify(timestamp.encode() + body, bytes.fromhex(signature_hex))
    except (BadSignatureError, ValueError):
        return False
    return True
