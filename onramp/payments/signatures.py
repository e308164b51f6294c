import hashlib
import hmac


def compute_signature(secret: str, payload: bytes, digestmod=hashlib.sha256) -> str:
    return hmac.new(secret.encode(), payload, digestmod).hexdigest()


def verify_signature(secret, payload: bytes, signature, digestmod=hashlib.sha256) -> bool:
    """Constant-time HMAC check. A missing secret or signature never verifies."""
    if not secret or not signature:
        return False
    computed = compute_signature(secret, payload, digestmod)
    return hmac.compare_digest(computed, signature.strip().lower())
