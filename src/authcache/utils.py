import hashlib


def key_fingerprint(api_key: str) -> str:
    """Short, stable label for an API key that is safe to log."""
    digest = hashlib.sha256(api_key.encode("utf-8")).hexdigest()
    return f"key-{digest[:12]}"
