# assets/utils.py
from datetime import datetime, timezone

from django.conf import settings
from itsdangerous import BadSignature, SignatureExpired, TimestampSigner

SALT = "assets.download"
MAX_TOKEN_AGE = 24 * 60 * 60


def _signer():
    return TimestampSigner(settings.SECRET_KEY, salt=SALT)


def generate_signed_token(asset_id, user_id, max_age=None):
    """Generate a signed download token bound to one asset and one user."""
    if max_age is None:
        max_age = settings.ASSET_DOWNLOAD_TOKEN_MAX_AGE
    return _signer().sign(f"{asset_id}:{user_id}:{int(max_age)}").decode()


def verify_signed_token(token):
    """
    Verify a signed download token.

    Args:
        token (str): The signed token to verify.

    Returns:
        tuple: ``(asset_id, user_id)`` as strings if verification succeeds.
        None: If the token is invalid or older than the lifetime it was issued with.
    """
    try:
        value, signed_at = _signer().unsign(token, max_age=MAX_TOKEN_AGE, return_timestamp=True)
    except (BadSignature, SignatureExpired):
        return None
    try:
        asset_id, user_id, max_age = value.decode().split(":")
        max_age = int(max_age)
    except ValueError:
        return None
    if (datetime.now(timezone.utc) - signed_at).total_seconds() > max_age:
        return None
    return asset_id, user_id


def format_file_size(size_bytes):
    """
    Convert a byte count to a B/KB/MB/GB string; ``None`` stays ``None``.
    """
    if size_bytes is None:
        return None
    for unit in ("B", "KB", "MB", "GB"):
        if size_bytes < 1024:
            return f"{size_bytes} B" if unit == "B" else f"{size_bytes:.2f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.2f} TB"
