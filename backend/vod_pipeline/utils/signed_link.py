"""
Signed Links

Stateless signatures compatible with nginx secure_link_md5:

    secure_link_md5 "$arg_expires$uri $secret";

The signature is base64url(md5(expires + path + " " + secret)) without
padding. Nothing is stored; verification recomputes the hash over the exact
path presented.
"""
import base64
import hashlib
import hmac
import time
from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import parse_qs, urlsplit

REASON_MISSING_PARAMS = "missing-params"
REASON_EXPIRED = "expired"
REASON_SIGNATURE_MISMATCH = "signature-mismatch"


@dataclass(frozen=True)
class LinkVerification:
    valid: bool
    reason: Optional[str] = None

    def __bool__(self):
        return self.valid


def compute_signature(path: str, secret: str, expires: Union[int, str]) -> str:
    digest = hashlib.md5(f"{expires}{path} {secret}".encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def sign(path: str, secret: str, ttl_seconds: int = 3600, now: Optional[float] = None) -> str:
    """
    Sign a path

    Args:
        path: Request path including the leading slash, e.g. /videos/<id>/master.m3u8
        secret: Shared secret
        ttl_seconds: Lifetime of the link; negative values produce an already expired link
        now: Current unix time (defaults to time.time())

    Returns:
        path?sig=<signature>&expires=<unix time>
    """
    current = int(now if now is not None else time.time())
    expires = current + int(ttl_seconds)
    return f"{path}?sig={compute_signature(path, secret, expires)}&expires={expires}"


def verify(
    requested_path: str,
    sig: Optional[str],
    expires: Union[int, str, None],
    secret: str,
    now: Optional[float] = None,
) -> LinkVerification:
    """Check a signature against the exact requested path"""
    if not sig or expires in (None, ""):
        return LinkVerification(False, REASON_MISSING_PARAMS)
    try:
        expires_at = int(expires)
    except (TypeError, ValueError):
        return LinkVerification(False, REASON_MISSING_PARAMS)

    current = int(now if now is not None else time.time())
    if expires_at < current:
        return LinkVerification(False, REASON_EXPIRED)

    expected = compute_signature(requested_path, secret, expires_at)
    # Compared as bytes: compare_digest raises TypeError on non-ASCII str
    if not hmac.compare_digest(expected.encode("ascii"), sig.encode("utf-8", "surrogatepass")):
        return LinkVerification(False, REASON_SIGNATURE_MISMATCH)
    return LinkVerification(True)


def verify_url(url: str, secret: str, now: Optional[float] = None) -> LinkVerification:
    """Verify a full signed URL as produced by sign()"""
    parts = urlsplit(url)
    query = parse_qs(parts.query)
    sig = query.get("sig", [None])[0]
    expires = query.get("expires", [None])[0]
    return verify(parts.path, sig, expires, secret, now=now)
