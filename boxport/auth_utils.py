import base64
import json
import os
import time
from typing import Any, Dict


def get_auth_token(base_url: str) -> str:
    """Resolve the API token from environment or ~/.boxport/auth.json.

    - Prefer BOXPORT_TOKEN from the environment.
    - Fall back to ~/.boxport/auth.json keyed by the catalog URL (with and without
      a trailing slash), honoring an optional numeric expiresAt/expires_at field.
    - Treat expiresAt <= 0 or missing as non-expiring.

    Returns an empty string when no usable token is found.
    """
    tok = (os.environ.get("BOXPORT_TOKEN") or "").strip()
    if tok:
        return tok

    cfg_path = os.path.join(os.path.expanduser("~"), ".boxport", "auth.json")
    if not os.path.exists(cfg_path):
        return ""
    try:
        with open(cfg_path, "r", encoding="utf-8") as f:
            raw: Any = json.load(f)
    except (OSError, ValueError):
        return ""
    if not isinstance(raw, dict):
        return ""
    key = base_url.rstrip("/")
    entry = raw.get(key) or raw.get(base_url) or raw.get(key + "/")
    if not isinstance(entry, dict):
        return ""
    token = entry.get("token") or entry.get("access_token") or ""
    exp = entry.get("expiresAt") or entry.get("expires_at")
    if isinstance(exp, (int, float)) and exp > 0 and exp < int(time.time()):
        return ""
    return str(token).strip()


def token_claims(token: str) -> Dict[str, Any]:
    """Decode the (unverified) payload segment of a JWT bearer token."""
    parts = token.split(".")
    if len(parts) != 3:
        raise ValueError("token is not a JWT")
    payload = parts[1] + "=" * (-len(parts[1]) % 4)
    claims = json.loads(base64.urlsafe_b64decode(payload.encode("ascii")))
    if not isinstance(claims, dict):
        raise ValueError("JWT payload is not an object")
    return claims


def token_subject(token: str) -> str:
    """Return the user the token was issued to ('username' claim, else 'sub')."""
    claims = token_claims(token)
    subject = claims.get("username") or claims.get("sub") or ""
    subject = str(subject).strip()
    if not subject:
        raise ValueError("token carries no subject claim")
    return subject
