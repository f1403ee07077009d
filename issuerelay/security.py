"""Security-related helpers (webhook signatures).

Deliveries are authenticated with an HMAC-SHA256 of the raw body, sent as
``sha256=<hex>`` in ``X-Hub-Signature-256`` (GitHub) or ``X-Hub-Signature``
(Jira). Verification is skipped when no secret is configured.
"""

from __future__ import annotations

import hashlib
import hmac

SIGNATURE_HEADERS = ("X-Hub-Signature-256", "X-Hub-Signature")


def build_signature(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def signature_matches(secret: str | None, body: bytes, header_value: str | None) -> bool:
    """True when ``secret`` is unset or ``header_value`` signs ``body``."""
    if not secret:
        return True
    if not header_value:
        return False

    scheme, _, digest = header_value.partition("=")
    if scheme.lower() != "sha256" or not digest:
        return False

    return hmac.compare_digest(build_signature(secret, body), f"sha256={digest.lower()}")
