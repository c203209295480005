from __future__ import annotations

import hmac


def verify_webhook_secret(expected_secret: str, received_secret: str | None) -> bool:
    """Compare the X-Telegram-Bot-Api-Secret-Token header with the configured secret.

    An empty configured secret disables the check.
    """
    expected = (expected_secret or "").strip()
    if not expected:
        return True
    received = (received_secret or "").strip()
    if not received:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))
