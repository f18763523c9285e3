"""Redaction of error text before it reaches callers."""

import re
from typing import Any

MAX_MESSAGE_LENGTH = 500

_REDACTIONS = [
    (re.compile(r"0x[a-fA-F0-9]{64}"), "[REDACTED_KEY]"),
    (re.compile(r"\b(?:[a-z]+\s+){11,}[a-z]+\b", re.IGNORECASE), "[REDACTED_MNEMONIC]"),
    (re.compile(r"[A-Za-z]:\\[\w\\\-. ]+"), "[PATH]"),
    (re.compile(r"/[\w/\-.]+"), "[PATH]"),
    (re.compile(r"api[_-]?\s*key[:\s=]+[\w-]+", re.IGNORECASE), "api_key=[REDACTED]"),
    (re.compile(r"token[:\s=]+[\w-]+", re.IGNORECASE), "token=[REDACTED]"),
    (re.compile(r"bearer\s+[\w-]+", re.IGNORECASE), "bearer [REDACTED]"),
    (re.compile(r"[\w.-]+@[\w.-]+\.\w+"), "[EMAIL]"),
]


def sanitize_error_message(error: Any) -> str:
    """
    Make an error safe to hand back in a result.

    Keys, mnemonics, file paths, credentials and email addresses are
    redacted and the text is capped at 500 characters.
    """
    if error is None or error == "":
        return "An unknown error occurred"

    if isinstance(error, str):
        message = error
    else:
        message = getattr(error, "message", None) or str(error) or type(error).__name__

    for pattern, replacement in _REDACTIONS:
        message = pattern.sub(replacement, message)

    if len(message) > MAX_MESSAGE_LENGTH:
        message = message[:MAX_MESSAGE_LENGTH] + "..."
    return message
