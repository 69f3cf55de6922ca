from __future__ import annotations

import hashlib
import re
from typing import Any, Dict

# Ads carry landlord contact details in free text; mask them before logging.
EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
# Russian mobile numbers show up as +7 / 8 followed by 10 digits with arbitrary separators.
PHONE_RE = re.compile(r"\+?\d[\d\s().-]{8,}\d")
TELEGRAM_HANDLE_RE = re.compile(r"(?<![\w@])@[A-Za-z][A-Za-z0-9_]{4,31}\b")

# Ad columns that should never be logged verbatim.
SENSITIVE_FIELDS = {
    "contact_phone",
    "raw_text",
    "ai_analysis",
    "items",
    "data",
    "ads",
}


def _hash_token(text: str) -> str:
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:12]
    return f"[HASH:{digest}]"


def scrub_text(text: str) -> str:
    """Redact phone numbers, emails and chat handles from free text."""
    if not text:
        return text

    def _replace(match: re.Match, label: str) -> str:
        return f"[{label}_{_hash_token(match.group(0))}]"

    scrubbed = EMAIL_RE.sub(lambda m: _replace(m, "EMAIL"), text)
    scrubbed = PHONE_RE.sub(lambda m: _replace(m, "PHONE"), scrubbed)
    scrubbed = TELEGRAM_HANDLE_RE.sub(lambda m: _replace(m, "HANDLE"), scrubbed)
    return scrubbed


def _summarize_sequence(value: Any) -> Dict[str, Any]:
    length = len(value) if hasattr(value, "__len__") else None
    return {"redacted": True, "items": length}


def scrub_value(value: Any) -> Any:
    if isinstance(value, str):
        cleaned = scrub_text(value)
        if len(cleaned) > 300:
            return _hash_token(cleaned)
        return cleaned
    if isinstance(value, dict):
        return sanitize_log_payload(value)
    if isinstance(value, (list, tuple)):
        # Lists of ad rows are summarized, never dumped.
        if any(isinstance(item, dict) and "external_id" in item for item in value):
            return _summarize_sequence(value)
        return [scrub_value(item) for item in value]
    return value


def sanitize_log_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Strip ad contents and contact details from a log payload."""
    if not isinstance(payload, dict):
        return {}

    cleaned: Dict[str, Any] = {}
    for key, value in payload.items():
        if value is None:
            cleaned[key] = value
            continue
        if str(key).lower() in SENSITIVE_FIELDS:
            if isinstance(value, (list, tuple)):
                cleaned[key] = _summarize_sequence(value)
            else:
                cleaned[key] = {"redacted": True}
            continue
        cleaned[key] = scrub_value(value)
    return cleaned
