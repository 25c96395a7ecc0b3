from __future__ import annotations

import logging
import re
from typing import Any


_PAN_RE = re.compile(r"(?<![A-Za-z0-9])[A-Za-z]{5}\d{4}[A-Za-z](?![A-Za-z0-9])")
_AADHAAR_RE = re.compile(r"(?<!\d)(?:\d{12}|\d{4}[ -]\d{4}[ -]\d{4})(?!\d)")
_MOBILE_RE = re.compile(r"(?<!\d)(?:\+?91[ -]?)?[6-9]\d{9}(?!\d)")


def mask_personal_ids(text: str) -> str:
    """Mask PAN, Aadhaar and mobile number patterns in a string.

    No digits are kept; agent and employee records carry these identifiers
    and bulk import errors echo raw cell values.
    """

    if not text:
        return text

    text = _PAN_RE.sub("***PAN***", text)
    text = _AADHAAR_RE.sub("***AADHAAR***", text)
    text = _MOBILE_RE.sub("***MOBILE***", text)
    return text


class MaskPersonalIdFilter(logging.Filter):
    """Logging filter to mask PAN/Aadhaar/mobile numbers in log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except Exception:  # pragma: no cover
            message = str(getattr(record, "msg", ""))

        masked = mask_personal_ids(str(message))

        # Replace the formatted message and clear args to avoid double formatting.
        record.msg = masked
        record.args = ()

        for key in ("pan", "pan_number", "aadhaar", "phone", "value"):
            if hasattr(record, key):
                value: Any = getattr(record, key)
                if isinstance(value, str):
                    setattr(record, key, mask_personal_ids(value))

        return True
