from __future__ import annotations

import re

REDACTION_PATTERNS = [
    re.compile(r"Bearer\s+[A-Za-z0-9._~+/=-]+", re.IGNORECASE),
    re.compile(r"(\"?token\"?\s*[:=]\s*['\"]?)[A-Za-z0-9._~+/=-]{8,}", re.IGNORECASE),
    re.compile(r"(\"?password\"?\s*[:=]\s*['\"]?)[^'\",\s}]+", re.IGNORECASE),
]


def redact(text: str) -> str:
    redacted = REDACTION_PATTERNS[0].sub("Bearer [REDACTED]", text)
    for pattern in REDACTION_PATTERNS[1:]:
        redacted = pattern.sub(r"\1[REDACTED]", redacted)
    return redacted
