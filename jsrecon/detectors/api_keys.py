"""String values assigned to key-, token- or secret-like names."""

import re

PATTERN = re.compile(
    r"""(?i)\b[\w$]*(?:api[_-]?key|apikey|secret|token|passw(?:or)?d|auth)[\w$]*"""
    r"""['"]?\s*[:=]\s*['"`]([A-Za-z0-9_\-./+=]{8,})['"`]"""
)
