"""Google API keys (Maps, Firebase and friends)."""

import re

PATTERN = re.compile(r"\bAIza[0-9A-Za-z_\-]{35}\b")
