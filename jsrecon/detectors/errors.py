"""Error messages passed to ``throw new Error(...)`` or ``console.error(...)``."""

import re

PATTERN = re.compile(
    r"""(?:throw\s+new\s+Error|console\.error)\s*\(\s*['"`](.*?)['"`]\s*\)"""
)
