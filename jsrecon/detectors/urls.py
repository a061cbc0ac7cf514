"""Absolute http(s) URLs."""

import re

PATTERN = re.compile(r"""https?://[^\s"'`<>()\\]+""")
