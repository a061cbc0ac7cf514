"""Quoted relative paths that look like API routes."""

import re

PATTERN = re.compile(
    r"""['"`](/(?:api|graphql|rest|v[0-9]+|admin|internal|auth|oauth)(?:/[\w\-.{}:$]*)*)['"`]"""
)
