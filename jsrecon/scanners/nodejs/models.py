"""Pydantic models for request surface extraction results.

This module defines the data models used to represent outbound HTTP calls
found in JavaScript-family source files and the aggregated report built
from them.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class BodyEncoding(str, Enum):
    """How a request body is encoded on the wire."""

    JSON = "json"
    FORM_DATA = "form-data"
    URLENCODED = "urlencoded"
    UNKNOWN = "unknown"


class Confidence(str, Enum):
    """Certainty of a finding's shape, set by the call surface that produced it."""

    HIGH = "high"
    MEDIUM = "medium"


class RequestFinding(BaseModel):
    """A single outbound HTTP call found by static analysis.

    Attributes:
        file: Path of the source file containing the call.
        method: Upper-cased HTTP verb.
        endpoint: Literal URL, a template skeleton with ``${}`` at each
            interpolation, or ``None`` when not statically resolvable.
        body_params: Body parameter names in source order. Serialized as
            ``bodyParams``.
        body_type: Body encoding. Serialized as ``bodyType``.
        confidence: ``high`` for client-object calls with an explicit verb,
            ``medium`` for fetch-style calls.
    """

    model_config = ConfigDict(populate_by_name=True)

    file: str
    method: str
    endpoint: str | None = None
    body_params: list[str] = Field(default_factory=list, alias="bodyParams")
    body_type: BodyEncoding = Field(default=BodyEncoding.UNKNOWN, alias="bodyType")
    confidence: Confidence


class RequestSurfaceReport(BaseModel):
    """Aggregated request surface for a set of files.

    Attributes:
        site: Site identifier the corpus belongs to.
        files_analyzed: Number of files that parsed and were walked.
        unanalyzable_files: Files that failed to read or parse. Their absence
            from ``findings`` means "not analyzable", never "clean".
        findings: All findings, grouped by file in input order.
        analysis_time_seconds: Wall-clock time spent on analysis.
    """

    site: str
    files_analyzed: int = 0
    unanalyzable_files: list[str] = Field(default_factory=list)
    findings: list[RequestFinding] = Field(default_factory=list)
    analysis_time_seconds: float = 0.0

    def findings_json(self) -> list[dict]:
        """Return the findings in their artifact form."""
        return [f.model_dump(mode="json", by_alias=True) for f in self.findings]
