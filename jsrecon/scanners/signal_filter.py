"""Relevance triage of pattern scan output.

Reduces the machine scan report to the matches worth a human look. The
filter is a heuristic: it drops trivially short, purely numeric and
known low-value matches, and nothing else. False positives and negatives
are expected.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any

from ..constants import MIN_SIGNAL_LENGTH, SIGNAL_FILE_PREFIX, SIGNAL_STOPLIST
from ..core.artifacts import unique_timestamped_path, write_json_atomic
from ..core.exceptions import InvalidInputError
from .patterns.models import Signal

logger = logging.getLogger(__name__)

_ALL_DIGITS = re.compile(r"[0-9]+")


def is_signal(match: Any) -> bool:
    """Return ``True`` if a matched string is worth keeping.

    A signal is a string longer than ``MIN_SIGNAL_LENGTH`` characters that
    is neither in the stoplist (case-insensitively) nor made only of
    decimal digits.
    """
    if not isinstance(match, str):
        return False
    if len(match) <= MIN_SIGNAL_LENGTH:
        return False
    if match.lower() in SIGNAL_STOPLIST:
        return False
    if _ALL_DIGITS.fullmatch(match):
        return False
    return True


def triage_records(records: list[dict[str, Any]]) -> list[Signal]:
    """Flatten machine scan records into the signals that pass triage.

    Args:
        records: Machine report entries with ``file``, ``regex`` and
            ``findings`` (each finding has ``match`` and ``context``). Malformed
            entries are skipped.

    Returns:
        Surviving signals in report order.
    """
    signals: list[Signal] = []
    for record in records:
        file = str(record.get("file") or "")
        regex = str(record.get("regex") or "")
        findings = record.get("findings")
        if not isinstance(findings, list):
            continue
        for finding in findings:
            if not isinstance(finding, dict):
                continue
            match = finding.get("match")
            if not is_signal(match):
                continue
            signals.append(
                Signal(
                    file=file,
                    regex=regex,
                    match=match,
                    context=str(finding.get("context") or ""),
                )
            )
    return signals


def extract_signals(machine_report: str | Path) -> Path:
    """Triage a machine scan report into a new timestamped signal file.

    The signal file is written next to the report. Each call creates a new
    file; earlier triage runs are never overwritten.

    Args:
        machine_report: Path to ``goods_machine.json``.

    Returns:
        Path of the new signal file.

    Raises:
        FileNotFoundError: If the report does not exist.
        InvalidInputError: If the report is not a JSON list of records.
        ArtifactWriteError: If the signal file cannot be written.
    """
    machine_report = Path(machine_report)
    if not machine_report.is_file():
        raise FileNotFoundError(f"Machine report not found: {machine_report}")

    try:
        data = json.loads(machine_report.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"Machine report is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise InvalidInputError("Machine report must be a JSON list of scan records")

    signals = triage_records([r for r in data if isinstance(r, dict)])

    out_path = unique_timestamped_path(machine_report.parent, SIGNAL_FILE_PREFIX)
    write_json_atomic(out_path, [s.model_dump(mode="json") for s in signals])

    total = sum(
        len(r["findings"]) for r in data if isinstance(r, dict) and isinstance(r.get("findings"), list)
    )
    logger.info(f"Kept {len(signals)} of {total} match(es) as signals: {out_path}")
    return out_path
