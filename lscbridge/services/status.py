"""Classification of the status records written by the LSC evaluator.

A missing record means the evaluator has not picked the job up yet and is
reported as ``queued``. A record that exists but cannot be understood is
reported as ``error``: the two cases must never be confused, otherwise a
broken evaluator would look like a slow one until the caller times out.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

import orjson

from ..errors import MalformedStatusRecord
from ..models import LscStatus, StatusReport
from ..storage.keys import status_key
from ..storage.store import KeyValueStore

logger = logging.getLogger(__name__)

# Short forms some evaluator versions write instead of the full names.
_ALIASES = {
    "failed": LscStatus.ERROR,
}
_STORED_STATES = {s.value: s for s in LscStatus if s is not LscStatus.TIMEOUT}

DEFAULT_ERROR_DETAIL = "evaluator reported an error"


def read_status(
    store: KeyValueStore,
    scan_id: str,
    host_ip: str,
    namespace: str,
    raw: Union[str, bytes, None] = None,
) -> StatusReport:
    """Return the classified status of the job for ``scan_id``/``host_ip``.

    When ``raw`` is given it is used as the record instead of reading the
    store. ``StoreUnavailable`` from the store propagates to the caller; a
    key the store cannot return as a value is classified as ``error``.
    """
    if raw is None:
        try:
            raw = store.get(status_key(namespace, scan_id, host_ip))
        except MalformedStatusRecord as exc:
            logger.warning("Unreadable status record for %s/%s: %s", scan_id, host_ip, exc)
            return StatusReport(status=LscStatus.ERROR, error=str(exc))
    return parse_status(raw, scan_id, host_ip)


def parse_status(raw: Union[str, bytes, None], scan_id: str, host_ip: str) -> StatusReport:
    if raw is None:
        return StatusReport(status=LscStatus.QUEUED)
    try:
        return _classify(_load(raw), scan_id, host_ip)
    except MalformedStatusRecord as exc:
        logger.warning("Malformed status record for %s/%s: %s", scan_id, host_ip, exc)
        return StatusReport(status=LscStatus.ERROR, error=str(exc))


def _load(raw: Union[str, bytes]) -> dict:
    try:
        document = orjson.loads(raw)
    except orjson.JSONDecodeError as exc:
        raise MalformedStatusRecord(f"invalid JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise MalformedStatusRecord(f"expected a JSON object, got {type(document).__name__}")
    return document


def _classify(document: dict, scan_id: str, host_ip: str) -> StatusReport:
    _check_identity(document, "scan_id", scan_id)
    _check_identity(document, "host_ip", host_ip)

    name = document.get("status")
    if not isinstance(name, str):
        raise MalformedStatusRecord("missing or non-string 'status'")

    results = document.get("results", [])
    if results is None:
        results = []
    if not isinstance(results, list):
        raise MalformedStatusRecord(f"'results' must be a list, got {type(results).__name__}")

    status = _status_from_name(name.strip().lower(), results)

    if status is LscStatus.ERROR:
        detail = document.get("error")
        return StatusReport(status=status, error=str(detail) if detail else DEFAULT_ERROR_DETAIL)
    if status is LscStatus.FINISHED_WITH_RESULTS:
        return StatusReport(status=status, results=results)
    # queued, running and finished-empty never carry results
    return StatusReport(status=status)


def _status_from_name(name: str, results: list) -> LscStatus:
    if name == "finished":
        return LscStatus.FINISHED_WITH_RESULTS if results else LscStatus.FINISHED_EMPTY
    if name in _ALIASES:
        return _ALIASES[name]
    try:
        return _STORED_STATES[name]
    except KeyError:
        raise MalformedStatusRecord(f"unknown status {name!r}") from None


def _check_identity(document: dict, field: str, expected: str) -> None:
    value: Optional[Any] = document.get(field)
    if value is not None and value != expected:
        raise MalformedStatusRecord(f"record belongs to {field}={value!r}, expected {expected!r}")
