from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from lscbridge.models import LscStatus
from lscbridge.services.status import parse_status, read_status
from lscbridge.storage.keys import status_key
from lscbridge.storage.store import MemoryStore

from fakes import NAMESPACE


def _read(store, raw=None):
    return read_status(store, "s1", "10.0.0.1", NAMESPACE, raw=raw)


def test_missing_record_is_queued():
    report = _read(MemoryStore())

    assert report.status is LscStatus.QUEUED
    assert report.error is None


@pytest.mark.parametrize("raw", ["", "{not json", "null", "[]", '"running"', b"\xff\xfe"])
def test_present_but_invalid_record_is_error(raw):
    report = parse_status(raw, "s1", "10.0.0.1")

    assert report.status is LscStatus.ERROR
    assert report.status is not LscStatus.QUEUED
    assert report.error


def test_invalid_record_in_store_is_error_not_queued():
    store = MemoryStore()
    store.put(status_key(NAMESPACE, "s1", "10.0.0.1"), "{truncated")

    report = _read(store)

    assert report.status is LscStatus.ERROR
    assert "invalid JSON" in report.error


def test_finished_with_results_carries_payload():
    raw = '{"status":"finished-with-results","results":[{"pkg":"libssl1.1","cve":"CVE-XXXX"}]}'

    report = parse_status(raw, "s1", "10.0.0.1")

    assert report.status is LscStatus.FINISHED_WITH_RESULTS
    assert report.results == [{"pkg": "libssl1.1", "cve": "CVE-XXXX"}]


@pytest.mark.parametrize(
    "raw, expected",
    [
        ('{"status":"queued"}', LscStatus.QUEUED),
        ('{"status":"running"}', LscStatus.RUNNING),
        ('{"status":"finished-empty"}', LscStatus.FINISHED_EMPTY),
        ('{"status":"finished","results":[]}', LscStatus.FINISHED_EMPTY),
        ('{"status":"finished","results":[{"cve":"CVE-1"}]}', LscStatus.FINISHED_WITH_RESULTS),
        ('{"status":"FAILED","error":"no table for os"}', LscStatus.ERROR),
    ],
)
def test_status_names_are_classified(raw, expected):
    assert parse_status(raw, "s1", "10.0.0.1").status is expected


def test_error_record_keeps_detail_and_drops_results():
    report = parse_status('{"status":"error","error":"table missing","results":[1]}', "s1", "10.0.0.1")

    assert report.error == "table missing"
    assert report.results == []


def test_error_record_without_detail_gets_default_message():
    report = parse_status('{"status":"error"}', "s1", "10.0.0.1")

    assert report.error == "evaluator reported an error"


@pytest.mark.parametrize(
    "raw",
    [
        '{"status":"paused"}',
        '{"results":[]}',
        '{"status":"finished-with-results","results":{"cve":"x"}}',
    ],
)
def test_unknown_or_incomplete_record_is_error(raw):
    assert parse_status(raw, "s1", "10.0.0.1").status is LscStatus.ERROR


def test_record_for_another_host_is_rejected():
    raw = '{"status":"finished-empty","scan_id":"s1","host_ip":"10.0.0.2"}'

    report = parse_status(raw, "s1", "10.0.0.1")

    assert report.status is LscStatus.ERROR
    assert "10.0.0.2" in report.error


def test_raw_blob_takes_precedence_over_store():
    store = MemoryStore()
    store.put(status_key(NAMESPACE, "s1", "10.0.0.1"), '{"status":"running"}')

    report = _read(store, raw='{"status":"finished-empty"}')

    assert report.status is LscStatus.FINISHED_EMPTY
