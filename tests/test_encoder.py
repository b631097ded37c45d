from pathlib import Path
import sys

import orjson
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from lscbridge.errors import EncodingError
from lscbridge.services.encoder import build_request, make_request_json, normalize_package_list


def test_request_json_is_canonical():
    payload = make_request_json("s1", "10.0.0.1", None, "debian10", ["libssl1.1=1.1.1"])

    assert payload == (
        '{"scan_id":"s1","host_ip":"10.0.0.1","hostname":"","os_release":"debian10",'
        '"package_list":["libssl1.1=1.1.1"]}'
    )


def test_newline_separated_package_blob_is_split():
    payload = make_request_json(
        "s1", "10.0.0.1", "db01", "debian10", "libssl1.1=1.1.1\n\nbash=5.0-4\n"
    )

    assert orjson.loads(payload)["package_list"] == ["libssl1.1=1.1.1", "bash=5.0-4"]


def test_empty_inventory_is_allowed():
    payload = make_request_json("s1", "10.0.0.1", "", "", [])

    assert orjson.loads(payload) == {
        "scan_id": "s1",
        "host_ip": "10.0.0.1",
        "hostname": "",
        "os_release": "",
        "package_list": [],
    }


def test_bytes_entries_are_decoded():
    assert normalize_package_list([b"zlib1g=1:1.2.11", "curl=7.64"]) == ["zlib1g=1:1.2.11", "curl=7.64"]


@pytest.mark.parametrize(
    "scan_id, host_ip",
    [("", "10.0.0.1"), ("s1", ""), (None, "10.0.0.1")],
)
def test_missing_identifiers_are_rejected(scan_id, host_ip):
    with pytest.raises(EncodingError):
        build_request(scan_id, host_ip, "", "debian10", ["a=1"])


@pytest.mark.parametrize(
    "package_list",
    [
        [b"\xff\xfe broken"],
        ["bad-\ud800-surrogate"],
        [42],
    ],
)
def test_unencodable_packages_raise_encoding_error(package_list):
    with pytest.raises(EncodingError):
        make_request_json("s1", "10.0.0.1", "", "debian10", package_list)


def test_encoding_error_is_a_value_error():
    with pytest.raises(ValueError):
        make_request_json("s1", "10.0.0.1", "", "debian10", [b"\xff"])
