"""Builds the JSON job request handed to the LSC evaluator."""

from __future__ import annotations

from typing import Iterable, List, Optional, Union

import orjson
from pydantic import ValidationError

from ..errors import EncodingError
from ..models import JobRequest

PackageList = Union[str, bytes, Iterable[Union[str, bytes]], None]


def normalize_package_list(package_list: PackageList) -> List[str]:
    """Return the package inventory as a list of non-blank strings.

    The scanner collects packages as one newline-separated blob; callers
    may also pass a ready-made list.
    """
    if package_list is None:
        return []
    if isinstance(package_list, (str, bytes)):
        items = _as_text(package_list).splitlines()
    else:
        items = [_as_text(item) for item in package_list]
    return [item.strip() for item in items if item and item.strip()]


def build_request(
    scan_id: str,
    host_ip: str,
    hostname: Optional[str],
    os_release: Optional[str],
    package_list: PackageList,
) -> JobRequest:
    if not scan_id:
        raise EncodingError("scan_id must not be empty")
    if not host_ip:
        raise EncodingError("host_ip must not be empty")
    packages = normalize_package_list(package_list)
    try:
        return JobRequest(
            scan_id=scan_id,
            host_ip=host_ip,
            hostname=hostname or "",
            os_release=os_release or "",
            package_list=packages,
        )
    except ValidationError as exc:
        raise EncodingError(f"invalid request for {scan_id}/{host_ip}: {exc}") from exc


def encode_request(job: JobRequest) -> str:
    document = {
        "scan_id": job.scan_id,
        "host_ip": job.host_ip,
        "hostname": job.hostname,
        "os_release": job.os_release,
        "package_list": list(job.package_list),
    }
    try:
        return orjson.dumps(document).decode()
    except orjson.JSONEncodeError as exc:
        raise EncodingError(f"cannot encode request for {job.scan_id}/{job.host_ip}: {exc}") from exc


def make_request_json(
    scan_id: str,
    host_ip: str,
    hostname: Optional[str],
    os_release: Optional[str],
    package_list: PackageList,
) -> str:
    return encode_request(build_request(scan_id, host_ip, hostname, os_release, package_list))


def _as_text(item) -> str:
    if isinstance(item, bytes):
        try:
            return item.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise EncodingError(f"package entry is not valid UTF-8: {item!r}") from exc
    if not isinstance(item, str):
        raise EncodingError(f"package entry must be text, got {type(item).__name__}")
    return item
