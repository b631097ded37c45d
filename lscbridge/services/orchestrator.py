from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional, Union

from ..config import Settings, settings as default_settings
from ..errors import StoreUnavailable
from ..models import JobRequest, LscOutcome, LscStatus, RunState, StatusReport
from ..storage.keys import abort_key, request_key, status_key
from ..storage.store import KeyValueStore
from .encoder import PackageList, build_request, encode_request
from .status import read_status

logger = logging.getLogger(__name__)

CancelSignal = Union[Callable[[], bool], threading.Event, None]


class LscOrchestrator:
    """Hands one LSC job to the evaluator and waits for its verdict.

    The orchestrator publishes the request record under the job's
    (scan_id, host_ip) key and then polls the status record the evaluator
    writes next to it. Every wait is bounded by the caller's timeout and
    interrupted by the cancellation signal at each poll boundary.
    """

    def __init__(
        self,
        store: KeyValueStore,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.settings = settings or default_settings
        self._sleep = sleep
        self._clock = clock

    def run(
        self,
        scan_id: str,
        host_ip: str,
        hostname: Optional[str],
        os_release: Optional[str],
        package_list: PackageList,
        timeout: Optional[float] = None,
        cancel: CancelSignal = None,
    ) -> LscOutcome:
        job = build_request(scan_id, host_ip, hostname, os_release, package_list)
        payload = encode_request(job)

        if not job.package_list or not job.os_release:
            logger.info("Nothing to check for %s/%s, skipping evaluator", scan_id, host_ip)
            return LscOutcome(state=RunState.DONE, status=LscStatus.FINISHED_EMPTY)

        deadline = self._deadline(timeout)
        namespace = self.settings.key_namespace
        stopped = self._publish(job, payload, namespace, deadline, cancel)
        if stopped is not None:
            return stopped
        return self._poll(scan_id, host_ip, namespace, deadline, cancel)

    def status_check(
        self,
        scan_id: str,
        host_ip: str,
        namespace: Optional[str] = None,
        timeout: Optional[float] = None,
        cancel: CancelSignal = None,
    ) -> LscOutcome:
        return self._poll(scan_id, host_ip, namespace or self.settings.key_namespace, self._deadline(timeout), cancel)

    def abort_scan(self, scan_id: str, namespace: Optional[str] = None) -> None:
        """Flag every job of ``scan_id`` as cancelled; running polls stop at their next boundary."""
        self.store.put(abort_key(namespace or self.settings.key_namespace, scan_id), "1", ttl=self.settings.record_ttl_seconds)
        logger.info("Abort requested for scan %s", scan_id)

    def abort_signal(self, scan_id: str, namespace: Optional[str] = None) -> Callable[[], bool]:
        """Cancellation callable that reports whether ``scan_id`` was aborted."""
        key = abort_key(namespace or self.settings.key_namespace, scan_id)

        def aborted() -> bool:
            try:
                return self.store.get(key) is not None
            except StoreUnavailable as exc:
                # the poll itself retries the store; an unreadable flag is not an abort
                logger.debug("Cannot read abort flag %s: %s", key, exc)
                return False

        return aborted

    def _deadline(self, timeout: Optional[float]) -> float:
        if timeout is None:
            timeout = self.settings.default_timeout_seconds
        return self._clock() + max(timeout, 0.0)

    def _publish(
        self,
        job: JobRequest,
        payload: str,
        namespace: str,
        deadline: float,
        cancel: CancelSignal,
    ) -> Optional[LscOutcome]:
        interval = self.settings.poll_interval_seconds
        while True:
            if _is_cancelled(cancel):
                return _cancelled(job.scan_id, job.host_ip)
            try:
                # Any verdict left by an earlier job under the same key goes
                # in the same step that makes the new request visible.
                self.store.replace(
                    request_key(namespace, job.scan_id, job.host_ip),
                    payload,
                    stale=[status_key(namespace, job.scan_id, job.host_ip)],
                    ttl=self.settings.record_ttl_seconds,
                )
            except StoreUnavailable as exc:
                logger.warning("Publishing %s/%s failed, retrying: %s", job.scan_id, job.host_ip, exc)
                if not self._wait(interval, deadline):
                    return _timed_out(job.scan_id, job.host_ip, f"store unavailable: {exc}")
                interval = self._next_interval(interval)
                continue
            logger.info(
                "Published LSC request for %s/%s (%d packages, %s)",
                job.scan_id, job.host_ip, len(job.package_list), job.os_release,
            )
            return None

    def _poll(
        self,
        scan_id: str,
        host_ip: str,
        namespace: str,
        deadline: float,
        cancel: CancelSignal,
    ) -> LscOutcome:
        interval = self.settings.poll_interval_seconds
        last_error: Optional[str] = None
        while True:
            if _is_cancelled(cancel):
                return _cancelled(scan_id, host_ip)
            try:
                report = read_status(self.store, scan_id, host_ip, namespace)
            except StoreUnavailable as exc:
                logger.warning("Reading status of %s/%s failed: %s", scan_id, host_ip, exc)
                last_error = f"store unavailable: {exc}"
            else:
                last_error = None
                logger.debug("Status of %s/%s: %s", scan_id, host_ip, report.status.value)
                if report.status.terminal:
                    return _finished(scan_id, host_ip, report)

            if not self._wait(interval, deadline):
                return _timed_out(scan_id, host_ip, last_error)
            interval = self._next_interval(interval)

    def _wait(self, interval: float, deadline: float) -> bool:
        """Sleep up to ``interval`` without passing the deadline.

        Returns False once the deadline has been reached.
        """
        remaining = deadline - self._clock()
        if remaining <= 0:
            return False
        self._sleep(min(interval, remaining))
        return True

    def _next_interval(self, interval: float) -> float:
        return min(interval * self.settings.poll_backoff, self.settings.max_poll_interval_seconds)


def _is_cancelled(cancel: CancelSignal) -> bool:
    if cancel is None:
        return False
    is_set = getattr(cancel, "is_set", None)
    if is_set is not None:
        return bool(is_set())
    return bool(cancel())


def _finished(scan_id: str, host_ip: str, report: StatusReport) -> LscOutcome:
    if report.status is LscStatus.ERROR:
        logger.info("LSC for %s/%s failed: %s", scan_id, host_ip, report.error)
        return LscOutcome(state=RunState.FAILED, status=LscStatus.ERROR, error=report.error)
    logger.info("LSC for %s/%s finished with %d results", scan_id, host_ip, len(report.results))
    return LscOutcome(state=RunState.DONE, status=report.status, results=report.results)


def _timed_out(scan_id: str, host_ip: str, detail: Optional[str]) -> LscOutcome:
    logger.info("LSC for %s/%s timed out", scan_id, host_ip)
    return LscOutcome(state=RunState.TIMED_OUT, status=LscStatus.TIMEOUT, error=detail)


def _cancelled(scan_id: str, host_ip: str) -> LscOutcome:
    logger.info("LSC for %s/%s cancelled", scan_id, host_ip)
    return LscOutcome(state=RunState.FAILED, status=LscStatus.ERROR, error="cancelled", cancelled=True)
