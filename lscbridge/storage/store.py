import logging
import threading
from typing import Dict, Iterable, Optional, Protocol, Union

import redis

from ..config import settings
from ..errors import MalformedStatusRecord, StoreUnavailable

logger = logging.getLogger(__name__)

_TRANSIENT = (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError)


class KeyValueStore(Protocol):
    """Shared store between the orchestrator and the evaluator.

    Values are whole JSON documents: ``put`` replaces a key's value in one
    step and readers never see a partially written record. ``get`` returns
    the value undecoded when the backend holds bytes.
    """

    def get(self, key: str) -> Union[str, bytes, None]: ...

    def put(self, key: str, value: str, ttl: Optional[int] = None) -> None: ...

    def delete(self, key: str) -> None: ...

    def replace(self, key: str, value: str, stale: Iterable[str] = (), ttl: Optional[int] = None) -> None:
        """Delete ``stale`` keys and set ``key`` as one atomic step."""
        ...


class MemoryStore:
    """Process-local store, used by tests and single-process deployments."""

    def __init__(self):
        self._data: Dict[str, Union[str, bytes]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Union[str, bytes, None]:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        # ttl is accepted for interface parity; entries never expire here
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def replace(self, key: str, value: str, stale: Iterable[str] = (), ttl: Optional[int] = None) -> None:
        with self._lock:
            for old in stale:
                self._data.pop(old, None)
            self._data[key] = value


class RedisStore:
    def __init__(self, url: Optional[str] = None, client: Optional[redis.Redis] = None):
        # Raw bytes: a record that is not UTF-8 must reach the status parser
        # and be classified there, not fail inside the client.
        self.r = client if client is not None else redis.from_url(url or settings.redis_url, decode_responses=False)

    def get(self, key: str) -> Union[str, bytes, None]:
        try:
            return self.r.get(key)
        except _TRANSIENT as exc:
            raise StoreUnavailable(f"GET {key}: {exc}") from exc
        except redis.exceptions.ResponseError as exc:
            if str(exc).startswith("WRONGTYPE"):
                raise MalformedStatusRecord(f"{key} is not a string value: {exc}") from exc
            raise

    def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        try:
            self.r.set(key, value, ex=ttl)
        except _TRANSIENT as exc:
            raise StoreUnavailable(f"SET {key}: {exc}") from exc
        logger.debug("Stored %s (%d bytes, ttl=%s)", key, len(value), ttl)

    def delete(self, key: str) -> None:
        try:
            self.r.delete(key)
        except _TRANSIENT as exc:
            raise StoreUnavailable(f"DEL {key}: {exc}") from exc

    def replace(self, key: str, value: str, stale: Iterable[str] = (), ttl: Optional[int] = None) -> None:
        stale = list(stale)
        try:
            with self.r.pipeline(transaction=True) as pipe:
                if stale:
                    pipe.delete(*stale)
                pipe.set(key, value, ex=ttl)
                pipe.execute()
        except _TRANSIENT as exc:
            raise StoreUnavailable(f"MULTI DEL/SET {key}: {exc}") from exc
        logger.debug("Replaced %s (%d bytes, ttl=%s), cleared %s", key, len(value), ttl, stale)
