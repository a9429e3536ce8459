"""
Cached lookup of selectable field names per (section, case type).

The field list comes from an external fetcher that is slow but a pure
function of its key.  A request for a cached key answers synchronously.
Otherwise the fetch runs on a background worker and the result is cached
when it arrives.

Two requests for the same uncached key issued before the first finishes
both reach the fetcher; there is no de-duplication and no cancellation.
"""

from __future__ import annotations

import threading
import time
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from . import package_logger
from .config import Config

logger = package_logger(__name__)


class Section(str, Enum):
    SECTION1 = "Section1"
    SECTION2 = "Section2"
    SECTION3 = "Section3"


class CaseType(str, Enum):
    A = "A"
    B = "B"
    C = "C"


def _parse_key(section: Union[Section, str], case_type: Union[CaseType, str]) -> Tuple[Section, CaseType]:
    try:
        return Section(section), CaseType(case_type)
    except ValueError as e:
        raise ValueError(f"Unknown field lookup key ({section!r}, {case_type!r})") from e


Fetcher = Callable[[Section, CaseType], Sequence[str]]
FieldsCallback = Callable[[List[str]], None]


def demo_field_source(section: Section, case_type: CaseType) -> List[str]:
    """Static field table used by the demo data set."""
    prefix = f"{Section(section).value}_{CaseType(case_type).value}"
    return [f"{prefix}_1", f"{prefix}_2"]


class FieldLookup:
    """
    Field list cache in front of an external fetcher.

    Args:
        fetcher: ``fetcher(section, case_type) -> sequence of field names``
        latency: Seconds to wait before calling the fetcher, simulating a
            remote source.  Defaults to ``field_lookup_latency_seconds``
            from configuration when *config* is given, else 0.
        config: Optional `Config` to read the latency from
    """

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        latency: Optional[float] = None,
        config: Optional[Config] = None,
    ) -> None:
        self.fetcher = fetcher
        if latency is None:
            latency = config.get("field_lookup_latency_seconds", 0.0) if config else 0.0
        self.latency = float(latency)
        self._cache: Dict[Tuple[Section, CaseType], List[str]] = {}
        self._lock = threading.Lock()
        self._workers: List[threading.Thread] = []
        self.fetch_count = 0

    def request(
        self,
        section: Union[Section, str],
        case_type: Union[CaseType, str],
        callback: Optional[FieldsCallback] = None,
    ) -> Optional[List[str]]:
        """
        Ask for the field list of a key.

        Args:
            section: Section (enum or its value)
            case_type: Case type (enum or its value)
            callback: Called with the field list.  Synchronously for a
                cached key, from the worker thread otherwise.

        Returns:
            The cached list (a copy), or None when a fetch was started
        """
        key = _parse_key(section, case_type)
        cached = self.cached(*key)
        if cached is not None:
            if callback is not None:
                callback(cached)
            return cached

        worker = threading.Thread(
            target=self._fetch_worker,
            args=(key, callback),
            daemon=True,
            name=f"FieldLookup-{key[0].value}_{key[1].value}",
        )
        with self._lock:
            self.fetch_count += 1
            self._workers = [w for w in self._workers if w.is_alive()]
            self._workers.append(worker)
        worker.start()
        return None

    def _fetch_worker(self, key: Tuple[Section, CaseType], callback: Optional[FieldsCallback]) -> None:
        if self.latency > 0:
            time.sleep(self.latency)
        try:
            fields = list(self.fetcher(*key))
        except Exception as e:
            logger.error(f"Field lookup for {key[0].value}/{key[1].value} failed: {e}")
            return

        with self._lock:
            self._cache[key] = fields
        logger.debug(f"Cached {len(fields)} fields for {key[0].value}/{key[1].value}")
        if callback is not None:
            callback(list(fields))

    def cached(self, section: Union[Section, str], case_type: Union[CaseType, str]) -> Optional[List[str]]:
        key = _parse_key(section, case_type)
        with self._lock:
            fields = self._cache.get(key)
        return list(fields) if fields is not None else None

    def is_cached(self, section: Union[Section, str], case_type: Union[CaseType, str]) -> bool:
        return self.cached(section, case_type) is not None

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for in-flight fetches to finish.

        Returns:
            True if no worker is still running afterwards
        """
        with self._lock:
            workers = list(self._workers)
        deadline = None if timeout is None else time.monotonic() + timeout
        for worker in workers:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            worker.join(remaining)
        with self._lock:
            self._workers = [w for w in self._workers if w.is_alive()]
            return not self._workers
