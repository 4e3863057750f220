"""Measurement store clients.

Concrete MeasurementClient implementations for embedding and local use. The
remote API wrapper of the portal lives outside this package; anything that
implements MeasurementClient can stand in for it.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import polars as pl

from cgm_dashboard.interface.dashboard_interface import (
    ErrorInfo,
    FetchResult,
    ManualEntry,
    MeasurementClient,
    SubmitResult,
)

logger = logging.getLogger(__name__)


class InMemoryMeasurementClient(MeasurementClient):
    """Measurement store held in a list.

    Records are returned exactly as given. ``fail_with`` makes every call
    return that error, which is how an unavailable store is simulated.
    """

    def __init__(self, records: Optional[List[Any]] = None, fail_with: Optional[ErrorInfo] = None):
        self._records: List[Any] = list(records or [])
        self._lock = threading.Lock()
        self._next_id = 1
        self.fail_with = fail_with
        self.fetch_calls = 0
        self.submit_calls = 0

    def fetch_recent_measurements(self) -> FetchResult:
        with self._lock:
            self.fetch_calls += 1
            if self.fail_with is not None:
                return FetchResult(error=self.fail_with)
            return FetchResult(data=list(self._records))

    def submit_measurement(self, entry: ManualEntry) -> SubmitResult:
        with self._lock:
            self.submit_calls += 1
            if self.fail_with is not None:
                return SubmitResult(error=self.fail_with)
            stored = {"id": f"local-{self._next_id}", **entry.to_payload()}
            self._next_id += 1
            self._records.append(stored)
            return SubmitResult(data=stored)

    def replace_records(self, records: List[Any]) -> None:
        with self._lock:
            self._records = list(records)


class FileMeasurementClient(MeasurementClient):
    """Reads measurements from a JSON or CSV export on every fetch.

    JSON files hold a list of records (or ``{"data": [...]}``); values keep
    their JSON types. CSV files are read with every column as text, so numeric
    timestamps arrive as numeric strings. Submissions are kept in memory and
    returned by later fetches; the file itself is never written.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._submitted: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def fetch_recent_measurements(self) -> FetchResult:
        try:
            records = self._read()
        except FileNotFoundError:
            return FetchResult(error=ErrorInfo(f"File not found: {self.path}", status=404))
        except (OSError, ValueError, pl.exceptions.PolarsError) as e:
            logger.warning("Could not read measurements from %s: %s", self.path, e)
            return FetchResult(error=ErrorInfo(f"Could not read {self.path.name}: {e}"))

        with self._lock:
            return FetchResult(data=records + list(self._submitted))

    def submit_measurement(self, entry: ManualEntry) -> SubmitResult:
        with self._lock:
            stored = {"id": f"local-{len(self._submitted) + 1}", **entry.to_payload()}
            self._submitted.append(stored)
        return SubmitResult(data=stored)

    def _read(self) -> List[Any]:
        suffix = self.path.suffix.lower()
        if suffix == ".csv":
            frame = pl.read_csv(self.path, infer_schema_length=0)
            frame = frame.rename({col: col.strip() for col in frame.columns})
            return frame.to_dicts()
        if suffix == ".json":
            with open(self.path, "r", encoding="utf-8-sig") as f:
                payload = json.load(f)
            if isinstance(payload, dict):
                payload = payload.get("data")
            if not isinstance(payload, list):
                raise ValueError("expected a list of measurement records")
            return payload
        raise ValueError(f"unsupported file type {suffix!r} (use .json or .csv)")
