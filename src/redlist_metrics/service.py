"""
Offloading EOO/AOO computation to a worker, with an in-process fallback.

The worker boundary is a request/response exchange of plain dictionaries:

    request:  {"id": str, "type": "eoo" | "aoo", "payload": {...}}
    response: {"id": str, "ok": True,  "type": ..., "result": {...}}
              {"id": str, "ok": False, "type": ..., "error": {"message": str}}

`handle_request` is the worker side. `GeoComputeService` is the caller side:
it submits requests to an injected `concurrent.futures.Executor` and falls
back to running the same pure functions inline whenever the transport fails.

`refresh_eoo` / `refresh_aoo` only hand back a result whose ``input_hash``
still matches the caller's current input; results that went stale while in
flight are dropped and recomputed.
"""

import itertools
import logging
import threading
import time
import traceback
from concurrent.futures import Executor, ProcessPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Literal, Mapping, Optional, Sequence, Tuple, Union

from redlist_metrics.aoo import compute_aoo
from redlist_metrics.config import DEFAULT_WORKER_TIMEOUT_S, MetricsConfig
from redlist_metrics.eoo import compute_eoo
from redlist_metrics.errors import TransportError
from redlist_metrics.grid import validate_cell_size
from redlist_metrics.hashing import hash_occurrences_for_aoo, hash_occurrences_for_eoo
from redlist_metrics.occurrence import Occurrence
from redlist_metrics.results import AooResult, EooResult

logger = logging.getLogger(__name__)

MetricType = Literal["eoo", "aoo"]
MetricResult = Union[EooResult, AooResult]

DEFAULT_MAX_RESCHEDULES = 5

_sequence = itertools.count(1)


def next_request_id() -> str:
    return f"geo-{int(time.time() * 1000)}-{next(_sequence)}"


@dataclass(frozen=True)
class ComputeRequest:
    """A unit of work crossing the worker boundary."""

    id: str
    type: MetricType
    occurrences: Tuple[Occurrence, ...]
    cell_size_meters: Optional[float] = None

    def to_dict(self) -> dict:
        payload: Dict[str, Any] = {"occurrences": [o.to_dict() for o in self.occurrences]}
        if self.type == "aoo":
            payload["cellSizeMeters"] = self.cell_size_meters
        return {"id": self.id, "type": self.type, "payload": payload}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "ComputeRequest":
        request_type = d.get("type")
        if request_type not in ("eoo", "aoo"):
            raise ValueError(f"Unknown request type: {request_type!r}")
        payload = d.get("payload") or {}
        return cls(
            id=str(d["id"]),
            type=request_type,
            occurrences=tuple(Occurrence.from_dict(o) for o in payload.get("occurrences", [])),
            cell_size_meters=payload.get("cellSizeMeters"),
        )


def run_request(request: ComputeRequest) -> MetricResult:
    """Run a request with the pure engine functions."""
    if request.type == "eoo":
        return compute_eoo(request.occurrences)
    return compute_aoo(request.occurrences, request.cell_size_meters)


def handle_request(message: Mapping[str, Any]) -> dict:
    """
    Worker entry point: answer one request dictionary with a response dictionary.

    Never raises; failures are reported as ``ok: False`` responses.
    """
    request_id = message.get("id") if isinstance(message, Mapping) else None
    request_type = message.get("type") if isinstance(message, Mapping) else None
    try:
        request = ComputeRequest.from_dict(message)
        result = run_request(request)
        return {"id": request.id, "ok": True, "type": request.type, "result": result.to_dict()}
    except Exception as e:
        return {
            "id": request_id,
            "ok": False,
            "type": request_type,
            "error": {"message": str(e), "stack": traceback.format_exc()},
        }


def parse_response(request: ComputeRequest, response: Any) -> MetricResult:
    """
    Validate a worker response against its request and decode the result.

    Raises:
        TransportError: If the response is malformed, belongs to another
                        request, or reports a failure.
    """
    if not isinstance(response, Mapping):
        raise TransportError(f"Malformed response for {request.id}: {type(response).__name__}")
    if response.get("id") != request.id or response.get("type") != request.type:
        raise TransportError(
            f"Mismatched response: expected {request.id}/{request.type}, "
            f"got {response.get('id')}/{response.get('type')}"
        )
    if response.get("ok") is not True:
        error = response.get("error") or {}
        raise TransportError(f"Worker failed on {request.id}: {error.get('message', 'unknown error')}")
    try:
        if request.type == "eoo":
            return EooResult.from_dict(response["result"])
        return AooResult.from_dict(response["result"])
    except (KeyError, TypeError, ValueError) as e:
        raise TransportError(f"Undecodable result for {request.id}: {e}") from e


@dataclass
class _InFlight:
    latest: Dict[str, str] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def start(self, metric: str, request_id: str) -> None:
        with self.lock:
            self.latest[metric] = request_id

    def is_latest(self, metric: str, request_id: str) -> bool:
        with self.lock:
            return self.latest.get(metric) == request_id

    def finish(self, metric: str, request_id: str) -> None:
        with self.lock:
            if self.latest.get(metric) == request_id:
                del self.latest[metric]


class GeoComputeService:
    """
    Caller-side handle for EOO/AOO computation.

    Args:
        executor: Where requests run. None computes inline in the calling
                  thread; a ProcessPoolExecutor keeps large point sets off it.
        timeout: Seconds to wait for a worker response before falling back.
        max_reschedules: How many times `refresh_*` recomputes after the
                         input changed under an in-flight request.

    Example:
        >>> with GeoComputeService() as service:
        ...     result = service.compute_aoo(occurrences, 2000)
    """

    def __init__(
        self,
        executor: Optional[Executor] = None,
        timeout: float = DEFAULT_WORKER_TIMEOUT_S,
        max_reschedules: int = DEFAULT_MAX_RESCHEDULES,
        owns_executor: bool = False,
    ):
        self.executor = executor
        self.timeout = timeout
        self.max_reschedules = max_reschedules
        self._owns_executor = owns_executor
        self._in_flight = _InFlight()

    @classmethod
    def from_config(cls, config: MetricsConfig) -> "GeoComputeService":
        executor = ProcessPoolExecutor(max_workers=config.max_workers) if config.use_worker else None
        return cls(executor=executor, timeout=config.worker_timeout_s, owns_executor=executor is not None)

    def close(self) -> None:
        if self._owns_executor and self.executor is not None:
            self.executor.shutdown(wait=False, cancel_futures=True)
            self.executor = None

    def __enter__(self) -> "GeoComputeService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -- dispatch -----------------------------------------------------------

    def _run_on_worker(self, request: ComputeRequest) -> MetricResult:
        try:
            future = self.executor.submit(handle_request, request.to_dict())
        except Exception as e:
            raise TransportError(f"Could not submit {request.id}: {e}") from e
        try:
            response = future.result(timeout=self.timeout)
        except FutureTimeoutError as e:
            future.cancel()
            raise TransportError(f"Worker timed out after {self.timeout}s on {request.id}") from e
        except Exception as e:
            raise TransportError(f"Worker crashed on {request.id}: {e}") from e
        return parse_response(request, response)

    def dispatch(self, request: ComputeRequest) -> MetricResult:
        """
        Run a request on the worker if there is one, else inline.

        Transport failures are logged and recovered by computing in-process.
        Invalid parameters still raise InvalidParameterError from the fallback.
        """
        if self.executor is None:
            return run_request(request)
        try:
            return self._run_on_worker(request)
        except TransportError as e:
            logger.warning("%s; computing %s in-process", e, request.type.upper())
            return run_request(request)

    def compute_eoo(self, occurrences: Sequence[Occurrence]) -> EooResult:
        request = ComputeRequest(next_request_id(), "eoo", tuple(occurrences))
        return self.dispatch(request)

    def compute_aoo(self, occurrences: Sequence[Occurrence], cell_size_meters: float) -> AooResult:
        size = validate_cell_size(cell_size_meters)
        request = ComputeRequest(next_request_id(), "aoo", tuple(occurrences), size)
        return self.dispatch(request)

    # -- refresh with ordering guarantee ------------------------------------

    def _refresh(
        self,
        metric: MetricType,
        snapshot: Callable[[], Tuple[Sequence[Occurrence], Optional[float]]],
        current_hash: Callable[[Sequence[Occurrence], Optional[float]], str],
    ) -> Optional[MetricResult]:
        for attempt in range(self.max_reschedules + 1):
            occurrences, cell_size = snapshot()
            request = ComputeRequest(next_request_id(), metric, tuple(occurrences), cell_size)
            self._in_flight.start(metric, request.id)
            try:
                result = self.dispatch(request)
            except Exception:
                self._in_flight.finish(metric, request.id)
                raise

            if not self._in_flight.is_latest(metric, request.id):
                logger.debug("Ignoring late %s response %s", metric.upper(), request.id)
                return None

            latest_occurrences, latest_cell_size = snapshot()
            if current_hash(latest_occurrences, latest_cell_size) == result.input_hash:
                self._in_flight.finish(metric, request.id)
                return result

            logger.debug(
                "Discarding stale %s result %s (attempt %d); input changed while computing",
                metric.upper(), request.id, attempt + 1,
            )
            self._in_flight.finish(metric, request.id)

        logger.warning(
            "Input kept changing; gave up refreshing %s after %d attempts",
            metric.upper(), self.max_reschedules + 1,
        )
        return None

    def refresh_eoo(self, provider: Callable[[], Sequence[Occurrence]]) -> Optional[EooResult]:
        """
        Compute EOO for the provider's current occurrences.

        Args:
            provider: Returns the current occurrence list; called before and
                      after each computation.

        Returns:
            A result matching the provider's input at return time, or None if
            a newer refresh superseded this one or the input never settled.
        """
        return self._refresh(
            "eoo",
            lambda: (provider(), None),
            lambda occurrences, _: hash_occurrences_for_eoo(occurrences),
        )

    def refresh_aoo(
        self,
        provider: Callable[[], Tuple[Sequence[Occurrence], float]],
    ) -> Optional[AooResult]:
        """
        Compute AOO for the provider's current (occurrences, cell_size_meters).

        Same acceptance rules as `refresh_eoo`; the cell size is part of the input.
        """

        def snapshot():
            occurrences, cell_size = provider()
            return occurrences, validate_cell_size(cell_size)

        return self._refresh("aoo", snapshot, hash_occurrences_for_aoo)
