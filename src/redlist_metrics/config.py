"""
Runtime configuration for the EOO/AOO engines and the compute service.

Values come from a plain dictionary (e.g. a project's settings block) or from
environment variables:

    REDLIST_CELL_SIZE_METERS   AOO grid cell size in meters (default 2000)
    REDLIST_WORKER_TIMEOUT     seconds to wait for a worker response (default 30)
    REDLIST_USE_WORKER         "1"/"true" to offload computation to a process pool
    REDLIST_MAX_WORKERS        size of that pool (default: executor's choice)
"""

import math
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from redlist_metrics.errors import InvalidParameterError

# IUCN guidelines measure AOO on a 2 x 2 km grid.
DEFAULT_CELL_SIZE_METERS = 2000.0
DEFAULT_WORKER_TIMEOUT_S = 30.0

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


@dataclass(frozen=True)
class MetricsConfig:
    """
    Settings shared by the CLI and the compute service.

    Attributes:
        cell_size_meters: AOO grid cell size in Web Mercator meters.
        worker_timeout_s: Seconds before a worker request is considered failed.
        use_worker: Whether to run computations in a process pool.
        max_workers: Process pool size; None lets the executor decide.
    """

    cell_size_meters: float = DEFAULT_CELL_SIZE_METERS
    worker_timeout_s: float = DEFAULT_WORKER_TIMEOUT_S
    use_worker: bool = False
    max_workers: Optional[int] = None

    def __post_init__(self):
        if not math.isfinite(self.cell_size_meters) or self.cell_size_meters <= 0:
            raise InvalidParameterError(
                f"cell_size_meters must be a finite positive number, got {self.cell_size_meters!r}"
            )
        if not math.isfinite(self.worker_timeout_s) or self.worker_timeout_s <= 0:
            raise InvalidParameterError(
                f"worker_timeout_s must be a finite positive number, got {self.worker_timeout_s!r}"
            )
        if self.max_workers is not None and self.max_workers < 1:
            raise InvalidParameterError(
                f"max_workers must be at least 1, got {self.max_workers!r}"
            )

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "MetricsConfig":
        """Create a MetricsConfig from a settings dictionary (camelCase keys accepted)."""
        max_workers = d.get("max_workers", d.get("maxWorkers"))
        return cls(
            cell_size_meters=float(
                d.get("cell_size_meters", d.get("aooCellSizeMeters", DEFAULT_CELL_SIZE_METERS))
            ),
            worker_timeout_s=float(d.get("worker_timeout_s", DEFAULT_WORKER_TIMEOUT_S)),
            use_worker=_parse_bool(d.get("use_worker", False)),
            max_workers=int(max_workers) if max_workers is not None else None,
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MetricsConfig":
        """Create a MetricsConfig from REDLIST_* environment variables."""
        env = os.environ if environ is None else environ
        d: Dict[str, Any] = {}
        if "REDLIST_CELL_SIZE_METERS" in env:
            d["cell_size_meters"] = env["REDLIST_CELL_SIZE_METERS"]
        if "REDLIST_WORKER_TIMEOUT" in env:
            d["worker_timeout_s"] = env["REDLIST_WORKER_TIMEOUT"]
        if "REDLIST_USE_WORKER" in env:
            d["use_worker"] = env["REDLIST_USE_WORKER"]
        if env.get("REDLIST_MAX_WORKERS"):
            d["max_workers"] = env["REDLIST_MAX_WORKERS"]
        return cls.from_dict(d)
