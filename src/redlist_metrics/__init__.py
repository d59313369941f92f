"""Redlist Metrics Python - EOO, AOO and Criterion B tools for IUCN Red List assessments."""

from importlib.metadata import version, PackageNotFoundError

# Get version from installed package metadata (reads from pyproject.toml)
try:
    __version__ = version("redlist-metrics-python")
except PackageNotFoundError:
    # Package not installed (development mode)
    __version__ = "0.0.0.dev"

from redlist_metrics.occurrence import Occurrence, validate_lat_lon, normalize_occurrence
from redlist_metrics.eoo import compute_eoo, is_eoo_stale
from redlist_metrics.aoo import compute_aoo, is_aoo_stale
from redlist_metrics.results import EooResult, AooResult
from redlist_metrics.criterion_b import CriterionBInput, DeclineIndicator, infer_criterion_b
from redlist_metrics.service import GeoComputeService

__all__ = [
    "__version__",
    "Occurrence",
    "validate_lat_lon",
    "normalize_occurrence",
    "compute_eoo",
    "is_eoo_stale",
    "compute_aoo",
    "is_aoo_stale",
    "EooResult",
    "AooResult",
    "CriterionBInput",
    "DeclineIndicator",
    "infer_criterion_b",
    "GeoComputeService",
]
