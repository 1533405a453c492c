"""Mapping: transforms, row mapping, column statistics and the validation pass."""

from town_ingestion.mapping.engine import MappingResult, apply_mapping, resolve_source_value, set_path
from town_ingestion.mapping.statistics import compute_column_stats, detect_type
from town_ingestion.mapping.transforms import TRANSFORMS, apply_transform, resolve_transform_name
from town_ingestion.mapping.validation import validate_rows

__all__ = [
    "MappingResult",
    "apply_mapping",
    "resolve_source_value",
    "set_path",
    "compute_column_stats",
    "detect_type",
    "TRANSFORMS",
    "apply_transform",
    "resolve_transform_name",
    "validate_rows",
]
