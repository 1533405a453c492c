"""YAML-declared import profiles and pipeline settings."""

from town_config.loader import (
    compute_checksum,
    load_import_config,
    load_yaml_file,
    parse_column_mapping_def,
    parse_import_profile_def,
    parse_import_settings,
    parse_validation_rule_def,
)
from town_config.schema import (
    ColumnMappingDef,
    ImportProfileDef,
    ImportSettings,
    ValidationRuleDef,
)

__all__ = [
    "ColumnMappingDef",
    "ImportProfileDef",
    "ImportSettings",
    "ValidationRuleDef",
    "compute_checksum",
    "load_import_config",
    "load_yaml_file",
    "parse_column_mapping_def",
    "parse_import_profile_def",
    "parse_import_settings",
    "parse_validation_rule_def",
]
