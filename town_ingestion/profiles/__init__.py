"""Import profiles: built-in constants, the registry and config compilation."""

from town_ingestion.profiles.builtin import (
    BUILT_IN_PROFILE_IDS,
    BUILT_IN_PROFILES,
    GENERIC_TRANSACTION_CSV,
    get_built_in_profile,
    get_profiles_by_data_type,
    get_profiles_by_vendor,
)
from town_ingestion.profiles.registry import (
    ProfileRegistry,
    build_registry_from_defs,
    compile_profile_from_def,
)

__all__ = [
    "BUILT_IN_PROFILE_IDS",
    "BUILT_IN_PROFILES",
    "GENERIC_TRANSACTION_CSV",
    "get_built_in_profile",
    "get_profiles_by_data_type",
    "get_profiles_by_vendor",
    "ProfileRegistry",
    "build_registry_from_defs",
    "compile_profile_from_def",
]
