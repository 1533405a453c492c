"""
Profile registry: built-in profiles plus in-memory custom profiles.

The hosting application owns a ProfileRegistry instance; there is no
module-level mutable state.  Custom profiles live for the lifetime of the
registry object only.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

from town_kernel.exceptions import InvalidProfileError, UnknownTransformError
from town_kernel.logging_config import get_logger

from town_ingestion.adapters.csv_adapter import options_from_mapping
from town_ingestion.domain.types import (
    NO_DEFAULT,
    ColumnMapping,
    ImportDataType,
    ImportFileType,
    ImportProfile,
    KnownVendor,
    RuleType,
    Severity,
    ValidationRule,
)
from town_ingestion.mapping.transforms import resolve_transform_name
from town_ingestion.profiles.builtin import BUILT_IN_PROFILE_IDS, BUILT_IN_PROFILES, get_built_in_profile

logger = get_logger("ingestion.profiles")


class ProfileRegistry:
    """Lookup over built-in profiles, then registered custom profiles."""

    def __init__(self, profiles: Iterable[ImportProfile] = ()):
        self._custom: dict[str, ImportProfile] = {}
        for profile in profiles:
            self.register(profile)

    def register(self, profile: ImportProfile) -> None:
        """Upsert a custom profile by id. Built-in ids cannot be shadowed."""
        if profile.id in BUILT_IN_PROFILE_IDS:
            raise InvalidProfileError(profile.id, "id is reserved by a built-in profile")
        replaced = profile.id in self._custom
        self._custom[profile.id] = profile
        logger.info(
            "profile_registered",
            extra={"profile_id": profile.id, "tenant_id": profile.tenant_id, "replaced": replaced},
        )

    def get(self, profile_id: str, tenant_id: str | None = None) -> ImportProfile | None:
        """Built-ins first, then custom profiles visible to ``tenant_id``."""
        builtin = get_built_in_profile(profile_id)
        if builtin is not None:
            return builtin
        custom = self._custom.get(profile_id)
        if custom is None or not _visible_to(custom, tenant_id):
            return None
        return custom

    def list_profiles(self, tenant_id: str | None = None) -> list[ImportProfile]:
        """Built-ins, then custom profiles visible to ``tenant_id``, in insertion order."""
        return list(BUILT_IN_PROFILES) + [p for p in self._custom.values() if _visible_to(p, tenant_id)]

    def __contains__(self, profile_id: object) -> bool:
        return profile_id in BUILT_IN_PROFILE_IDS or profile_id in self._custom

    def __len__(self) -> int:
        return len(BUILT_IN_PROFILES) + len(self._custom)


def _visible_to(profile: ImportProfile, tenant_id: str | None) -> bool:
    # Unowned custom profiles are shared; no tenant means no filtering
    return tenant_id is None or profile.tenant_id is None or profile.tenant_id == tenant_id


# -----------------------------------------------------------------------------
# Compile config definitions
# -----------------------------------------------------------------------------


def _enum_value(enum_cls: Any, raw: Any, profile_id: str, what: str) -> Any:
    if isinstance(raw, enum_cls):
        return raw
    text = str(raw).strip()
    for candidate in (text, text.upper(), text.lower()):
        try:
            return enum_cls(candidate)
        except ValueError:
            continue
    allowed = ", ".join(m.value for m in enum_cls)
    raise InvalidProfileError(profile_id, f"unknown {what} {raw!r} (expected one of: {allowed})")


def _check_pattern(pattern: Any, profile_id: str, where: str) -> None:
    if pattern is None:
        return
    if not isinstance(pattern, str):
        raise InvalidProfileError(profile_id, f"{where}: pattern must be a string, got {pattern!r}")
    try:
        re.compile(pattern)
    except re.error as e:
        raise InvalidProfileError(profile_id, f"{where}: invalid pattern {pattern!r}: {e}") from e


def compile_profile_from_def(def_: Any) -> ImportProfile:
    """Build a runtime ImportProfile from a config ImportProfileDef."""
    from town_config.schema import ImportProfileDef

    if not isinstance(def_, ImportProfileDef):
        raise TypeError("Expected ImportProfileDef")

    mappings = []
    for m in def_.mappings:
        transform = resolve_transform_name(m.transform)
        if transform is None:
            raise UnknownTransformError(str(m.transform), m.target)
        _check_pattern(m.pattern, def_.id, f"mapping {m.target!r}")
        mappings.append(ColumnMapping(
            source_column=m.source,
            target_field=m.target,
            transform=transform,
            default=m.default if m.has_default else NO_DEFAULT,
            required=m.required,
            validation_pattern=m.pattern,
        ))

    rules = tuple(
        ValidationRule(
            id=v.id,
            description=v.description or v.id,
            fields=tuple(v.fields),
            rule_type=_enum_value(RuleType, v.rule_type, def_.id, "rule type"),
            severity=_enum_value(Severity, v.severity, def_.id, "severity"),
            params=dict(v.params),
            message=v.message,
        )
        for v in def_.validations
    )

    for rule in rules:
        if rule.rule_type == RuleType.FORMAT:
            _check_pattern(rule.params.get("pattern"), def_.id, f"rule {rule.id!r}")

    try:
        parse_options = options_from_mapping(def_.parse_options)
    except (TypeError, ValueError) as e:
        raise InvalidProfileError(def_.id, f"bad parse_options: {e}") from e

    return ImportProfile(
        id=def_.id,
        name=def_.name,
        description=def_.description,
        vendor=_enum_value(KnownVendor, def_.vendor, def_.id, "vendor"),
        file_type=_enum_value(ImportFileType, def_.file_type, def_.id, "file type"),
        data_type=_enum_value(ImportDataType, def_.data_type, def_.id, "data type"),
        mappings=tuple(mappings),
        parse_options=parse_options,
        validation_rules=rules,
        is_system=False,
        tenant_id=def_.tenant_id,
    )


def build_registry_from_defs(profile_defs: Iterable[Any]) -> ProfileRegistry:
    """Compile every definition and register it in a fresh registry."""
    registry = ProfileRegistry()
    for def_ in profile_defs:
        registry.register(compile_profile_from_def(def_))
    return registry
