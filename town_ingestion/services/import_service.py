"""
Import service: parse -> validate -> commit orchestration.

Owns a profile registry, source adapters per file type, a clock and the
pipeline settings.  Nothing is persisted; callers hand the ImportResult
payloads to whatever system of record they use.
Uses structured logging (LogContext, get_logger("ingestion.*")).
"""

from __future__ import annotations

from collections.abc import Sequence

from town_kernel.domain.clock import Clock, SystemClock
from town_kernel.exceptions import (
    ProfileNotFoundError,
    SourceDecodeError,
    UnsupportedFileTypeError,
)
from town_kernel.logging_config import LogContext, get_logger

from town_config.schema import ImportSettings
from town_ingestion.adapters.base import SourceAdapter, SourceProbe
from town_ingestion.adapters.csv_adapter import CsvSourceAdapter
from town_ingestion.domain.types import (
    ImportFileType,
    ImportOptions,
    ImportProfile,
    ImportResult,
    ImportValidationResult,
    MappingContext,
    ParsedRow,
    RawRow,
)
from town_ingestion.mapping.validation import no_data_result, validate_rows
from town_ingestion.profiles.registry import ProfileRegistry
from town_ingestion.services.commit_service import commit_rows, generate_batch_id

logger = get_logger("ingestion.import_service")


def _default_adapters() -> dict[ImportFileType, SourceAdapter]:
    return {ImportFileType.CSV: CsvSourceAdapter()}


def _is_blank_content(content: str | bytes | None) -> bool:
    if content is None:
        return True
    if isinstance(content, (bytes, bytearray)):
        return not bytes(content).strip()
    return not content.strip()


class ImportService:
    """Orchestrates parse -> validate -> commit. Uses registry, clock, adapters, settings."""

    def __init__(
        self,
        registry: ProfileRegistry | None = None,
        clock: Clock | None = None,
        adapters: dict[ImportFileType, SourceAdapter] | None = None,
        settings: ImportSettings | None = None,
    ):
        self._registry = registry if registry is not None else ProfileRegistry()
        self._clock = clock or SystemClock()
        self._adapters = adapters if adapters is not None else _default_adapters()
        self._settings = settings or ImportSettings()

    @property
    def registry(self) -> ProfileRegistry:
        return self._registry

    def _adapter_for(self, profile: ImportProfile) -> SourceAdapter:
        adapter = self._adapters.get(profile.file_type)
        if adapter is None:
            raise UnsupportedFileTypeError(profile.file_type.value)
        return adapter

    # -------------------------------------------------------------------------
    # Parse
    # -------------------------------------------------------------------------

    def parse_file(self, content: str | bytes, profile: ImportProfile) -> list[RawRow]:
        """Read all raw rows with the adapter for the profile's file type."""
        return self._adapter_for(profile).read(content, profile.parse_options)

    def probe(self, content: str | bytes, profile: ImportProfile) -> SourceProbe:
        """Preview source content: row count, columns, sample data."""
        return self._adapter_for(profile).probe(content, profile.parse_options)

    # -------------------------------------------------------------------------
    # Validate
    # -------------------------------------------------------------------------

    def validate(
        self,
        raw_rows: Sequence[RawRow],
        profile: ImportProfile,
        context: MappingContext,
    ) -> ImportValidationResult:
        return validate_rows(
            raw_rows,
            profile,
            context,
            preview_limit=self._settings.preview_limit,
            sample_limit=self._settings.sample_limit,
            max_workers=self._settings.max_workers,
        )

    def preview(
        self,
        content: str | bytes | None,
        profile: ImportProfile,
        context: MappingContext,
    ) -> ImportValidationResult:
        """
        Parse and validate in one call.

        Blank content and unreadable sources come back as a result carrying
        one file-level error instead of raising.
        """
        if _is_blank_content(content):
            return no_data_result("EMPTY_INPUT", "Empty input")
        try:
            raw_rows = self.parse_file(content, profile)
        except (SourceDecodeError, UnsupportedFileTypeError) as e:
            logger.warning(
                "source_parse_failed",
                extra={"profile_id": profile.id, "error_code": e.code, "reason": str(e)},
            )
            return no_data_result("PARSE_FAILED", f"Parse error: {e}")
        return self.validate(raw_rows, profile, context)

    # -------------------------------------------------------------------------
    # Commit
    # -------------------------------------------------------------------------

    def import_rows(
        self,
        parsed_rows: Sequence[ParsedRow],
        profile: ImportProfile,
        options: ImportOptions,
        context: MappingContext,
    ) -> ImportResult:
        return commit_rows(parsed_rows, profile, options, context, clock=self._clock)

    def run_import(
        self,
        content: str | bytes | None,
        options: ImportOptions,
        context: MappingContext,
    ) -> ImportResult:
        """
        Resolve the profile, parse, validate and commit.

        Raises ProfileNotFoundError for an unknown ``options.profile_id``.
        A source with no data rows yields a failed result carrying the
        file-level error.
        """
        profile = self.require_profile(options.profile_id, options.tenant_id)
        with LogContext.bind(
            tenant_id=options.tenant_id,
            profile_id=profile.id,
            actor_id=options.user_id,
            producer="ingestion",
        ):
            validation = self.preview(content, profile, context)
            if validation.total_rows == 0:
                logger.info("import_aborted_no_rows", extra={"reason": validation.summary})
                return ImportResult(
                    success=False,
                    batch_id=generate_batch_id(self._clock),
                    total_rows=0,
                    successful_rows=0,
                    failed_rows=0,
                    warning_rows=0,
                    errors=validation.errors,
                    summary=validation.summary,
                )
            return self.import_rows(validation.rows, profile, options, context)

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    def get_profiles(self, tenant_id: str | None = None) -> list[ImportProfile]:
        return self._registry.list_profiles(tenant_id)

    def get_profile(self, profile_id: str, tenant_id: str | None = None) -> ImportProfile | None:
        return self._registry.get(profile_id, tenant_id)

    def require_profile(self, profile_id: str, tenant_id: str | None = None) -> ImportProfile:
        profile = self._registry.get(profile_id, tenant_id)
        if profile is None:
            raise ProfileNotFoundError(profile_id)
        return profile

    def register_profile(self, profile: ImportProfile) -> None:
        self._registry.register(profile)
