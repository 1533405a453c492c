"""
Typed Exception Hierarchy for the Town Finance Pipeline.

===============================================================================
WHAT RAISES AND WHAT DOES NOT
===============================================================================

Row-level problems in an import (a missing required column, an amount that
will not parse, a rule failure) are DATA, not exceptions.  They are collected
as RowError / RowWarning values and returned in the validation or import
result.  The classes below are raised only when the pipeline cannot be run
at all: the caller asked for a file type that has no parser, handed over
bytes that cannot be decoded, or referenced a profile that does not exist.

Every exception carries a class-level ``code`` (machine-readable, API-safe)
and stores its context as attributes, so callers catch by type and read
structured fields instead of parsing messages:

    try:
        result = service.run_import(content, options, context)
    except ProfileNotFoundError as e:
        return {"error": e.code, "profile_id": e.profile_id}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    TownKernelError (base)
    |
    +-- ImportPipelineError
        +-- UnsupportedFileTypeError
        +-- SourceDecodeError
        +-- ProfileNotFoundError
        +-- InvalidProfileError
        +-- UnknownTransformError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                     | When Raised
-------------------------|----------------------------------------------------
UNSUPPORTED_FILE_TYPE    | Parser asked for XLSX/JSON/OFX/... (only CSV exists)
SOURCE_DECODE_FAILED     | Byte input is not valid in the declared encoding
PROFILE_NOT_FOUND        | No built-in or registered profile with that id
INVALID_PROFILE          | Profile definition is structurally unusable
UNKNOWN_TRANSFORM        | Profile definition names a transform not in the catalog
"""


class TownKernelError(Exception):
    """
    Base exception for all town kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "TOWN_KERNEL_ERROR"


class ImportPipelineError(TownKernelError):
    """Base exception for import pipeline errors."""

    code: str = "IMPORT_PIPELINE_ERROR"


class UnsupportedFileTypeError(ImportPipelineError):
    """The requested file type is declared but has no parser."""

    code: str = "UNSUPPORTED_FILE_TYPE"

    def __init__(self, file_type: str):
        self.file_type = file_type
        super().__init__(f"File type {file_type} is not supported; only CSV can be parsed")


class SourceDecodeError(ImportPipelineError):
    """Raw bytes could not be decoded with the profile's encoding."""

    code: str = "SOURCE_DECODE_FAILED"

    def __init__(self, encoding: str, reason: str):
        self.encoding = encoding
        self.reason = reason
        super().__init__(f"Cannot decode source as {encoding}: {reason}")


class ProfileNotFoundError(ImportPipelineError):
    """No built-in or registered profile matches the requested id."""

    code: str = "PROFILE_NOT_FOUND"

    def __init__(self, profile_id: str):
        self.profile_id = profile_id
        super().__init__(f"Import profile not found: {profile_id}")


class InvalidProfileError(ImportPipelineError):
    """A profile (or profile definition) cannot be registered or compiled."""

    code: str = "INVALID_PROFILE"

    def __init__(self, profile_id: str, reason: str):
        self.profile_id = profile_id
        self.reason = reason
        super().__init__(f"Invalid import profile {profile_id!r}: {reason}")


class UnknownTransformError(ImportPipelineError):
    """A profile definition references a transform outside the catalog."""

    code: str = "UNKNOWN_TRANSFORM"

    def __init__(self, transform: str, target_field: str | None = None):
        self.transform = transform
        self.target_field = target_field
        where = f" for field {target_field!r}" if target_field else ""
        super().__init__(f"Unknown transform {transform!r}{where}")
