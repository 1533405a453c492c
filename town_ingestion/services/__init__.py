"""Import services: commit engine, orchestration and CSV quick-import helpers."""

from town_ingestion.services.commit_service import commit_rows, generate_batch_id
from town_ingestion.services.csv_import import (
    SimpleImportedTransaction,
    SimpleImportResult,
    SimpleIssue,
    create_custom_csv_profile,
    get_available_profiles,
    get_csv_headers,
    get_profile,
    import_generic_transaction_csv,
    import_transactions_from_csv,
    infer_transform,
    validate_csv,
)
from town_ingestion.services.import_service import ImportService

__all__ = [
    "ImportService",
    "commit_rows",
    "generate_batch_id",
    "SimpleImportedTransaction",
    "SimpleImportResult",
    "SimpleIssue",
    "create_custom_csv_profile",
    "get_available_profiles",
    "get_csv_headers",
    "get_profile",
    "import_generic_transaction_csv",
    "import_transactions_from_csv",
    "infer_transform",
    "validate_csv",
]
