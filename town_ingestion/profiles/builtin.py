"""
Built-in import profiles for common municipal data sources.

Process-wide constants.  Tenants add their own profiles through a
ProfileRegistry; built-ins are never replaced.
"""

from __future__ import annotations

from town_ingestion.domain.types import (
    ColumnMapping,
    ImportDataType,
    ImportFileType,
    ImportProfile,
    KnownVendor,
    ParseOptions,
    RuleType,
    Severity,
    TransformName,
    ValidationRule,
)

T = TransformName


# ============================================================================
# Generic profiles
# ============================================================================

GENERIC_TRANSACTION_CSV = ImportProfile(
    id="generic-transaction-csv",
    name="Generic Transaction CSV",
    description="Import transactions from a standard CSV file",
    vendor=KnownVendor.GENERIC,
    file_type=ImportFileType.CSV,
    data_type=ImportDataType.TRANSACTIONS,
    is_system=True,
    mappings=(
        ColumnMapping("Date", "transaction_date", T.PARSE_DATE_US, required=True),
        ColumnMapping("Amount", "amount", T.PARSE_AMOUNT, required=True),
        ColumnMapping("Description", "description", T.TRIM, required=True),
        ColumnMapping("Type", "type", T.MAP_TRANSACTION_TYPE, default="DISBURSEMENT"),
        ColumnMapping("Fund", "fund_code", T.FUND_CODE_PAD, required=True),
        ColumnMapping("Account", "account_code", T.ACCOUNT_CODE_PAD),
        ColumnMapping("Check Number", "check_number", T.TRIM),
        ColumnMapping("Vendor", "vendor_name", T.TRIM),
        ColumnMapping("Reference", "external_ref", T.TRIM),
    ),
    validation_rules=(
        ValidationRule(
            id="valid-date",
            description="Transaction date must be valid",
            fields=("transaction_date",),
            rule_type=RuleType.FORMAT,
        ),
        ValidationRule(
            id="valid-amount",
            description="Amount must be a valid number",
            fields=("amount",),
            rule_type=RuleType.FORMAT,
        ),
        ValidationRule(
            id="fund-exists",
            description="Fund code must exist or be creatable",
            fields=("fund_code",),
            rule_type=RuleType.LOOKUP,
            severity=Severity.WARNING,
            params={"table": "funds"},
        ),
    ),
)

GENERIC_BUDGET_CSV = ImportProfile(
    id="generic-budget-csv",
    name="Generic Budget CSV",
    description="Import budget lines from a standard CSV file",
    vendor=KnownVendor.GENERIC,
    file_type=ImportFileType.CSV,
    data_type=ImportDataType.BUDGET,
    is_system=True,
    mappings=(
        ColumnMapping("Fund", "fund_code", T.FUND_CODE_PAD, required=True),
        ColumnMapping("Account", "account_code", T.ACCOUNT_CODE_PAD),
        ColumnMapping("Year", "fiscal_year", T.PARSE_INTEGER, required=True),
        ColumnMapping("Adopted Amount", "adopted_amount", T.PARSE_AMOUNT, required=True),
        ColumnMapping("Amended Amount", "amended_amount", T.PARSE_AMOUNT),
        ColumnMapping("Category", "category", T.TRIM),
        ColumnMapping("Type", "line_type", T.UPPERCASE, default="APPROPRIATION"),
    ),
    validation_rules=(
        ValidationRule(
            id="valid-year",
            description="Fiscal year must be valid",
            fields=("fiscal_year",),
            rule_type=RuleType.RANGE,
            params={"min": 2000, "max": 2100},
        ),
        ValidationRule(
            id="valid-amount",
            description="Adopted amount must be non-negative",
            fields=("adopted_amount",),
            rule_type=RuleType.RANGE,
            params={"min": 0},
        ),
    ),
)

GENERIC_FUND_CSV = ImportProfile(
    id="generic-fund-csv",
    name="Generic Fund CSV",
    description="Import funds from a standard CSV file",
    vendor=KnownVendor.GENERIC,
    file_type=ImportFileType.CSV,
    data_type=ImportDataType.FUNDS,
    is_system=True,
    mappings=(
        ColumnMapping("Code", "code", T.FUND_CODE_PAD, required=True),
        ColumnMapping("Name", "name", T.TRIM, required=True),
        ColumnMapping("Type", "type", T.UPPERCASE, default="GOVERNMENTAL"),
        ColumnMapping("Category", "category", T.LOWERCASE),
        ColumnMapping("Beginning Balance", "beginning_balance", T.PARSE_AMOUNT, default=0),
        ColumnMapping("Active", "is_active", T.PARSE_BOOLEAN, default=True),
        ColumnMapping("Restricted", "is_restricted", T.PARSE_BOOLEAN, default=False),
    ),
    validation_rules=(
        ValidationRule(
            id="unique-code",
            description="Fund code must be unique",
            fields=("code",),
            rule_type=RuleType.CUSTOM,
            params={"check": "unique"},
        ),
    ),
)

GENERIC_VENDOR_CSV = ImportProfile(
    id="generic-vendor-csv",
    name="Generic Vendor CSV",
    description="Import vendors from a standard CSV file",
    vendor=KnownVendor.GENERIC,
    file_type=ImportFileType.CSV,
    data_type=ImportDataType.VENDORS,
    is_system=True,
    mappings=(
        ColumnMapping("Name", "name", T.TRIM, required=True),
        ColumnMapping("Vendor Number", "vendor_number", T.TRIM),
        ColumnMapping("Address", "address.line1", T.TRIM),
        ColumnMapping("City", "address.city", T.TRIM),
        ColumnMapping("State", "address.state", T.UPPERCASE),
        ColumnMapping("Zip", "address.postal_code", T.TRIM),
        ColumnMapping("Phone", "phone", T.TRIM),
        ColumnMapping("Email", "email", T.LOWERCASE),
        ColumnMapping("1099", "requires_1099", T.PARSE_BOOLEAN, default=False),
        ColumnMapping("Tax ID", "tax_id", T.TRIM),
    ),
    validation_rules=(
        ValidationRule(
            id="valid-name",
            description="Vendor name is required",
            fields=("name",),
            rule_type=RuleType.REQUIRED,
        ),
    ),
)

OPENING_BALANCE_CSV = ImportProfile(
    id="opening-balance-csv",
    name="Opening Balance CSV",
    description="Import fund opening balances",
    vendor=KnownVendor.GENERIC,
    file_type=ImportFileType.CSV,
    data_type=ImportDataType.OPENING_BALANCES,
    is_system=True,
    mappings=(
        ColumnMapping("Fund", "fund_code", T.FUND_CODE_PAD, required=True),
        ColumnMapping("Balance", "beginning_balance", T.PARSE_AMOUNT, required=True),
        ColumnMapping("As Of Date", "as_of_date", T.PARSE_DATE_US, required=True),
    ),
)


# ============================================================================
# Vendor-specific profiles
# ============================================================================

QUICKBOOKS_TRANSACTION_CSV = ImportProfile(
    id="quickbooks-transaction-csv",
    name="QuickBooks Transaction Export",
    description="Import transactions exported from QuickBooks",
    vendor=KnownVendor.QUICKBOOKS,
    file_type=ImportFileType.CSV,
    data_type=ImportDataType.TRANSACTIONS,
    is_system=True,
    mappings=(
        ColumnMapping("Date", "transaction_date", T.PARSE_DATE_US, required=True),
        ColumnMapping("Amount", "amount", T.PARSE_AMOUNT_NEGATIVE_PARENS, required=True),
        ColumnMapping("Memo", "description", T.TRIM, required=True),
        ColumnMapping("Type", "type", T.MAP_TRANSACTION_TYPE),
        ColumnMapping("Account", "account_code", T.TRIM),
        ColumnMapping("Num", "check_number", T.TRIM),
        ColumnMapping("Name", "vendor_name", T.TRIM),
        ColumnMapping("Class", "fund_code", T.TRIM),
    ),
)

# Indiana Gateway annual financial report; first line is a report title
GATEWAY_AFR_EXPORT = ImportProfile(
    id="gateway-afr-export",
    name="Gateway AFR Export",
    description="Import data from Indiana Gateway AFR export",
    vendor=KnownVendor.GATEWAY,
    file_type=ImportFileType.CSV,
    data_type=ImportDataType.TRANSACTIONS,
    is_system=True,
    parse_options=ParseOptions(skip_rows=1),
    mappings=(
        ColumnMapping("Fund Number", "fund_code", T.FUND_CODE_PAD, required=True),
        ColumnMapping("Fund Name", "fund_name", T.TRIM),
        ColumnMapping("Beginning Balance", "beginning_balance", T.PARSE_AMOUNT),
        ColumnMapping("Receipts", "receipts", T.PARSE_AMOUNT),
        ColumnMapping("Disbursements", "disbursements", T.PARSE_AMOUNT),
        ColumnMapping("Ending Balance", "ending_balance", T.PARSE_AMOUNT),
    ),
)

BANK_STATEMENT_CSV = ImportProfile(
    id="bank-statement-csv",
    name="Bank Statement CSV",
    description="Import transactions from bank statement CSV export",
    vendor=KnownVendor.GENERIC,
    file_type=ImportFileType.CSV,
    data_type=ImportDataType.TRANSACTIONS,
    is_system=True,
    mappings=(
        ColumnMapping("Date", "transaction_date", T.PARSE_DATE_US, required=True),
        ColumnMapping("Description", "description", T.TRIM, required=True),
        ColumnMapping("Debit", "debit", T.PARSE_AMOUNT),
        ColumnMapping("Credit", "credit", T.PARSE_AMOUNT),
        ColumnMapping("Check Number", "check_number", T.TRIM),
        ColumnMapping("Reference", "external_ref", T.TRIM),
    ),
)


BUILT_IN_PROFILES: tuple[ImportProfile, ...] = (
    GENERIC_TRANSACTION_CSV,
    GENERIC_BUDGET_CSV,
    GENERIC_FUND_CSV,
    GENERIC_VENDOR_CSV,
    OPENING_BALANCE_CSV,
    QUICKBOOKS_TRANSACTION_CSV,
    GATEWAY_AFR_EXPORT,
    BANK_STATEMENT_CSV,
)

BUILT_IN_PROFILE_IDS: frozenset[str] = frozenset(p.id for p in BUILT_IN_PROFILES)


def get_built_in_profile(profile_id: str) -> ImportProfile | None:
    for profile in BUILT_IN_PROFILES:
        if profile.id == profile_id:
            return profile
    return None


def get_profiles_by_vendor(vendor: KnownVendor) -> list[ImportProfile]:
    return [p for p in BUILT_IN_PROFILES if p.vendor == vendor]


def get_profiles_by_data_type(data_type: ImportDataType) -> list[ImportProfile]:
    return [p for p in BUILT_IN_PROFILES if p.data_type == data_type]
