# invoice_engine/constants.py
DATA_DIR = "data"
DB_FILE_NAME = "ledger.db"

TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "1"

# money is persisted and displayed with two fractional digits
MONEY_PLACES = 2

DEFAULT_TAX_RATE_PERCENT = "15"

# sales tax the discounted subtotal, purchases tax the gross subtotal
DEFAULT_TAX_BASE_POLICY = {
    "sale": "net_of_discount",
    "purchase": "gross",
}

DOC_PREFIXES = {
    "sale": "SI",
    "purchase": "PI",
    "sale_return": "SR",
    "purchase_return": "PR",
}
