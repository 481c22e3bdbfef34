from pathlib import Path
import logging
import sqlite3
import sys

_log = logging.getLogger(__name__)

# Money, quantities and factors are TEXT so Decimal values round-trip exactly;
# CHECKs cast to REAL only to compare signs.
SQL = r"""
PRAGMA foreign_keys = ON;

/* ======================== CORE TABLES ======================== */

/* -------- parties -------- */
CREATE TABLE IF NOT EXISTS customers (
    customer_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    name         TEXT NOT NULL,
    contact_info TEXT,
    /* outstanding receivable; grows with unpaid sales, shrinks with returns */
    balance      TEXT NOT NULL DEFAULT '0',
    is_active    INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1))
);

CREATE TABLE IF NOT EXISTS vendors (
    vendor_id    INTEGER PRIMARY KEY AUTOINCREMENT,
    name         TEXT NOT NULL,
    contact_info TEXT,
    /* outstanding payable */
    balance      TEXT NOT NULL DEFAULT '0'
);

/* -------- UoMs & products -------- */
CREATE TABLE IF NOT EXISTS uoms (
    uom_id    INTEGER PRIMARY KEY AUTOINCREMENT,
    unit_name TEXT UNIQUE NOT NULL
);

CREATE TABLE IF NOT EXISTS products (
    product_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    name           TEXT NOT NULL UNIQUE,
    code           TEXT UNIQUE,
    sale_price     TEXT NOT NULL DEFAULT '0' CHECK (CAST(sale_price AS REAL) >= 0),
    purchase_price TEXT NOT NULL DEFAULT '0' CHECK (CAST(purchase_price AS REAL) >= 0),
    /* always in the base UoM */
    stock_qty      TEXT NOT NULL DEFAULT '0'
);

CREATE TABLE IF NOT EXISTS product_uoms (
    product_uom_id INTEGER PRIMARY KEY AUTOINCREMENT,
    product_id     INTEGER NOT NULL,
    uom_id         INTEGER NOT NULL,
    is_base        INTEGER NOT NULL DEFAULT 0 CHECK (is_base IN (0,1)),
    factor_to_base TEXT NOT NULL CHECK (CAST(factor_to_base AS REAL) > 0),
    UNIQUE(product_id, uom_id),
    FOREIGN KEY (product_id) REFERENCES products(product_id) ON DELETE RESTRICT,
    FOREIGN KEY (uom_id)     REFERENCES uoms(uom_id)
);
/* at most one base UoM per product */
CREATE UNIQUE INDEX IF NOT EXISTS idx_product_uoms_one_base
ON product_uoms(product_id) WHERE is_base = 1;

/* -------- invoices (sales + purchases via doc_type) -------- */
CREATE TABLE IF NOT EXISTS invoices (
    invoice_id       TEXT PRIMARY KEY,
    doc_type         TEXT NOT NULL CHECK (doc_type IN ('sale','purchase')),
    customer_id      INTEGER,
    vendor_id        INTEGER,
    date             DATE NOT NULL,
    subtotal         TEXT NOT NULL,
    discount_total   TEXT NOT NULL,
    tax_base         TEXT NOT NULL,
    tax_rate_percent TEXT NOT NULL,
    tax_base_policy  TEXT NOT NULL CHECK (tax_base_policy IN ('net_of_discount','gross')),
    tax_amount       TEXT NOT NULL,
    net_total        TEXT NOT NULL,
    paid_amount      TEXT NOT NULL DEFAULT '0',
    remaining_amount TEXT NOT NULL,
    payment_status   TEXT NOT NULL CHECK (payment_status IN ('paid','unpaid','partial')),
    posted           INTEGER NOT NULL DEFAULT 1 CHECK (posted IN (0,1)),
    notes            TEXT,
    CHECK ((doc_type = 'sale'     AND customer_id IS NOT NULL)
        OR (doc_type = 'purchase' AND vendor_id   IS NOT NULL)),
    FOREIGN KEY (customer_id) REFERENCES customers(customer_id),
    FOREIGN KEY (vendor_id)   REFERENCES vendors(vendor_id)
);
CREATE INDEX IF NOT EXISTS idx_invoices_date ON invoices(date);
CREATE INDEX IF NOT EXISTS idx_invoices_customer ON invoices(customer_id);

CREATE TABLE IF NOT EXISTS invoice_items (
    item_id                INTEGER PRIMARY KEY AUTOINCREMENT,
    invoice_id             TEXT    NOT NULL,
    product_id             INTEGER NOT NULL,
    uom_id                 INTEGER NOT NULL,
    quantity               TEXT    NOT NULL CHECK (CAST(quantity AS REAL) > 0),
    unit_price             TEXT    NOT NULL CHECK (CAST(unit_price AS REAL) >= 0),
    discount_value         TEXT    NOT NULL DEFAULT '0',
    discount_is_percentage INTEGER NOT NULL DEFAULT 0 CHECK (discount_is_percentage IN (0,1)),
    gross                  TEXT    NOT NULL,
    discount_amount        TEXT    NOT NULL,
    net                    TEXT    NOT NULL,
    FOREIGN KEY (invoice_id) REFERENCES invoices(invoice_id) ON DELETE CASCADE,
    FOREIGN KEY (product_id) REFERENCES products(product_id),
    FOREIGN KEY (uom_id)     REFERENCES uoms(uom_id)
);
CREATE INDEX IF NOT EXISTS idx_invoice_items_invoice ON invoice_items(invoice_id);

/* posted invoices are immutable */
DROP TRIGGER IF EXISTS trg_invoice_items_posted_no_update;
CREATE TRIGGER trg_invoice_items_posted_no_update
BEFORE UPDATE ON invoice_items
FOR EACH ROW
WHEN (SELECT posted FROM invoices WHERE invoice_id = OLD.invoice_id) = 1
BEGIN
  SELECT RAISE(ABORT, 'Posted invoice lines cannot be modified');
END;

DROP TRIGGER IF EXISTS trg_invoice_items_posted_no_delete;
CREATE TRIGGER trg_invoice_items_posted_no_delete
BEFORE DELETE ON invoice_items
FOR EACH ROW
WHEN (SELECT posted FROM invoices WHERE invoice_id = OLD.invoice_id) = 1
BEGIN
  SELECT RAISE(ABORT, 'Posted invoice lines cannot be modified');
END;

/* item UoM must be configured for the product */
DROP TRIGGER IF EXISTS trg_invoice_items_uom_belongs;
CREATE TRIGGER trg_invoice_items_uom_belongs
BEFORE INSERT ON invoice_items
FOR EACH ROW
WHEN NOT EXISTS (
  SELECT 1 FROM product_uoms pu
  WHERE pu.product_id = NEW.product_id AND pu.uom_id = NEW.uom_id
)
BEGIN
  SELECT RAISE(ABORT, 'UoM is not configured for this product');
END;

/* -------- returns -------- */
CREATE TABLE IF NOT EXISTS returns (
    return_id        TEXT PRIMARY KEY,
    doc_type         TEXT NOT NULL CHECK (doc_type IN ('sale_return','purchase_return')),
    invoice_id       TEXT NOT NULL,
    date             DATE NOT NULL,
    subtotal         TEXT NOT NULL,
    tax_rate_percent TEXT NOT NULL,
    tax_amount       TEXT NOT NULL,
    net_total        TEXT NOT NULL,
    notes            TEXT,
    FOREIGN KEY (invoice_id) REFERENCES invoices(invoice_id)
);
CREATE INDEX IF NOT EXISTS idx_returns_invoice ON returns(invoice_id);

CREATE TABLE IF NOT EXISTS return_items (
    return_item_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    return_id       TEXT    NOT NULL,
    invoice_item_id INTEGER NOT NULL,
    product_id      INTEGER NOT NULL,
    uom_id          INTEGER NOT NULL,
    quantity        TEXT    NOT NULL CHECK (CAST(quantity AS REAL) > 0),
    unit_price      TEXT    NOT NULL,
    total           TEXT    NOT NULL,
    reason          TEXT    NOT NULL CHECK (length(trim(reason)) > 0),
    FOREIGN KEY (return_id)       REFERENCES returns(return_id) ON DELETE CASCADE,
    FOREIGN KEY (invoice_item_id) REFERENCES invoice_items(item_id)
);
CREATE INDEX IF NOT EXISTS idx_return_items_item ON return_items(invoice_item_id);

/* -------- stock ledger -------- */
CREATE TABLE IF NOT EXISTS inventory_transactions (
    transaction_id    INTEGER PRIMARY KEY AUTOINCREMENT,
    product_id        INTEGER NOT NULL,
    quantity          TEXT    NOT NULL,
    uom_id            INTEGER NOT NULL,
    /* signed delta applied to products.stock_qty */
    qty_in_base       TEXT    NOT NULL,
    transaction_type  TEXT    NOT NULL CHECK (transaction_type IN
                        ('sale','purchase','sale_return','purchase_return','adjustment')),
    reference_table   TEXT,
    reference_id      TEXT,
    reference_item_id INTEGER,
    date              DATE    NOT NULL,
    notes             TEXT,
    FOREIGN KEY (product_id) REFERENCES products(product_id),
    FOREIGN KEY (uom_id)     REFERENCES uoms(uom_id)
);
CREATE INDEX IF NOT EXISTS idx_inventory_transactions_product ON inventory_transactions(product_id);

/* -------- settings -------- */
CREATE TABLE IF NOT EXISTS app_settings (
    setting_key   TEXT PRIMARY KEY,
    setting_value TEXT NOT NULL
);

/* ======================== VIEWS ======================== */

/* lines of posted sales: the history default prices are drawn from */
DROP VIEW IF EXISTS v_customer_price_history;
CREATE VIEW v_customer_price_history AS
SELECT
  i.customer_id, ii.product_id, ii.uom_id, ii.unit_price,
  i.date AS observed_at, ii.item_id
FROM invoice_items ii
JOIN invoices i ON i.invoice_id = ii.invoice_id
WHERE i.doc_type = 'sale' AND i.posted = 1;
"""


def init_schema(db_path: Path | str = "ledger.db") -> None:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.execute("PRAGMA journal_mode=WAL;")
        # Apply (idempotent) schema
        conn.executescript(SQL)
        conn.commit()
    conn.close()
    _log.debug("schema applied to %s", db_path)


if __name__ == "__main__":
    from ..config import DB_PATH
    from ..utils.loggers import get_logger

    get_logger(level=logging.DEBUG)
    target = sys.argv[1] if len(sys.argv) > 1 else DB_PATH
    init_schema(target)
