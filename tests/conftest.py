# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - Pure engine tests build Products/lines directly (no DB)
# - Repository tests get a fresh SQLite file per test (real file so
#   triggers/views behave like production)
# - conn.row_factory = sqlite3.Row, PRAGMA foreign_keys=ON
# - `ids` seeds one customer, one vendor and one product
#   (base "Piece", alternate "Box" = 12 pieces, 100 pieces on hand)
# ---------------------------------------------------------------------

from __future__ import annotations

from decimal import Decimal

import pytest

from invoice_engine.core import Product, ProductUnitLink
from invoice_engine.database import get_connection
from invoice_engine.database.repositories import PartiesRepo, ProductsRepo

PIECE = 1
BOX = 2


@pytest.fixture()
def widget() -> Product:
    return Product(
        product_id=1,
        name="Widget",
        base_uom_id=PIECE,
        sale_price=Decimal("2.50"),
        purchase_price=Decimal("1.50"),
        stock_qty=Decimal("100"),
        units=(ProductUnitLink(1, BOX, Decimal("12")),),
    )


@pytest.fixture()
def conn(tmp_path):
    c = get_connection(tmp_path / "ledger.db")
    try:
        yield c
    finally:
        c.close()


@pytest.fixture()
def ids(conn):
    products = ProductsRepo(conn)
    parties = PartiesRepo(conn)
    piece = products.add_uom("Piece")
    box = products.add_uom("Box")
    widget_id = products.create_product(
        "Widget", piece, sale_price="2.50", purchase_price="1.50", stock_qty=100, code="W-1"
    )
    products.add_alt_uom(widget_id, box, 12)
    return {
        "uom_piece": piece,
        "uom_box": box,
        "widget": widget_id,
        "customer_id": parties.create_customer("Walk-in Customer"),
        "vendor_id": parties.create_vendor("Acme Supplies"),
    }
