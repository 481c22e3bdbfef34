# invoice_engine/database/repositories/products_repo.py
from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal
from typing import Dict, List, Optional
import logging
import sqlite3

from ...core.errors import DomainError, InvalidConversionFactor
from ...core.models import Product, ProductUnitLink, Unit
from ...utils.helpers import ZERO, to_decimal
from ...utils.validators import non_empty, try_parse_decimal

_log = logging.getLogger(__name__)


class ProductsRepo:
    """Products, their units of measure and stock on hand (base unit)."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    # ---------------------------- TX helper ----------------------------

    @contextmanager
    def _immediate_tx(self):
        """
        Start an IMMEDIATE transaction (write lock once first write happens),
        commit on success, rollback on error.
        """
        cur = self.conn.cursor()
        try:
            cur.execute("BEGIN IMMEDIATE")
            yield
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        finally:
            cur.close()

    # ---------------------------- UOMs ----------------------------

    def list_uoms(self) -> List[Unit]:
        rows = self.conn.execute("SELECT uom_id, unit_name FROM uoms ORDER BY unit_name").fetchall()
        return [Unit(int(r["uom_id"]), r["unit_name"]) for r in rows]

    def add_uom(self, unit_name: str) -> int:
        """
        Attach-or-return existing UoM by name.
        Uses SELECT changes() to see whether the INSERT OR IGNORE inserted a row.
        """
        if not non_empty(unit_name):
            raise DomainError("Unit name is required.")
        unit_name = unit_name.strip()
        with self._immediate_tx():
            cur = self.conn.execute("INSERT OR IGNORE INTO uoms(unit_name) VALUES (?)", (unit_name,))
            changed = int(self.conn.execute("SELECT changes()").fetchone()[0] or 0)
            if changed > 0:
                return int(cur.lastrowid)
            row = self.conn.execute("SELECT uom_id FROM uoms WHERE unit_name=?", (unit_name,)).fetchone()
            if not row:
                raise DomainError("Failed to resolve UoM ID for existing unit.")
            return int(row["uom_id"])

    def uom_by_id(self, uom_id: int) -> Optional[Unit]:
        row = self.conn.execute("SELECT uom_id, unit_name FROM uoms WHERE uom_id=?", (uom_id,)).fetchone()
        return Unit(int(row["uom_id"]), row["unit_name"]) if row else None

    # ---------------------------- Products ----------------------------

    def create_product(
        self,
        name: str,
        base_uom_id: int,
        sale_price=ZERO,
        purchase_price=ZERO,
        stock_qty=ZERO,
        code: str | None = None,
    ) -> int:
        """Insert a product together with its base unit link (factor 1)."""
        if not non_empty(name):
            raise DomainError("Product name is required.")
        sale = to_decimal(sale_price)
        cost = to_decimal(purchase_price)
        if sale < ZERO or cost < ZERO:
            raise DomainError("Prices cannot be negative.")
        if self.uom_by_id(base_uom_id) is None:
            raise DomainError(f"Unknown unit: {base_uom_id}")
        try:
            with self._immediate_tx():
                cur = self.conn.execute(
                    "INSERT INTO products(name, code, sale_price, purchase_price, stock_qty) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (name.strip(), code, str(sale), str(cost), str(to_decimal(stock_qty))),
                )
                product_id = int(cur.lastrowid)
                self.conn.execute(
                    "INSERT INTO product_uoms(product_id, uom_id, is_base, factor_to_base) "
                    "VALUES (?, ?, 1, '1')",
                    (product_id, base_uom_id),
                )
        except sqlite3.IntegrityError as e:
            raise DomainError(f"Could not create product '{name}': {e}") from e
        _log.debug("created product %s (%s)", product_id, name)
        return product_id

    def update_prices(self, product_id: int, sale_price, purchase_price) -> None:
        sale = to_decimal(sale_price)
        cost = to_decimal(purchase_price)
        if sale < ZERO or cost < ZERO:
            raise DomainError("Prices cannot be negative.")
        with self._immediate_tx():
            self.conn.execute(
                "UPDATE products SET sale_price=?, purchase_price=? WHERE product_id=?",
                (str(sale), str(cost), product_id),
            )

    def get(self, product_id: int) -> Product | None:
        """Snapshot of the product with its alternate unit links (the base unit is implicit, factor 1)."""
        r = self.conn.execute(
            "SELECT product_id, name, code, sale_price, purchase_price, stock_qty "
            "FROM products WHERE product_id=?",
            (product_id,),
        ).fetchone()
        if not r:
            return None
        links = self.conn.execute(
            "SELECT uom_id, is_base, factor_to_base FROM product_uoms "
            "WHERE product_id=? ORDER BY is_base DESC, uom_id",
            (product_id,),
        ).fetchall()
        base = next((int(u["uom_id"]) for u in links if u["is_base"]), None)
        if base is None:
            raise DomainError(f"Product {product_id} has no base unit configured.")
        return Product(
            product_id=int(r["product_id"]),
            name=r["name"],
            base_uom_id=base,
            sale_price=r["sale_price"],
            purchase_price=r["purchase_price"],
            stock_qty=r["stock_qty"],
            code=r["code"],
            units=tuple(
                ProductUnitLink(int(r["product_id"]), int(u["uom_id"]), u["factor_to_base"])
                for u in links
                if not u["is_base"]
            ),
        )

    def get_many(self, product_ids) -> Dict[int, Product]:
        out: Dict[int, Product] = {}
        for pid in set(product_ids):
            p = self.get(pid)
            if p is None:
                raise DomainError(f"Unknown product: {pid}")
            out[pid] = p
        return out

    # ---------------------------- product_uoms ----------------------------

    def list_product_uoms(self, product_id: int) -> List[Dict]:
        """All units of a product with factors (base first)."""
        cur = self.conn.execute(
            """
            SELECT pu.product_uom_id, pu.uom_id, u.unit_name, pu.is_base, pu.factor_to_base
            FROM product_uoms pu
            JOIN uoms u ON u.uom_id = pu.uom_id
            WHERE pu.product_id = ?
            ORDER BY pu.is_base DESC, u.unit_name
            """,
            (product_id,),
        )
        return [
            {**dict(r), "factor_to_base": Decimal(r["factor_to_base"])}
            for r in cur.fetchall()
        ]

    def add_alt_uom(self, product_id: int, uom_id: int, factor_to_base) -> None:
        ok, factor = try_parse_decimal(factor_to_base)
        if not ok or factor <= ZERO:
            raise InvalidConversionFactor(product_id, uom_id, factor_to_base)
        product = self.get(product_id)
        if product is None:
            raise DomainError(f"Unknown product: {product_id}")
        if uom_id == product.base_uom_id:
            raise DomainError("The base unit cannot be added again as an alternate unit.")
        with self._immediate_tx():
            self.conn.execute(
                """
                INSERT INTO product_uoms(product_id, uom_id, is_base, factor_to_base)
                VALUES (?, ?, 0, ?)
                ON CONFLICT(product_id, uom_id)
                DO UPDATE SET factor_to_base=excluded.factor_to_base
                """,
                (product_id, uom_id, str(factor)),
            )

    def remove_alt_uom(self, product_id: int, uom_id: int) -> None:
        """
        Unlink an alternate unit. Lines already posted in that unit keep their
        uom_id; new pricing falls back to the list price.
        """
        with self._immediate_tx():
            cur = self.conn.execute(
                "DELETE FROM product_uoms WHERE product_id=? AND uom_id=? AND is_base=0",
                (product_id, uom_id),
            )
            if cur.rowcount == 0:
                raise DomainError(f"Unit {uom_id} is not an alternate unit of product {product_id}.")

    # ---------------------------- Stock ----------------------------

    def on_hand_base(self, product_id: int) -> Decimal:
        r = self.conn.execute("SELECT stock_qty FROM products WHERE product_id=?", (product_id,)).fetchone()
        return Decimal(r["stock_qty"]) if r else ZERO
