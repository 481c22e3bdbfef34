# invoice_engine/database/repositories/parties_repo.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
import sqlite3

from ...core.errors import DomainError
from ...utils.validators import non_empty


@dataclass
class Party:
    party_id: int
    name: str
    contact_info: str | None
    balance: Decimal


class PartiesRepo:
    """Customers and vendors: the counter-parties whose balances postings move."""

    _TABLES = {
        "customer": ("customers", "customer_id"),
        "vendor": ("vendors", "vendor_id"),
    }

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    def _create(self, party: str, name: str, contact_info: str | None) -> int:
        if not non_empty(name):
            raise DomainError(f"{party.capitalize()} name is required.")
        table, _ = self._TABLES[party]
        with self.conn:
            cur = self.conn.execute(
                f"INSERT INTO {table}(name, contact_info) VALUES (?, ?)",
                (name.strip(), contact_info),
            )
        return int(cur.lastrowid)

    def _get(self, party: str, party_id: int) -> Optional[Party]:
        table, column = self._TABLES[party]
        r = self.conn.execute(
            f"SELECT {column} AS party_id, name, contact_info, balance FROM {table} WHERE {column}=?",
            (party_id,),
        ).fetchone()
        if not r:
            return None
        return Party(int(r["party_id"]), r["name"], r["contact_info"], Decimal(r["balance"]))

    def create_customer(self, name: str, contact_info: str | None = None) -> int:
        return self._create("customer", name, contact_info)

    def create_vendor(self, name: str, contact_info: str | None = None) -> int:
        return self._create("vendor", name, contact_info)

    def get_customer(self, customer_id: int) -> Optional[Party]:
        return self._get("customer", customer_id)

    def get_vendor(self, vendor_id: int) -> Optional[Party]:
        return self._get("vendor", vendor_id)
