# invoice_engine/database/repositories/settings_repo.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
import sqlite3

from ...constants import DEFAULT_TAX_BASE_POLICY, DEFAULT_TAX_RATE_PERCENT
from ...core.errors import DomainError
from ...core.models import InvoiceKind, TaxBasePolicy
from ...utils.validators import try_parse_decimal


@dataclass(frozen=True)
class InvoiceSettings:
    tax_rate_percent: Decimal
    tax_base_policy: TaxBasePolicy


class SettingsRepo:
    """
    Key/value business settings.

    Keys:
      tax_rate                 global tax rate in percent
      tax_rate.<kind>          per-kind override (sale / purchase)
      tax_base_policy.<kind>   'net_of_discount' or 'gross'
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        row = self.conn.execute(
            "SELECT setting_value FROM app_settings WHERE setting_key=?", (key,)
        ).fetchone()
        return row["setting_value"] if row else default

    def set(self, key: str, value) -> None:
        with self.conn:
            self.conn.execute(
                """
                INSERT INTO app_settings(setting_key, setting_value) VALUES (?, ?)
                ON CONFLICT(setting_key) DO UPDATE SET setting_value=excluded.setting_value
                """,
                (key, str(value)),
            )

    # ---------------- tax ----------------

    def tax_rate_percent(self, kind: InvoiceKind = InvoiceKind.SALE) -> Decimal:
        kind = InvoiceKind(kind)
        raw = self.get(f"tax_rate.{kind.value}")
        if raw is None:
            raw = self.get("tax_rate", DEFAULT_TAX_RATE_PERCENT)
        ok, rate = try_parse_decimal(raw)
        if not ok or rate < 0:
            raise DomainError(f"Invalid tax rate setting: {raw!r}")
        return rate

    def set_tax_rate_percent(self, rate, kind: InvoiceKind | None = None) -> None:
        ok, value = try_parse_decimal(rate)
        if not ok or value < 0:
            raise DomainError(f"Tax rate must be a non-negative number (got {rate!r}).")
        key = "tax_rate" if kind is None else f"tax_rate.{InvoiceKind(kind).value}"
        self.set(key, value)

    def tax_base_policy(self, kind: InvoiceKind = InvoiceKind.SALE) -> TaxBasePolicy:
        kind = InvoiceKind(kind)
        raw = self.get(f"tax_base_policy.{kind.value}", DEFAULT_TAX_BASE_POLICY[kind.value])
        try:
            return TaxBasePolicy(raw)
        except ValueError as e:
            raise DomainError(f"Invalid tax base policy setting: {raw!r}") from e

    def set_tax_base_policy(self, kind: InvoiceKind, policy: TaxBasePolicy) -> None:
        self.set(f"tax_base_policy.{InvoiceKind(kind).value}", TaxBasePolicy(policy).value)

    def invoice_settings(self, kind: InvoiceKind = InvoiceKind.SALE) -> InvoiceSettings:
        return InvoiceSettings(self.tax_rate_percent(kind), self.tax_base_policy(kind))
