"""
Order Ledger (Excel) with Concurrency Control

Every committed order is appended as one row to data/orders.xlsx. Several
Celery workers may export at once, so each read-modify-write of the
workbook happens under an inter-process FileLock.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from filelock import FileLock, Timeout

from qrmenu.core.config import get_settings

logger = logging.getLogger(__name__)


class OrderLedger:
    """Process-safe append-only order workbook."""

    FILE_NAME = "orders.xlsx"

    COLUMNS = [
        "order_id",
        "order_number",
        "table_number",
        "customer_email",
        "created_at",
        "items",
        "special_instructions",
        "subtotal",
        "tax",
        "total",
        "payment_method",
        "payment_status",
        "status",
        "exported_at",
    ]

    def __init__(self, directory: Optional[str] = None, lock_timeout: Optional[int] = None):
        settings = get_settings()
        self.directory = Path(directory or settings.data_directory)
        self.lock_timeout = lock_timeout if lock_timeout is not None else settings.excel_lock_timeout

    @property
    def path(self) -> Path:
        return self.directory / self.FILE_NAME

    @property
    def lock_path(self) -> Path:
        return self.directory / f"{self.FILE_NAME}.lock"

    def _ensure_data_dir(self) -> None:
        if not self.directory.exists():
            self.directory.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {self.directory}")

    def _load_or_create_df(self) -> pd.DataFrame:
        if self.path.exists():
            return pd.read_excel(self.path, engine="openpyxl")
        return pd.DataFrame(columns=self.COLUMNS)

    @staticmethod
    def format_items(items: list[dict[str, Any]]) -> str:
        """[{'name': 'Burger', 'quantity': 2}] -> '2x Burger'."""
        return "; ".join(f"{i.get('quantity', 1)}x {i.get('name', '?')}" for i in items or [])

    def export_order(self, order_data: dict[str, Any]) -> dict[str, Any]:
        """
        Append one order row under the file lock.

        Returns a result dict; failures are reported through
        result["success"] so the calling task can decide to retry.
        """
        self._ensure_data_dir()

        order_number = order_data.get("order_number", "unknown")
        result = {
            "success": False,
            "message": "",
            "order_number": order_number,
            "exported_at": None,
        }

        try:
            with FileLock(str(self.lock_path), timeout=self.lock_timeout):
                logger.debug(f"Lock acquired for {order_number}")

                df = self._load_or_create_df()

                export_time = datetime.now().isoformat()
                new_row = {
                    "order_id": order_data.get("order_id"),
                    "order_number": order_number,
                    "table_number": order_data.get("table_number"),
                    "customer_email": order_data.get("customer_email"),
                    "created_at": order_data.get("created_at", export_time),
                    "items": self.format_items(order_data.get("items", [])),
                    "special_instructions": order_data.get("special_instructions"),
                    "subtotal": order_data.get("subtotal"),
                    "tax": order_data.get("tax"),
                    "total": order_data.get("total"),
                    "payment_method": order_data.get("payment_method"),
                    "payment_status": order_data.get("payment_status"),
                    "status": order_data.get("status"),
                    "exported_at": export_time,
                }

                new_df = pd.DataFrame([new_row], columns=self.COLUMNS)
                df = new_df if df.empty else pd.concat([df, new_df], ignore_index=True)
                df.to_excel(str(self.path), index=False, engine="openpyxl")

                logger.info(f"Order {order_number} exported to {self.path}")
                result["success"] = True
                result["message"] = f"Order {order_number} exported"
                result["exported_at"] = export_time

        except Timeout:
            result["message"] = f"Lock timeout ({self.lock_timeout}s)"
            logger.error(f"Lock timeout exporting {order_number}")

        except (OSError, ValueError) as e:
            result["message"] = str(e)
            logger.exception(f"Error exporting {order_number}")

        return result

    def read_orders(self) -> list[dict[str, Any]]:
        """All ledger rows, oldest first."""
        if not self.path.exists():
            return []
        with FileLock(str(self.lock_path), timeout=self.lock_timeout):
            df = pd.read_excel(self.path, engine="openpyxl")
        return df.to_dict("records")

    def duplicate_order_numbers(self) -> list[str]:
        """Order numbers that appear on more than one row."""
        rows = self.read_orders()
        if not rows:
            return []
        numbers = pd.Series([row.get("order_number") for row in rows])
        return sorted(numbers[numbers.duplicated()].unique().tolist())

    def clear(self) -> bool:
        """Delete the ledger and its lock file."""
        for f in (self.path, self.lock_path):
            if f.exists():
                f.unlink()
        logger.info("Order ledger cleared")
        return True
