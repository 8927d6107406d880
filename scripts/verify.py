"""
Ledger Verification Script

Verifies data integrity of the Excel order ledger after a simulation:
required columns, duplicate order numbers, revenue totals.
Run from project root: python scripts/verify.py

Exits non-zero when the ledger is missing or holds duplicate order numbers.
"""

import os
import sys
from datetime import datetime

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from qrmenu.services.excel_manager import OrderLedger

REQUIRED_COLUMNS = ["order_number", "table_number", "total", "status"]


def verify_ledger(ledger: OrderLedger) -> bool:
    """Print a report of the ledger and return False on integrity problems."""
    print("=" * 60)
    print("ORDER LEDGER VERIFICATION REPORT")
    print("=" * 60)
    print(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"File: {ledger.path}")
    print("=" * 60)

    if not ledger.path.exists():
        print("\nLedger file not found!")
        print("   Run the simulation first: python scripts/simulate.py")
        return False

    df = pd.DataFrame(ledger.read_orders())

    print("\nSTATISTICS:")
    print(f"   Total Orders: {len(df)}")
    print(f"   Columns: {len(df.columns)}")

    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        print(f"\nMissing Columns: {missing}")
    else:
        print("\nAll required columns present")

    duplicates = ledger.duplicate_order_numbers()
    if duplicates:
        print(f"\n{len(duplicates)} duplicate order numbers found: {duplicates[:10]}")
    else:
        print("No duplicate order numbers")

    if "total" in df.columns and len(df):
        served = df[df["status"] != "canceled"] if "status" in df.columns else df
        print("\nREVENUE (excluding canceled):")
        print(f"   Total: ${served['total'].sum():.2f}")
        print(f"   Average: ${served['total'].mean():.2f}")

    print("\nRECENT ORDERS:")
    print("-" * 60)
    if len(df) > 0:
        cols = [c for c in ("order_number", "table_number", "items", "total", "status") if c in df.columns]
        print(df[cols].tail(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("VERIFICATION COMPLETE")
    print("=" * 60)

    return not missing and not duplicates


if __name__ == "__main__":
    sys.exit(0 if verify_ledger(OrderLedger()) else 1)
