"""
Celery Tasks
Background work that must never slow down or fail order placement.
"""

import logging
import time
from datetime import datetime
from typing import Any

from kombu.exceptions import OperationalError

from qrmenu.celery_worker import celery_app
from qrmenu.models import Order
from qrmenu.services.excel_manager import OrderLedger

logger = logging.getLogger(__name__)


class LedgerExportError(Exception):
    """The ledger row could not be written; the task will be retried."""


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(LedgerExportError,),
    retry_backoff=True,
)
def export_order_to_excel(self, order_data: dict) -> dict:
    """
    Append a committed order to the Excel ledger.

    Args:
        order_data: Order snapshot built by order_payload()

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    order_number = order_data.get("order_number", "unknown")

    logger.info(f"Task {task_id}: exporting {order_number}")
    start_time = time.time()

    result = OrderLedger().export_order(order_data)

    elapsed = round(time.time() - start_time, 3)
    result["task_id"] = task_id
    result["processing_time_seconds"] = elapsed

    if not result["success"]:
        logger.warning(f"Task {task_id}: {order_number} failed after {elapsed}s - {result['message']}")
        raise LedgerExportError(result["message"])

    logger.info(f"Task {task_id}: {order_number} exported in {elapsed}s")
    return result


@celery_app.task
def health_check() -> dict:
    """Simple health check task to verify Celery is working."""
    return {
        "status": "healthy",
        "worker": "celery",
        "timestamp": datetime.now().isoformat(),
    }


def order_payload(order: Order) -> dict[str, Any]:
    """JSON-safe snapshot of an order for the export task."""
    return {
        "order_id": order.id,
        "order_number": order.order_number,
        "table_number": order.table.number if order.table else None,
        "customer_email": order.customer.email if order.customer else None,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "items": [
            {
                "name": line.menu_item.name if line.menu_item else f"#{line.menu_item_id}",
                "quantity": line.quantity,
                "price": float(line.price),
            }
            for line in order.lines
        ],
        "special_instructions": order.special_instructions,
        "subtotal": float(order.subtotal),
        "tax": float(order.tax),
        "total": float(order.total),
        "payment_method": order.payment_method.value,
        "payment_status": order.payment_status.value,
        "status": order.status.value,
    }


def queue_order_export(order: Order) -> None:
    """
    Hand the order to the export worker.

    The order is already committed; a broker outage is logged and the
    request carries on.
    """
    try:
        export_order_to_excel.delay(order_payload(order))
    except OperationalError as e:
        logger.error(f"Could not queue export of {order.order_number}: {e}")
