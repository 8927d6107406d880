"""
                        Services Module

Business logic behind the HTTP layer. Services receive a request-scoped
AsyncSession and raise qrmenu.core.exceptions errors; they never build
HTTP responses.

Services:
    - catalog: Menu categories and items
    - tables: Table registry, slugs and QR codes
    - ordering: Order placement and the status state machine
    - analytics: Order statistics
    - auth: Accounts and JWT tokens
    - checkout / payment: Payment intents (Mock or Stripe) and webhooks
    - excel_manager: Process-safe Excel order ledger
"""

from qrmenu.services.catalog import MenuCatalog
from qrmenu.services.ordering import OrderingEngine
from qrmenu.services.tables import TableRegistry

__all__ = ["MenuCatalog", "OrderingEngine", "TableRegistry"]
