"""
Shared FastAPI dependencies: authentication, role checks and per-request
service construction.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from qrmenu.core.access import AccessContext
from qrmenu.core.config import get_settings
from qrmenu.core.exceptions import AccessDeniedError, AuthenticationError
from qrmenu.database import get_db
from qrmenu.models import User, UserRole
from qrmenu.services.analytics import OrderAnalyticsService
from qrmenu.services.auth import AccountService
from qrmenu.services.catalog import MenuCatalog
from qrmenu.services.checkout import CheckoutService
from qrmenu.services.ordering import OrderingEngine
from qrmenu.services.payment import get_payment_service
from qrmenu.services.tables import TableRegistry

bearer_scheme = HTTPBearer(auto_error=False)


# =============================================================================
# SERVICES
# =============================================================================

def get_account_service(db: AsyncSession = Depends(get_db)) -> AccountService:
    return AccountService(db, get_settings())


def get_catalog(db: AsyncSession = Depends(get_db)) -> MenuCatalog:
    return MenuCatalog(db, default_preparation_time=get_settings().default_preparation_time)


def get_table_registry(db: AsyncSession = Depends(get_db)) -> TableRegistry:
    return TableRegistry(db)


def get_ordering_engine(
    db: AsyncSession = Depends(get_db),
    catalog: MenuCatalog = Depends(get_catalog),
    tables: TableRegistry = Depends(get_table_registry),
) -> OrderingEngine:
    return OrderingEngine(db, get_settings().ordering_config(), catalog=catalog, tables=tables)


def get_order_analytics(db: AsyncSession = Depends(get_db)) -> OrderAnalyticsService:
    return OrderAnalyticsService(db, top_items_limit=get_settings().top_items_limit)


def get_checkout(db: AsyncSession = Depends(get_db)) -> CheckoutService:
    return CheckoutService(db, get_payment_service(), currency=get_settings().currency)


# =============================================================================
# AUTHENTICATION
# =============================================================================

async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    accounts: AccountService = Depends(get_account_service),
) -> Optional[User]:
    """The caller if a valid bearer token is present, otherwise a guest (None)."""
    if credentials is None:
        return None
    try:
        return await accounts.authenticate(credentials.credentials)
    except AuthenticationError:
        return None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    accounts: AccountService = Depends(get_account_service),
) -> User:
    if credentials is None:
        raise AuthenticationError("Access denied. No token provided.")
    return await accounts.authenticate(credentials.credentials)


def require_roles(*roles: UserRole):
    """Dependency factory: 403 unless the caller holds one of `roles`."""

    async def checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise AccessDeniedError()
        return user

    return checker


require_staff = require_roles(UserRole.STAFF, UserRole.ADMIN)
require_admin = require_roles(UserRole.ADMIN)


def access_context(user: Optional[User]) -> Optional[AccessContext]:
    if user is None:
        return None
    return AccessContext(identity=user.id, role=user.role)
