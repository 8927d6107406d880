"""
Account Service

Registration, login and token refresh. Passwords are stored as bcrypt
hashes; sessions are stateless HS256 JWT pairs:

    access token   signed with JWT_SECRET, short-lived
    refresh token  signed with JWT_REFRESH_SECRET, long-lived

Both carry sub (user id), email, role and type ("access" | "refresh").
"""

import logging
from datetime import timedelta
from typing import Optional

import bcrypt
import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qrmenu.core.config import Settings
from qrmenu.core.exceptions import AccessDeniedError, AuthenticationError, ConflictError
from qrmenu.models import User, UserRole, utcnow
from qrmenu.schemas import TokenPair, UserRegister

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


def hash_password(password: str, rounds: int = 12) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


class TokenService:
    """Issues and decodes the JWT pair."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def _secret(self, token_type: str) -> str:
        if token_type == REFRESH:
            return self.settings.jwt_refresh_secret
        return self.settings.jwt_secret

    def _encode(self, user: User, token_type: str, lifetime: timedelta) -> str:
        now = utcnow()
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "role": user.role.value,
            "type": token_type,
            "iat": now,
            "exp": now + lifetime,
        }
        return jwt.encode(payload, self._secret(token_type), algorithm=self.settings.jwt_algorithm)

    def issue(self, user: User) -> TokenPair:
        return TokenPair(
            access_token=self._encode(
                user, ACCESS, timedelta(minutes=self.settings.access_token_expire_minutes)
            ),
            refresh_token=self._encode(
                user, REFRESH, timedelta(minutes=self.settings.refresh_token_expire_minutes)
            ),
        )

    def decode(self, token: str, token_type: str = ACCESS) -> dict:
        """
        Verify signature, expiry and token type.

        Raises:
            AuthenticationError: the token is invalid, expired or of the wrong type
        """
        try:
            claims = jwt.decode(
                token,
                self._secret(token_type),
                algorithms=[self.settings.jwt_algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError:
            raise AuthenticationError("Invalid or expired token")

        if claims.get("type") != token_type:
            raise AuthenticationError("Invalid token type")
        return claims


class AccountService:

    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings
        self.tokens = TokenService(settings)

    async def get_by_email(self, email: str) -> Optional[User]:
        return await self.db.scalar(select(User).where(User.email == email.strip().lower()))

    async def get_active(self, user_id: int) -> User:
        """Token subject lookup; missing or inactive accounts are rejected."""
        user = await self.db.get(User, user_id)
        if user is None or not user.is_active:
            raise AuthenticationError("User not found or inactive")
        return user

    async def register(self, data: UserRegister, created_by: Optional[User] = None) -> User:
        """
        Create an account. Only an admin may create staff or admin accounts.

        Raises:
            ConflictError: the email is already registered
            AccessDeniedError: elevated role requested by a non-admin
        """
        role = data.role or UserRole.CUSTOMER
        if role != UserRole.CUSTOMER and (created_by is None or created_by.role != UserRole.ADMIN):
            logger.warning(f"Registration with role {role.value} refused for {data.email}")
            raise AccessDeniedError("Only administrators can create staff accounts")

        email = data.email.strip().lower()
        if await self.get_by_email(email) is not None:
            raise ConflictError("User with this email already exists")

        user = User(
            name=data.name,
            email=email,
            password_hash=hash_password(data.password, self.settings.bcrypt_rounds),
            role=role,
            is_active=True,
        )
        self.db.add(user)
        await self.db.commit()
        logger.info(f"User #{user.id} registered ({role.value})")
        return user

    async def login(self, email: str, password: str) -> tuple[User, TokenPair]:
        user = await self.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            logger.warning(f"Failed login for {email}")
            raise AuthenticationError("Invalid email or password")
        if not user.is_active:
            raise AuthenticationError("Account is deactivated")

        logger.info(f"User #{user.id} logged in")
        return user, self.tokens.issue(user)

    async def _subject(self, claims: dict) -> User:
        try:
            user_id = int(claims["sub"])
        except (TypeError, ValueError):
            raise AuthenticationError("Invalid token subject")
        return await self.get_active(user_id)

    async def refresh(self, refresh_token: str) -> TokenPair:
        claims = self.tokens.decode(refresh_token, REFRESH)
        return self.tokens.issue(await self._subject(claims))

    async def authenticate(self, access_token: str) -> User:
        return await self._subject(self.tokens.decode(access_token, ACCESS))
