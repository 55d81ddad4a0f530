"""Issuing, refreshing and revoking token pairs."""
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from gowra.core.config import settings
from gowra.core.errors import AuthenticationError
from gowra.core.logging import logger
from gowra.core.security import create_access_token, generate_refresh_token, hash_refresh_token
from gowra.db.models import User
from gowra.db.repositories import (
    create_refresh_token as db_create_refresh_token,
    get_active_refresh_token as db_get_active_refresh_token,
    delete_refresh_token as db_delete_refresh_token,
    get_user as db_get_user,
)


def access_token_for(user: User) -> str:
    """Sign an access token carrying the user's role as it is right now."""
    return create_access_token({
        "sub": str(user.id),
        "email": user.email,
        "role": user.role.value,
    })


class TokenService:
    """
    Token issuer and refresh flow.

    Access tokens are stateless: once signed, their role claim is frozen
    until expiry. Refresh tokens are opaque and stateful; exchanging one
    always re-reads the user, so it is the way a stale role claim gets
    replaced without a password.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def issue_tokens(self, user: User) -> Dict[str, str]:
        """
        Mint an access token and a new refresh token for ``user``.

        Earlier refresh tokens of the same user stay valid, one per device.

        Returns:
            ``{"access_token": ..., "refresh_token": ...}``; the refresh
            token plaintext is not recoverable after this call
        """
        return {
            "access_token": access_token_for(user),
            "refresh_token": await self._new_refresh_token(user),
        }

    async def refresh(self, refresh_token: str) -> Tuple[User, str, Optional[str]]:
        """
        Exchange a refresh token for a fresh access token.

        Returns:
            ``(user, access_token, rotated_refresh_token)``; the last item is
            None when rotation is disabled

        Raises:
            AuthenticationError: If the token is unknown, expired, already
                spent by a concurrent refresh, or its user no longer exists
        """
        token_hash = hash_refresh_token(refresh_token)
        stored = await db_get_active_refresh_token(self.session, token_hash)
        if stored is None:
            logger.warning("Refresh rejected: unknown or expired refresh token")
            raise AuthenticationError("Invalid refresh token")

        user = await db_get_user(self.session, stored.user_id)
        if user is None:
            raise AuthenticationError("User not found")

        rotated = None
        if settings.REFRESH_TOKEN_ROTATION:
            # Only the caller whose delete removed the row may rotate
            if await db_delete_refresh_token(self.session, token_hash) == 0:
                logger.warning(f"Refresh rejected: token for user {user.id} already used")
                raise AuthenticationError("Invalid refresh token")
            rotated = await self._new_refresh_token(user)

        logger.info(f"Access token refreshed for user {user.id} with role {user.role.value}")
        return user, access_token_for(user), rotated

    async def revoke(self, refresh_token: str) -> bool:
        """Delete one refresh token; True if it existed."""
        deleted = await db_delete_refresh_token(self.session, hash_refresh_token(refresh_token))
        return deleted > 0

    async def _new_refresh_token(self, user: User) -> str:
        plaintext = generate_refresh_token()
        expires_at = datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
        await db_create_refresh_token(self.session, user.id, hash_refresh_token(plaintext), expires_at)
        return plaintext
