"""Authentication service for accounts, logins and the organizer upgrade."""
import uuid
from typing import Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from gowra.schemas import RegisterRequest, LoginRequest, UpgradeRequest
from gowra.db.models import User, RoleEnum
from gowra.db.repositories import (
    create_user as db_create_user,
    get_user as db_get_user,
    get_user_by_email as db_get_user_by_email,
    upgrade_user_to_organizer as db_upgrade_user_to_organizer,
    update_user_name as db_update_user_name,
)
from gowra.core.errors import AuthenticationError, ConflictError, ValidationError
from gowra.core.logging import logger
from gowra.core.security import validate_password, verify_password
from gowra.services.token_service import TokenService, access_token_for


class AuthService:
    """
    Service layer for authentication operations.

    Handles registration, login, profile reads and updates, and the
    upgrade from regular user to organizer.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.tokens = TokenService(session)

    async def register(self, payload: RegisterRequest) -> Dict:
        """
        Register a new regular user and sign them in.

        Returns:
            Dictionary with ``user``, ``access_token`` and ``refresh_token``

        Raises:
            ValidationError: If the password is rejected
            ConflictError: If the email is already registered
        """
        try:
            validate_password(payload.password)
        except ValueError as e:
            raise ValidationError(str(e))

        if await db_get_user_by_email(self.session, payload.email):
            raise ConflictError("Email already exists")

        user = await db_create_user(self.session, payload)
        logger.info(f"Registered user {user.id}")
        return {"user": user, **await self.tokens.issue_tokens(user)}

    async def login(self, form_data: LoginRequest) -> Dict:
        """
        Check credentials and issue a token pair.

        The access token carries the role persisted at login time.

        Raises:
            AuthenticationError: If the email is unknown or the password wrong
        """
        user = await db_get_user_by_email(self.session, form_data.email)
        if not user or not verify_password(form_data.password, user.hashed_password):
            logger.warning("Login rejected: invalid credentials")
            raise AuthenticationError("Invalid email or password")

        logger.info(f"User {user.id} logged in")
        return {"user": user, **await self.tokens.issue_tokens(user)}

    async def get_user(self, user_id: uuid.UUID) -> User:
        """Current persisted user; unlike the token claims this is always fresh."""
        user = await db_get_user(self.session, user_id)
        if user is None:
            raise AuthenticationError("User not found")
        return user

    async def update_profile(self, user_id: uuid.UUID, name: Optional[str]) -> User:
        user = await self.get_user(user_id)
        return await db_update_user_name(self.session, user, name)

    async def upgrade_to_organizer(self, user_id: uuid.UUID, profile: UpgradeRequest) -> Dict:
        """
        Make the user an organizer and hand back a token that says so.

        Calling this as an organizer again succeeds and only rewrites the
        profile. Access tokens issued before the upgrade are not revoked;
        they keep their ``regular`` claim until they expire.

        Returns:
            Dictionary with the updated ``user`` and a new ``access_token``

        Raises:
            ValidationError: If ``organization_name`` is missing or blank
            AuthenticationError: If the user no longer exists
        """
        if not profile.organization_name or not profile.organization_name.strip():
            raise ValidationError("Organization name is required")

        user = await self.get_user(user_id)
        already_organizer = user.role != RoleEnum.regular
        user = await db_upgrade_user_to_organizer(self.session, user, profile)

        if already_organizer:
            logger.info(f"Organizer profile updated for user {user.id}")
        else:
            logger.info(f"User {user.id} upgraded to organizer")
        return {"user": user, "access_token": access_token_for(user)}
