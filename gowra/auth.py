import uuid
from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from gowra.core.errors import AuthenticationError, AuthorizationError
from gowra.core.security import decode_token
from gowra.db.models import RoleEnum, ROLE_RANK
from gowra.schemas import TokenData, Role

# auto_error=False so a missing header is a 401 from our own error handler
security = HTTPBearer(auto_error=False)


def verify(token: str, required_role: Optional[RoleEnum] = None) -> TokenData:
    """
    Verify an access token and, optionally, its role claim.

    This never touches the database: the role checked is the one signed
    into the token, which may lag behind the stored role until the token
    expires or is refreshed.

    Args:
        token: Raw bearer token
        required_role: Minimum role the caller must hold

    Returns:
        The identity carried by the token

    Raises:
        AuthenticationError: If the token is malformed, expired, of the wrong
            type, or carries unusable claims
        AuthorizationError: If the role claim ranks below ``required_role``
    """
    try:
        payload = decode_token(token)
    except ValueError as e:
        raise AuthenticationError(str(e))

    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type")

    try:
        role = RoleEnum(payload.get("role"))
        user_id = uuid.UUID(str(payload["sub"]))
    except ValueError:
        raise AuthenticationError("Invalid token payload")

    if required_role is not None and ROLE_RANK[role] < ROLE_RANK[required_role]:
        needs_upgrade = required_role == RoleEnum.organizer and role == RoleEnum.regular
        raise AuthorizationError(
            f"{required_role.value.capitalize()} access required",
            needs_upgrade=needs_upgrade,
        )

    return TokenData(id=user_id, email=payload.get("email", ""), role=Role(role.value))


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> TokenData:
    """
    Identity of the caller, taken from the bearer token alone.

    The result is also stored on ``request.state.user``.

    Raises:
        AuthenticationError: If no usable bearer token was sent
    """
    if credentials is None:
        raise AuthenticationError("No token provided")
    user = verify(credentials.credentials)
    request.state.user = user
    return user


def role_required(required_role: RoleEnum):
    """
    Dependency to require a minimum role for endpoint access.

    Args:
        required_role: Role required (e.g. ``RoleEnum.organizer``)

    Returns:
        Dependency function
    """
    async def role_checker(
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    ) -> TokenData:
        if credentials is None:
            raise AuthenticationError("No token provided")
        user = verify(credentials.credentials, required_role)
        request.state.user = user
        return user
    return role_checker
