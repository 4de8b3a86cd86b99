"""
FastAPI Dependencies.

Shared dependencies for request handling: database session, request ID
and bearer-token authentication.
"""

import uuid
from typing import Annotated

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from eshop.backend.core.config import get_app_config
from eshop.backend.core.database import get_db_session
from eshop.backend.core.exceptions import AuthenticationError, AuthorizationError
from eshop.backend.core.logging import get_logger
from eshop.backend.core.security import decode_token
from eshop.backend.models.user import User, UserRole
from eshop.backend.repositories.user import UserRepository

logger = get_logger(__name__)

DbSession = Annotated[AsyncSession, Depends(get_db_session)]

_bearer = HTTPBearer(auto_error=False)


async def get_request_id(x_request_id: str | None = Header(None)) -> str:
    """Extract or generate request ID from headers."""
    return x_request_id or str(uuid.uuid4())


RequestId = Annotated[str, Depends(get_request_id)]


async def _user_from_credentials(
    credentials: HTTPAuthorizationCredentials | None,
    db: AsyncSession,
) -> User | None:
    if credentials is None or not credentials.credentials:
        return None

    payload = decode_token(credentials.credentials)
    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid or expired token")

    user = await UserRepository(db).get_by_id_or_none(user_id)
    if user is None:
        logger.warning("Token subject no longer exists", extra={"user_id": user_id})
        raise AuthenticationError("Invalid or expired token")
    return user


async def get_current_user(
    db: DbSession,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> User:
    """Resolve the bearer token to a user. Any authenticated role passes."""
    user = await _user_from_credentials(credentials, db)
    if user is None:
        raise AuthenticationError()
    return user


async def require_admin(
    db: DbSession,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> User | None:
    """
    Require an admin token.

    With features.admin_auth_enforced off, anonymous calls pass and return
    None. A token that is present is always validated.
    """
    user = await _user_from_credentials(credentials, db)
    if user is None:
        if not get_app_config().features.admin_auth_enforced:
            return None
        raise AuthenticationError()
    if user.role != UserRole.ADMIN:
        raise AuthorizationError("Vyžaduje sa administrátorský prístup.")
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User | None, Depends(require_admin)]
