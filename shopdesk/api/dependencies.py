"""Request dependencies shared by the v1 routers."""

from typing import Any, Dict, Optional

from fastapi import Depends, Header

from shopdesk.core.error_codes import AuthErrorCode
from shopdesk.core.exceptions import AuthException
from shopdesk.services.user_admin_service import bearer_token
from shopdesk.stores.auth_client import AuthClient, get_auth_client


async def require_user(
    authorization: Optional[str] = Header(None),
    auth_client: AuthClient = Depends(get_auth_client),
) -> Dict[str, Any]:
    """
    Resolve the signed-in user from the ``Authorization`` header.

    Raises:
        AuthException: 401 when the header is missing or the token is rejected
    """
    token = bearer_token(authorization)
    return await auth_client.get_user(token)


def require_self(
    user_id: str, user: Dict[str, Any] = Depends(require_user)
) -> Dict[str, Any]:
    """Only let a user reach the ``{user_id}`` routes that belong to them."""
    if user.get("id") != user_id:
        raise AuthException(
            "Unauthorized: preferences belong to another user",
            AuthErrorCode.INSUFFICIENT_PERMISSIONS,
        )
    return user


__all__ = ["require_self", "require_user"]
