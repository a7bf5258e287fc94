"""Privileged user administration backed by the hosted auth service."""

from __future__ import annotations

from typing import Any, Dict, Optional

from shopdesk.core.error_codes import AuthErrorCode, ValidationErrorCode
from shopdesk.core.exceptions import AuthException, ValidationException
from shopdesk.core.logger import get_logger
from shopdesk.models.user_role import ROLE_ADMIN
from shopdesk.stores.auth_client import AuthClient, get_auth_client
from shopdesk.stores.user_role_store import UserRoleStore

logger = get_logger(__name__)


def bearer_token(authorization: Optional[str]) -> str:
    """
    Extract the token of an ``Authorization: Bearer <token>`` header.

    Raises:
        AuthException: MISSING_CREDENTIALS when the header is absent or empty
    """
    if not authorization:
        raise AuthException(
            "No authorization header", AuthErrorCode.MISSING_CREDENTIALS
        )
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        token = authorization.strip()
    token = token.strip()
    if not token:
        raise AuthException(
            "No authorization header", AuthErrorCode.MISSING_CREDENTIALS
        )
    return token


class UserAdminService:
    def __init__(
        self, auth_client: AuthClient, roles: Optional[UserRoleStore] = None
    ) -> None:
        self.auth_client = auth_client
        self.roles = roles or UserRoleStore()

    async def delete_user(
        self, authorization: Optional[str], user_id: Optional[str]
    ) -> Dict[str, Any]:
        """
        Delete ``user_id`` from the auth service on behalf of an admin caller.

        Raises:
            AuthException: Missing/invalid token or caller is not an admin
            ValidationException: Missing target id or self-deletion
        """
        token = bearer_token(authorization)
        caller = await self.auth_client.get_user(token)
        caller_id = caller["id"]

        if self.roles.get_role(caller_id) != ROLE_ADMIN:
            logger.warning("User %s attempted an admin delete without admin role", caller_id)
            raise AuthException(
                "Unauthorized: Admin access required",
                AuthErrorCode.INSUFFICIENT_PERMISSIONS,
            )
        if not user_id:
            raise ValidationException(
                "User ID is required", ValidationErrorCode.MISSING_FIELD
            )
        if user_id == caller_id:
            raise ValidationException(
                "Cannot delete your own account", ValidationErrorCode.INVALID_INPUT
            )

        await self.auth_client.delete_user(user_id)
        logger.info("Admin %s deleted user %s", caller_id, user_id)
        return {"success": True, "message": "User deleted successfully"}


_default_service: Optional[UserAdminService] = None


def get_user_admin_service() -> UserAdminService:
    global _default_service
    if _default_service is None:
        _default_service = UserAdminService(get_auth_client())
    return _default_service


__all__ = ["UserAdminService", "bearer_token", "get_user_admin_service"]
