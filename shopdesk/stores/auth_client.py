"""Client for the hosted auth service (token introspection and admin deletes)."""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from shopdesk.core.config import settings
from shopdesk.core.error_codes import AuthErrorCode
from shopdesk.core.exceptions import AuthException
from shopdesk.core.logger import get_logger

logger = get_logger(__name__)


class AuthClient:
    """Thin async wrapper over the auth service REST endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        service_role_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = (base_url or settings.auth__url).rstrip("/")
        if service_role_key is None and settings.auth__service_role_key is not None:
            service_role_key = settings.auth__service_role_key.get_secret_value()
        self._service_role_key = service_role_key
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def _service_key(self) -> str:
        if not self._service_role_key:
            raise AuthException(
                "Auth service role key is not configured",
                AuthErrorCode.SERVICE_UNAVAILABLE,
            )
        return self._service_role_key

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=settings.auth__timeout,
                transport=self._transport,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get_user(self, access_token: str) -> Dict[str, Any]:
        """
        Resolve the user owning ``access_token``.

        Raises:
            AuthException: INVALID_CREDENTIALS when the token is rejected,
                SERVICE_UNAVAILABLE when the auth service cannot be reached
        """
        try:
            response = await self._get_client().get(
                "/auth/v1/user",
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "apikey": self._service_key,
                },
            )
        except httpx.HTTPError as exc:
            logger.error("Auth service unreachable: %s", exc)
            raise AuthException(
                "Auth service unreachable", AuthErrorCode.SERVICE_UNAVAILABLE
            ) from exc

        if response.status_code in (401, 403, 404):
            raise AuthException("Invalid token", AuthErrorCode.INVALID_CREDENTIALS)
        if response.is_error:
            logger.error(
                "Auth service returned %s for token lookup", response.status_code
            )
            raise AuthException(
                "Auth service rejected the token lookup",
                AuthErrorCode.OPERATION_FAILED,
                details={"status": response.status_code},
            )

        user = response.json()
        if not isinstance(user, dict) or not user.get("id"):
            raise AuthException("Invalid token", AuthErrorCode.INVALID_CREDENTIALS)
        return user

    async def delete_user(self, user_id: str) -> None:
        """
        Delete an auth identity with the service role key.

        Raises:
            AuthException: OPERATION_FAILED if the auth service refuses
        """
        key = self._service_key
        try:
            response = await self._get_client().delete(
                f"/auth/v1/admin/users/{user_id}",
                headers={"Authorization": f"Bearer {key}", "apikey": key},
            )
        except httpx.HTTPError as exc:
            logger.error("Auth service unreachable while deleting %s: %s", user_id, exc)
            raise AuthException(
                "Auth service unreachable", AuthErrorCode.SERVICE_UNAVAILABLE
            ) from exc

        if response.is_error:
            message = response.text or response.reason_phrase
            logger.error("Auth delete of %s failed: %s", user_id, message)
            raise AuthException(
                f"Failed to delete user from authentication: {message}",
                AuthErrorCode.OPERATION_FAILED,
                details={"status": response.status_code, "user_id": user_id},
            )


_default_client: Optional[AuthClient] = None


def get_auth_client() -> AuthClient:
    global _default_client
    if _default_client is None:
        _default_client = AuthClient()
    return _default_client


__all__ = ["AuthClient", "get_auth_client"]
