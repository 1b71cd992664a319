"""Auth session service.

Owns the login lifecycle on top of ApiClient: stores the token pair returned
by login/register, loads the user profile, validates a persisted session at
start-up and forces a logout when the server rejects the session.
"""

import logging
from typing import Any, Dict, Optional

from formacli.domain.errors import ApiError, AuthError
from formacli.domain.models.common import AccessToken, LoginCredentials, RefreshToken, RegistrationData
from formacli.infrastructure.http.api_client import ApiClient

logger = logging.getLogger(__name__)


class AuthService:
    """Tracks who is logged in and keeps stored credentials consistent."""

    def __init__(self, api_client: ApiClient):
        self.api_client = api_client
        self.user: Optional[Dict[str, Any]] = None
        self.is_authenticated = False
        self.error: Optional[str] = None

    async def check_auth_status(self) -> bool:
        """Validates a persisted token by loading the profile.

        Any failure clears the stored credentials.
        """
        self.error = None
        if not self.api_client.token:
            self._reset()
            return False
        try:
            self.user = await self.api_client.get_profile()
        except ApiError as e:
            logger.warning(f"Auth check failed: {e}")
            self.api_client.clear_auth()
            self._reset()
            return False
        self.is_authenticated = True
        return True

    async def login(self, credentials: LoginCredentials) -> Dict[str, Any]:
        """Logs in, stores the returned tokens and returns the user profile."""
        return await self._authenticate(self.api_client.login(credentials), "Login")

    async def register(self, user_data: RegistrationData) -> Dict[str, Any]:
        """Creates an account, stores the returned tokens and returns the user profile."""
        return await self._authenticate(self.api_client.register(user_data), "Registration")

    async def _authenticate(self, call: Any, action: str) -> Dict[str, Any]:
        self.error = None
        try:
            response = await call
            token = response.get('token') if isinstance(response, dict) else None
            if not token:
                raise ApiError(f"{action} response did not contain a token")
            refresh_token = response.get('refreshToken')
            self.api_client.set_auth_token(AccessToken(token), RefreshToken(refresh_token) if refresh_token else None)
            profile = await self.api_client.get_profile()
        except ApiError as e:
            logger.error(f"{action} failed: {e}")
            self.error = str(e) or f"{action} failed"
            raise
        self.user = profile
        self.is_authenticated = True
        logger.info(f"{action} succeeded")
        return profile

    async def logout(self) -> None:
        """Ends the session. Local state is reset even if the server call fails."""
        try:
            await self.api_client.logout()
        except ApiError as e:
            logger.warning(f"Logout error (local session cleared anyway): {e}")
        finally:
            self._reset()

    def force_logout(self) -> None:
        """Drops the session without contacting the server."""
        self.api_client.clear_auth()
        self._reset()

    async def refresh_user_profile(self) -> Dict[str, Any]:
        """Reloads the profile; a rejected session logs the user out."""
        try:
            profile = await self.api_client.get_profile()
        except AuthError:
            logger.warning("Profile refresh rejected; forcing logout")
            self.force_logout()
            raise
        self.user = profile
        return profile

    def _reset(self) -> None:
        self.user = None
        self.is_authenticated = False
        self.error = None
