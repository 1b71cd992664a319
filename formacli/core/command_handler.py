"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), delegates the work to
AuthService or ResourceService, and turns API errors into user-facing
messages. Every handler returns True on success so the CLI can set its exit code.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from formacli.core.services.auth_service import AuthService
from formacli.core.services.resource_service import ResourceService
from formacli.domain.errors import ApiError, AuthError, HttpError, NetworkError, RateLimitError
from formacli.domain.interfaces.user_interface import UserInterface
from formacli.domain.models.common import LoginCredentials, RegistrationData

logger = logging.getLogger(__name__)


class CommandHandler:
    """Handles incoming commands and delegates to appropriate services."""

    def __init__(
        self,
        auth_service: AuthService,
        resource_service: ResourceService,
        ui: UserInterface,
    ):
        self.auth_service = auth_service
        self.resource_service = resource_service
        self.ui = ui

    async def run(
        self,
        operation: Callable[[], Awaitable[Any]],
        title: Optional[str] = None,
        show_result: bool = True,
    ) -> bool:
        """Awaits an API operation, displays its result or a suitable error."""
        try:
            result = await operation()
        except RateLimitError as e:
            delay = self.auth_service.api_client.get_retry_after_delay(e)
            logger.warning(f"Rate limited: retry in {delay}s")
            self.ui.display_rate_limit(delay)
            return False
        except AuthError as e:
            logger.warning(f"Request rejected as unauthorized: {e.message}")
            self.auth_service.force_logout()
            self.ui.display_error(f"{e.message}. Your session has ended; run 'formacli login' to sign in again.")
            return False
        except HttpError as e:
            self.ui.display_error(f"{e.message} (HTTP {e.status})")
            return False
        except NetworkError as e:
            self.ui.display_error(f"{e}. Is the API reachable at {self.auth_service.api_client.base_url}?")
            return False
        except ApiError as e:
            self.ui.display_error(str(e))
            return False
        except ValueError as e:
            # Bad user input, e.g. an unknown resource name
            self.ui.display_error(str(e))
            return False
        if show_result:
            self.ui.display_output(result, title=title)
        return True

    async def handle_login(self, credentials: LoginCredentials) -> bool:
        ok = await self.run(lambda: self.auth_service.login(credentials), show_result=False)
        if ok:
            user = self.auth_service.user or {}
            name = user.get('firstName') or user.get('username') or user.get('email') or 'user'
            self.ui.display_info(f"Logged in as {name}.")
        return ok

    async def handle_register(self, user_data: RegistrationData) -> bool:
        ok = await self.run(lambda: self.auth_service.register(user_data), show_result=False)
        if ok:
            self.ui.display_info(f"Account created for {user_data.get('email', 'new user')}.")
        return ok

    async def handle_logout(self) -> bool:
        await self.auth_service.logout()
        self.ui.display_info("Logged out. Local credentials removed.")
        return True

    async def handle_profile(self) -> bool:
        if not self.auth_service.api_client.token:
            self.ui.display_warning("Not logged in. Run 'formacli login' first.")
            return False
        return await self.run(self.auth_service.refresh_user_profile, title="Profile")
