import pytest
from unittest.mock import AsyncMock, MagicMock

from formacli.core.command_handler import CommandHandler
from formacli.core.services.auth_service import AuthService
from formacli.core.services.resource_service import ResourceService
from formacli.domain.errors import AuthError, HttpError, NetworkError, RateLimitError
from formacli.domain.interfaces.user_interface import UserInterface
from formacli.infrastructure.http.api_client import ApiClient


@pytest.fixture
def mock_api_client():
    client = MagicMock(spec=ApiClient)
    client.base_url = "http://api.test/api"
    client.token = "t1"
    return client


@pytest.fixture
def mock_auth_service(mock_api_client):
    service = MagicMock(spec=AuthService)
    service.api_client = mock_api_client
    service.user = None
    return service


@pytest.fixture
def mock_resource_service():
    return MagicMock(spec=ResourceService)


@pytest.fixture
def mock_ui():
    return MagicMock(spec=UserInterface)


@pytest.fixture
def command_handler(mock_auth_service, mock_resource_service, mock_ui):
    """Fixture to create CommandHandler with mocked services."""
    return CommandHandler(
        auth_service=mock_auth_service,
        resource_service=mock_resource_service,
        ui=mock_ui,
    )


@pytest.mark.asyncio
async def test_run_displays_result(command_handler: CommandHandler, mock_ui: MagicMock):
    ok = await command_handler.run(AsyncMock(return_value=[{"id": 1}]), title="candidates")

    assert ok is True
    mock_ui.display_output.assert_called_once_with([{"id": 1}], title="candidates")


@pytest.mark.asyncio
async def test_rate_limit_shows_wait(command_handler, mock_api_client, mock_ui):
    error = RateLimitError(retry_after=120)
    mock_api_client.get_retry_after_delay.return_value = 120.0

    ok = await command_handler.run(AsyncMock(side_effect=error))

    assert ok is False
    mock_api_client.get_retry_after_delay.assert_called_once_with(error)
    mock_ui.display_rate_limit.assert_called_once_with(120.0)
    mock_ui.display_output.assert_not_called()


@pytest.mark.asyncio
async def test_auth_error_forces_logout(command_handler, mock_auth_service, mock_ui):
    ok = await command_handler.run(AsyncMock(side_effect=AuthError(401, {"message": "Token expired"})))

    assert ok is False
    mock_auth_service.force_logout.assert_called_once()
    message = mock_ui.display_error.call_args.args[0]
    assert message.startswith("Token expired.")
    assert "formacli login" in message


@pytest.mark.asyncio
async def test_http_error_shows_status(command_handler, mock_ui):
    await command_handler.run(AsyncMock(side_effect=HttpError(404, {"message": "Not found"})))

    mock_ui.display_error.assert_called_once_with("Not found (HTTP 404)")


@pytest.mark.asyncio
async def test_network_error_mentions_base_url(command_handler, mock_ui):
    await command_handler.run(AsyncMock(side_effect=NetworkError("connection refused")))

    mock_ui.display_error.assert_called_once_with(
        "Network error: connection refused. Is the API reachable at http://api.test/api?"
    )


@pytest.mark.asyncio
async def test_bad_input_is_reported(command_handler, mock_ui):
    ok = await command_handler.run(AsyncMock(side_effect=ValueError("Unknown resource 'x'")))

    assert ok is False
    mock_ui.display_error.assert_called_once_with("Unknown resource 'x'")


@pytest.mark.asyncio
async def test_handle_login(command_handler, mock_auth_service, mock_ui):
    async def login(credentials):
        mock_auth_service.user = {"firstName": "Ada"}
        return mock_auth_service.user

    mock_auth_service.login.side_effect = login

    ok = await command_handler.handle_login({"username": "ada", "password": "pw"})

    assert ok is True
    mock_ui.display_info.assert_called_once_with("Logged in as Ada.")
    mock_ui.display_output.assert_not_called()


@pytest.mark.asyncio
async def test_handle_logout(command_handler, mock_auth_service, mock_ui):
    assert await command_handler.handle_logout() is True

    mock_auth_service.logout.assert_awaited_once()
    mock_ui.display_info.assert_called_once_with("Logged out. Local credentials removed.")


@pytest.mark.asyncio
async def test_handle_profile_requires_login(command_handler, mock_api_client, mock_auth_service, mock_ui):
    mock_api_client.token = None

    assert await command_handler.handle_profile() is False

    mock_ui.display_warning.assert_called_once()
    mock_auth_service.refresh_user_profile.assert_not_called()
