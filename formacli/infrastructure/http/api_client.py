"""Resilient client for the formation-center JSON API.

Wraps httpx.AsyncClient with bearer-token injection, one-shot token refresh
on 401, rate-limit aware retries and a serialized request queue. Session
credentials are persisted through a TokenStore so they survive restarts.
"""

import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from formacli.domain.errors import (
    ApiError,
    HttpError,
    InvalidResponseError,
    NetworkError,
    RateLimitError,
    error_for_status,
)
from formacli.domain.interfaces.token_store import TokenStore
from formacli.domain.models.common import (
    AUTH_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    AccessToken,
    AuthResponse,
    Endpoint,
    LoginCredentials,
    RefreshToken,
    RegistrationData,
)
from formacli.infrastructure.resilience.api_retry import ApiRetryService
from formacli.infrastructure.resilience.request_queue import RequestQueueService
from formacli.infrastructure.storage.token_store import InMemoryTokenStore

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3001/api"
DEFAULT_TIMEOUT_SECONDS = 30.0

LOGIN_ENDPOINT = Endpoint("/auth/login")
REGISTER_ENDPOINT = Endpoint("/auth/register")
LOGOUT_ENDPOINT = Endpoint("/auth/logout")
PROFILE_ENDPOINT = Endpoint("/auth/profile")
REFRESH_ENDPOINT = Endpoint("/auth/refresh")

# A 401 from these means bad credentials, not an expired session
_NO_REFRESH_ENDPOINTS = frozenset({LOGIN_ENDPOINT, REGISTER_ENDPOINT, REFRESH_ENDPOINT})


class ApiClient:
    """Authenticated, rate-limit aware client. One request in flight at a time."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token_store: Optional[TokenStore] = None,
        retry_service: Optional[ApiRetryService] = None,
        request_queue: Optional[RequestQueueService] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """Initializes the ApiClient.

        Args:
            base_url: API root; endpoint paths are appended to it.
            token_store: Durable credential storage. In-memory if None.
            retry_service: Retry policy executor.
            request_queue: Serializing queue shared by every call of this client.
            http_client: httpx client to send with; closed by aclose(). Created if None.
            timeout: Default per-call timeout in seconds.
        """
        self.base_url = base_url.rstrip('/')
        self.token_store = token_store if token_store is not None else InMemoryTokenStore()
        self.retry_service = retry_service or ApiRetryService()
        self.request_queue = request_queue or RequestQueueService()
        self.timeout = timeout
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

        stored_token = self.token_store.get(AUTH_TOKEN_KEY)
        stored_refresh = self.token_store.get(REFRESH_TOKEN_KEY)
        self.token: Optional[AccessToken] = AccessToken(stored_token) if stored_token else None
        self.refresh_token: Optional[RefreshToken] = RefreshToken(stored_refresh) if stored_refresh else None
        logger.debug(f"ApiClient initialized for {self.base_url} (token present: {bool(self.token)})")

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Rejects queued requests and closes the HTTP client."""
        await self.request_queue.close()
        await self._http.aclose()

    # --- Session credentials ---

    def set_auth_token(self, token: AccessToken, refresh_token: Optional[RefreshToken] = None) -> None:
        """Stores a new access token, and the refresh token when one is given."""
        self.token = token
        self.token_store.set(AUTH_TOKEN_KEY, token)
        if refresh_token:
            self.refresh_token = refresh_token
            self.token_store.set(REFRESH_TOKEN_KEY, refresh_token)

    def clear_auth(self) -> None:
        """Forgets both tokens, in memory and in storage."""
        self.token = None
        self.refresh_token = None
        self.token_store.remove(AUTH_TOKEN_KEY)
        self.token_store.remove(REFRESH_TOKEN_KEY)

    def get_headers(self, multipart: bool = False) -> Dict[str, str]:
        """Headers for the next dispatch, reflecting the current token."""
        headers: Dict[str, str] = {}
        if not multipart:
            # httpx sets the multipart boundary itself
            headers['Content-Type'] = 'application/json'
        if self.token:
            headers['Authorization'] = f"Bearer {self.token}"
        return headers

    def _url(self, endpoint: Endpoint) -> str:
        if not endpoint.startswith('/'):
            endpoint = '/' + endpoint
        return f"{self.base_url}{endpoint}"

    # --- Core request path ---

    async def request(
        self,
        endpoint: Endpoint,
        method: str = "GET",
        *,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        files: Any = None,
        data: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Sends a request through the queue and retry policy.

        Args:
            endpoint: Path suffix, e.g. '/candidates/3'.
            method: HTTP method.
            json: JSON-serializable body.
            params: Query parameters; None values are dropped.
            headers: Extra headers, applied over the defaults.
            files: Multipart files (httpx format). Content must be bytes so
                the body can be resent on retry.
            data: Multipart/form fields sent alongside files.
            timeout: Per-call timeout in seconds; client default if None.

        Returns:
            Decoded JSON for JSON responses, text otherwise.

        Raises:
            NetworkError: Transport failure.
            RateLimitError: 429 after retries were exhausted.
            AuthError: 401 that a token refresh could not fix.
            HttpError: Any other non-2xx status.
        """
        method = method.upper()
        url = self._url(endpoint)
        query = {k: v for k, v in params.items() if v is not None} if params else None
        call_timeout = self.timeout if timeout is None else timeout

        async def send() -> httpx.Response:
            request_headers = self.get_headers(multipart=files is not None)
            if headers:
                request_headers.update(headers)
            try:
                return await self._http.request(
                    method,
                    url,
                    json=json,
                    params=query,
                    headers=request_headers,
                    files=files,
                    data=data,
                    timeout=call_timeout,
                )
            except httpx.TransportError as e:
                logger.error(f"API request error on {method} {endpoint}: {type(e).__name__}: {e}")
                raise NetworkError(str(e) or type(e).__name__) from e

        async def execute() -> Any:
            can_refresh = bool(self.refresh_token) and endpoint not in _NO_REFRESH_ENDPOINTS
            response = await self.retry_service.execute_with_retry(
                send,
                method=method,
                endpoint=endpoint,
                refresh_credentials=self.refresh_auth_token if can_refresh else None,
            )
            return self._handle_response(response, session_scoped=endpoint not in _NO_REFRESH_ENDPOINTS)

        return await self.request_queue.submit(execute, label=f"{method} {endpoint}")

    def _handle_response(self, response: httpx.Response, session_scoped: bool = True) -> Any:
        """Decodes a response by content type, raising for non-2xx statuses.

        A 401 from login, register or refresh is a plain HttpError; AuthError
        is reserved for a rejected session.
        """
        status = response.status_code
        content_type = response.headers.get('content-type', '')

        if 'application/json' in content_type:
            try:
                body = response.json()
            except ValueError:
                if response.is_success:
                    raise InvalidResponseError(status, response.text)
                body = None
            if not response.is_success:
                raise self._status_error(response, body, session_scoped)
            return body

        if not response.is_success:
            raise self._status_error(response, None, session_scoped)
        return response.text

    def _status_error(self, response: httpx.Response, body: Any, session_scoped: bool) -> HttpError:
        status = response.status_code
        if status == 401 and not session_scoped:
            return HttpError(status, body)
        return error_for_status(status, body, retry_after=self.retry_service.retry_after_seconds(response))

    async def refresh_auth_token(self) -> bool:
        """Exchanges the refresh token for a new pair. Never raises."""
        if not self.refresh_token:
            return False
        try:
            response = await self._http.post(
                self._url(REFRESH_ENDPOINT),
                json={'refreshToken': self.refresh_token},
                headers={'Content-Type': 'application/json'},
                timeout=self.timeout,
            )
        except httpx.TransportError as e:
            logger.error(f"Token refresh failed: {type(e).__name__}: {e}")
            return False

        if not response.is_success:
            logger.warning(f"Token refresh rejected with HTTP {response.status_code}")
            return False
        try:
            payload = response.json()
        except ValueError:
            logger.warning("Token refresh returned a non-JSON body")
            return False
        token = payload.get('token') if isinstance(payload, dict) else None
        if not token:
            logger.warning("Token refresh response did not contain a token")
            return False

        refresh_token = payload.get('refreshToken')
        self.set_auth_token(AccessToken(token), RefreshToken(refresh_token) if refresh_token else None)
        logger.info("Access token refreshed.")
        return True

    # --- Authentication endpoints ---

    async def login(self, credentials: LoginCredentials) -> AuthResponse:
        return await self.request(LOGIN_ENDPOINT, "POST", json=dict(credentials))

    async def register(self, user_data: RegistrationData) -> AuthResponse:
        return await self.request(REGISTER_ENDPOINT, "POST", json=dict(user_data))

    async def logout(self) -> None:
        """Tells the server to end the session; local credentials are cleared regardless."""
        try:
            await self.request(LOGOUT_ENDPOINT, "POST")
        finally:
            self.clear_auth()

    async def get_profile(self) -> Any:
        return await self.request(PROFILE_ENDPOINT)

    # --- Error helpers for callers ---

    @staticmethod
    def is_rate_limit_error(error: BaseException) -> bool:
        return isinstance(error, RateLimitError) or getattr(error, 'status', None) == 429

    def get_retry_after_delay(self, error: ApiError) -> float:
        """Seconds a caller should wait before retrying after a rate-limit error."""
        retry_after = getattr(error, 'retry_after', None)
        if retry_after is not None:
            return float(retry_after)
        body = getattr(error, 'body', None)
        if isinstance(body, dict) and body.get('retryAfter') is not None:
            try:
                return float(body['retryAfter'])
            except (TypeError, ValueError):
                pass
        return self.retry_service.policy.base_delay
