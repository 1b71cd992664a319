import asyncio
from typing import Callable, List, Optional

import httpx
import pytest

from formacli.domain.models.common import RetryPolicy
from formacli.infrastructure.config.settings import clear_test_config
from formacli.infrastructure.http.api_client import ApiClient
from formacli.infrastructure.resilience.api_retry import ApiRetryService
from formacli.infrastructure.resilience.request_queue import RequestQueueService
from formacli.infrastructure.storage.token_store import InMemoryTokenStore


class RecordingSleep:
    """Stands in for asyncio.sleep: records each delay and yields once."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)
        await asyncio.sleep(0)


@pytest.fixture
def retry_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def queue_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def token_store() -> InMemoryTokenStore:
    return InMemoryTokenStore()


@pytest.fixture
def make_client(retry_sleep, queue_sleep, token_store) -> Callable[..., ApiClient]:
    """Builds an ApiClient whose HTTP traffic goes to a MockTransport handler.

    Jitter is pinned at half its range (rand() == 0.5) so delays are exact.
    """

    def _make(handler, policy: Optional[RetryPolicy] = None, events: Optional[list] = None) -> ApiClient:
        retry_service = ApiRetryService(
            policy=policy or RetryPolicy(),
            sleep=retry_sleep,
            rand=lambda: 0.5,
            event_listener=events.append if events is not None else (lambda event: None),
        )
        return ApiClient(
            base_url="http://api.test/api",
            token_store=token_store,
            retry_service=retry_service,
            request_queue=RequestQueueService(inter_request_delay=0.1, sleep=queue_sleep),
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )

    return _make


@pytest.fixture(autouse=True)
def reset_test_config():
    yield
    clear_test_config()
