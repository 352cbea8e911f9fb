from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest

from tests.unit.webhooks.helpers import FakeIdentityAndCallbacks, RecordingSleep


@pytest.fixture()
def endpoints() -> FakeIdentityAndCallbacks:
    return FakeIdentityAndCallbacks()


@pytest.fixture()
async def client(endpoints: FakeIdentityAndCallbacks) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(endpoints)) as client:
        yield client


@pytest.fixture()
def sleep() -> RecordingSleep:
    return RecordingSleep()
