# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from collections.abc import AsyncIterable
from typing import Any, TypeVar
from unittest import IsolatedAsyncioTestCase
from unittest.mock import AsyncMock, MagicMock, Mock, call, patch

T = TypeVar("T")

SUB_ID = "a062baee-fdd3-4784-beb4-d817f591422c"
RG = "fabrikam-rg"


class AsyncTestCase(IsolatedAsyncioTestCase):
    def patch_path(self, path: str, **kwargs: Any) -> MagicMock | AsyncMock:
        p = patch(path, **kwargs)
        self.addCleanup(p.stop)
        return p.start()

    def assertCalledTimesWith(self, mock: AsyncMock, times: int, /, *args: Any, **kwargs: Any):
        self.assertEqual(mock.await_count, times)
        self.assertEqual([call(*args, **kwargs)] * times, mock.await_args_list)


class PurgerTestCase(AsyncTestCase):
    """Sets up a mocked SDK client for a kind purger module, `client` is what the purger ends up calling"""

    MODULE: str = NotImplemented
    CLIENT: str = NotImplemented

    def patch(self, obj: str, **kwargs: Any) -> MagicMock | AsyncMock:
        return self.patch_path(f"azure_cleaner.purgers.azure.{self.MODULE}.{obj}", **kwargs)

    def setUp(self) -> None:
        self.client = AsyncMockClient()
        self.client_class = self.patch(self.CLIENT, return_value=self.client)
        self.log = Mock()
        self.credential = AsyncMockClient()


async def async_generator(*items: T) -> AsyncIterable[T]:
    for x in items:
        if isinstance(x, Exception):
            raise x
        yield x


def agen_func(*items: Any) -> Mock:
    """A mocked listing operation which can be called any number of times"""
    return Mock(side_effect=lambda *_args, **_kwargs: async_generator(*items))


def agen_by_args(mapping: dict[Any, list[Any]]) -> Mock:
    """A mocked listing operation returning the items registered for the positional arguments it is called with"""
    return Mock(side_effect=lambda *args, **_kwargs: async_generator(*mapping.get(args, [])))


class UnexpectedException(Exception):
    """Testing for exceptions that we havent accounted for"""

    pass


def mock(**kwargs: Any) -> Mock:
    m = Mock()
    for k, v in kwargs.items():
        setattr(m, k, v)
    return m


def AsyncMockClient(**kwargs: Any) -> AsyncMock:
    """An AsyncMock with the context manager methods set up to use as a client"""
    m = AsyncMock(**kwargs)
    m.__aenter__.return_value = m
    m.__aexit__.return_value = None
    return m


def arm_id(*path: str, provider: str, subscription_id: str = SUB_ID, resource_group: str = RG) -> str:
    """Resource ID for the given type/name path, e.g. `arm_id("servers", "a", provider="Microsoft.Sql")`"""
    return f"/subscriptions/{subscription_id}/resourceGroups/{resource_group}/providers/{provider}/" + "/".join(path)


def resource(*path: str, provider: str, **kwargs: Any) -> Mock:
    """A mocked SDK model named after the last element of the path"""
    return mock(id=arm_id(*path, provider=provider), name=path[-1], **kwargs)

