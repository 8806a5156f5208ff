from __future__ import annotations

import json
import os
from threading import Event
from typing import Any, List, Tuple, Optional, Iterator

from azure.core.exceptions import ResourceNotFoundError
from pytest import fixture

from fix_datasource_azure import AzureDataSourceProvider
from fix_datasource_azure.azure_client import MicrosoftClient, AzureResourceSpec
from fix_datasource_azure.config import AzureConfig
from fix_datasource_azure.context import ReadContext
from fix_datasource_azure.resource.base import DataSourceState
from fix_datasource_azure.types import Json


def mi_id(name: str, resource_group: str = "rg1", subscription_id: str = "test") -> str:
    return f"/subscriptions/{subscription_id}/resourceGroups/{resource_group}/providers/Microsoft.Sql/managedInstances/{name}"  # noqa: E501


class StaticFileMicrosoftClient(MicrosoftClient):
    """
    Serves resources from test/files/<service>/<last path segment>.json.
    A missing file is reported as not found.
    """

    def __init__(self, subscription_id: str = "test") -> None:
        self.subscription_id = subscription_id
        self.calls: List[Tuple[AzureResourceSpec, Json]] = []

    def get(self, spec: AzureResourceSpec, timeout: Optional[float] = None, **kwargs: Any) -> Json:
        self.calls.append((spec, kwargs))
        path = spec.path.format_map({"subscriptionId": self.subscription_id, **kwargs})
        last = path.rsplit("/", maxsplit=1)[1]
        file = os.path.dirname(__file__) + f"/files/{spec.service}/{last}.json"
        if not os.path.exists(file):
            raise ResourceNotFoundError(f"The Resource '{path}' was not found.")
        with open(file) as f:
            return json.load(f)  # type: ignore

    @staticmethod
    def create(*args: Any, **kwargs: Any) -> StaticFileMicrosoftClient:
        return StaticFileMicrosoftClient()


class ErrorMicrosoftClient(MicrosoftClient):
    def __init__(self, error: Exception) -> None:
        self.subscription_id = "test"
        self.error = error
        self.calls = 0

    def get(self, spec: AzureResourceSpec, timeout: Optional[float] = None, **kwargs: Any) -> Json:
        self.calls += 1
        raise self.error


class BlockingMicrosoftClient(MicrosoftClient):
    """
    Blocks until released: simulates a call that does not come back in time.
    """

    def __init__(self) -> None:
        self.subscription_id = "test"
        self.release = Event()
        self.started = Event()

    def get(self, spec: AzureResourceSpec, timeout: Optional[float] = None, **kwargs: Any) -> Json:
        self.started.set()
        self.release.wait(10)
        return {}


@fixture
def config() -> AzureConfig:
    return AzureConfig(subscription_id="test")


@fixture
def azure_client() -> Iterator[StaticFileMicrosoftClient]:
    previous = MicrosoftClient.create
    MicrosoftClient.create = StaticFileMicrosoftClient.create  # type: ignore
    yield StaticFileMicrosoftClient()
    MicrosoftClient.create = previous  # type: ignore


@fixture
def blocking_client() -> Iterator[BlockingMicrosoftClient]:
    client = BlockingMicrosoftClient()
    yield client
    client.release.set()


@fixture
def context() -> ReadContext:
    return ReadContext.with_timeout()


@fixture
def provider(config: AzureConfig, azure_client: StaticFileMicrosoftClient) -> AzureDataSourceProvider:
    return AzureDataSourceProvider(config, lambda cfg, subscription_id: azure_client)


def state_for(name: str) -> DataSourceState:
    return DataSourceState(id=mi_id(name))
