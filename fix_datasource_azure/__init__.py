import logging
from typing import Dict, Type, Optional, Callable, Any

from fix_datasource_azure.azure_client import MicrosoftClient
from fix_datasource_azure.config import AzureConfig
from fix_datasource_azure.context import ReadContext
from fix_datasource_azure.errors import InvalidInputError, ResourceIdParseError
from fix_datasource_azure.resource.base import DataSource, DataSourceState
from fix_datasource_azure.resource.sql_managed_instance import (
    ManagedInstanceId,
    SqlManagedInstanceDataSource,
    SqlManagedInstanceLookup,
)
from fix_datasource_azure.schema import Schema

log = logging.getLogger("fix.datasource.azure")

ClientFactory = Callable[[AzureConfig, str], MicrosoftClient]

all_data_sources: Dict[str, Type[DataSource[Any]]] = {
    SqlManagedInstanceDataSource.kind: SqlManagedInstanceDataSource,
}


def default_client_factory(config: AzureConfig, subscription_id: str) -> MicrosoftClient:
    return MicrosoftClient.create(config, config.credentials(subscription_id), subscription_id)


class AzureDataSourceProvider:
    """
    Entry point for the infrastructure tool: holds the configuration
    and dispatches reads to the registered data sources.
    """

    def __init__(self, config: Optional[AzureConfig] = None, client_factory: Optional[ClientFactory] = None) -> None:
        self.config = config or AzureConfig()
        self.client_factory = client_factory or default_client_factory

    def data_source(self, kind: str) -> DataSource[Any]:
        if (clazz := all_data_sources.get(kind)) is None:
            raise KeyError(f"No data source registered for kind {kind}")
        return clazz.from_config(self.config)

    def schema(self, kind: str) -> Schema:
        return self.data_source(kind).schema()

    def sql_managed_instance_id(self, lookup: SqlManagedInstanceLookup) -> str:
        """
        Validates the lookup and computes the identifier the tool persists before the read.
        """
        if problems := lookup.validate():
            raise InvalidInputError(SqlManagedInstanceDataSource.kind, problems)
        if not self.config.subscription_id:
            raise InvalidInputError(SqlManagedInstanceDataSource.kind, ["subscription_id: is not configured"])
        return ManagedInstanceId.from_lookup(self.config.subscription_id, lookup).id()

    def read(self, kind: str, state: DataSourceState, context: Optional[ReadContext] = None) -> Optional[Any]:
        data_source = self.data_source(kind)
        # fails before any client is created, if the id is malformed
        subscription_id = data_source.subscription_id(state)
        ctx = ReadContext.with_timeout(self.config.read_timeout_delta(), parent=context)
        client = self.client_factory(self.config, subscription_id)
        log.debug(f"[Azure] Reading {kind} {state.id}")
        return data_source.read(client, state, ctx)


__all__ = [
    "AzureDataSourceProvider",
    "DataSourceState",
    "ReadContext",
    "ResourceIdParseError",
    "SqlManagedInstanceLookup",
    "all_data_sources",
]
