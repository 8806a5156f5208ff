from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, Optional, TypeVar, List, Type, Generic

from attr import define, field

from fix_datasource_azure.azure_client import MicrosoftClient
from fix_datasource_azure.config import AzureConfig
from fix_datasource_azure.context import ReadContext
from fix_datasource_azure.errors import ResourceIdParseError, MappingError
from fix_datasource_azure.json import from_json
from fix_datasource_azure.json_bender import Bender, bend, S
from fix_datasource_azure.schema import Schema
from fix_datasource_azure.types import Json
from fix_datasource_azure.utils import case_insensitive_eq, str_or_empty

log = logging.getLogger("fix.datasource.azure")

T = TypeVar("T")
OutputT = TypeVar("OutputT")


def parse_json(json: Json, clazz: Type[T], mapping: Optional[Dict[str, Bender]] = None) -> T:
    """
    Use this method to parse json into a class.
    :param json: the json to parse.
    :param clazz: the class to parse into.
    :param mapping: the optional mapping to apply before parsing.
    :return: The parsed object.
    :raises MappingError: if the json does not match the shape of the class.
    """
    try:
        mapped = bend(mapping, json) if mapping is not None else json
        return from_json(mapped, clazz)
    except Exception as e:
        message = f"Failed to parse json into {clazz.__name__}: {e}"
        log.warning(f"[Azure] {message}. Source: {json}")
        raise MappingError(clazz.__name__, message) from e


def parse_resource_id(resource_id: str) -> Dict[str, str]:
    """
    Splits an Azure Resource Manager id into its key/value segments.

    Example:
    "/subscriptions/s1/resourceGroups/rg1/providers/Microsoft.Sql/managedInstances/mi1" ->
    {"subscriptions": "s1", "resourceGroups": "rg1", "providers": "Microsoft.Sql", "managedInstances": "mi1"}

    Some Azure APIs return "resourcegroups" in lower case, which is accepted as well.
    """
    if not resource_id or not resource_id.startswith("/"):
        raise ResourceIdParseError(resource_id, "expected an id starting with '/'")
    parts = resource_id.strip("/").split("/")
    if len(parts) % 2 != 0:
        raise ResourceIdParseError(resource_id, "the number of segments is not even")
    segments: Dict[str, str] = {}
    for key, value in zip(parts[0::2], parts[1::2]):
        if not key or not value:
            raise ResourceIdParseError(resource_id, "found an empty segment")
        if case_insensitive_eq(key, "resourceGroups"):
            key = "resourceGroups"
        if key in segments:
            raise ResourceIdParseError(resource_id, f"segment {key} is defined more than once")
        segments[key] = value
    for required in ("subscriptions", "resourceGroups"):
        if required not in segments:
            raise ResourceIdParseError(resource_id, f"no {required} segment found")
    return segments


@define
class DataSourceState:
    """
    The persisted record of a data source as tracked by the infrastructure tool.
    `id` is the opaque identifier assigned by the tool, `attributes` hold the computed output.
    """

    id: Optional[str] = None
    attributes: Json = field(factory=dict)

    def clear_id(self) -> None:
        self.id = None

    @property
    def absent(self) -> bool:
        return self.id is None


class DataSource(ABC, Generic[OutputT]):
    # The name under which the data source is registered.
    kind: ClassVar[str] = "azurerm_data_source"
    # The api service used to read this data source.
    service: ClassVar[str] = "resource"

    @classmethod
    def from_config(cls, config: AzureConfig) -> DataSource[OutputT]:
        return cls()

    @classmethod
    def subscription_id(cls, state: DataSourceState) -> str:
        """
        The subscription of the resource referenced by the state id.
        :raises ResourceIdParseError: if the id does not reference a resource of this data source.
        """
        return parse_resource_id(state.id or "")["subscriptions"]

    @classmethod
    @abstractmethod
    def schema(cls) -> Schema:
        pass

    @abstractmethod
    def read(self, client: MicrosoftClient, state: DataSourceState, context: ReadContext) -> Optional[OutputT]:
        """
        Read the resource referenced by the state id.
        Returns the output written to the state, or None if the resource does not exist anymore.
        In this case the id of the state is cleared.
        """


@define(eq=False, slots=False)
class AzureResourceIdentity:
    kind: ClassVar[str] = "azure_resource_identity"
    mapping: ClassVar[Dict[str, Bender]] = {
        "principal_id": S("principalId"),
        "tenant_id": S("tenantId"),
        "type": S("type"),
        "user_assigned_identities": S("userAssignedIdentities"),
    }
    principal_id: Optional[str] = field(default=None, metadata={'description': 'The Azure Active Directory principal id.'})  # fmt: skip
    tenant_id: Optional[str] = field(default=None, metadata={'description': 'The Azure Active Directory tenant id.'})  # fmt: skip
    type: Optional[str] = field(default=None, metadata={'description': 'The identity type. Set this to SystemAssigned in order to automatically create and assign an Azure Active Directory principal for the resource.'})  # fmt: skip
    user_assigned_identities: Optional[Dict[str, Any]] = field(default=None, metadata={'description': 'The resource ids of the user assigned identities to use.'})  # fmt: skip


@define
class IdentityOutput:
    type: str = ""
    principal_id: str = ""
    tenant_id: str = ""


def flatten_identity(identity: Optional[AzureResourceIdentity]) -> List[IdentityOutput]:
    """
    An absent identity is flattened to an empty list, a present one to a list with exactly one element.
    Missing ids are reported as empty strings.
    """
    if identity is None:
        return []
    if not isinstance(identity, AzureResourceIdentity):
        raise MappingError("identity", f"expected an identity block, got {type(identity).__name__}")
    return [
        IdentityOutput(
            type=str_or_empty(identity.type),
            principal_id=str_or_empty(identity.principal_id),
            tenant_id=str_or_empty(identity.tenant_id),
        )
    ]
