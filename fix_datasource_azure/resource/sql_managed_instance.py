from __future__ import annotations

import logging
from typing import ClassVar, Dict, Optional, List, Any

from attr import define, field, frozen
from azure.core.exceptions import ResourceNotFoundError

from fix_datasource_azure.azure_client import AzureResourceSpec, MicrosoftClient
from fix_datasource_azure.config import AzureConfig
from fix_datasource_azure.context import ReadContext
from fix_datasource_azure.errors import DataSourceError, FetchError, MappingError, ResourceIdParseError
from fix_datasource_azure.json import to_json
from fix_datasource_azure.json_bender import Bender, S, F, Bend, MapValue, AsInt, AsBool
from fix_datasource_azure.resource.base import (
    AzureResourceIdentity,
    DataSource,
    DataSourceState,
    IdentityOutput,
    flatten_identity,
    parse_json,
    parse_resource_id,
)
from fix_datasource_azure.schema import (
    FieldSchema,
    FieldType,
    Schema,
    computed,
    location_for_data_source,
    managed_identity_schema,
    resource_group_name_for_data_source,
    tags_schema,
    validate_input,
    validate_mssql_server_name,
    validate_resource_group_name,
)
from fix_datasource_azure.types import AzureTags
from fix_datasource_azure.utils import flatten_tags, normalize_location, str_or_empty

log = logging.getLogger("fix.datasource.azure")

DefaultApiVersion = "2021-11-01"


@frozen
class ManagedInstanceId:
    subscription_id: str
    resource_group: str
    name: str

    def id(self) -> str:
        return (
            f"/subscriptions/{self.subscription_id}/resourceGroups/{self.resource_group}"
            f"/providers/Microsoft.Sql/managedInstances/{self.name}"
        )

    def __str__(self) -> str:
        return self.id()

    @staticmethod
    def parse(resource_id: str) -> ManagedInstanceId:
        segments = parse_resource_id(resource_id)
        if segments.get("providers") != "Microsoft.Sql":
            raise ResourceIdParseError(resource_id, "expected provider Microsoft.Sql")
        if "managedInstances" not in segments:
            raise ResourceIdParseError(resource_id, "no managedInstances segment found")
        if unknown := set(segments) - {"subscriptions", "resourceGroups", "providers", "managedInstances"}:
            raise ResourceIdParseError(resource_id, f"unexpected segments: {', '.join(sorted(unknown))}")
        name, resource_group = segments["managedInstances"], segments["resourceGroups"]
        # both parts end up in the request path
        problems = validate_mssql_server_name(name, "name")
        problems += validate_resource_group_name(resource_group, "resource group")
        if problems:
            raise ResourceIdParseError(resource_id, "; ".join(problems))
        return ManagedInstanceId(segments["subscriptions"], resource_group, name)

    @staticmethod
    def from_lookup(subscription_id: str, lookup: SqlManagedInstanceLookup) -> ManagedInstanceId:
        return ManagedInstanceId(subscription_id, lookup.resource_group_name, lookup.name)


def expect_object(value: Any, name: str) -> Any:
    if not isinstance(value, dict):
        raise MappingError(name, f"expected a json object, got {type(value).__name__}")
    return value


# storageAccountType is only reported by older api versions
BackupRedundancyToStorageAccountType = {"Geo": "GRS", "Local": "LRS", "Zone": "ZRS", "GeoZone": "GZRS"}


@define(eq=False, slots=False)
class AzureSqlManagedInstance:
    kind: ClassVar[str] = "azure_sql_managed_instance"
    mapping: ClassVar[Dict[str, Bender]] = {
        "id": S("id"),
        "name": S("name"),
        "location": S("location"),
        "tags": S("tags"),
        "sku_name": S("sku", "name"),
        "managed_instance_identity": S("identity")
        >> F(expect_object, "identity")
        >> Bend(AzureResourceIdentity.mapping),
        "administrator_login": S("properties", "administratorLogin"),
        "collation": S("properties", "collation"),
        "dns_zone_partner": S("properties", "dnsZonePartner"),
        "fully_qualified_domain_name": S("properties", "fullyQualifiedDomainName"),
        "license_type": S("properties", "licenseType"),
        "minimal_tls_version": S("properties", "minimalTlsVersion"),
        "proxy_override": S("properties", "proxyOverride"),
        "public_data_endpoint_enabled": S("properties", "publicDataEndpointEnabled") >> AsBool(),
        "storage_account_type": S("properties", "storageAccountType").or_else(
            S("properties", "currentBackupStorageRedundancy") >> MapValue(BackupRedundancyToStorageAccountType)
        ),
        "storage_size_in_gb": S("properties", "storageSizeInGB") >> AsInt(),
        "subnet_id": S("properties", "subnetId"),
        "timezone_id": S("properties", "timezoneId"),
        "v_cores": S("properties", "vCores") >> AsInt(),
    }
    id: Optional[str] = field(default=None, metadata={"description": "Resource ID."})
    name: Optional[str] = field(default=None, metadata={"description": "Resource name."})
    location: Optional[str] = field(default=None, metadata={"description": "Resource location."})
    tags: AzureTags = field(default=None, metadata={"description": "Resource tags."})
    sku_name: Optional[str] = field(default=None, metadata={'description': 'The name of the SKU, e.g. GP_Gen5.'})  # fmt: skip
    managed_instance_identity: Optional[AzureResourceIdentity] = field(default=None, metadata={'description': 'Azure Active Directory identity configuration for a resource.'})  # fmt: skip
    administrator_login: Optional[str] = field(default=None, metadata={'description': 'Administrator username for the managed instance. Can only be specified when the managed instance is being created (and is required for creation).'})  # fmt: skip
    collation: Optional[str] = field(default=None, metadata={"description": "Collation of the managed instance."})
    dns_zone_partner: Optional[str] = field(default=None, metadata={'description': 'The resource id of another managed instance whose DNS zone this managed instance will share after creation.'})  # fmt: skip
    fully_qualified_domain_name: Optional[str] = field(default=None, metadata={'description': 'The fully qualified domain name of the managed instance.'})  # fmt: skip
    license_type: Optional[str] = field(default=None, metadata={'description': 'The license type. Possible values are LicenseIncluded (regular price inclusive of a new SQL license) and BasePrice (discounted AHB price for bringing your own SQL licenses).'})  # fmt: skip
    minimal_tls_version: Optional[str] = field(default=None, metadata={'description': 'Minimal TLS version. Allowed values: None , 1.0 , 1.1 , 1.2 '})  # fmt: skip
    proxy_override: Optional[str] = field(default=None, metadata={'description': 'Connection type used for connecting to the instance.'})  # fmt: skip
    public_data_endpoint_enabled: Optional[bool] = field(default=None, metadata={'description': 'Whether or not the public data endpoint is enabled.'})  # fmt: skip
    storage_account_type: Optional[str] = field(default=None, metadata={'description': 'The storage account type used to store backups for this instance: GRS, LRS, ZRS or GZRS.'})  # fmt: skip
    storage_size_in_gb: Optional[int] = field(default=None, metadata={'description': 'Storage size in GB. Minimum value: 32. Maximum value: 16384. Increments of 32 GB allowed only.'})  # fmt: skip
    subnet_id: Optional[str] = field(default=None, metadata={'description': 'Subnet resource ID for the managed instance.'})  # fmt: skip
    timezone_id: Optional[str] = field(default=None, metadata={'description': 'Id of the timezone. Allowed values are timezones supported by Windows.'})  # fmt: skip
    v_cores: Optional[int] = field(default=None, metadata={'description': 'The number of vCores. Allowed values: 8, 16, 24, 32, 40, 64, 80.'})  # fmt: skip

    @staticmethod
    def from_api(js: Dict[str, Any]) -> AzureSqlManagedInstance:
        return parse_json(js, AzureSqlManagedInstance, AzureSqlManagedInstance.mapping)


@define
class SqlManagedInstanceLookup:
    name: str
    resource_group_name: str
    # informational only, never compared with the fetched resource
    location: Optional[str] = None

    def validate(self) -> List[str]:
        return validate_input(SqlManagedInstanceDataSource.schema(), to_json(self, strip_nulls=True))


@define
class SqlManagedInstanceOutput:
    name: str
    resource_group_name: str
    location: str = ""
    sku_name: str = ""
    administrator_login: str = ""
    vcores: int = 0
    storage_size_in_gb: int = 0
    license_type: str = ""
    subnet_id: str = ""
    collation: str = ""
    public_data_endpoint_enabled: bool = False
    minimum_tls_version: str = ""
    proxy_override: str = ""
    timezone_id: str = ""
    fqdn: str = ""
    dns_zone_partner_id: str = ""
    storage_account_type: str = ""
    identity: List[IdentityOutput] = field(factory=list)
    tags: Dict[str, str] = field(factory=dict)


def managed_instance_output(mi_id: ManagedInstanceId, instance: AzureSqlManagedInstance) -> SqlManagedInstanceOutput:
    """
    Maps the fetched record onto the output fields.
    Identity and tags are flattened first: if any of them fails, no output is produced.
    """
    identity = flatten_identity(instance.managed_instance_identity)
    tags = flatten_tags(instance.tags)
    return SqlManagedInstanceOutput(
        name=mi_id.name,
        resource_group_name=mi_id.resource_group,
        location=normalize_location(instance.location) if instance.location else "",
        sku_name=str_or_empty(instance.sku_name),
        administrator_login=str_or_empty(instance.administrator_login),
        vcores=instance.v_cores or 0,
        storage_size_in_gb=instance.storage_size_in_gb or 0,
        license_type=str_or_empty(instance.license_type),
        subnet_id=str_or_empty(instance.subnet_id),
        collation=str_or_empty(instance.collation),
        public_data_endpoint_enabled=bool(instance.public_data_endpoint_enabled),
        minimum_tls_version=str_or_empty(instance.minimal_tls_version),
        proxy_override=str_or_empty(instance.proxy_override),
        timezone_id=str_or_empty(instance.timezone_id),
        fqdn=str_or_empty(instance.fully_qualified_domain_name),
        dns_zone_partner_id=str_or_empty(instance.dns_zone_partner),
        storage_account_type=str_or_empty(instance.storage_account_type),
        identity=identity,
        tags=tags,
    )


class SqlManagedInstancesClient:
    def __init__(self, client: MicrosoftClient, api_version: str = DefaultApiVersion) -> None:
        self.client = client
        self.api_spec = AzureResourceSpec(
            service="sql",
            version=api_version,
            path="/subscriptions/{subscriptionId}/resourceGroups/{resourceGroupName}/providers/Microsoft.Sql/managedInstances/{managedInstanceName}",  # noqa: E501
            path_parameters=["subscriptionId", "resourceGroupName", "managedInstanceName"],
            query_parameters=["api-version"],
            expected_error_codes={
                "AuthorizationFailed": "The credentials need read access to the managed instance, e.g. the Reader role.",
                "InvalidApiVersionParameter": f"Api version {api_version} is not supported. Check `api_version` in the configuration.",  # noqa: E501
            },
        )

    def get(
        self, resource_group: str, name: str, context: ReadContext, subscription_id: Optional[str] = None
    ) -> AzureSqlManagedInstance:
        """
        Fetch the managed instance within the bounds of the given context.
        :raises ResourceNotFoundError: if the managed instance does not exist.
        """
        sub_id = subscription_id or self.client.subscription_id
        mi_id = ManagedInstanceId(sub_id, resource_group, name)
        js = context.run(
            mi_id.id(),
            self.client.get,
            self.api_spec,
            timeout=context.remaining(),
            subscriptionId=sub_id,
            resourceGroupName=resource_group,
            managedInstanceName=name,
        )
        return AzureSqlManagedInstance.from_api(js)


class SqlManagedInstanceDataSource(DataSource[SqlManagedInstanceOutput]):
    kind: ClassVar[str] = "azurerm_sql_managed_instance"
    service: ClassVar[str] = "sql"

    def __init__(self, api_version: str = DefaultApiVersion) -> None:
        self.api_version = api_version

    @classmethod
    def from_config(cls, config: AzureConfig) -> SqlManagedInstanceDataSource:
        return cls(config.api_version)

    @classmethod
    def subscription_id(cls, state: DataSourceState) -> str:
        return ManagedInstanceId.parse(state.id or "").subscription_id

    @classmethod
    def schema(cls) -> Schema:
        return {
            "name": FieldSchema(
                type=FieldType.string,
                required=True,
                validate=validate_mssql_server_name,
                description="The name of the SQL Managed Instance.",
            ),
            "location": location_for_data_source(),
            "resource_group_name": resource_group_name_for_data_source(),
            "sku_name": computed(FieldType.string),
            "administrator_login": computed(FieldType.string),
            "vcores": computed(FieldType.int),
            "storage_size_in_gb": computed(FieldType.int),
            "license_type": computed(FieldType.string),
            "subnet_id": computed(FieldType.string),
            "collation": computed(FieldType.string),
            "public_data_endpoint_enabled": computed(FieldType.bool),
            "minimum_tls_version": computed(FieldType.string),
            "proxy_override": computed(FieldType.string),
            "timezone_id": computed(FieldType.string),
            "fqdn": computed(FieldType.string),
            "dns_zone_partner_id": computed(FieldType.string),
            "identity": managed_identity_schema(),
            "storage_account_type": computed(FieldType.string),
            "tags": tags_schema(),
        }

    def read(
        self, client: MicrosoftClient, state: DataSourceState, context: ReadContext
    ) -> Optional[SqlManagedInstanceOutput]:
        mi_id = ManagedInstanceId.parse(state.id or "")

        try:
            instance = SqlManagedInstancesClient(client, self.api_version).get(
                mi_id.resource_group, mi_id.name, context, subscription_id=mi_id.subscription_id
            )
        except ResourceNotFoundError:
            log.info(f"[Azure] Error reading SQL Managed Instance {state.id!r} - removing from state")
            state.clear_id()
            return None
        except MappingError as e:
            raise e.with_resource_id(mi_id.id()) from e
        except DataSourceError:
            raise
        except Exception as e:
            raise FetchError(mi_id.id(), e, f"reading SQL Managed Instance {mi_id.id()!r}: {e}") from e

        try:
            output = managed_instance_output(mi_id, instance)
        except MappingError as e:
            raise e.with_resource_id(mi_id.id()) from e
        state.attributes = to_json(output)
        return output
