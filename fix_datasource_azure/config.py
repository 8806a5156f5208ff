from datetime import timedelta
from typing import ClassVar, Optional, Dict, Union

from attr import define, field
from azure.identity import DefaultAzureCredential, ClientSecretCredential

from fix_datasource_azure.json import from_json
from fix_datasource_azure.types import Json

AzureCredentials = Union[DefaultAzureCredential, ClientSecretCredential]


@define
class AzureClientSecretConfig:
    kind: ClassVar[str] = "azure_client_secret"
    tenant_id: str = field(metadata={"description": "Azure tenant ID"})
    client_id: str = field(metadata={"description": "Azure client ID"})
    client_secret: str = field(metadata={"description": "Azure client secret"})


@define
class AzureAccountConfig:
    kind: ClassVar[str] = "azure_account"

    client_secret: Optional[AzureClientSecretConfig] = field(
        default=None,
        metadata={
            "description": "If you can not provide access via the environment, define access with a client secret.\nIf no secret is provided the default credential chain will be used.\nSee https://docs.microsoft.com/en-us/azure/developer/python/azure-sdk-authenticate?tabs=cmd#environment-variables for more information."  # noqa: E501
        },
    )

    def credentials(self) -> AzureCredentials:
        if cs := self.client_secret:
            return ClientSecretCredential(
                tenant_id=cs.tenant_id,
                client_id=cs.client_id,
                client_secret=cs.client_secret,
            )

        return DefaultAzureCredential(process_timeout=300)


@define
class AzureConfig:
    kind: ClassVar[str] = "azure"

    subscription_id: Optional[str] = field(
        default=None,
        metadata={"description": "Subscription used to build resource ids from a name and resource group lookup."},
    )

    read_timeout: int = field(
        default=300,
        metadata={"description": "Maximum number of seconds a single data source read may take (default: 5 minutes)."},
    )

    connection_timeout: int = field(
        default=30,
        metadata={"description": "Number of seconds to wait for a connection to the Azure API."},
    )

    api_version: str = field(
        default="2021-11-01",
        metadata={"description": "Version of the Microsoft.Sql API used to read managed instances."},
    )

    accounts: Dict[str, AzureAccountConfig] = field(
        factory=lambda: {"default": AzureAccountConfig()},
        metadata={
            "description": "Credentials per subscription id. "
            "The entry named `default` is used for all subscriptions without an explicit entry."
        },
    )

    @read_timeout.validator
    def _check_read_timeout(self, _: object, value: int) -> None:
        if value <= 0:
            raise ValueError(f"read_timeout must be positive, got {value}")

    def read_timeout_delta(self) -> timedelta:
        return timedelta(seconds=self.read_timeout)

    def account_for(self, subscription_id: str) -> AzureAccountConfig:
        if account := self.accounts.get(subscription_id):
            return account
        return self.accounts.get("default") or AzureAccountConfig()

    def credentials(self, subscription_id: str) -> AzureCredentials:
        return self.account_for(subscription_id).credentials()

    @staticmethod
    def from_json(js: Json) -> "AzureConfig":
        return from_json(js, AzureConfig)
