from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Any, Dict, cast

from attr import define, field
from azure.core.exceptions import (
    ClientAuthenticationError,
    DecodeError,
    ResourceNotFoundError,
    map_error,
    HttpResponseError,
)
from azure.core.rest import HttpRequest, HttpResponse
from azure.core.utils import case_insensitive_dict
from azure.mgmt.core.exceptions import ARMErrorFormat
from azure.mgmt.resource import ResourceManagementClient

from fix_datasource_azure.config import AzureConfig, AzureCredentials
from fix_datasource_azure.types import Json

log = logging.getLogger("fix.datasource.azure")


ErrorMap = {
    401: ClientAuthenticationError,
    404: ResourceNotFoundError,
}


@define
class AzureResourceSpec:
    service: str
    path: str
    version: str
    path_parameters: List[str] = []
    query_parameters: List[str] = []
    expected_error_codes: Dict[str, Optional[str]] = field(factory=dict)
    """
    A dictionary that maps specific error codes (str) to corresponding hints (Optional[str]).
    The hint is attached to the log message when the error occurs.
    """

    def request(self, client: MicrosoftResourceManagementClient, **kwargs: Any) -> HttpRequest:
        # Construct lookup map used to fill query and path parameters
        lookup_map = {"subscriptionId": client.subscription_id, **kwargs}

        # Construct the path map
        path_map = case_insensitive_dict()
        for param in self.path_parameters:
            if lookup_map.get(param, None) is not None:
                path_map[param] = lookup_map[param]
            else:
                raise KeyError(f"{self.service}:{self.path}: Path parameter {param} was not provided as argument.")

        # Construct parameters
        params = case_insensitive_dict()
        params["api-version"] = self.version
        for param in self.query_parameters:
            if param not in params:
                if lookup_map.get(param, None) is not None:
                    params[param] = str(lookup_map[param])
                else:
                    raise KeyError(f"Query parameter {param} was not provided as argument")

        # Construct url
        path = self.path.format_map(path_map)
        url = client.resource_management_client._client.format_url(path)  # pylint: disable=protected-access
        return HttpRequest(method="GET", url=url, params=params)

    @property
    def action(self) -> str:
        return self.path


class MicrosoftClient(ABC):
    subscription_id: str

    @abstractmethod
    def get(self, spec: AzureResourceSpec, timeout: Optional[float] = None, **kwargs: Any) -> Json:
        """
        Fetch a single resource.
        :param spec: the api spec of the resource.
        :param timeout: the maximum number of seconds to wait for the response.
        :param kwargs: values for the path and query parameters of the spec.
        :raises ResourceNotFoundError: if the resource does not exist.
        :raises HttpResponseError: for all other unsuccessful responses.
        """

    @staticmethod
    def __create_management_client(
        config: AzureConfig,
        credential: AzureCredentials,
        subscription_id: str,
    ) -> MicrosoftClient:
        return MicrosoftResourceManagementClient(config, credential, subscription_id)

    create = __create_management_client


class MicrosoftResourceManagementClient(MicrosoftClient):
    def __init__(self, config: AzureConfig, credential: AzureCredentials, subscription_id: str) -> None:
        self.config = config
        self.credential = credential
        self.subscription_id = subscription_id
        self.resource_management_client = ResourceManagementClient(self.credential, self.subscription_id)

    def get(self, spec: AzureResourceSpec, timeout: Optional[float] = None, **kwargs: Any) -> Json:
        try:
            return self._call(spec, timeout, **kwargs)
        except ResourceNotFoundError:
            raise
        except ClientAuthenticationError as e:
            log.warning(f"[Azure] Authentication failed: {e}. Api spec: {spec.action}")
            raise
        except HttpResponseError as e:
            code = (e.error.code if e.error else None) or "Unknown"
            if hint := spec.expected_error_codes.get(code):
                log.warning(f"[Azure] {spec.service} returned {code}: {hint}")
            else:
                log.warning(f"[Azure] Client Error: status={e.status_code}, error={e.error}, message={e}")
            raise

    # noinspection PyProtectedMember
    def _call(self, spec: AzureResourceSpec, timeout: Optional[float], **kwargs: Any) -> Json:
        request = spec.request(self, **kwargs)
        transport_args: Dict[str, Any] = {}
        if timeout is not None:
            transport_args["connection_timeout"] = min(float(self.config.connection_timeout), timeout)
            transport_args["read_timeout"] = timeout
        pipeline_response = self.resource_management_client._client._pipeline.run(
            request, stream=False, **transport_args
        )
        response = cast(HttpResponse, pipeline_response.http_response)

        # Handle error responses
        if response.status_code not in [200]:
            map_error(status_code=response.status_code, response=response, error_map=ErrorMap)
            raise HttpResponseError(response=response, error_format=ARMErrorFormat)

        # Parse json content
        try:
            js = response.json()
        except ValueError as e:
            raise DecodeError(message=f"{spec.service}: response is not valid json: {e}", response=response) from e
        if not isinstance(js, dict):
            raise DecodeError(message=f"{spec.service}: expected a json object, got {type(js).__name__}")
        return cast(Json, js)
