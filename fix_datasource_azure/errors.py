from __future__ import annotations

from typing import Optional, List


class DataSourceError(Exception):
    """
    Base for all errors raised while reading a data source.
    """


class ResourceIdParseError(DataSourceError, ValueError):
    """
    The resource identifier does not decompose into the expected parts.
    """

    def __init__(self, resource_id: str, reason: str) -> None:
        super().__init__(f"parsing resource id {resource_id!r}: {reason}")
        self.resource_id = resource_id
        self.reason = reason


class FetchError(DataSourceError):
    """
    Reading the resource from the Azure API failed for a reason other than absence.
    """

    def __init__(self, resource_id: str, cause: Optional[BaseException] = None, message: Optional[str] = None) -> None:
        super().__init__(message or f"reading {resource_id!r}: {cause}")
        self.resource_id = resource_id
        self.cause = cause


class ReadTimeoutError(FetchError):
    def __init__(self, resource_id: str, timeout: float) -> None:
        super().__init__(resource_id, message=f"reading {resource_id!r}: deadline of {timeout:.1f}s exceeded")
        self.timeout = timeout


class ReadCancelledError(FetchError):
    def __init__(self, resource_id: str) -> None:
        super().__init__(resource_id, message=f"reading {resource_id!r}: operation was cancelled")


class MappingError(DataSourceError):
    """
    A field of the fetched record can not be flattened into the output shape.
    """

    def __init__(self, field_name: str, reason: str, resource_id: Optional[str] = None) -> None:
        if resource_id:
            super().__init__(f"setting `{field_name}` of {resource_id!r}: {reason}")
        else:
            super().__init__(f"setting `{field_name}`: {reason}")
        self.field_name = field_name
        self.reason = reason
        self.resource_id = resource_id

    def with_resource_id(self, resource_id: str) -> MappingError:
        return MappingError(self.field_name, self.reason, resource_id)


class InvalidInputError(DataSourceError, ValueError):
    """
    The lookup input does not satisfy the declared field validators.
    """

    def __init__(self, kind: str, problems: List[str]) -> None:
        super().__init__(f"{kind}: invalid input: {'; '.join(problems)}")
        self.kind = kind
        self.problems = problems
