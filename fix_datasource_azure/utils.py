from typing import Dict, Optional, Any, TypeVar

from fix_datasource_azure.errors import MappingError
from fix_datasource_azure.types import AzureTags

T = TypeVar("T")


def normalize_location(location: str) -> str:
    """
    Azure reports locations either as display name ("West Europe") or as code ("westeurope").
    Both are normalized to the lower case code without blanks.
    """
    return location.replace(" ", "").lower()


def case_insensitive_eq(left: T, right: T) -> bool:
    if isinstance(left, str) and isinstance(right, str):
        return left.lower() == right.lower()
    else:
        return left == right


def flatten_tags(tags: AzureTags) -> Dict[str, str]:
    """
    Azure allows tags without value, which are reported as null.
    Those are flattened to an empty string, so the result is always a str -> str mapping.
    """
    if tags is None:
        return {}
    if not isinstance(tags, dict):
        raise MappingError("tags", f"expected a mapping, got {type(tags).__name__}")
    result: Dict[str, str] = {}
    for key, value in tags.items():
        if not isinstance(key, str):
            raise MappingError("tags", f"expected a string key, got {key!r}")
        if value is None:
            result[key] = ""
        elif isinstance(value, str):
            result[key] = value
        else:
            raise MappingError("tags", f"expected a string value for tag {key!r}, got {type(value).__name__}")
    return result


def str_or_empty(value: Optional[Any]) -> str:
    return "" if value is None else str(value)
