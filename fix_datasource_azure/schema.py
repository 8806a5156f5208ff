from __future__ import annotations

import re
from enum import Enum
from typing import Callable, Dict, List, Optional, Any, Union

from attr import frozen, field

# A validator receives the value and the field name and returns the list of problems found.
Validator = Callable[[Any, str], List[str]]


class FieldType(Enum):
    string = "string"
    int = "int"
    bool = "bool"
    list = "list"
    map = "map"


@frozen(kw_only=True)
class FieldSchema:
    type: FieldType
    required: bool = False
    optional: bool = False
    computed: bool = False
    description: Optional[str] = None
    validate: Optional[Validator] = None
    max_items: Optional[int] = None
    # list: the schema of a single element, map: the type of the values
    elem: Union[None, FieldType, Dict[str, FieldSchema]] = field(default=None)

    @property
    def computed_only(self) -> bool:
        return self.computed and not self.required and not self.optional

    def problems(self, name: str, value: Any) -> List[str]:
        if value is None:
            return [f"{name}: is required"] if self.required else []
        if self.computed_only:
            return [f"{name}: is computed and can not be set"]
        if self.validate is not None:
            return self.validate(value, name)
        return []


Schema = Dict[str, FieldSchema]


def validate_input(schema: Schema, values: Dict[str, Any]) -> List[str]:
    problems: List[str] = []
    for name, value in values.items():
        if (fs := schema.get(name)) is None:
            problems.append(f"{name}: unknown field")
        else:
            problems.extend(fs.problems(name, value))
    for name, fs in schema.items():
        if fs.required and name not in values:
            problems.append(f"{name}: is required")
    return problems


SqlServerNameRegex = re.compile(r"^[0-9a-z]([-0-9a-z]{0,61}[0-9a-z])?$")
ResourceGroupNameRegex = re.compile(r"^[-\w._()]+$")


def validate_mssql_server_name(value: Any, name: str) -> List[str]:
    if not isinstance(value, str):
        return [f"{name}: expected a string"]
    if not SqlServerNameRegex.match(value):
        return [
            f"{name}: {value!r} can contain only lowercase letters, numbers and '-', "
            "can't start or end with '-' and must be between 1 and 63 characters"
        ]
    return []


def validate_resource_group_name(value: Any, name: str) -> List[str]:
    if not isinstance(value, str):
        return [f"{name}: expected a string"]
    problems = []
    if len(value) == 0 or len(value) > 90:
        problems.append(f"{name}: must be between 1 and 90 characters, got {len(value)}")
    if value.endswith("."):
        problems.append(f"{name}: can not end with a period")
    if value and not ResourceGroupNameRegex.match(value):
        problems.append(f"{name}: may only contain alphanumeric characters, dash, underscores, parentheses and periods")
    return problems


def computed(type: FieldType, description: Optional[str] = None) -> FieldSchema:
    return FieldSchema(type=type, computed=True, description=description)


def resource_group_name_for_data_source() -> FieldSchema:
    return FieldSchema(
        type=FieldType.string,
        required=True,
        validate=validate_resource_group_name,
        description="The name of the resource group the resource belongs to.",
    )


def location_for_data_source() -> FieldSchema:
    # informational only: the value is taken from the fetched resource
    return FieldSchema(
        type=FieldType.string,
        optional=True,
        computed=True,
        description="The normalized Azure region of the resource.",
    )


def tags_schema() -> FieldSchema:
    return FieldSchema(type=FieldType.map, computed=True, elem=FieldType.string, description="Resource tags.")


def managed_identity_schema() -> FieldSchema:
    """
    Shape of the identity block shared by all resources with a managed identity:
    a list of at most one element with the type and the principal and tenant ids.
    """
    return FieldSchema(
        type=FieldType.list,
        computed=True,
        max_items=1,
        description="The managed identity assigned to the resource.",
        elem={
            "type": computed(FieldType.string, "The type of the managed identity."),
            "principal_id": computed(FieldType.string, "The principal id of the managed identity."),
            "tenant_id": computed(FieldType.string, "The tenant id of the managed identity."),
        },
    )
