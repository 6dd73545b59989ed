"""Base pydantic model shared by every schema in the scheduling engine."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchemaModel(BaseModel):
    """Common pydantic configuration.

    Schemas accept both snake_case field names and camelCase aliases, can be
    built straight from ORM instances, and store enum members as their values.
    """

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        extra="ignore",
        str_strip_whitespace=True,
    )
