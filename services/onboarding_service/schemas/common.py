"""Shared schema base.

The web and mobile clients speak camelCase. Requests accept either camelCase
or snake_case, responses are emitted in camelCase (FastAPI serializes
``response_model`` by alias).
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
