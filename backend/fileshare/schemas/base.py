"""Base schema classes with camelCase alias generation.

Request bodies sent by the browser client use camelCase (``fileData``,
``userId``, ``textContent``). Backend Python code stays snake_case.
"""
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for request schemas. Accepts camelCase or snake_case input."""
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "protected_namespaces": (),
    }
