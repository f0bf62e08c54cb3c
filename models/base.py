"""Shared pydantic base for wire-facing models."""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Snake_case fields with camelCase JSON aliases; accepts either on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """JSON-compatible dict using the camelCase aliases."""
        return self.model_dump(mode="json", by_alias=True)
