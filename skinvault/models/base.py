from typing import Annotated

from pydantic import BaseModel, ConfigDict, StringConstraints
from pydantic.alias_generators import to_camel

# Required text field: surrounding whitespace is stripped, then it must not be empty.
NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class CamelModel(BaseModel):
    """Base model whose JSON form uses camelCase keys (``skinImage``, ``lastLogin``)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
