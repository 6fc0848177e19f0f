from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from bleach import clean
from typing import Optional

class ApiModel(BaseModel):
    """
    Base for every request/response schema.

    The JSON API speaks camelCase; Python code uses snake_case. Either form is
    accepted on input, responses are dumped by alias.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")

def sanitize(value: Optional[str]) -> Optional[str]:
    """Strip all HTML tags from free text and trim whitespace."""
    if value is None:
        return None
    # bleach escapes a bare ampersand; the API stores plain text
    return clean(value, tags=[], strip=True).replace("&amp;", "&").strip()
