from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import field_validator


class Repository(BaseModel):
    """One entry of `GET /orgs/{org}/repos`."""
    name: str
    owner: str

    model_config = ConfigDict(
        extra='ignore',
    )

    @field_validator('owner', mode='before')
    @classmethod
    def extract_owner_login(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return v.get('login')
        return v
