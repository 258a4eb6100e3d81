"""Model catalog and credential status models."""

from pydantic import BaseModel, ConfigDict


class ModelInfo(BaseModel):
    """A model selectable with the current credentials."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str


class ModelsList(BaseModel):
    data: list[ModelInfo]


class ApiKeyStatus(BaseModel):
    exists: bool
