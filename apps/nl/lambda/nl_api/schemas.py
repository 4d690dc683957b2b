"""Pydantic schemas for the natural-language command API."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import MAX_COMMAND_LENGTH
from .openapi.models import OperationDescriptor


class CommandRequest(BaseModel):
    message: str = Field(max_length=MAX_COMMAND_LENGTH)

    @field_validator("message")
    @classmethod
    def validate_message(cls, message: str) -> str:
        if not message.strip():
            raise ValueError("message must not be blank")
        return message


class CommandResponse(BaseModel):
    reply: str


class OperationMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    operation_id: str = Field(alias="operationId")
    http_method: str = Field(alias="httpMethod")
    path_template: str = Field(alias="pathTemplate")
    description: str
    parameter_names: list[str] = Field(default_factory=list, alias="parameterNames")

    @classmethod
    def from_descriptor(cls, descriptor: OperationDescriptor) -> "OperationMetadata":
        return cls(
            operation_id=descriptor.operation_id,
            http_method=descriptor.http_method,
            path_template=descriptor.path_template,
            description=descriptor.description,
            parameter_names=[param.name for param in descriptor.parameters],
        )


class ReloadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    operation_count: int = Field(alias="operationCount")


class StatusResponse(BaseModel):
    ready: bool
    provider: str
