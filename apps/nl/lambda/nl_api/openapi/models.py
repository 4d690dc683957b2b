"""Value objects produced by loading an API description."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from nl_api.constants import ParameterSource


@dataclass(frozen=True)
class ParameterSpec:
    name: str
    type: str
    description: str
    required: bool
    source: ParameterSource
    item_type: str | None = None


@dataclass(frozen=True)
class OperationDescriptor:
    operation_id: str
    http_method: str
    path_template: str
    description: str
    parameters: tuple[ParameterSpec, ...] = ()

    def parameter_names(self, source: ParameterSource) -> frozenset[str]:
        return frozenset(param.name for param in self.parameters if param.source == source)


@dataclass(frozen=True)
class LoadedTools:
    """Result of one registry load: descriptors plus their rendered tool schemas."""

    operations: tuple[OperationDescriptor, ...]
    tools: Mapping[str, Any] = field(default_factory=dict)
    skipped: tuple[str, ...] = ()

    def tool_for(self, operation_id: str) -> Any:
        return self.tools[operation_id]
