"""Named, schema-validated tools exposed to the model."""
from __future__ import annotations

import importlib
import pkgutil
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..errors import DuplicateToolError, ToolExecutionError, UnknownToolError, ValidationError
from ..logger import HumanEntry, Logger
from ..types import ToolDefinition
from .shared import format_field_path

if TYPE_CHECKING:
    from ..config import ReviewConfig

# Modules in this package that do not define a tool
_HELPER_MODULES = {"registry", "shared"}


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_model: Type[BaseModel]
    invoke: Callable[[Any], Any]

    def definition(self) -> ToolDefinition:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.input_model.model_json_schema(by_alias=True),
        }


class ToolRegistry:
    def __init__(self, logger: Optional[Logger] = None) -> None:
        self._tools: Dict[str, ToolSpec] = {}
        self.logger = logger

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def names(self) -> List[str]:
        return list(self._tools)

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise DuplicateToolError(spec.name)
        self._tools[spec.name] = spec

    def get(self, name: str) -> ToolSpec:
        spec = self._tools.get(name)
        if spec is None:
            raise UnknownToolError(name)
        return spec

    def definitions(self) -> List[ToolDefinition]:
        return [spec.definition() for spec in self._tools.values()]

    def validate(self, name: str, raw_input: Any) -> BaseModel:
        spec = self.get(name)
        try:
            return spec.input_model.model_validate(raw_input)
        except PydanticValidationError as err:
            first = err.errors()[0]
            error = ValidationError(name, format_field_path(first.get("loc", ())), first.get("msg", "invalid value"))
            self._log_error(name, raw_input, error, kind="validation")
            raise error from None

    def invoke(self, name: str, raw_input: Any) -> Any:
        spec = self.get(name)
        validated = self.validate(name, raw_input)
        try:
            return spec.invoke(validated)
        except Exception as err:  # noqa: BLE001
            error = ToolExecutionError(name, str(err) or type(err).__name__)
            self._log_error(name, raw_input, error, kind="execution")
            raise error from err

    def _log_error(self, name: str, raw_input: Any, error: Exception, kind: str) -> None:
        if not self.logger:
            return
        self.logger.human(HumanEntry(title=name, body=f"{kind} error: {error}", variant="error"))
        self.logger.json({"type": "tool_error", "tool": name, "kind": kind, "arguments": raw_input, "error": str(error)})


def discover_tools(config: "ReviewConfig", logger: Optional[Logger] = None) -> ToolRegistry:
    """Build a registry from every diffwarden.tools module that exposes ``build_tool``."""
    registry = ToolRegistry(logger=logger)
    package_name = __name__.rsplit(".", 1)[0]
    package = importlib.import_module(package_name)
    for module_info in pkgutil.iter_modules(package.__path__):
        name = module_info.name
        if name.startswith("_") or name in _HELPER_MODULES:
            continue
        module = importlib.import_module(f"{package_name}.{name}")
        build_tool = getattr(module, "build_tool", None)
        if build_tool:
            registry.register(build_tool(config))
    return registry
