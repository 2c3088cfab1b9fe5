"""
Tool System Base Classes

This module defines the core abstractions for review operations:
- OperationKind: Closed set of operations the pipeline can run
- ToolParameter: Defines tool input parameters
- Tool / FileReviewTool: Static description of one operation
- ToolRegistry: Central registry for tool lookup
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from .errors import ErrorCategory, ReviewError


class OperationKind(str, Enum):
    REVIEW = "review"
    ANALYZE = "analyze"
    SUGGEST = "suggest"
    VALIDATE_ARCHITECTURE = "validate_architecture"
    HISTORY = "history"


class ToolParameter(BaseModel):
    """Defines a single parameter for a tool"""
    name: str
    type: str  # "string", "number", "boolean"
    description: str
    required: bool = True
    default: Any = None
    enum: Optional[List[str]] = None
    max_length: Optional[int] = None


@dataclass
class PromptContext:
    """Sanitized inputs a prompt template is rendered from."""
    display_path: str
    language: str
    source: str
    modifier: str
    context: str = ""

    @property
    def fence(self) -> str:
        return self.language.lower()


class Tool(ABC):
    """
    Static description of one operation exposed to the transport.

    Subclasses set name, kind and parameters in __init__.
    """

    def __init__(self):
        self.name: str = ""
        self.kind: OperationKind = OperationKind.HISTORY
        self.description: str = ""
        self.parameters: List[ToolParameter] = []

    def get_parameter(self, name: str) -> Optional[ToolParameter]:
        for param in self.parameters:
            if param.name == name:
                return param
        return None

    def input_schema(self) -> Dict[str, Any]:
        return _build_tool_parameters_schema(self)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert tool to the listing format returned to clients.

        Returns:
            Dict with name, description and JSON schema of the inputs
        """
        return {
            "name": self.name,
            "operation": self.kind.value,
            "description": self.description,
            "inputSchema": self.input_schema()
        }


class FileReviewTool(Tool):
    """
    An operation that sends one source file to the analysis CLI.

    Attributes:
        label: Operation label used in the session log and error messages
        title: Header shown above the CLI output
        icon: Emoji prefix for the header
        modifier_param: Name of the enumerated option parameter
        parses_suggestion: Whether output is scanned for a before/after block
    """

    def __init__(self):
        super().__init__()
        self.label: str = ""
        self.title: str = ""
        self.icon: str = ""
        self.modifier_param: Optional[str] = None
        self.accepts_context: bool = False
        self.parses_suggestion: bool = False

    def default_modifier(self) -> str:
        param = self.get_parameter(self.modifier_param) if self.modifier_param else None
        return str(param.default) if param and param.default is not None else ""

    def resolve_modifier(self, value: Any) -> str:
        if value is None or value == "":
            return self.default_modifier()
        param = self.get_parameter(self.modifier_param) if self.modifier_param else None
        if not isinstance(value, str) or (param and param.enum and value not in param.enum):
            allowed = ", ".join(param.enum) if param and param.enum else ""
            raise ReviewError(
                f"Invalid {self.modifier_param}: {value!r} (expected one of: {allowed})",
                ErrorCategory.INVALID_INPUT,
                {"parameter": self.modifier_param, "value": value},
            )
        return value

    def extra_tags(self, modifier: str, context: str) -> Dict[str, Any]:
        return {self.modifier_param: modifier} if self.modifier_param else {}

    @abstractmethod
    def build_prompt(self, ctx: PromptContext) -> str:
        """
        Render the prompt sent to the analysis CLI.

        Args:
            ctx: Sanitized file and option values

        Returns:
            Prompt text
        """
        pass


def _build_tool_parameters_schema(tool: Tool) -> Dict[str, Any]:
    properties: Dict[str, Any] = {}
    required: List[str] = []

    for param in tool.parameters:
        param_type = param.type if param.type in ("string", "number", "boolean") else "string"
        schema: Dict[str, Any] = {
            "type": param_type,
            "description": param.description
        }
        if param.enum:
            schema["enum"] = list(param.enum)
        if param.default is not None:
            schema["default"] = param.default
        if param.max_length is not None:
            schema["maxLength"] = param.max_length
        properties[param.name] = schema
        if param.required:
            required.append(param.name)

    parameters_schema: Dict[str, Any] = {
        "type": "object",
        "properties": properties
    }
    if required:
        parameters_schema["required"] = required

    return parameters_schema


class ToolRegistry:
    """
    Central registry for tool management.

    Provides:
    - Tool registration
    - Lookup by published name or by operation kind
    """

    _tools: Dict[str, Tool] = {}

    @classmethod
    def register(cls, tool: Tool):
        """
        Register a tool in the registry.

        Raises:
            ValueError: If tool with same name already exists
        """
        if tool.name in cls._tools:
            raise ValueError(f"Tool '{tool.name}' already registered")
        cls._tools[tool.name] = tool

    @classmethod
    def get(cls, tool_name: str) -> Optional[Tool]:
        return cls._tools.get(tool_name)

    @classmethod
    def get_by_kind(cls, kind: OperationKind) -> Optional[Tool]:
        for tool in cls._tools.values():
            if tool.kind == kind:
                return tool
        return None

    @classmethod
    def resolve(cls, operation_name: str) -> Tool:
        """
        Resolve a published tool name or an operation kind value.

        Raises:
            ReviewError: unknown_operation if nothing matches
        """
        tool = cls._tools.get(operation_name) if isinstance(operation_name, str) else None
        if tool is None:
            try:
                kind = OperationKind(operation_name)
            except ValueError:
                kind = None
            tool = cls.get_by_kind(kind) if kind is not None else None
        if tool is None:
            raise ReviewError(
                f"Unknown tool: {operation_name}",
                ErrorCategory.UNKNOWN_OPERATION,
                {"operation": operation_name},
            )
        return tool

    @classmethod
    def get_all(cls) -> List[Tool]:
        return list(cls._tools.values())

    @classmethod
    def clear(cls):
        """Clear all registered tools (mainly for testing)"""
        cls._tools.clear()
