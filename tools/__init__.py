"""Tools package initialization"""

from .base import FileReviewTool, OperationKind, Tool, ToolParameter, ToolRegistry
from .errors import ErrorCategory, OperationError, ReviewError

__all__ = [
    "ErrorCategory",
    "FileReviewTool",
    "OperationError",
    "OperationKind",
    "ReviewError",
    "Tool",
    "ToolParameter",
    "ToolRegistry",
]
