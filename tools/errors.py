"""
Error taxonomy for review operations.

Every failure raised inside the pipeline is a ReviewError carrying a
machine-readable category. The pipeline wraps it exactly once in an
OperationError at its boundary.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    """Machine-readable failure categories."""
    INVALID_INPUT = "invalid_input"
    PATH_TRAVERSAL = "path_traversal"
    UNSUPPORTED_TYPE = "unsupported_type"
    FILE_TOO_LARGE = "file_too_large"
    NOT_A_FILE = "not_a_file"
    BINARY_CONTENT = "binary_content"
    FILE_ACCESS = "file_access"
    TOOL_UNAVAILABLE = "tool_unavailable"
    SUBPROCESS_TIMEOUT = "subprocess_timeout"
    SUBPROCESS_NON_ZERO_EXIT = "subprocess_non_zero_exit"
    SUBPROCESS_SPAWN_ERROR = "subprocess_spawn_error"
    OUTPUT_TOO_LARGE = "output_too_large"
    UNKNOWN_OPERATION = "unknown_operation"
    INTERNAL = "internal"


class ReviewError(Exception):
    """
    Base exception for review operations.

    Args:
        message: Human readable message
        category: Failure category
        details: Extra diagnostic context (paths, sizes, exit codes)
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.INVALID_INPUT,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.category = category
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class OperationError(ReviewError):
    """A ReviewError qualified with the operation that failed."""

    def __init__(self, operation: str, file_path: Optional[str], original: ReviewError):
        operation_name = operation.replace("_", " ")
        details = dict(original.details)
        details["operation"] = operation
        details["file_path"] = file_path
        super().__init__(
            f"{operation_name} failed: {original.message}",
            category=original.category,
            details=details,
        )
        self.operation = operation
        self.file_path = file_path
        self.original = original
