import os
import re
from dataclasses import dataclass
from typing import Iterable, Optional

from .errors import ErrorCategory, ReviewError


BINARY_SAMPLE_SIZE = 512
NON_PRINTABLE_RATIO = 0.3

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_ALLOWED_CONTROL_BYTES = (9, 10, 13)

_LANGUAGE_MAP = {
    ".js": "JavaScript", ".ts": "TypeScript", ".py": "Python", ".java": "Java",
    ".cpp": "C++", ".c": "C", ".cs": "C#", ".php": "PHP", ".rb": "Ruby",
    ".go": "Go", ".rs": "Rust", ".kt": "Kotlin", ".swift": "Swift",
    ".pine": "Pine Script", ".pinescript": "Pine Script", ".sh": "Shell Script",
    ".bash": "Bash", ".ps1": "PowerShell", ".sql": "SQL", ".html": "HTML",
    ".css": "CSS", ".scss": "SCSS", ".sass": "Sass", ".vue": "Vue.js",
    ".jsx": "React JSX", ".tsx": "React TSX", ".dart": "Dart", ".r": "R",
    ".m": "MATLAB", ".scala": "Scala", ".clj": "Clojure", ".hs": "Haskell",
    ".ml": "OCaml", ".ex": "Elixir", ".erl": "Erlang", ".lua": "Lua",
    ".pl": "Perl", ".vim": "Vimscript",
}


@dataclass(frozen=True)
class ValidatedPath:
    path: str
    root: str
    suffix: str

    @property
    def display_path(self) -> str:
        return display_path(self.path, self.root)

    def __str__(self) -> str:
        return self.path


def _normalize_root(root_dir: str) -> str:
    return os.path.normpath(os.path.abspath(root_dir))


def _is_within_root(path: str, root: str) -> bool:
    path_key = os.path.normcase(path)
    root_key = os.path.normcase(root)
    if path_key == root_key:
        return True
    if root_key.endswith(os.sep):
        return path_key.startswith(root_key)
    return path_key.startswith(root_key + os.sep)


def display_path(path: str, root: str) -> str:
    """Path relative to root, or the basename when it lies elsewhere."""
    relative = os.path.relpath(path, root)
    if relative.startswith(".."):
        return os.path.basename(path)
    return relative


def validate_file_path(raw_path: str, root_dir: str, allowed_suffixes: Iterable[str]) -> ValidatedPath:
    """
    Resolve a user supplied path and bound it to root_dir.

    Relative paths are joined to root_dir, absolute paths are normalized
    as-is. Either way the result must lie within root_dir on a separator
    boundary and carry an allow-listed suffix.

    Raises:
        ReviewError: invalid_input, path_traversal or unsupported_type
    """
    if not raw_path or not isinstance(raw_path, str):
        raise ReviewError(
            "Invalid file path: must be a non-empty string",
            ErrorCategory.INVALID_INPUT,
        )
    if "\x00" in raw_path:
        raise ReviewError(
            "Invalid file path: contains a null byte",
            ErrorCategory.INVALID_INPUT,
        )

    root = _normalize_root(root_dir)
    if os.path.isabs(raw_path):
        resolved = os.path.normpath(raw_path)
    else:
        resolved = os.path.normpath(os.path.join(root, raw_path))

    if not _is_within_root(resolved, root):
        raise ReviewError(
            "Invalid file path: path traversal detected",
            ErrorCategory.PATH_TRAVERSAL,
            {"resolved_path": resolved, "root": root},
        )

    suffix = os.path.splitext(resolved)[1].lower()
    allowed = {str(ext).lower() for ext in allowed_suffixes}
    if suffix not in allowed:
        raise ReviewError(
            f"Unsupported file extension: {suffix}",
            ErrorCategory.UNSUPPORTED_TYPE,
            {"resolved_path": resolved},
        )

    return ValidatedPath(path=resolved, root=root, suffix=suffix)


def is_binary(file_path: str, sample_size: int = BINARY_SAMPLE_SIZE) -> bool:
    with open(file_path, "rb") as f:
        sample = f.read(sample_size)
    if not sample:
        return False
    null_bytes = sample.count(0)
    non_printable = sum(1 for byte in sample if byte < 32 and byte not in _ALLOWED_CONTROL_BYTES)
    return null_bytes > 0 or non_printable > len(sample) * NON_PRINTABLE_RATIO


def validate_file_access(file_path: str, max_file_size: int) -> os.stat_result:
    """
    Check that file_path is a readable, reasonably sized text file.

    Returns:
        The stat result of the file
    """
    try:
        stats = os.stat(file_path)
    except OSError as exc:
        raise ReviewError(
            f"File access error: {exc.strerror or exc}",
            ErrorCategory.FILE_ACCESS,
            {"path": file_path, "errno": exc.errno},
        ) from exc

    if not os.path.isfile(file_path):
        raise ReviewError("Path is not a file", ErrorCategory.NOT_A_FILE, {"path": file_path})

    if stats.st_size > max_file_size:
        raise ReviewError(
            f"File too large: {stats.st_size} bytes (max: {max_file_size})",
            ErrorCategory.FILE_TOO_LARGE,
            {"path": file_path, "size": stats.st_size, "max_size": max_file_size},
        )

    if not os.access(file_path, os.R_OK):
        raise ReviewError(
            "File access error: permission denied",
            ErrorCategory.FILE_ACCESS,
            {"path": file_path},
        )

    try:
        binary = is_binary(file_path)
    except OSError as exc:
        raise ReviewError(
            f"File access error: {exc.strerror or exc}",
            ErrorCategory.FILE_ACCESS,
            {"path": file_path, "errno": exc.errno},
        ) from exc
    if binary:
        raise ReviewError(
            "File appears to be binary, not a text-based source code file",
            ErrorCategory.BINARY_CONTENT,
            {"path": file_path},
        )

    return stats


def sanitize_input(value: Optional[str], max_length: int) -> str:
    """Strip control characters and enforce a length ceiling."""
    if not value or not isinstance(value, str):
        return ""
    if len(value) > max_length:
        raise ReviewError(
            f"Input too long: {len(value)} characters (max: {max_length})",
            ErrorCategory.INVALID_INPUT,
            {"length": len(value), "max_length": max_length},
        )
    return _CONTROL_CHARS.sub("", value).replace("\r\n", "\n").strip()


def detect_language(file_path: str, provided: Optional[str], max_length: int = 50) -> str:
    if provided:
        language = sanitize_input(provided, max_length)
        if language:
            return language
    ext = os.path.splitext(file_path)[1].lower()
    return _LANGUAGE_MAP.get(ext, "Unknown")


def read_source(file_path: str) -> str:
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise ReviewError(
            f"File access error: {exc}",
            ErrorCategory.FILE_ACCESS,
            {"path": file_path},
        ) from exc
