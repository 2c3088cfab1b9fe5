import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional


_DEFAULT_CONFIG: Dict[str, Any] = {
    "files": {
        "max_bytes": 1024 * 1024,
        "allowed_extensions": [
            ".js", ".ts", ".py", ".java", ".cpp", ".c", ".cs", ".php", ".rb", ".go",
            ".rs", ".kt", ".swift", ".pine", ".pinescript", ".sh", ".bash", ".ps1",
            ".sql", ".html", ".css", ".scss", ".sass", ".vue", ".jsx", ".tsx",
            ".dart", ".r", ".m", ".scala", ".clj", ".hs", ".ml", ".ex", ".erl",
            ".lua", ".pl", ".vim"
        ]
    },
    "inputs": {
        "max_context_chars": 1000,
        "max_language_chars": 50,
        "max_prompt_chars": 100000
    },
    "cli": {
        "executable": "gemini",
        "timeout_sec": 60,
        "probe_timeout_sec": 5,
        "operation_timeouts": {
            "validate_architecture": 90
        },
        "max_concurrent_requests": 3,
        "extra_env": {}
    }
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _get_project_root() -> Path:
    return Path(__file__).resolve().parents[1]


def _normalize_config_path(path: Path) -> Path:
    if path.exists() and path.is_file():
        return path
    if path.suffix:
        return path
    return path / "review_config.json"


def _get_config_file_path() -> Path:
    env_path = os.getenv("REVIEW_CONFIG_PATH")
    if env_path:
        return _normalize_config_path(Path(env_path))
    return _get_project_root() / "review_config.json"


def get_review_config_path() -> str:
    return str(_get_config_file_path())


def _load_config_file() -> Dict[str, Any]:
    path = _get_config_file_path()
    if path.exists() and not path.is_dir():
        return json.loads(path.read_text(encoding="utf-8"))
    return {}


def _coerce_positive(value: Any, field_name: str) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field_name} must be a number")
    if parsed <= 0:
        raise ValueError(f"{field_name} must be positive")
    return parsed


def _coerce_int_range(value: Any, field_name: str, min_value: int, max_value: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field_name} must be an integer")
    if parsed < min_value or parsed > max_value:
        raise ValueError(f"{field_name} must be between {min_value} and {max_value}")
    return parsed


def _normalize_extension(raw: Any) -> str:
    ext = str(raw).strip().lower()
    if not ext:
        raise ValueError("files.allowed_extensions must not contain empty entries")
    if not ext.startswith("."):
        ext = "." + ext
    return ext


def _normalize_config(config: Dict[str, Any]) -> Dict[str, Any]:
    normalized = dict(config)

    files = dict(normalized.get("files", {}))
    files["max_bytes"] = _coerce_int_range(files.get("max_bytes"), "files.max_bytes", 1, 100 * 1024 * 1024)
    extensions = files.get("allowed_extensions") or []
    if not isinstance(extensions, (list, tuple)):
        raise ValueError("files.allowed_extensions must be a list")
    files["allowed_extensions"] = sorted({_normalize_extension(ext) for ext in extensions})
    normalized["files"] = files

    inputs = dict(normalized.get("inputs", {}))
    inputs["max_context_chars"] = _coerce_int_range(inputs.get("max_context_chars"), "inputs.max_context_chars", 1, 100000)
    inputs["max_language_chars"] = _coerce_int_range(inputs.get("max_language_chars"), "inputs.max_language_chars", 1, 1000)
    inputs["max_prompt_chars"] = _coerce_int_range(inputs.get("max_prompt_chars"), "inputs.max_prompt_chars", 1, 10000000)
    normalized["inputs"] = inputs

    cli = dict(normalized.get("cli", {}))
    executable = str(cli.get("executable") or "").strip()
    if not executable:
        raise ValueError("cli.executable must be a non-empty string")
    cli["executable"] = executable
    cli["timeout_sec"] = _coerce_positive(cli.get("timeout_sec"), "cli.timeout_sec")
    cli["probe_timeout_sec"] = _coerce_positive(cli.get("probe_timeout_sec"), "cli.probe_timeout_sec")
    timeouts = cli.get("operation_timeouts") or {}
    if not isinstance(timeouts, dict):
        raise ValueError("cli.operation_timeouts must be an object")
    cli["operation_timeouts"] = {
        str(name): _coerce_positive(value, f"cli.operation_timeouts.{name}")
        for name, value in timeouts.items()
    }
    cli["max_concurrent_requests"] = _coerce_int_range(
        cli.get("max_concurrent_requests"), "cli.max_concurrent_requests", 1, 64
    )
    extra_env = cli.get("extra_env") or {}
    if not isinstance(extra_env, dict):
        raise ValueError("cli.extra_env must be an object")
    cli["extra_env"] = {str(k): str(v) for k, v in extra_env.items()}
    normalized["cli"] = cli

    return normalized


def _load_config() -> Dict[str, Any]:
    config = _normalize_config(_deep_merge(_DEFAULT_CONFIG, _load_config_file()))
    root_override = os.getenv("REVIEW_PROJECT_ROOT") or config.get("project_root")
    root_path = Path(root_override) if root_override else Path(os.getcwd())
    config["project_root"] = os.path.normpath(os.path.abspath(str(root_path.expanduser())))
    return config


_REVIEW_CONFIG: Optional[Dict[str, Any]] = None


def get_review_config() -> Dict[str, Any]:
    global _REVIEW_CONFIG
    if _REVIEW_CONFIG is None:
        _REVIEW_CONFIG = _load_config()
    return _REVIEW_CONFIG


def update_review_config(patch: Dict[str, Any]) -> Dict[str, Any]:
    global _REVIEW_CONFIG
    if not isinstance(patch, dict):
        raise ValueError("Config update must be a JSON object.")
    current_file = _load_config_file()
    merged_file = _deep_merge(current_file, patch)
    # Validate against defaults before anything is written.
    _normalize_config(_deep_merge(_DEFAULT_CONFIG, merged_file))
    path = _get_config_file_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(merged_file, ensure_ascii=False, indent=2), encoding="utf-8")
    _REVIEW_CONFIG = _load_config()
    return _REVIEW_CONFIG


@dataclass(frozen=True)
class ReviewSettings:
    """Resolved settings injected into the review pipeline."""
    root_dir: str
    allowed_extensions: FrozenSet[str]
    max_file_size: int = 1024 * 1024
    max_context_chars: int = 1000
    max_language_chars: int = 50
    max_prompt_chars: int = 100000
    executable: str = "gemini"
    timeout_sec: float = 60.0
    probe_timeout_sec: float = 5.0
    operation_timeouts: Dict[str, float] = field(default_factory=dict)
    max_concurrent_requests: int = 3
    extra_env: Dict[str, str] = field(default_factory=dict)

    @property
    def max_output_bytes(self) -> int:
        return self.max_file_size * 2

    def timeout_for(self, operation: str) -> float:
        return float(self.operation_timeouts.get(operation, self.timeout_sec))

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ReviewSettings":
        files = config.get("files", {})
        inputs = config.get("inputs", {})
        cli = config.get("cli", {})
        return cls(
            root_dir=config["project_root"],
            allowed_extensions=frozenset(files.get("allowed_extensions", [])),
            max_file_size=int(files.get("max_bytes", 1024 * 1024)),
            max_context_chars=int(inputs.get("max_context_chars", 1000)),
            max_language_chars=int(inputs.get("max_language_chars", 50)),
            max_prompt_chars=int(inputs.get("max_prompt_chars", 100000)),
            executable=cli.get("executable", "gemini"),
            timeout_sec=float(cli.get("timeout_sec", 60)),
            probe_timeout_sec=float(cli.get("probe_timeout_sec", 5)),
            operation_timeouts=dict(cli.get("operation_timeouts", {})),
            max_concurrent_requests=int(cli.get("max_concurrent_requests", 3)),
            extra_env=dict(cli.get("extra_env", {})),
        )
