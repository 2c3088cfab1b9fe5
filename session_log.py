import os
from datetime import datetime
from typing import Any, Dict, List, Optional

from models import SessionEntry, SessionHistory


class SessionLog:
    """Append-only record of review operations for the process lifetime."""

    def __init__(self, root_dir: Optional[str] = None) -> None:
        self._root_dir = root_dir or os.getcwd()
        self._entries: List[SessionEntry] = []
        self._last_success: Optional[SessionEntry] = None

    @property
    def entries(self) -> List[SessionEntry]:
        return list(self._entries)

    @property
    def last_success(self) -> Optional[SessionEntry]:
        return self._last_success

    def __len__(self) -> int:
        return len(self._entries)

    def _display_file(self, file_path: Optional[str]) -> str:
        if not file_path:
            return "unknown"
        path = file_path
        if not os.path.isabs(path):
            path = os.path.join(self._root_dir, path)
        relative = os.path.relpath(os.path.normpath(path), self._root_dir)
        if relative == "." or relative.startswith(".."):
            return os.path.basename(file_path) or "unknown"
        return relative

    def record(
        self,
        operation: str,
        file_path: Optional[str],
        success: bool,
        error: Optional[str] = None,
        tags: Optional[Dict[str, Any]] = None,
    ) -> SessionEntry:
        entry = SessionEntry(
            timestamp=datetime.now().isoformat(),
            operation=operation,
            file=self._display_file(file_path),
            success=success,
            error=error,
            tags=dict(tags or {}),
        )
        # Append and pointer update stay in one synchronous step.
        self._entries.append(entry)
        if success:
            self._last_success = entry
        return entry

    def snapshot(self) -> SessionHistory:
        return SessionHistory(
            total=len(self._entries),
            entries=list(self._entries),
            last_success=self._last_success,
        )

    def render(self) -> str:
        lines = ["📋 **Review Session History**", "", f"**Total Operations**: {len(self._entries)}", ""]
        if self._entries:
            for index, entry in enumerate(self._entries, 1):
                time_label = datetime.fromisoformat(entry.timestamp).strftime("%H:%M:%S")
                status = "✅" if entry.success else "❌"
                lines.append(
                    f"**{index}.** {entry.operation} - {entry.file} ({entry.language}) - {time_label} {status}"
                )
        else:
            lines.append("No operations performed yet in this session.")
        lines.append("")
        last = self._last_success
        if last:
            lines.append(f"**Last Successful Operation**: {last.operation} - {last.file} ({last.language}) ✅")
        else:
            lines.append("**Last Successful Operation**: None")
        return "\n".join(lines)
