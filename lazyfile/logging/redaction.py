"""Path redaction for structured logging."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Pattern, Union


class DataRedactor:
    """Hide host-specific directory names from log data.

    Error records of file handles carry absolute paths. The user's home
    directory is replaced by ``~`` and, when ``keep_dirs`` is False, every
    directory component is dropped so only the file name survives.
    """

    def __init__(
        self,
        keep_dirs: bool = True,
        custom_patterns: Optional[List[Pattern[str]]] = None,
    ) -> None:
        """Initialize redactor.

        Args:
            keep_dirs: Keep directory components of paths (default: True)
            custom_patterns: Additional regex patterns replaced by ``[REDACTED]``
        """
        self.keep_dirs = keep_dirs
        self.home_patterns = [
            re.compile(r"/home/[^/\s]+"),
            re.compile(r"/Users/[^/\s]+"),
            re.compile(r"C:\\Users\\[^\\\s]+"),
        ]
        self.patterns: List[Pattern[str]] = list(custom_patterns or [])

        # Context keys that hold paths
        self.path_fields = {"path", "abs_path", "provided_name", "target", "newname"}

    def redact_string(self, text: str) -> str:
        result = text
        for pattern in self.home_patterns:
            result = pattern.sub("~", result)
        for pattern in self.patterns:
            result = pattern.sub("[REDACTED]", result)
        return result

    def redact_path(self, path: Union[str, Path]) -> str:
        """Redact a path, keeping the file name."""
        if not self.keep_dirs:
            return f"[REDACTED]/{Path(str(path)).name}"
        return self.redact_string(str(path))

    def redact_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively redact path-like data from a dictionary."""
        result: Dict[str, Any] = {}

        for key, value in data.items():
            if isinstance(value, dict):
                result[key] = self.redact_dict(value)
            elif isinstance(value, Path) or (
                key.lower() in self.path_fields and isinstance(value, str)
            ):
                result[key] = self.redact_path(value)
            elif isinstance(value, str):
                result[key] = self.redact_string(value)
            elif isinstance(value, list):
                result[key] = [
                    self.redact_dict(item) if isinstance(item, dict)
                    else self.redact_string(item) if isinstance(item, str)
                    else item
                    for item in value
                ]
            else:
                result[key] = value

        return result

    def add_pattern(self, pattern: Union[str, Pattern[str]]) -> None:
        if isinstance(pattern, str):
            pattern = re.compile(pattern)
        self.patterns.append(pattern)
