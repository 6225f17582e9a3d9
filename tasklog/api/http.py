"""Normalized request/response values passed to and from the request handler."""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from tasklog.services.errors import ValidationFailure


@dataclass(frozen=True)
class ApiRequest:
    method: str
    path: str
    query: Mapping[str, str] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    def segments(self) -> List[str]:
        """Path segments with empty ones dropped and a leading ``api`` prefix removed."""
        parts = [part for part in self.path.split("/") if part]
        while parts and parts[0] == "api":
            parts.pop(0)
        return parts

    def json_body(self) -> Dict[str, Any]:
        """Parse the body as a JSON object; an empty body is an empty object."""
        if not self.body or not self.body.strip():
            return {}
        try:
            parsed = json.loads(self.body)
        except (ValueError, UnicodeDecodeError) as exc:
            raise ValidationFailure("Request body must be a JSON object") from exc
        if not isinstance(parsed, dict):
            raise ValidationFailure("Request body must be a JSON object")
        return parsed


@dataclass
class ApiResponse:
    status_code: int = 200
    body: Any = None  # JSON-ready value, or None for an empty body
    headers: Dict[str, str] = field(default_factory=dict)
