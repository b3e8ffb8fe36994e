"""Repository domain model."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return _utcnow()


@dataclass
class Repository:
    """Repository metadata as provided by the repository store."""
    id: str
    name: str
    owner: str
    clone_url: str = ""
    description: Optional[str] = None
    is_private: bool = False
    default_branch: str = "main"
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Repository":
        return cls(
            id=str(data["id"]),
            name=data["name"],
            owner=data["owner"],
            clone_url=data.get("clone_url", ""),
            description=data.get("description"),
            is_private=bool(data.get("is_private", False)),
            default_branch=data.get("default_branch") or "main",
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
        )
