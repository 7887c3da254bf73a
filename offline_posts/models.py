"""
Domain model for posts.

Post is the value every layer above the cache works with. The remote
wire format uses ``userId``; internally the field is ``author_id``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Wire field name -> expected JSON type
_REMOTE_FIELDS: tuple[tuple[str, type], ...] = (
    ("id", int),
    ("userId", int),
    ("title", str),
    ("body", str),
)


@dataclass(frozen=True)
class Post:
    """A single post as published by the remote source."""

    id: int
    author_id: int
    title: str
    body: str

    @classmethod
    def from_remote(cls, data: dict[str, Any]) -> Post:
        """Decode a post from its JSON wire shape.

        Unknown keys are ignored.

        Raises:
            ValueError: If a field is missing or has the wrong JSON type.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")

        for name, expected in _REMOTE_FIELDS:
            if name not in data:
                raise ValueError(f"Missing field: {name}")
            value = data[name]
            # bool is an int subclass but never a valid id
            if isinstance(value, bool) or not isinstance(value, expected):
                raise ValueError(
                    f"Field {name} must be {expected.__name__}, got {type(value).__name__}"
                )

        return cls(
            id=data["id"],
            author_id=data["userId"],
            title=data["title"],
            body=data["body"],
        )

    def to_remote(self) -> dict[str, Any]:
        """Encode to the JSON wire shape."""
        return {
            "id": self.id,
            "userId": self.author_id,
            "title": self.title,
            "body": self.body,
        }
