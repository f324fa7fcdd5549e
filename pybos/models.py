"""Data models for SocialDB components."""

import json
from dataclasses import dataclass
from typing import Any, Optional


class MetadataFormatError(ValueError):
    """Raised when a metadata mapping does not have the expected shape."""


def _optional_str(data: dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise MetadataFormatError(
            f"'{key}' must be a string, got {type(value).__name__}"
        )
    return value


@dataclass
class MetadataImage:
    """Image descriptor of a component (url or IPFS content id)."""

    url: Optional[str] = None
    ipfs_cid: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "MetadataImage":
        if not isinstance(data, dict):
            raise MetadataFormatError("'image' must be an object")
        return cls(
            url=_optional_str(data, "url"),
            ipfs_cid=_optional_str(data, "ipfs_cid"),
        )

    def to_dict(self) -> dict[str, str]:
        result = {}
        if self.url is not None:
            result["url"] = self.url
        if self.ipfs_cid is not None:
            result["ipfs_cid"] = self.ipfs_cid
        return result


@dataclass
class ComponentMetadata:
    """Optional metadata stored next to the component code.

    Two metadata objects are equal only if every field is equal; a field
    missing on one side is not a wildcard.
    """

    description: Optional[str] = None
    image: Optional[MetadataImage] = None
    name: Optional[str] = None
    tags: Optional[dict[str, Optional[str]]] = None
    fork_of: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "ComponentMetadata":
        """Create metadata from a decoded JSON object.

        Unknown keys are ignored.

        Raises:
            MetadataFormatError: If a known field has the wrong type
        """
        if not isinstance(data, dict):
            raise MetadataFormatError("metadata must be a JSON object")

        image = data.get("image")
        tags = data.get("tags")
        if tags is not None:
            if not isinstance(tags, dict) or not all(
                isinstance(v, str) or v is None for v in tags.values()
            ):
                raise MetadataFormatError(
                    "'tags' must be an object of strings (or nulls)"
                )

        return cls(
            description=_optional_str(data, "description"),
            image=MetadataImage.from_dict(image) if image is not None else None,
            name=_optional_str(data, "name"),
            tags=dict(tags) if tags is not None else None,
            fork_of=_optional_str(data, "fork_of"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dict, omitting absent fields."""
        result: dict[str, Any] = {}
        if self.description is not None:
            result["description"] = self.description
        if self.image is not None:
            result["image"] = self.image.to_dict()
        if self.name is not None:
            result["name"] = self.name
        if self.tags is not None:
            result["tags"] = dict(self.tags)
        if self.fork_of is not None:
            result["fork_of"] = self.fork_of
        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


@dataclass
class Component:
    """A component: code plus optional metadata.

    On the wire a component is either a bare code string or an object whose
    empty-string key holds the code, with an optional ``metadata`` field.
    Both shapes parse into this class, so callers only ever use ``code``
    and ``metadata``.
    """

    code: str
    metadata: Optional[ComponentMetadata] = None

    @classmethod
    def from_api_value(cls, value: Any) -> "Component":
        """Parse a SocialDB value in either of its two shapes.

        Raises:
            ValueError: If the value matches neither shape
        """
        if isinstance(value, str):
            return cls(code=value)

        if isinstance(value, dict):
            code = value.get("")
            if not isinstance(code, str):
                raise ValueError("component object has no code under the '' key")
            metadata = value.get("metadata")
            return cls(
                code=code,
                metadata=(
                    ComponentMetadata.from_dict(metadata)
                    if metadata is not None
                    else None
                ),
            )

        raise ValueError(
            f"component must be a string or an object, got {type(value).__name__}"
        )

    def to_api_value(self) -> dict[str, Any]:
        """Serialize in the code-with-metadata shape used for writes."""
        value: dict[str, Any] = {"": self.code}
        if self.metadata is not None:
            value["metadata"] = self.metadata.to_dict()
        return value
