"""
boxport/models.py - Typed box definition shared by the loader, the import engine
and the catalog client.

Keys of box.yaml / the catalog JSON that are not modelled explicitly are kept in
``extra`` and written back unchanged, so a definition survives a load/submit
cycle without losing fields the catalog knows about.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

from boxport.logger import BoxDefinitionError

SCRIPT_BOX_SCHEMA = "http://elasticbox.net/schemas/boxes/script"
DEFAULT_ORGANIZATION = "elasticbox"
README_NAME = "readme.md"
BOX_FILE = "box.yaml"
VERSION_DESCRIPTION = "Version created using boxport"


class Visibility(str, Enum):
    PUBLIC = "Public"
    ORGANIZATION = "Organization"
    WORKSPACE = "Workspace"
    PRIVATE = "Private"


class VariableType(str, Enum):
    TEXT = "Text"
    PASSWORD = "Password"
    PORT = "Port"
    NUMBER = "Number"
    OPTIONS = "Options"
    FILE = "File"
    BOX = "Box"
    BINDING = "Binding"


class BoxEvent(str, Enum):
    """Lifecycle events, in the order the catalog runs them."""

    PRE_INSTALL = "pre_install"
    INSTALL = "install"
    PRE_CONFIGURE = "pre_configure"
    CONFIGURE = "configure"
    START = "start"
    STOP = "stop"
    PRE_DISPOSE = "pre_dispose"
    DISPOSE = "dispose"


def _enum_value(enum_cls, raw: Any, what: str, strict: bool = True):
    """Parse @raw into @enum_cls; non-strict parsing returns None for unknown values."""
    try:
        return enum_cls(raw)
    except ValueError:
        if not strict:
            return None
        allowed = ", ".join(m.value for m in enum_cls)
        raise BoxDefinitionError(f"unknown {what} {raw!r} (expected one of: {allowed})") from None


def parse_uuid(raw: Any, what: str = "id") -> Optional[uuid.UUID]:
    if raw is None or raw == "":
        return None
    try:
        value = uuid.UUID(str(raw))
    except ValueError:
        raise BoxDefinitionError(f"invalid {what} {raw!r}: not a UUID") from None
    if value.int == 0:
        return None
    return value


def parse_schema_uri(raw: str) -> str:
    """Validate a schema reference; it must be an absolute URI."""
    parts = urlsplit(str(raw))
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"schema {raw!r} is not an absolute URI")
    return parts.geturl()


def _pop_mapping(data: Dict[str, Any], key: str) -> Optional[Dict[str, Any]]:
    value = data.pop(key, None)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise BoxDefinitionError(f"{key!r} must be a mapping, got {type(value).__name__}")
    return value


@dataclass
class BlobResponse:
    """Result of an artifact upload."""

    url: str
    upload_date: Optional[str] = None
    length: Optional[int] = None
    content_type: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.url

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BlobResponse":
        data = dict(data)
        url = data.pop("url", None)
        if not url:
            raise BoxDefinitionError("upload result carries no url")
        return cls(
            url=str(url),
            upload_date=data.pop("upload_date", None),
            length=data.pop("length", None),
            content_type=data.pop("content_type", None),
            extra=data,
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = dict(self.extra)
        out["url"] = self.url
        if self.upload_date is not None:
            out["upload_date"] = self.upload_date
        if self.length is not None:
            out["length"] = self.length
        if self.content_type is not None:
            out["content_type"] = self.content_type
        return out


@dataclass
class Variable:
    name: str
    type: Optional[VariableType]  # None: unknown catalog type, kept in extra
    value: Any = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_file(self) -> bool:
        return self.type is VariableType.FILE

    @classmethod
    def from_dict(cls, data: Any, strict: bool = True) -> "Variable":
        if not isinstance(data, dict):
            raise BoxDefinitionError(f"variable must be a mapping, got {type(data).__name__}")
        data = dict(data)
        name = data.pop("name", None)
        if not name:
            raise BoxDefinitionError("variable without a name")
        raw_type = data.pop("type", None)
        vtype = _enum_value(VariableType, raw_type, f"type of variable {name!r}", strict)
        if vtype is None:
            data["type"] = raw_type
        return cls(name=str(name), type=vtype, value=data.pop("value", None), extra=data)

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        out["name"] = self.name
        if self.type is not None:
            out["type"] = self.type.value
        if self.value is not None:
            out["value"] = self.value
        return out


@dataclass
class IconMetadata:
    image: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_uploaded(self) -> bool:
        """True when image already points at a stored catalog image."""
        path = urlsplit(self.image).path
        return path.startswith("images/") or path.startswith("/images/")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IconMetadata":
        data = dict(data)
        return cls(image=str(data.pop("image", "") or ""), extra=data)

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        out["image"] = self.image
        return out


@dataclass
class BoxVersion:
    box: Optional[uuid.UUID] = None
    description: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BoxVersion":
        data = dict(data)
        return cls(
            box=parse_uuid(data.pop("box", None), "version box"),
            description=str(data.pop("description", "") or ""),
            extra=data,
        )

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        out["box"] = str(self.box) if self.box else ""
        out["description"] = self.description
        return out


@dataclass
class Box:
    """A box definition, as authored in box.yaml or returned by the catalog."""

    id: Optional[uuid.UUID] = None
    name: str = ""
    organization: str = ""
    owner: str = ""
    visibility: Optional[Visibility] = None
    schema: str = ""
    categories: List[Any] = field(default_factory=list)
    variables: List[Variable] = field(default_factory=list)
    icon: str = ""
    icon_metadata: Optional[IconMetadata] = None
    members: Optional[List[Any]] = None
    version: Optional[BoxVersion] = None
    events: Dict[BoxEvent, BlobResponse] = field(default_factory=dict)
    readme: Optional[BlobResponse] = None
    created: Optional[datetime] = None
    uri: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def id_str(self) -> str:
        return str(self.id) if self.id else ""

    @classmethod
    def from_dict(cls, data: Any, strict: bool = True) -> "Box":
        """Parse a box mapping.

        strict=False is for catalog responses: visibility, variable types,
        event names and timestamps this client does not know are kept in
        ``extra`` (and written back by to_dict) instead of raising.
        """
        if not isinstance(data, dict):
            raise BoxDefinitionError(f"box definition must be a mapping, got {type(data).__name__}")
        data = dict(data)

        raw_visibility = data.pop("visibility", None)
        visibility = None
        if raw_visibility:
            visibility = _enum_value(Visibility, raw_visibility, "visibility", strict)
            if visibility is None:
                data["visibility"] = raw_visibility
        raw_vars = data.pop("variables", None) or []
        if not isinstance(raw_vars, list):
            raise BoxDefinitionError("'variables' must be a list")
        raw_members = data.pop("members", None)
        if raw_members is not None and not isinstance(raw_members, list):
            raise BoxDefinitionError("'members' must be a list")

        icon_md = _pop_mapping(data, "icon_metadata")
        version = _pop_mapping(data, "version")
        readme = _pop_mapping(data, "readme")
        raw_events = _pop_mapping(data, "events") or {}
        events: Dict[BoxEvent, BlobResponse] = {}
        unknown_events: Dict[str, Any] = {}
        for name, blob in raw_events.items():
            if not isinstance(blob, dict) or not blob.get("url"):
                # Event entries without a stored blob are rebuilt from events/ on import.
                continue
            event = _enum_value(BoxEvent, name, "event", strict)
            if event is None:
                unknown_events[name] = blob
            else:
                events[event] = BlobResponse.from_dict(blob)
        if unknown_events:
            data["events"] = unknown_events

        raw_created = created = data.pop("created", None)
        if isinstance(created, str) and created:
            try:
                created = datetime.fromisoformat(created.replace("Z", "+00:00"))
            except ValueError:
                if not strict:
                    data["created"] = raw_created
                    created = None
                else:
                    raise BoxDefinitionError(f"invalid created timestamp {created!r}") from None
        elif not isinstance(created, datetime):
            created = None

        categories = data.pop("categories", None) or []
        return cls(
            id=parse_uuid(data.pop("id", None)),
            name=str(data.pop("name", "") or ""),
            organization=str(data.pop("organization", "") or ""),
            owner=str(data.pop("owner", "") or ""),
            visibility=visibility,
            schema=str(data.pop("schema", "") or ""),
            categories=list(categories),
            variables=[Variable.from_dict(v, strict) for v in raw_vars],
            icon=str(data.pop("icon", "") or ""),
            icon_metadata=IconMetadata.from_dict(icon_md) if icon_md is not None else None,
            members=list(raw_members) if raw_members is not None else None,
            version=BoxVersion.from_dict(version) if version is not None else None,
            events=events,
            readme=BlobResponse.from_dict(readme) if readme else None,
            created=created,
            uri=str(data.pop("uri", "") or ""),
            extra=data,
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = dict(self.extra)
        if self.id:
            out["id"] = str(self.id)
        out["name"] = self.name
        if self.organization:
            out["organization"] = self.organization
        if self.owner:
            out["owner"] = self.owner
        if self.visibility is not None:
            out["visibility"] = self.visibility.value
        if self.schema:
            out["schema"] = self.schema
        if self.categories:
            out["categories"] = list(self.categories)
        out["variables"] = [v.to_dict() for v in self.variables]
        if self.icon:
            out["icon"] = self.icon
        if self.icon_metadata is not None:
            out["icon_metadata"] = self.icon_metadata.to_dict()
        if self.members is not None:
            out["members"] = list(self.members)
        if self.version is not None:
            out["version"] = self.version.to_dict()
        if self.events:
            events = dict(out.get("events") or {})
            events.update({evt.value: blob.to_dict() for evt, blob in self.events.items()})
            out["events"] = events
        if self.readme is not None:
            out["readme"] = self.readme.to_dict()
        if self.created is not None:
            created = self.created
            if created.tzinfo is None:
                created = created.replace(tzinfo=timezone.utc)
            out["created"] = created.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
        if self.uri:
            out["uri"] = self.uri
        return out
