"""Pydantic data models shared across the CasaOS AppStore core."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError, field_validator

from .errors import MalformedExtensionError

logger = logging.getLogger(__name__)


class ServicePort(BaseModel):
    """Long-syntax port mapping (``target`` is the container port)."""

    model_config = ConfigDict(extra="allow")

    target: int
    published: Optional[str] = None
    protocol: str = "tcp"
    host_ip: Optional[str] = None
    mode: Optional[str] = None


class ServiceVolume(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str = "bind"
    source: str = ""
    target: str
    read_only: bool = False


class ServiceConfig(BaseModel):
    """One compose service. Unknown compose keys are kept as extras."""

    model_config = ConfigDict(extra="allow")

    name: str
    image: str = ""
    ports: List[ServicePort] = Field(default_factory=list)
    expose: List[str] = Field(default_factory=list)
    volumes: List[ServiceVolume] = Field(default_factory=list)
    networks: Dict[str, Optional[Dict[str, Any]]] = Field(default_factory=dict)
    hostname: Optional[str] = None
    user: Optional[str] = None
    network_mode: Optional[str] = None
    environment: Dict[str, Optional[str]] = Field(default_factory=dict)
    command: Optional[Any] = None
    entrypoint: Optional[Any] = None
    labels: Dict[str, str] = Field(default_factory=dict)


class ComposeApp(BaseModel):
    """A multi-service compose manifest.

    ``services`` keeps the order of the source document. Top-level ``x-*``
    keys live in ``extensions``; the CasaOS block sits under ``x-casaos``.
    """

    model_config = ConfigDict(extra="allow")

    name: str = ""
    services: List[ServiceConfig] = Field(default_factory=list)
    networks: Dict[str, Any] = Field(default_factory=dict)
    volumes: Dict[str, Any] = Field(default_factory=dict)
    extensions: Dict[str, Any] = Field(default_factory=dict)

    def service(self, name: str) -> Optional[ServiceConfig]:
        return next((svc for svc in self.services if svc.name == name), None)


_TEXT_FIELDS = (
    "store_app_id",
    "main",
    "category",
    "author",
    "developer",
    "icon",
    "thumbnail",
    "index",
    "scheme",
    "port_map",
    "hostname",
)


class CasaOSExtension(BaseModel):
    """Typed view over the ``x-casaos`` block.

    Known keys are named fields; everything else is kept as extras so a
    round trip through :meth:`to_block` never loses author data. Known keys
    holding values of the wrong shape are left unset and written back as-is.
    """

    model_config = ConfigDict(extra="allow")

    store_app_id: Optional[str] = None
    main: Optional[str] = None
    title: Optional[Any] = None
    category: Optional[str] = None
    author: Optional[str] = None
    developer: Optional[str] = None
    icon: Optional[str] = None
    thumbnail: Optional[str] = None
    architectures: Optional[List[str]] = None
    index: Optional[str] = None
    scheme: Optional[str] = None
    port_map: Optional[str] = None
    hostname: Optional[str] = None
    webui_port: Optional[Any] = None
    tips: Optional[Any] = None

    _passthrough: Dict[str, Any] = PrivateAttr(default_factory=dict)

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def _scalar_to_text(cls, value: Any) -> Any:
        # YAML 1.1 loads `port_map: 8080` as an int and `author: yes` as a bool.
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("architectures", mode="before")
    @classmethod
    def _normalize_architectures(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            # `386` loads as an int.
            return [str(item) for item in value if item is not None]
        return value

    @classmethod
    def from_block(cls, block: Any) -> "CasaOSExtension":
        if not isinstance(block, dict):
            raise MalformedExtensionError(
                f"x-casaos must be a mapping, got {type(block).__name__}"
            )
        try:
            return cls.model_validate(block)
        except ValidationError as exc:
            invalid = {error["loc"][0] for error in exc.errors() if error.get("loc")}

        logger.warning("Ignoring invalid x-casaos fields: %s", ", ".join(sorted(map(str, invalid))))
        ext = cls.model_validate({key: value for key, value in block.items() if key not in invalid})
        ext._passthrough = {key: value for key, value in block.items() if key in invalid}
        return ext

    def to_block(self) -> Dict[str, Any]:
        block = self.model_dump(exclude_unset=True)
        for key, value in self._passthrough.items():
            block.setdefault(key, value)
        return block


class AuthorType(str, Enum):
    OFFICIAL = "official"
    BY_CASAOS = "by_casaos"
    COMMUNITY = "community"
    UNKNOWN = "unknown"


class UpgradeStatus(str, Enum):
    IDLE = "idle"
    UPDATING = "updating"


class StoreAppInfo(BaseModel):
    store_app_id: Optional[str] = None
    title: Dict[str, str] = Field(default_factory=dict)
    icon: str = ""
    category: str = ""
    author: str = ""
    developer: str = ""
    architectures: Optional[List[str]] = None
    main: Optional[str] = None
    scheme: Optional[str] = None
    port_map: Optional[str] = None
    hostname: Optional[str] = None
    index: Optional[str] = None


class CategoryInfo(BaseModel):
    id: Optional[int] = None
    name: str
    font: str = ""
    description: str = ""
    count: int = 0


class UpgradableAppInfo(BaseModel):
    title: str
    version: str
    store_app_id: Optional[str] = None
    status: UpgradeStatus = UpgradeStatus.IDLE
    icon: str = ""
