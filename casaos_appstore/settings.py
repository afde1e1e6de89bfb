"""Deployment settings read once from the process environment.

Every adaptation call receives a :class:`DeploymentSettings` snapshot instead of
reading ``os.environ`` piecemeal, so tests can pass a plain dict.
"""
from __future__ import annotations

import logging
import os
from typing import Callable, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from .constants import (
    ENV_DATA_ROOT,
    ENV_DEFAULTS,
    ENV_PGID,
    ENV_PUID,
    ENV_REF_DEFAULT_PORT,
    ENV_REF_DEFAULT_PWD,
    ENV_REF_DOMAIN,
    ENV_REF_IP,
    ENV_REF_NET,
    ENV_REF_PORT,
    ENV_REF_SCHEME,
    ENV_REF_SEPARATOR,
    TRIGGER_ENV_VARS,
)

logger = logging.getLogger(__name__)


def is_valid_port(value: str) -> bool:
    try:
        port = int(str(value).strip())
    except (TypeError, ValueError):
        return False
    return 0 < port < 65536


def is_valid_domain(domain: str) -> bool:
    return bool(domain) and not any(ch in domain for ch in " \t\n\r")


def get_env_with_default(environ: Mapping[str, str], key: str, default: Optional[str] = None) -> str:
    value = environ.get(key) or ""
    if value:
        return value
    return ENV_DEFAULTS.get(key, "") if default is None else default


def get_validated_env(
    environ: Mapping[str, str],
    key: str,
    validator: Callable[[str], bool],
) -> str:
    default = ENV_DEFAULTS.get(key, "")
    value = environ.get(key) or ""
    if value:
        if validator(value):
            return value
        logger.info("Invalid environment variable %s=%r; using default %r", key, value, default)
    return default


class DeploymentSettings(BaseModel):
    """Snapshot of the deployment environment used to adapt manifests."""

    model_config = ConfigDict(frozen=True)

    data_root: str = ENV_DEFAULTS[ENV_DATA_ROOT]
    ref_net: str = ENV_DEFAULTS[ENV_REF_NET]
    ref_port: str = ENV_DEFAULTS[ENV_REF_PORT]
    ref_domain: str = ENV_DEFAULTS[ENV_REF_DOMAIN]
    ref_ip: str = ENV_DEFAULTS[ENV_REF_IP]
    ref_default_pwd: str = ENV_DEFAULTS[ENV_REF_DEFAULT_PWD]
    ref_scheme: str = ENV_DEFAULTS[ENV_REF_SCHEME]
    ref_separator: str = ENV_DEFAULTS[ENV_REF_SEPARATOR]
    ref_default_port: str = ENV_DEFAULTS[ENV_REF_DEFAULT_PORT]
    puid: str = ENV_DEFAULTS[ENV_PUID]
    pgid: str = ENV_DEFAULTS[ENV_PGID]
    needs_adaptation: bool = False
    # PUID/PGID were set explicitly, not just defaulted.
    ownership_requested: bool = False
    environ: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> "DeploymentSettings":
        source = dict(os.environ if environ is None else environ)
        settings = cls(
            data_root=get_env_with_default(source, ENV_DATA_ROOT),
            ref_net=get_env_with_default(source, ENV_REF_NET),
            ref_port=get_validated_env(source, ENV_REF_PORT, is_valid_port),
            ref_domain=get_env_with_default(source, ENV_REF_DOMAIN),
            ref_ip=get_env_with_default(source, ENV_REF_IP),
            ref_default_pwd=get_env_with_default(source, ENV_REF_DEFAULT_PWD),
            ref_scheme=get_env_with_default(source, ENV_REF_SCHEME),
            ref_separator=get_env_with_default(source, ENV_REF_SEPARATOR),
            ref_default_port=get_env_with_default(source, ENV_REF_DEFAULT_PORT),
            puid=get_env_with_default(source, ENV_PUID),
            pgid=get_env_with_default(source, ENV_PGID),
            needs_adaptation=any(source.get(key) for key in TRIGGER_ENV_VARS),
            ownership_requested=bool(source.get(ENV_PUID) or source.get(ENV_PGID)),
            environ=source,
        )
        if settings.needs_adaptation:
            logger.debug(
                "Deployment settings: DATA_ROOT=%s REF_NET=%s REF_PORT=%s REF_DOMAIN=%s "
                "REF_SCHEME=%s REF_SEPARATOR=%s",
                settings.data_root,
                settings.ref_net,
                settings.ref_port,
                settings.ref_domain,
                settings.ref_scheme,
                settings.ref_separator,
            )
        return settings

    @property
    def domain_is_valid(self) -> bool:
        return is_valid_domain(self.ref_domain)
