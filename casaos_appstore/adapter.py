"""Adapt an AppStore compose manifest to the deployment it will run in.

Storage, networking, ownership and the x-casaos presentation block are
rewritten according to :class:`DeploymentSettings`. The input manifest is never
modified: the result is a shallow copy whose edited parts are rebuilt. If any
part of the manifest cannot be handled, the original is returned untouched.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .constants import (
    DATA_PREFIX,
    DEFAULT_NETWORK_MODES,
    PLACEHOLDER_DEFAULT_PWD,
    PLACEHOLDER_DOMAIN,
    PLACEHOLDER_PUBLIC_IP,
    XCASAOS_KEY,
)
from .errors import MalformedExtensionError
from .extension import WebUIPort, patch_extension
from .models import CasaOSExtension, ComposeApp, ServiceConfig, ServicePort, ServiceVolume
from .ownership import format_user, should_inject_user
from .settings import DeploymentSettings

logger = logging.getLogger(__name__)


def rewrite_volume_source(source: str, data_root: str) -> str:
    """Replace a leading ``/DATA`` with ``data_root``; other paths are unchanged."""
    if source.startswith(DATA_PREFIX):
        return data_root + source[len(DATA_PREFIX) :]
    return source


def rewrite_volumes(volumes: List[ServiceVolume], data_root: str) -> List[ServiceVolume]:
    return [
        volume.model_copy(update={"source": rewrite_volume_source(volume.source, data_root)})
        for volume in volumes
    ]


def convert_ports_to_expose(ports: List[ServicePort], expose: Optional[List[str]] = None) -> List[str]:
    """Return ``expose`` extended with the container side of ``ports``."""
    result = list(expose or [])
    for port in ports:
        if not 0 < port.target < 65536:
            logger.info("Skipping invalid port %s while converting ports to expose", port.target)
            continue
        value = str(port.target)
        if value not in result:
            result.append(value)
    return result


def uses_default_network_mode(service: ServiceConfig) -> bool:
    return (service.network_mode or "").strip() in DEFAULT_NETWORK_MODES


def placeholder_replacements(settings: DeploymentSettings) -> Dict[str, str]:
    replacements = {
        PLACEHOLDER_PUBLIC_IP: settings.ref_ip,
        PLACEHOLDER_DEFAULT_PWD: settings.ref_default_pwd,
        PLACEHOLDER_DOMAIN: settings.ref_domain,
    }
    return {token: value for token, value in replacements.items() if value}


def substitute_placeholders(value: Any, replacements: Dict[str, str]) -> Any:
    if isinstance(value, str):
        for token, replacement in replacements.items():
            value = value.replace(token, replacement)
        return value
    if isinstance(value, list):
        return [substitute_placeholders(item, replacements) for item in value]
    if isinstance(value, dict):
        return {key: substitute_placeholders(item, replacements) for key, item in value.items()}
    return value


def _adapt_service(
    service: ServiceConfig,
    app_name: str,
    settings: DeploymentSettings,
    webui: Optional[WebUIPort],
    replacements: Dict[str, str],
    strict_user_check: bool,
) -> ServiceConfig:
    updates: Dict[str, Any] = {}

    if settings.data_root:
        updates["volumes"] = rewrite_volumes(service.volumes, settings.data_root)

    if webui is not None and webui.dynamic and service.ports:
        # The proxy reaches the web UI over the shared network; nothing is published on the host.
        updates["expose"] = convert_ports_to_expose(service.ports, service.expose)
        updates["ports"] = []

    if settings.ref_net:
        if uses_default_network_mode(service):
            updates["networks"] = {settings.ref_net: None}
            updates["hostname"] = app_name
            updates["network_mode"] = None
        else:
            logger.info(
                "Service %s uses network_mode %s; not attaching %s",
                service.name,
                service.network_mode,
                settings.ref_net,
            )

    if settings.ownership_requested and should_inject_user(
        service, settings.puid, settings.pgid, strict=strict_user_check
    ):
        updates["user"] = format_user(settings.puid, settings.pgid)

    if replacements:
        updates["command"] = substitute_placeholders(service.command, replacements)
        updates["entrypoint"] = substitute_placeholders(service.entrypoint, replacements)
        updates["environment"] = substitute_placeholders(service.environment, replacements)
        updates["labels"] = substitute_placeholders(service.labels, replacements)

    return service.model_copy(update=updates)


def adapt_compose_app(
    app: ComposeApp,
    settings: Optional[DeploymentSettings] = None,
    strict_user_check: bool = False,
) -> ComposeApp:
    """Return ``app`` adapted to ``settings`` (read from the environment if omitted).

    Without any trigger setting the very same object is returned.
    """
    if settings is None:
        settings = DeploymentSettings.from_environ()
    if not settings.needs_adaptation:
        return app

    logger.info(
        "Adapting %s (DATA_ROOT=%s REF_NET=%s REF_PORT=%s REF_DOMAIN=%s REF_SCHEME=%s)",
        app.name,
        settings.data_root,
        settings.ref_net,
        settings.ref_port,
        settings.ref_domain,
        settings.ref_scheme,
    )

    updates: Dict[str, Any] = {}
    webui: Optional[WebUIPort] = None

    if XCASAOS_KEY in app.extensions:
        try:
            ext = CasaOSExtension.from_block(app.extensions[XCASAOS_KEY])
        except MalformedExtensionError as exc:
            logger.error("Invalid x-casaos extension for %s: %s", app.name, exc)
            return app
        if not app.services:
            logger.error("No services defined in %s", app.name)
            return app
        patched, webui = patch_extension(ext, app.name, app.services, settings)
        updates["extensions"] = {**app.extensions, XCASAOS_KEY: patched.to_block()}

    replacements = placeholder_replacements(settings)
    if settings.data_root or settings.ref_net or settings.ownership_requested or replacements:
        if not app.services:
            logger.error("No services to modify in %s", app.name)
            return app

        updates["services"] = [
            _adapt_service(service, app.name, settings, webui, replacements, strict_user_check)
            for service in app.services
        ]
        if settings.ref_net and any(uses_default_network_mode(svc) for svc in app.services):
            updates["networks"] = {settings.ref_net: {"name": settings.ref_net, "external": True}}

    return app.model_copy(update=updates)
