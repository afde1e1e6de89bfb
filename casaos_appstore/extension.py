"""Patch the x-casaos block for the deployment it is being served to.

The patcher decides which port the web UI is reachable on, fills in
``scheme``/``port_map``/``hostname`` when the app author left them out, and
expands ``$VAR`` placeholders in the pre-install tips.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .constants import DEFAULT_WEBUI_PORT
from .models import CasaOSExtension, ServiceConfig
from .settings import DeploymentSettings

logger = logging.getLogger(__name__)

_ENV_REF_RE = re.compile(r"\$(?:\{([A-Za-z_][A-Za-z0-9_]*)\}|([A-Za-z_][A-Za-z0-9_]*))")


@dataclass(frozen=True)
class WebUIPort:
    port: int
    # True when the port was not taken from an explicit webui_port value.
    dynamic: bool


def parse_port_value(value: Any) -> Optional[int]:
    """Return ``value`` as a port in (0, 65536), or None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        port = value
    elif isinstance(value, float):
        if not value.is_integer():
            return None
        port = int(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text.isdigit():
            return None
        port = int(text)
    else:
        return None
    return port if 0 < port < 65536 else None


def resolve_webui_port(
    ext: CasaOSExtension,
    services: List[ServiceConfig],
    app_name: str = "",
) -> WebUIPort:
    raw = ext.webui_port
    if raw is not None:
        port = parse_port_value(raw)
        if port is not None:
            return WebUIPort(port=port, dynamic=False)
        logger.info("Invalid webui_port %r for %s; falling back to service ports", raw, app_name)

    if services and services[0].ports:
        target = services[0].ports[0].target
        if 0 < target < 65536:
            return WebUIPort(port=target, dynamic=True)
        logger.info("Invalid port %s on service %s; using default", target, services[0].name)
    else:
        logger.info("No ports defined for the first service of %s; using default", app_name)
    return WebUIPort(port=DEFAULT_WEBUI_PORT, dynamic=True)


def build_hostname(port: int, app_name: str, settings: DeploymentSettings) -> Optional[str]:
    """Return the reverse-proxy hostname for ``app_name`` or None without a domain.

    Apps on the default port get ``{app}{sep}{domain}``; any other port is
    prefixed: ``{port}{sep}{app}{sep}{domain}``.
    """
    domain = settings.ref_domain
    if not domain:
        return None
    if not settings.domain_is_valid:
        logger.info("Invalid domain name provided: %r", domain)
        return None

    sep = settings.ref_separator
    if str(port) == settings.ref_default_port.strip():
        return f"{app_name}{sep}{domain}"
    return f"{port}{sep}{app_name}{sep}{domain}"


def expand_env(text: str, environ: Mapping[str, str]) -> str:
    """Expand ``$NAME``/``${NAME}``; unknown names and other ``$`` text are left as written."""

    def replace(match: re.Match) -> str:
        value = environ.get(match.group(1) or match.group(2))
        return match.group(0) if value is None else value

    return _ENV_REF_RE.sub(replace, text)


def expand_tips(tips: Any, environ: Mapping[str, str], app_name: str = "") -> Any:
    """Return ``tips`` with its ``before_install`` texts expanded.

    The input is returned as-is when there is nothing to expand or when the
    structure has the wrong shape.
    """
    if tips is None:
        return None
    if not isinstance(tips, dict):
        logger.warning("x-casaos tips of %s is not a mapping; skipping expansion", app_name)
        return tips

    before_install = tips.get("before_install")
    if before_install is None:
        return tips
    if not isinstance(before_install, dict):
        logger.warning("x-casaos tips.before_install of %s is not a mapping; skipping expansion", app_name)
        return tips

    expanded: Dict[Any, Any] = {
        lang: expand_env(text, environ) if isinstance(text, str) else text
        for lang, text in before_install.items()
    }
    return {**tips, "before_install": expanded}


def patch_extension(
    ext: CasaOSExtension,
    app_name: str,
    services: List[ServiceConfig],
    settings: DeploymentSettings,
) -> Tuple[CasaOSExtension, WebUIPort]:
    """Return a patched copy of ``ext`` and the resolved web UI port."""
    webui = resolve_webui_port(ext, services, app_name)
    logger.info("Web UI port for %s resolved to %s (dynamic=%s)", app_name, webui.port, webui.dynamic)

    updates: Dict[str, Any] = {}
    if not ext.scheme:
        updates["scheme"] = settings.ref_scheme
    if not ext.port_map:
        updates["port_map"] = settings.ref_port
    if not ext.hostname:
        hostname = build_hostname(webui.port, app_name, settings)
        if hostname:
            updates["hostname"] = hostname

    tips = expand_tips(ext.tips, settings.environ, app_name)
    if tips is not ext.tips:
        updates["tips"] = tips

    return ext.model_copy(update=updates), webui
