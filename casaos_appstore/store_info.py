"""Derive AppStore descriptors (store info, main tag, author type) from manifests."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .constants import AUTHOR_CASAOS_TEAM, XCASAOS_KEY
from .errors import MainServiceNotFoundError, MalformedExtensionError, StoreInfoError
from .models import AuthorType, CasaOSExtension, ComposeApp, ServiceConfig, StoreAppInfo
from .parser import extract_image_and_tag

logger = logging.getLogger(__name__)


def casaos_extension(app: ComposeApp) -> CasaOSExtension:
    if XCASAOS_KEY not in app.extensions:
        raise StoreInfoError(f"{app.name} has no {XCASAOS_KEY} block")
    try:
        return CasaOSExtension.from_block(app.extensions[XCASAOS_KEY])
    except MalformedExtensionError as exc:
        raise StoreInfoError(f"{app.name}: {exc}") from exc


def _as_multilang(value: Any) -> Dict[str, str]:
    if isinstance(value, dict):
        return {str(lang): "" if text is None else str(text) for lang, text in value.items()}
    if value is None:
        return {}
    return {"en_US": str(value)}


def store_info(app: ComposeApp, store_app_id: Optional[str] = None) -> StoreAppInfo:
    """Build the read-only store descriptor of ``app``.

    Raises:
        StoreInfoError: the x-casaos block is missing or malformed.
    """
    ext = casaos_extension(app)
    return StoreAppInfo(
        store_app_id=store_app_id or ext.store_app_id,
        title=_as_multilang(ext.title),
        icon=ext.icon or "",
        category=ext.category or "",
        author=ext.author or "",
        developer=ext.developer or "",
        architectures=ext.architectures,
        main=ext.main,
        scheme=ext.scheme,
        port_map=ext.port_map,
        hostname=ext.hostname,
        index=ext.index,
    )


def main_service(app: ComposeApp) -> ServiceConfig:
    """Return the service named by x-casaos ``main``, or the first service."""
    if not app.services:
        raise MainServiceNotFoundError(f"{app.name} has no services")

    block = app.extensions.get(XCASAOS_KEY)
    main = block.get("main") if isinstance(block, dict) else None
    if not isinstance(main, str) or not main.strip():
        return app.services[0]

    service = app.service(main.strip())
    if service is None:
        raise MainServiceNotFoundError(f"main service {main!r} not found in {app.name}")
    return service


def main_tag(app: ComposeApp) -> str:
    _, tag = extract_image_and_tag(main_service(app).image)
    return tag


def service_tag(app: ComposeApp, service_name: str) -> str:
    service = app.service(service_name)
    if service is None:
        raise MainServiceNotFoundError(f"service {service_name!r} not found in {app.name}")
    _, tag = extract_image_and_tag(service.image)
    return tag


def author_type(app: ComposeApp) -> AuthorType:
    try:
        info = store_info(app)
    except StoreInfoError as exc:
        logger.debug("Author type unknown: %s", exc)
        return AuthorType.UNKNOWN

    author = info.author.strip().lower()
    if not author:
        return AuthorType.UNKNOWN
    if author == info.developer.strip().lower():
        return AuthorType.OFFICIAL
    if author == AUTHOR_CASAOS_TEAM.lower():
        return AuthorType.BY_CASAOS
    return AuthorType.COMMUNITY
