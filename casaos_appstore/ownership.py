"""Decide whether a service should run as the deployment's PUID:PGID."""
from __future__ import annotations

import logging

from .models import ServiceConfig

logger = logging.getLogger(__name__)


def is_valid_id(value: str) -> bool:
    """Return True for a non-empty string holding an integer >= 0."""
    text = str(value or "").strip()
    if not text:
        return False
    try:
        return int(text) >= 0
    except ValueError:
        return False


def has_puid_in_env(service: ServiceConfig) -> bool:
    return any(key.upper() == "PUID" for key in service.environment)


def should_inject_user(service: ServiceConfig, puid: str, pgid: str, strict: bool = False) -> bool:
    """Return True when ``service`` should receive ``user: PUID:PGID``.

    An explicit ``user`` is never overridden. ``strict`` additionally skips
    services that already pass ``PUID`` through their environment.
    """
    if service.user:
        logger.info(
            "Service %s already has user %s; skipping user rights",
            service.name,
            service.user,
        )
        return False

    if strict and has_puid_in_env(service):
        logger.info("Service %s already has PUID in environment; skipping user rights", service.name)
        return False

    if not is_valid_id(puid) or not is_valid_id(pgid):
        logger.info(
            "Invalid PUID/PGID (%r/%r); skipping user rights for %s",
            puid,
            pgid,
            service.name,
        )
        return False

    return True


def format_user(puid: str, pgid: str) -> str:
    return f"{str(puid).strip()}:{str(pgid).strip()}"
