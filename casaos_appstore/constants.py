"""Shared constants for CasaOS AppStore manifest handling."""

from __future__ import annotations

from typing import Dict, Tuple

XCASAOS_KEY = "x-casaos"

DATA_PREFIX = "/DATA"
DEFAULT_WEBUI_PORT = 80
DEFAULT_NETWORK_MODES = {"", "bridge"}

ENV_DATA_ROOT = "DATA_ROOT"
ENV_REF_NET = "REF_NET"
ENV_REF_PORT = "REF_PORT"
ENV_REF_DOMAIN = "REF_DOMAIN"
ENV_REF_IP = "REF_IP"
ENV_REF_DEFAULT_PWD = "REF_DEFAULT_PWD"
ENV_REF_SCHEME = "REF_SCHEME"
ENV_REF_SEPARATOR = "REF_SEPARATOR"
ENV_REF_DEFAULT_PORT = "REF_DEFAULT_PORT"
ENV_PUID = "PUID"
ENV_PGID = "PGID"

ENV_DEFAULTS: Dict[str, str] = {
    ENV_DATA_ROOT: "",
    ENV_REF_NET: "",
    ENV_REF_PORT: "80",
    ENV_REF_DOMAIN: "",
    ENV_REF_IP: "",
    ENV_REF_DEFAULT_PWD: "",
    ENV_REF_SCHEME: "http",
    ENV_REF_SEPARATOR: "-",
    ENV_REF_DEFAULT_PORT: "80",
    ENV_PUID: "1000",
    ENV_PGID: "1000",
}

# Any of these being set in the environment turns the adaptation pass on.
TRIGGER_ENV_VARS: Tuple[str, ...] = (
    ENV_DATA_ROOT,
    ENV_REF_NET,
    ENV_REF_PORT,
    ENV_REF_DOMAIN,
    ENV_REF_SCHEME,
    ENV_PUID,
    ENV_PGID,
)

PLACEHOLDER_PUBLIC_IP = "$public_ip"
PLACEHOLDER_DEFAULT_PWD = "$default_pwd"
PLACEHOLDER_DOMAIN = "$domain"

AUTHOR_CASAOS_TEAM = "CasaOS Team"

# Floating tags whose image digest moves while the tag stays put.
NEED_CHECK_DIGEST_TAGS: Tuple[str, ...] = ("latest",)

CATEGORY_ALL_NAME = "All"
CATEGORY_ALL_FONT = "apps"
CATEGORY_ALL_DESCRIPTION = "All apps"

COMPOSE_FILE_NAMES: Tuple[str, ...] = (
    "docker-compose.yml",
    "docker-compose.yaml",
    "compose.yml",
    "compose.yaml",
)
