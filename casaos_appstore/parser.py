"""Parsing utilities turning docker-compose documents into ``ComposeApp`` models."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .constants import XCASAOS_KEY
from .models import ComposeApp, ServiceConfig, ServicePort, ServiceVolume

logger = logging.getLogger(__name__)

_VOLUME_MODES = {"ro", "rw", "z", "cached", "delegated", "consistent"}


def load_compose_file(path: Path) -> Dict:
    """Load a docker-compose YAML file into a python dictionary."""
    if not path.exists():
        raise FileNotFoundError(f"Compose file not found: {path}")

    logger.info("Loading compose file: %s", path)
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError("Compose file did not produce a mapping")
    return data


def parse_compose_text(text: str) -> Dict:
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError("Compose content must be a YAML mapping.")
    return data


def load_compose_app(path: Path, name: Optional[str] = None) -> ComposeApp:
    return compose_app_from_dict(load_compose_file(path), name=name)


def compose_app_from_dict(data: Dict[str, Any], name: Optional[str] = None) -> ComposeApp:
    """Build a ``ComposeApp`` from a compose mapping.

    Short-syntax ports, volumes, environment lists and labels are converted to
    their long forms. ``name`` is used when the document carries no top-level
    name; otherwise the x-casaos ``main`` entry or the first service is used.
    """
    raw_services = data.get("services") or {}
    if not isinstance(raw_services, dict):
        raise ValueError("Compose 'services' must be a mapping")

    services = [
        parse_service(str(svc_name), svc or {})
        for svc_name, svc in raw_services.items()
    ]

    extensions = {key: value for key, value in data.items() if str(key).startswith("x-")}
    residual = {
        key: value
        for key, value in data.items()
        if key not in {"name", "services", "networks", "volumes"} and key not in extensions
    }

    app_name = str(data.get("name") or name or _default_name(extensions, services))
    return ComposeApp.model_validate(
        {
            **residual,
            "name": app_name,
            "services": services,
            "networks": dict(data.get("networks") or {}),
            "volumes": dict(data.get("volumes") or {}),
            "extensions": extensions,
        }
    )


def _default_name(extensions: Dict[str, Any], services: List[ServiceConfig]) -> str:
    block = extensions.get(XCASAOS_KEY)
    if isinstance(block, dict) and isinstance(block.get("main"), str) and block["main"].strip():
        return block["main"].strip()
    return services[0].name if services else ""


def parse_service(name: str, service: Dict[str, Any]) -> ServiceConfig:
    if not isinstance(service, dict):
        raise ValueError(f"Service {name} must be a mapping")

    payload = dict(service)
    payload["name"] = name
    payload["image"] = str(service.get("image") or "")
    payload["ports"] = parse_ports(service.get("ports"), service_name=name)
    payload["expose"] = [str(item) for item in service.get("expose") or []]
    payload["volumes"] = parse_volumes(service.get("volumes"))
    payload["networks"] = _parse_service_networks(service.get("networks"))
    payload["environment"] = parse_environment(service.get("environment"))
    payload["labels"] = _parse_labels(service.get("labels"))
    for key in ("hostname", "user", "network_mode"):
        value = service.get(key)
        payload[key] = None if value is None else str(value)
    return ServiceConfig.model_validate(payload)


def parse_ports(raw_ports: Any, service_name: str = "") -> List[ServicePort]:
    if not raw_ports:
        return []
    if not isinstance(raw_ports, list):
        logger.warning("Service %s ports must be a list; ignoring.", service_name)
        return []

    results: List[ServicePort] = []
    for entry in raw_ports:
        if isinstance(entry, dict):
            port = _port_from_mapping(entry)
            if port is None:
                logger.warning("Service %s has an unusable port entry: %s", service_name, entry)
                continue
            results.append(port)
            continue
        if isinstance(entry, (int, str)) and not isinstance(entry, bool):
            parsed = _ports_from_string(str(entry))
            if not parsed:
                logger.warning("Service %s has an unusable port entry: %s", service_name, entry)
            results.extend(parsed)
    return results


def _port_from_mapping(entry: Dict[str, Any]) -> Optional[ServicePort]:
    target = entry.get("target")
    if target is None:
        target = entry.get("containerPort")
    text = str(target).strip() if target is not None else ""
    if not text.isdigit():
        return None
    payload = dict(entry)
    payload.pop("containerPort", None)
    payload["target"] = int(text)
    published = entry.get("published")
    if published is None:
        published = entry.get("host")
        payload.pop("host", None)
    payload["published"] = str(published).strip() if published is not None and str(published).strip() else None
    payload["protocol"] = str(entry.get("protocol") or "").strip().lower() or "tcp"
    return ServicePort.model_validate(payload)


def _ports_from_string(entry: str) -> List[ServicePort]:
    cleaned = entry.strip()
    if not cleaned:
        return []
    protocol = "tcp"
    if "/" in cleaned:
        cleaned, _, proto = cleaned.rpartition("/")
        protocol = proto.strip().lower() or "tcp"

    host_ip, published, target = split_port_mapping(cleaned)
    targets = _expand_port_range(target)
    if not targets:
        return []
    published_values: List[Optional[str]] = [published] * len(targets)
    if published:
        expanded = _expand_port_range(published)
        if len(expanded) == len(targets):
            published_values = [str(value) for value in expanded]

    return [
        ServicePort(target=value, published=pub, protocol=protocol, host_ip=host_ip)
        for value, pub in zip(targets, published_values)
    ]


def _expand_port_range(value: Optional[str]) -> List[int]:
    text = (value or "").strip()
    if text.isdigit():
        return [int(text)]
    start, sep, end = text.partition("-")
    if sep and start.isdigit() and end.isdigit() and int(start) <= int(end):
        return list(range(int(start), int(end) + 1))
    return []


def split_port_mapping(value: str) -> Tuple[Optional[str], Optional[str], str]:
    """Split ``[ip:][host:]container`` while ignoring ':' inside ${...} and [IPv6]."""
    colon_positions: List[int] = []
    brace_depth = 0
    bracket_depth = 0
    index = 0
    while index < len(value):
        ch = value[index]
        if ch == "$" and index + 1 < len(value) and value[index + 1] == "{":
            brace_depth += 1
            index += 2
            continue
        if ch == "}" and brace_depth:
            brace_depth -= 1
        elif ch == "[":
            bracket_depth += 1
        elif ch == "]" and bracket_depth:
            bracket_depth -= 1
        elif ch == ":" and brace_depth == 0 and bracket_depth == 0:
            colon_positions.append(index)
        index += 1

    def clean(text: str) -> Optional[str]:
        text = text.strip()
        return text or None

    if not colon_positions:
        return None, None, value.strip()
    if len(colon_positions) == 1:
        pos = colon_positions[0]
        return None, clean(value[:pos]), value[pos + 1 :].strip()
    host_start = colon_positions[-2] + 1
    host_end = colon_positions[-1]
    host_ip = clean(value[: colon_positions[-2]].strip("[]"))
    return host_ip, clean(value[host_start:host_end]), value[host_end + 1 :].strip()


def parse_volumes(raw_volumes: Any) -> List[ServiceVolume]:
    if not raw_volumes or not isinstance(raw_volumes, list):
        return []

    results: List[ServiceVolume] = []
    for entry in raw_volumes:
        if isinstance(entry, dict):
            target = entry.get("target") or entry.get("container")
            if not target:
                continue
            payload = dict(entry)
            payload.pop("container", None)
            payload["target"] = str(target).strip()
            payload["source"] = str(entry.get("source") or "")
            payload["type"] = str(entry.get("type") or "").strip() or _guess_volume_type(payload["source"])
            payload["read_only"] = bool(entry.get("read_only"))
            results.append(ServiceVolume.model_validate(payload))
            continue
        if isinstance(entry, str):
            volume = _volume_from_string(entry)
            if volume is not None:
                results.append(volume)
    return results


def _volume_from_string(entry: str) -> Optional[ServiceVolume]:
    source, target, mode = _parse_volume_spec(entry)
    if not target:
        return None
    read_only = bool(mode) and "ro" in [part.strip().lower() for part in mode.split(",")]
    return ServiceVolume(
        type=_guess_volume_type(source or ""),
        source=source or "",
        target=target,
        read_only=read_only,
    )


def _parse_volume_spec(entry: str) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    cleaned = entry.strip()
    if not cleaned:
        return None, None, None

    parts = cleaned.split(":")
    if len(parts) == 1:
        return None, cleaned, None
    if len(parts) >= 3 and _looks_like_volume_mode(parts[-1]):
        return ":".join(parts[:-2]), parts[-2], parts[-1]
    return ":".join(parts[:-1]), parts[-1], None


def _looks_like_volume_mode(value: str) -> bool:
    parts = [part.strip().lower() for part in value.split(",") if part.strip()]
    return bool(parts) and all(part in _VOLUME_MODES for part in parts)


def _guess_volume_type(source: str) -> str:
    text = source.strip()
    if not text:
        return "volume"
    if text.startswith((".", "/", "~", "$")):
        return "bind"
    return "volume"


def parse_environment(raw_env: Any) -> Dict[str, Optional[str]]:
    """Normalize compose environment (list or mapping) to key -> optional value."""
    env: Dict[str, Optional[str]] = {}
    if isinstance(raw_env, dict):
        for key, value in raw_env.items():
            env[str(key)] = _env_value(value)
        return env
    if isinstance(raw_env, list):
        for entry in raw_env:
            if not isinstance(entry, str):
                continue
            key, sep, value = entry.partition("=")
            key = key.strip()
            if key:
                env[key] = value if sep else None
    return env


def _env_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _parse_labels(raw_labels: Any) -> Dict[str, str]:
    if isinstance(raw_labels, dict):
        return {str(key): "" if value is None else str(value) for key, value in raw_labels.items()}
    labels: Dict[str, str] = {}
    if isinstance(raw_labels, list):
        for entry in raw_labels:
            if isinstance(entry, str):
                key, _, value = entry.partition("=")
                if key.strip():
                    labels[key.strip()] = value
    return labels


def _parse_service_networks(raw_networks: Any) -> Dict[str, Optional[Dict[str, Any]]]:
    if isinstance(raw_networks, list):
        return {str(name): None for name in raw_networks}
    if isinstance(raw_networks, dict):
        return {
            str(name): dict(config) if isinstance(config, dict) else None
            for name, config in raw_networks.items()
        }
    return {}


def extract_image_and_tag(image: str) -> Tuple[str, str]:
    """Split an image reference into (image, tag); the tag defaults to 'latest'."""
    cleaned = (image or "").strip()
    if "@" in cleaned:
        cleaned = cleaned.split("@", 1)[0]
    # The final ':' is a tag separator only when it comes after the final '/'.
    last_slash = cleaned.rfind("/")
    last_colon = cleaned.rfind(":")
    if last_colon > last_slash:
        return cleaned[:last_colon], cleaned[last_colon + 1 :] or "latest"
    return cleaned, "latest"
