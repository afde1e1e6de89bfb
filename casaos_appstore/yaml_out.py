"""Helpers for rendering ``ComposeApp`` models back into compose documents."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

import yaml
from yaml.representer import SafeRepresenter

from .models import ComposeApp, ServiceConfig

logger = logging.getLogger(__name__)


class CasaOSQuotedStr(str):
    """A string that must be rendered with double quotes in YAML."""


class _CasaOSYamlDumper(yaml.SafeDumper):
    def increase_indent(self, flow: bool = False, indentless: bool = False) -> None:  # type: ignore[override]
        # Indent sequences under mappings ("key:\n  - item").
        return super().increase_indent(flow, False)


def _represent_casaos_quoted_str(dumper: yaml.SafeDumper, data: CasaOSQuotedStr) -> yaml.ScalarNode:
    return dumper.represent_scalar("tag:yaml.org,2002:str", str(data), style='"')


_CasaOSYamlDumper.add_representer(CasaOSQuotedStr, _represent_casaos_quoted_str)


def _represent_multiline_str(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    """Prefer literal block scalars for multi-line strings."""
    if "\n" in data or "\r" in data:
        normalized = data.replace("\r\n", "\n").replace("\r", "\n")
        return dumper.represent_scalar("tag:yaml.org,2002:str", normalized, style="|")
    return SafeRepresenter.represent_str(dumper, data)


_CasaOSYamlDumper.add_representer(str, _represent_multiline_str)


def _prepare_for_yaml_dump(data: Any) -> Any:
    if isinstance(data, dict):
        prepared: Dict[Any, Any] = {}
        for key, value in data.items():
            prepared_value = _prepare_for_yaml_dump(value)
            if key in {"published", "port_map"} and prepared_value is not None:
                text = str(prepared_value)
                if text.strip():
                    prepared[key] = CasaOSQuotedStr(text)
                    continue
            prepared[key] = prepared_value
        return prepared

    if isinstance(data, list):
        return [_prepare_for_yaml_dump(item) for item in data]

    return data


def service_to_dict(service: ServiceConfig) -> Dict[str, Any]:
    data = service.model_dump(exclude_none=True)
    data.pop("name", None)
    data["ports"] = [port.model_dump(exclude_none=True) for port in service.ports]
    data["volumes"] = [
        {key: value for key, value in volume.model_dump().items() if key != "read_only" or value}
        for volume in service.volumes
    ]
    # Unset environment values and bare network attachments are written as null.
    data["environment"] = dict(service.environment)
    data["networks"] = dict(service.networks)
    return {key: value for key, value in data.items() if value not in ([], {}, "")}


def compose_app_to_dict(app: ComposeApp) -> Dict[str, Any]:
    """Return the compose mapping for ``app`` with service order preserved."""
    residual = {
        key: value
        for key, value in app.model_dump().items()
        if key not in {"name", "services", "networks", "volumes", "extensions"}
    }
    out: Dict[str, Any] = {"name": app.name}
    out.update(residual)
    out["services"] = {svc.name: service_to_dict(svc) for svc in app.services}
    if app.networks:
        out["networks"] = dict(app.networks)
    if app.volumes:
        out["volumes"] = dict(app.volumes)
    out.update(app.extensions)
    return out


def dump_yaml(data: Any) -> str:
    """Serialize data into YAML with CasaOS-friendly indentation."""
    prepared = _prepare_for_yaml_dump(data)
    return yaml.dump(
        prepared,
        Dumper=_CasaOSYamlDumper,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=4096,
    )


def write_compose_file(app: ComposeApp, path: Path) -> None:
    yaml_text = dump_yaml(compose_app_to_dict(app))
    with path.open("w", encoding="utf-8") as handle:
        handle.write(yaml_text)
    logger.info("Compose written to %s", path)
