"""High level orchestration helpers consumed by the CLI."""
from __future__ import annotations

import json
import logging
import platform
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .adapter import adapt_compose_app
from .catalog import build_category_map, category_list, curate_catalog, installed_store_app_ids
from .models import ComposeApp
from .parser import load_compose_app
from .settings import DeploymentSettings
from .store import LocalAppStore, key_by_store_app_id, load_apps_dir, load_id_list
from .upgrade import upgradable_apps
from .yaml_out import compose_app_to_dict, dump_yaml, write_compose_file

logger = logging.getLogger(__name__)

_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm",
    "armv6l": "arm",
    "i386": "386",
    "i686": "386",
}


def detect_cpu_arch() -> str:
    machine = platform.machine().lower()
    return _ARCH_ALIASES.get(machine, machine)


def adapt_compose_file(compose_path: Path, environ: Optional[Mapping[str, str]] = None) -> ComposeApp:
    app = load_compose_app(compose_path)
    settings = DeploymentSettings.from_environ(environ)
    return adapt_compose_app(app, settings)


def write_adapted_compose(app: ComposeApp, output_path: Path, dry_run: bool) -> None:
    if dry_run:
        logger.info("Dry run enabled; compose not written to disk.")
        emit(dump_yaml(compose_app_to_dict(app)))
        return
    write_compose_file(app, output_path)


def list_catalog(
    apps_dir: Path,
    arch: Optional[str] = None,
    category: Optional[str] = None,
    author_type: Optional[str] = None,
    recommend_file: Optional[Path] = None,
    installed_dir: Optional[Path] = None,
) -> Dict[str, Any]:
    catalog = load_apps_dir(apps_dir)
    recommended = load_id_list(recommend_file) if recommend_file else None
    infos = curate_catalog(
        catalog,
        arch or detect_cpu_arch(),
        category=category,
        author_type=author_type,
        recommended=recommended,
    )
    data: Dict[str, Any] = {
        "list": {store_app_id: info.model_dump(mode="json") for store_app_id, info in infos.items()}
    }
    if installed_dir is not None:
        data["installed"] = installed_store_app_ids(load_apps_dir(installed_dir))
    return data


def list_categories(apps_dir: Path) -> List[Dict[str, Any]]:
    categories = category_list(build_category_map(load_apps_dir(apps_dir)))
    return [category.model_dump(mode="json") for category in categories]


def list_upgrades(apps_dir: Path, installed_dir: Path, updating: Iterable[str] = ()) -> List[Dict[str, Any]]:
    store = LocalAppStore.from_dir(apps_dir, updating=updating)
    installed = key_by_store_app_id(load_apps_dir(installed_dir))
    return [item.model_dump(mode="json") for item in upgradable_apps(installed, store)]


def print_json(data: Any) -> None:
    emit(json.dumps(data, indent=2, ensure_ascii=False))


def emit(text: str) -> None:
    """Write to stdout, escaping what a legacy console code page cannot encode."""
    if not text.endswith("\n"):
        text += "\n"
    encoding = getattr(sys.stdout, "encoding", None) or "utf-8"
    try:
        text.encode(encoding)
    except UnicodeEncodeError:
        text = text.encode(encoding, errors="backslashreplace").decode(encoding)
    sys.stdout.write(text)
