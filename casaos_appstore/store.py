"""A file-backed app store over a CasaOS-AppStore style ``Apps/`` directory.

Each sub-directory is a store app id holding a ``docker-compose.yml``. Apps
that fail to load are logged and left out, so one broken app never hides the
rest of the store.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import yaml

from .constants import COMPOSE_FILE_NAMES, NEED_CHECK_DIGEST_TAGS, XCASAOS_KEY
from .errors import CasaOSAppStoreError
from .models import ComposeApp
from .parser import compose_app_from_dict, load_compose_file
from .store_info import main_service, main_tag

logger = logging.getLogger(__name__)


def find_compose_file(app_dir: Path) -> Optional[Path]:
    for file_name in COMPOSE_FILE_NAMES:
        candidate = app_dir / file_name
        if candidate.is_file():
            return candidate
    return None


def load_apps_dir(apps_dir: Path) -> Dict[str, ComposeApp]:
    """Load every app under ``apps_dir`` keyed by its directory name."""
    if not apps_dir.is_dir():
        raise FileNotFoundError(f"Apps directory not found: {apps_dir}")

    apps: Dict[str, ComposeApp] = {}
    for app_dir in sorted(path for path in apps_dir.iterdir() if path.is_dir()):
        compose_path = find_compose_file(app_dir)
        if compose_path is None:
            logger.debug("No compose file in %s", app_dir)
            continue
        try:
            apps[app_dir.name] = compose_app_from_dict(load_compose_file(compose_path), name=app_dir.name)
        except (ValueError, yaml.YAMLError) as exc:
            logger.error("Failed to load app %s: %s", app_dir.name, exc)
    return apps


def key_by_store_app_id(apps: Dict[str, ComposeApp]) -> Dict[str, ComposeApp]:
    """Re-key installed apps by the ``store_app_id`` in their x-casaos block."""
    keyed: Dict[str, ComposeApp] = {}
    for name, app in apps.items():
        block = app.extensions.get(XCASAOS_KEY)
        store_app_id = block.get("store_app_id") if isinstance(block, dict) else None
        keyed[str(store_app_id or name)] = app
    return keyed


def load_id_list(path: Path) -> List[str]:
    """Read a YAML list (or one id per line) of store app ids."""
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return []
    if isinstance(data, str):
        return [line.strip() for line in data.split() if line.strip()]
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a list of app ids")
    return [str(item) for item in data]


def image_digest(image: str) -> Optional[str]:
    _, sep, digest = (image or "").partition("@")
    if not sep or not digest.strip():
        return None
    return digest.strip()


class LocalAppStore:
    """App store backed by a local Apps directory."""

    def __init__(
        self,
        catalog: Dict[str, ComposeApp],
        updating: Iterable[str] = (),
        digest_tags: Iterable[str] = NEED_CHECK_DIGEST_TAGS,
    ):
        self.catalog = catalog
        self._updating = set(updating)
        self._digest_tags = tuple(digest_tags)

    @classmethod
    def from_dir(cls, apps_dir: Path, updating: Iterable[str] = ()) -> "LocalAppStore":
        return cls(load_apps_dir(apps_dir), updating=updating)

    def compose_app(self, store_app_id: str) -> Optional[ComposeApp]:
        return self.catalog.get(store_app_id)

    def is_updating(self, name: str) -> bool:
        return name in self._updating

    def mark_updating(self, name: str) -> None:
        self._updating.add(name)

    def is_update_available(self, app: ComposeApp) -> bool:
        """Compare the installed main image against the store's.

        Tags are compared first; on a floating tag both images must pin a
        digest, and the app is upgradable when the digests differ.
        """
        block = app.extensions.get(XCASAOS_KEY)
        store_app_id = block.get("store_app_id") if isinstance(block, dict) else None
        catalog_app = self.compose_app(str(store_app_id or app.name))
        if catalog_app is None:
            return False

        try:
            installed_tag = main_tag(app)
            catalog_tag = main_tag(catalog_app)
            if installed_tag != catalog_tag:
                return True
            if installed_tag not in self._digest_tags:
                return False
            installed_digest = image_digest(main_service(app).image)
            catalog_digest = image_digest(main_service(catalog_app).image)
        except CasaOSAppStoreError as exc:
            logger.error("Cannot compare %s with the store: %s", app.name, exc)
            return False

        return bool(installed_digest and catalog_digest and installed_digest != catalog_digest)
