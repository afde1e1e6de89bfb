"""Detect installed apps that have an upgrade available in the AppStore."""
from __future__ import annotations

import json
import logging
from typing import Iterable, List, Mapping, Optional, Protocol

from .constants import NEED_CHECK_DIGEST_TAGS
from .errors import CasaOSAppStoreError
from .models import ComposeApp, UpgradableAppInfo, UpgradeStatus
from .store_info import main_tag, store_info

logger = logging.getLogger(__name__)


class AppStoreManagement(Protocol):
    """The parts of the app-store service the upgrade detector relies on."""

    def compose_app(self, store_app_id: str) -> Optional[ComposeApp]: ...

    def is_updating(self, name: str) -> bool: ...

    def is_update_available(self, app: ComposeApp) -> bool: ...


def target_version(catalog_tag: str, installed_tag: str, digest_tags: Iterable[str] = NEED_CHECK_DIGEST_TAGS) -> str:
    """Version to report: the catalog tag, unless the install is on a floating tag."""
    if installed_tag in set(digest_tags):
        return installed_tag
    return catalog_tag


def encode_title(title: Mapping[str, str]) -> str:
    return json.dumps(dict(title), ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def upgradable_apps(
    installed: Mapping[str, ComposeApp],
    store: AppStoreManagement,
    digest_tags: Iterable[str] = NEED_CHECK_DIGEST_TAGS,
) -> List[UpgradableAppInfo]:
    """List installed apps (keyed by store app id) with an upgrade available.

    An app that cannot be resolved on either side is skipped and logged. The
    result is sorted by title.
    """
    digest_tags = tuple(digest_tags)
    results: List[UpgradableAppInfo] = []
    for store_app_id, app in installed.items():
        if app is None:
            continue
        try:
            info = store_info(app, store_app_id)
            catalog_app = store.compose_app(store_app_id)
            if catalog_app is None:
                logger.error("App %s not found in the app store", store_app_id)
                continue
            catalog_tag = main_tag(catalog_app)
            installed_tag = main_tag(app)
        except CasaOSAppStoreError as exc:
            logger.error("Failed to resolve upgrade info for %s: %s", store_app_id, exc)
            continue

        if not store.is_update_available(app):
            continue

        status = UpgradeStatus.UPDATING if store.is_updating(app.name) else UpgradeStatus.IDLE
        results.append(
            UpgradableAppInfo(
                title=encode_title(info.title),
                version=target_version(catalog_tag, installed_tag, digest_tags),
                store_app_id=store_app_id,
                status=status,
                icon=info.icon,
            )
        )

    results.sort(key=lambda item: item.title)
    return results
