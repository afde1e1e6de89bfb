"""CasaOS AppStore manifest adaptation and catalog curation."""

from .adapter import adapt_compose_app
from .catalog import (
    category_list,
    filter_by_architecture,
    filter_by_author_type,
    filter_by_category,
    filter_by_store_app_ids,
)
from .models import (
    AuthorType,
    CasaOSExtension,
    CategoryInfo,
    ComposeApp,
    ServiceConfig,
    ServicePort,
    ServiceVolume,
    StoreAppInfo,
    UpgradableAppInfo,
    UpgradeStatus,
)
from .settings import DeploymentSettings
from .upgrade import upgradable_apps

__all__ = [
    "AuthorType",
    "CasaOSExtension",
    "CategoryInfo",
    "ComposeApp",
    "DeploymentSettings",
    "ServiceConfig",
    "ServicePort",
    "ServiceVolume",
    "StoreAppInfo",
    "UpgradableAppInfo",
    "UpgradeStatus",
    "adapt_compose_app",
    "category_list",
    "filter_by_architecture",
    "filter_by_author_type",
    "filter_by_category",
    "filter_by_store_app_ids",
    "upgradable_apps",
]
