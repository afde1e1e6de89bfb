"""Catalog curation: filters over AppStore apps and the category listing.

A catalog maps store app ids to their ``ComposeApp``. Filters return new dicts
in input order. An app whose store info cannot be derived is dropped from
filtered results instead of failing the whole listing.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Union

from .constants import CATEGORY_ALL_DESCRIPTION, CATEGORY_ALL_FONT, CATEGORY_ALL_NAME
from .errors import StoreInfoError
from .models import AuthorType, CategoryInfo, ComposeApp, StoreAppInfo
from .store_info import author_type as resolve_author_type
from .store_info import store_info

logger = logging.getLogger(__name__)

Catalog = Dict[str, ComposeApp]

FILTERABLE_AUTHOR_TYPES = (AuthorType.OFFICIAL, AuthorType.BY_CASAOS, AuthorType.COMMUNITY)


def _resolve(store_app_id: str, app: ComposeApp) -> Optional[StoreAppInfo]:
    try:
        return store_info(app, store_app_id)
    except StoreInfoError as exc:
        logger.error("Failed to get store info for %s: %s", store_app_id, exc)
        return None


def list_store_info(catalog: Mapping[str, ComposeApp]) -> Dict[str, StoreAppInfo]:
    results: Dict[str, StoreAppInfo] = {}
    for store_app_id, app in catalog.items():
        info = _resolve(store_app_id, app)
        if info is not None:
            results[store_app_id] = info
    return results


def filter_by_category(catalog: Catalog, category: Optional[str]) -> Catalog:
    if not category:
        return catalog

    wanted = category.casefold()
    return {
        store_app_id: app
        for store_app_id, info, app in _resolved_items(catalog)
        if info.category.casefold() == wanted
    }


def parse_author_type(value: Union[str, AuthorType]) -> Optional[AuthorType]:
    if isinstance(value, AuthorType):
        return value
    text = str(value or "").strip().lower().replace("-", "_")
    try:
        return AuthorType(text)
    except ValueError:
        return None


def filter_by_author_type(catalog: Catalog, author_type: Union[str, AuthorType]) -> Catalog:
    wanted = parse_author_type(author_type)
    if wanted not in FILTERABLE_AUTHOR_TYPES:
        logger.info("Unknown author type %r; returning empty catalog", author_type)
        return {}

    return {
        store_app_id: app
        for store_app_id, app in catalog.items()
        if resolve_author_type(app) == wanted
    }


def filter_by_architecture(catalog: Catalog, arch: str) -> Catalog:
    """Keep apps that support ``arch``; apps without an architecture list support all."""
    return {
        store_app_id: app
        for store_app_id, info, app in _resolved_items(catalog)
        if info.architectures is None or arch in info.architectures
    }


def filter_by_store_app_ids(catalog: Catalog, store_app_ids: Iterable[str]) -> Catalog:
    wanted = set(store_app_ids)
    return {store_app_id: app for store_app_id, app in catalog.items() if store_app_id in wanted}


def curate_catalog(
    catalog: Catalog,
    arch: str,
    category: Optional[str] = None,
    author_type: Optional[str] = None,
    recommended: Optional[Iterable[str]] = None,
) -> Dict[str, StoreAppInfo]:
    """Apply the listing filters in order and return the surviving store infos."""
    if category is not None:
        catalog = filter_by_category(catalog, category)
    if author_type is not None:
        catalog = filter_by_author_type(catalog, author_type)
    if recommended is not None:
        catalog = filter_by_store_app_ids(catalog, recommended)
    catalog = filter_by_architecture(catalog, arch)
    return list_store_info(catalog)


def installed_store_app_ids(installed: Mapping[str, ComposeApp]) -> List[str]:
    """Return the store app ids recorded in installed manifests."""
    ids: List[str] = []
    for name, app in installed.items():
        try:
            info = store_info(app)
        except StoreInfoError as exc:
            logger.error("Failed to get store info for installed app %s: %s", name, exc)
            continue
        if not info.store_app_id:
            logger.error("Installed app %s has no store_app_id", name)
            continue
        ids.append(info.store_app_id)
    return ids


def build_category_map(catalog: Catalog) -> Dict[str, CategoryInfo]:
    categories: Dict[str, CategoryInfo] = {}
    for _, info, _ in _resolved_items(catalog):
        name = info.category.strip()
        if not name:
            continue
        entry = categories.get(name)
        if entry is None:
            entry = categories[name] = CategoryInfo(name=name)
        entry.count += 1
    return categories


def category_list(category_map: Mapping[str, CategoryInfo]) -> List[CategoryInfo]:
    """Return categories sorted by name, led by a synthetic "All" entry.

    Ids are positions in the returned list, so "All" is always 0 and its count
    is the sum of all other counts.
    """
    categories = sorted(category_map.values(), key=lambda category: category.name)
    total = sum(category.count for category in categories)
    everything = CategoryInfo(
        name=CATEGORY_ALL_NAME,
        font=CATEGORY_ALL_FONT,
        description=CATEGORY_ALL_DESCRIPTION,
        count=total,
    )
    return [
        category.model_copy(update={"id": index})
        for index, category in enumerate([everything, *categories])
    ]


def _resolved_items(catalog: Mapping[str, ComposeApp]):
    for store_app_id, app in catalog.items():
        info = _resolve(store_app_id, app)
        if info is not None:
            yield store_app_id, info, app
