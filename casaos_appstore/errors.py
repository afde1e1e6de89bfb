"""Exceptions raised while reading CasaOS manifests and store metadata."""

from __future__ import annotations


class CasaOSAppStoreError(ValueError):
    """Base class for manifest and catalog errors."""


class MalformedExtensionError(CasaOSAppStoreError):
    """The x-casaos block is present but is not a mapping."""


class StoreInfoError(CasaOSAppStoreError):
    """Store metadata cannot be derived from a manifest."""


class MainServiceNotFoundError(CasaOSAppStoreError):
    """The manifest's main service cannot be located."""
