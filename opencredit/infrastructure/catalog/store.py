"""
Active rule catalog: loading, fallback and atomic hot reload.

Evaluations never see a half-built catalog. A reload compiles the new
document off to the side and publishes it with a single reference
assignment; callers take one snapshot per assessment and keep using it.
"""

import logging
import threading
from typing import Optional

import httpx

from opencredit.config import settings
from opencredit.domain.catalog import RuleCatalog, default_catalog
from opencredit.domain.exceptions import ConfigLoadError
from opencredit.infrastructure.catalog.parser import parse_catalog
from opencredit.infrastructure.catalog.sources import read_source
from opencredit.infrastructure.observability.metrics import record_catalog_load

logger = logging.getLogger(__name__)


def load_catalog_strict(
    source: str,
    strict_metric_keys: Optional[bool] = None,
    client: Optional[httpx.Client] = None,
) -> RuleCatalog:
    """
    Load and compile a catalog, raising on any failure.

    Raises:
        ConfigLoadError: Source unreadable, document invalid, or (strict
            mode) an unknown metric key
    """
    strict = settings.strict_metric_keys if strict_metric_keys is None else strict_metric_keys
    text = read_source(source, client=client)
    return parse_catalog(text, source=source, strict_metric_keys=strict)


def load_catalog(
    source: str,
    strict_metric_keys: Optional[bool] = None,
    client: Optional[httpx.Client] = None,
) -> RuleCatalog:
    """Load a catalog; on failure serve the built-in default instead of raising"""
    try:
        catalog = load_catalog_strict(source, strict_metric_keys, client)
    except ConfigLoadError as e:
        logger.error(
            "Catalog load failed",
            extra={"source": source, "reason": e.reason},
        )
        catalog = default_catalog(reason=e.reason)
        _log_fallback(catalog)
        record_catalog_load("fallback", True, len(catalog.validation_warnings))
        return catalog

    _log_loaded(catalog)
    record_catalog_load("loaded", False, len(catalog.validation_warnings))
    return catalog


def _log_fallback(catalog: RuleCatalog) -> None:
    logger.warning(
        "Serving built-in default catalog",
        extra={"catalog_version": catalog.version, "components": len(catalog.components)},
    )


def _log_loaded(catalog: RuleCatalog) -> None:
    logger.info(
        "Catalog loaded",
        extra={
            "source": catalog.source,
            "catalog_version": catalog.version,
            "components": len(catalog.components),
            "eligibility_rules": len(catalog.eligibility_rules),
            "fraud_rules": len(catalog.fraud_rules),
            "warning_count": len(catalog.validation_warnings),
        },
    )
    for warning in catalog.validation_warnings:
        logger.warning("Catalog validation warning", extra={"catalog_version": catalog.version, "detail": warning})


class CatalogStore:
    """Holds the active catalog for one source"""

    def __init__(
        self,
        source: str,
        strict_metric_keys: Optional[bool] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.source = source
        self.strict_metric_keys = strict_metric_keys
        self.client = client
        self.last_error: Optional[ConfigLoadError] = None
        self._active: Optional[RuleCatalog] = None
        self._reload_lock = threading.Lock()

    def snapshot(self) -> RuleCatalog:
        """Currently active catalog; loads on first use"""
        catalog = self._active
        if catalog is None:
            return self.reload()
        return catalog

    @property
    def version(self) -> str:
        return self.snapshot().version

    def reload(self, source: Optional[str] = None) -> RuleCatalog:
        """
        Re-read the source and publish the result.

        A new `source` becomes the store's source only once it loads. On
        failure the previously active catalog stays in place, or the
        built-in default is served when nothing valid was ever loaded; the
        error is kept on `last_error`. Concurrent reloads are serialized;
        readers are never blocked.
        """
        with self._reload_lock:
            target = source or self.source
            previous = self._active

            try:
                catalog = load_catalog_strict(target, self.strict_metric_keys, self.client)
            except ConfigLoadError as e:
                self.last_error = e
                if previous is not None and not previous.is_fallback:
                    logger.error(
                        "Catalog reload failed, keeping active version",
                        extra={"source": target, "reason": e.reason, "catalog_version": previous.version},
                    )
                    record_catalog_load("kept_previous", False, len(previous.validation_warnings))
                    return previous

                logger.error(
                    "Catalog load failed",
                    extra={"source": target, "reason": e.reason},
                )
                catalog = default_catalog(reason=e.reason)
                _log_fallback(catalog)
                self._active = catalog
                record_catalog_load("fallback", True, len(catalog.validation_warnings))
                return catalog

            self.source = target
            self.last_error = None
            _log_loaded(catalog)
            self._active = catalog
            record_catalog_load("loaded", False, len(catalog.validation_warnings))
            return catalog
