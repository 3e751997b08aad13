"""
GeoProj — Engine Configuration
===============================
Process-wide settings forwarded verbatim to the PROJ engine, plus the
console logging setup used by applications embedding :mod:`geoproj`.

PROJ keeps grid search paths, the network switch, the grid cache
directory and the CA bundle in process-global state shared by every
context.  :func:`configure_engine` applies them once; it affects all
contexts and pipelines created afterwards, and there is no teardown.

Typical usage::

    from pathlib import Path
    from geoproj.config import EngineConfig, configure_engine, configure_logging

    configure_logging(verbose=True)
    configure_engine(
        EngineConfig(
            search_paths=(Path("/opt/grids"),),
            network_enabled=True,
            cache_directory=Path("~/.cache/proj").expanduser(),
        )
    )
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path

from pyproj import datadir, network

from geoproj.errors import ProjErrorCode
from geoproj.exceptions import ContextMisuseError, NetworkResourceUnavailableError
from geoproj.validators import Validators

# ---------------------------------------------------------------------------
# Package root logger; every module logs to a ``geoproj.<module>`` child.
# ---------------------------------------------------------------------------
logger = logging.getLogger("geoproj")

# Environment variable PROJ reads for the user-writable grid cache.
CACHE_DIRECTORY_ENV = "PROJ_USER_WRITABLE_DIRECTORY"

_CONFIG_LOCK = threading.Lock()
_ENGINE_CONFIG: EngineConfig | None = None


@dataclass(frozen=True)
class EngineConfig:
    """Process-wide PROJ settings.

    Attributes:
        search_paths: Extra directories searched for ``proj.db`` and grid
                      files, appended after PROJ's defaults.
        network_enabled: Whether missing grids may be fetched from the
                         PROJ CDN.  ``None`` leaves the engine default
                         (the ``PROJ_NETWORK`` environment variable).
        cache_directory: Directory where fetched grids are cached.
                         ``None`` keeps PROJ's user data directory.
                         PROJ resolves this directory once per engine
                         context and then caches it, so it only takes
                         effect when configured before the first grid
                         lookup.
        ca_bundle_path: CA bundle used for HTTPS grid fetches.
    """

    search_paths: tuple[Path, ...] = ()
    network_enabled: bool | None = None
    cache_directory: Path | None = None
    ca_bundle_path: Path | None = None


def configure_engine(config: EngineConfig) -> EngineConfig:
    """Apply *config* to the PROJ engine, once per process.

    Calling again with an identical config is a no-op.  Calling with a
    different one raises, because contexts and pipelines created in the
    meantime were built under the first settings.

    Args:
        config: Settings to forward.

    Returns:
        The active :class:`EngineConfig`.

    Raises:
        ContextMisuseError: If the engine was already configured
            differently.
        InputValidationError: If a search path is missing or the cache
            directory cannot be created.
        NetworkResourceUnavailableError: If networking was requested but
            the PROJ build does not support it.
    """
    global _ENGINE_CONFIG

    with _CONFIG_LOCK:
        if _ENGINE_CONFIG is not None:
            if _ENGINE_CONFIG == config:
                return _ENGINE_CONFIG
            raise ContextMisuseError(
                ProjErrorCode.OTHER_API_MISUSE,
                "PROJ engine is already configured; configuration is init-once "
                f"(active: {_ENGINE_CONFIG!r}).",
            )

        for path in config.search_paths:
            Validators.assert_directory_exists(path)
            datadir.append_data_dir(str(path))
            logger.debug("Appended PROJ search path %s", path)

        if config.cache_directory is not None:
            apply_cache_directory(config.cache_directory)

        if config.ca_bundle_path is not None:
            network.set_ca_bundle_path(str(config.ca_bundle_path))

        if config.network_enabled is not None:
            apply_network_enabled(config.network_enabled)

        _ENGINE_CONFIG = config
        logger.info("PROJ engine configured: %r", config)
        return config


def engine_config() -> EngineConfig | None:
    """Return the active :class:`EngineConfig`, or ``None`` if unset."""
    return _ENGINE_CONFIG


def apply_cache_directory(path: Path | str) -> None:
    """Forward *path* to PROJ as its grid cache directory."""
    Validators.assert_directory_writable(path)
    os.environ[CACHE_DIRECTORY_ENV] = str(path)
    logger.debug("PROJ grid cache directory set to %s", path)


def apply_network_enabled(enabled: bool) -> None:
    """Toggle PROJ network grid fetching.

    Raises:
        NetworkResourceUnavailableError: If *enabled* is ``True`` but the
            engine still reports networking disabled afterwards.
    """
    network.set_network_enabled(active=enabled)
    if enabled and not network.is_network_enabled():
        raise NetworkResourceUnavailableError(
            ProjErrorCode.OTHER_NETWORK_ERROR,
            "PROJ rejected enabling network access (built without network support?).",
        )
    logger.debug("PROJ network access %s", "enabled" if enabled else "disabled")


def configure_logging(verbose: bool = False) -> None:
    """Set up console logging for the ``geoproj`` logger tree.

    Attaches a :class:`logging.StreamHandler` to the ``geoproj`` logger
    if no handlers are already present.  Uses DEBUG level when
    *verbose* is ``True``, otherwise INFO.
    """
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            fmt="[%(asctime)s] %(levelname)-8s %(name)s — %(message)s",
            datefmt="%H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
