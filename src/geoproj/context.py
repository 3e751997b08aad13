"""
GeoProj — Execution Context
============================
Provides :class:`ExecutionContext`, the owner of every call into the
PROJ engine made on behalf of its pipelines.

A context serialises engine access behind its own re-entrant lock and
keeps a single-entry error slot: a failing call records its
``(code, message)`` pair and the slot is consumed and translated before
the lock is released, so a later call can never overwrite the message
first.  Pipelines hold only a weak reference to the context that built
them; closing the context destroys them.

Two sharing policies are supported:

* one context per thread — :func:`thread_context` lazily creates it;
* one shared context — every call is serialised by the context lock.

Typical usage::

    from geoproj.context import ExecutionContext

    with ExecutionContext.create() as ctx:
        pipeline = ctx.pipeline_from("EPSG:4326", "EPSG:3857")
        x, y = pipeline.transform((2.0, 49.0))
"""

from __future__ import annotations

import logging
import threading
import weakref
from pathlib import Path
from typing import Any, Callable, TypeVar, Union

from pyproj import CRS, Transformer, datadir
from pyproj.aoi import AreaOfInterest
from pyproj.exceptions import DataDirError, ProjError

from geoproj.config import apply_cache_directory, apply_network_enabled
from geoproj.errors import ProjErrorCode, code_for_exception, translate
from geoproj.exceptions import ContextMisuseError, TransformError
from geoproj.pipeline import TransformationPipeline
from geoproj.validators import Validators

logger = logging.getLogger("geoproj.context")

# Anything pyproj's ``CRS.from_user_input`` accepts: "EPSG:4326", WKT,
# PROJ strings, CRS names, or a ready-made ``pyproj.CRS``.
CrsSpec = Union[str, CRS]
BoundingBox = tuple[float, float, float, float]

R = TypeVar("R")


class ExecutionContext:
    """Owner of serialised access to the PROJ engine.

    Create with :meth:`create` (or ``ExecutionContext()``); creation
    never fails.  A broken installation (e.g. no ``proj.db``) surfaces
    as a :class:`~geoproj.exceptions.TransformError` on the first real
    operation.

    Attributes:
        network_enabled: Network setting last applied through this
            context, or ``None`` if it never touched the switch.
        cache_directory: Grid cache directory last applied through this
            context.
        search_paths: Grid/data search paths added through this context.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._error_slot: tuple[ProjErrorCode, str] | None = None
        self._pipelines: weakref.WeakSet[TransformationPipeline] = weakref.WeakSet()
        self._closed = False

        self.network_enabled: bool | None = None
        self.cache_directory: Path | None = None
        self.search_paths: tuple[Path, ...] = ()

        logger.debug("Created context 0x%x", id(self))

    @classmethod
    def create(cls) -> ExecutionContext:
        """Return a new, independent context."""
        return cls()

    # ------------------------------------------------------------------
    # Engine configuration
    # ------------------------------------------------------------------

    def enable_network(
        self,
        enabled: bool,
        cache_directory: Path | str | None = None,
    ) -> None:
        """Allow or forbid fetching missing grids from the PROJ CDN.

        The switch and the cache directory are forwarded verbatim to
        PROJ, which keeps them process-wide: they affect every context
        and every pipeline built afterwards.

        Args:
            enabled: ``True`` to allow network grid fetches.
            cache_directory: Optional directory for fetched grids.
                Created if missing.  PROJ reads it once per engine
                context, when it first resolves its user-writable
                directory, so setting it after grids were looked up may
                have no effect.  A warning is logged when this context
                already compiled pipelines.

        Raises:
            NetworkResourceUnavailableError: If PROJ rejects enabling
                the network (built without network support).
            InputValidationError: If *cache_directory* cannot be created.
        """
        with self._lock:
            self._ensure_open()
            if cache_directory is not None:
                if self._pipelines:
                    logger.warning(
                        "Grid cache directory set to %s after %d pipeline(s) were "
                        "compiled; PROJ may keep using the directory it resolved first.",
                        cache_directory,
                        len(self._pipelines),
                    )
                apply_cache_directory(cache_directory)
                self.cache_directory = Path(cache_directory)
            apply_network_enabled(enabled)
            self.network_enabled = enabled

    def add_search_paths(self, *paths: Path | str) -> None:
        """Append directories to PROJ's data/grid search path.

        Raises:
            InputValidationError: If a path is not an existing directory.
        """
        with self._lock:
            self._ensure_open()
            for path in paths:
                Validators.assert_directory_exists(path)
            for path in paths:
                self._invoke(datadir.append_data_dir, str(path), construction=True)
                logger.debug("Appended PROJ search path %s", path)
            self.search_paths = self.search_paths + tuple(Path(p) for p in paths)

    # ------------------------------------------------------------------
    # Pipeline factory
    # ------------------------------------------------------------------

    def pipeline_from(
        self,
        source_crs: CrsSpec,
        target_crs: CrsSpec,
        *,
        area_of_interest: AreaOfInterest | BoundingBox | None = None,
        accuracy: float | None = None,
        allow_ballpark: bool | None = None,
    ) -> TransformationPipeline:
        """Compile a transformation between two CRSs.

        Input and output are always ``(x, y[, z[, t]])``: longitude /
        easting first, whatever axis order the CRS definitions declare.

        Args:
            source_crs: Source CRS (authority code, WKT, PROJ string …).
            target_crs: Target CRS.
            area_of_interest: Region used to choose among candidate
                operations, as a :class:`pyproj.aoi.AreaOfInterest` or a
                ``(west, south, east, north)`` tuple in degrees.  For an
                area crossing the antimeridian ``west`` is greater than
                ``east``.
            accuracy: Minimum desired accuracy in metres.
            allow_ballpark: Whether ballpark (datum-ignoring) operations
                are acceptable.

        Returns:
            A usable :class:`TransformationPipeline` bound to this context.

        Raises:
            InvalidCRSError: If either CRS cannot be recognised.
            PipelineConstructionError: If no operation could be compiled.
            InputValidationError: If *area_of_interest* is not a valid
                ``(west, south, east, north)`` box.
            ContextMisuseError: If the context is closed.
        """
        aoi = _as_area_of_interest(area_of_interest)
        label = f"{_describe(source_crs)} -> {_describe(target_crs)}"
        with self._lock:
            transformer = self._invoke(
                Transformer.from_crs,
                source_crs,
                target_crs,
                always_xy=False,
                area_of_interest=aoi,
                accuracy=accuracy,
                allow_ballpark=allow_ballpark,
                construction=True,
            )
            return self._adopt(transformer, label)

    def pipeline_from_definition(self, pipeline_string: str) -> TransformationPipeline:
        """Compile a single PROJ pipeline / operation definition.

        Axis order follows the definition itself unless the compiled
        operation carries CRS metadata that says otherwise.

        Raises:
            InvalidCRSError: If the definition cannot be parsed.
            PipelineConstructionError: If it parses but cannot be
                instantiated (e.g. a required grid is missing).
        """
        with self._lock:
            transformer = self._invoke(
                Transformer.from_pipeline, pipeline_string, construction=True
            )
            return self._adopt(transformer, _describe(pipeline_string))

    def _adopt(self, transformer: Transformer, label: str) -> TransformationPipeline:
        pipeline = self._invoke(
            TransformationPipeline, self, transformer, label=label, construction=True
        )
        self._pipelines.add(pipeline)
        logger.debug(
            "Compiled pipeline %s (axes %s/%s, %dD)",
            label,
            pipeline.source_axis_order.value,
            pipeline.target_axis_order.value,
            pipeline.dimensions,
        )
        return pipeline

    # ------------------------------------------------------------------
    # Serialised engine access
    # ------------------------------------------------------------------

    def _invoke(
        self,
        call: Callable[..., R],
        *args: Any,
        construction: bool = False,
        index: int | None = None,
        **kwargs: Any,
    ) -> R:
        """Run *call* against the engine under the context lock.

        A pyproj failure is recorded in the error slot and translated
        before the lock is released.
        """
        with self._lock:
            self._ensure_open()
            try:
                return call(*args, **kwargs)
            except (ProjError, DataDirError) as exc:
                self._error_slot = (
                    code_for_exception(exc, construction=construction),
                    str(exc),
                )
                raise self._take_error(construction=construction, index=index) from exc

    def _fail(
        self,
        code: ProjErrorCode,
        message: str,
        *,
        construction: bool = False,
        index: int | None = None,
    ) -> TransformError:
        """Record a failure detected by the wrapper itself and translate it."""
        with self._lock:
            self._error_slot = (code, message)
            return self._take_error(construction=construction, index=index)

    def _take_error(
        self,
        *,
        construction: bool = False,
        index: int | None = None,
    ) -> TransformError:
        """Consume the error slot and return the translated error.

        Raises:
            ContextMisuseError: If no failing call filled the slot.
        """
        with self._lock:
            if self._error_slot is None:
                raise ContextMisuseError(
                    ProjErrorCode.OTHER_API_MISUSE,
                    "Error state read without a preceding failing call.",
                )
            code, message = self._error_slot
            self._error_slot = None
            return translate(code, message, construction=construction, index=index)

    def _ensure_open(self) -> None:
        if self._closed:
            raise ContextMisuseError(
                ProjErrorCode.OTHER_API_MISUSE, f"{self!r} is closed."
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def live_pipelines(self) -> int:
        """Number of pipelines built by this context that are still open."""
        return sum(1 for p in self._pipelines if not p.closed)

    def _forget(self, pipeline: TransformationPipeline) -> None:
        with self._lock:
            self._pipelines.discard(pipeline)

    def close(self) -> None:
        """Destroy every pipeline built here, then the context itself.

        Calling :meth:`close` more than once is harmless.
        """
        with self._lock:
            if self._closed:
                return
            pipelines = list(self._pipelines)
            for pipeline in pipelines:
                pipeline._release()
            self._pipelines = weakref.WeakSet()
            self._closed = True
        logger.debug("Closed context 0x%x (%d pipeline(s) released)", id(self), len(pipelines))

    def __enter__(self) -> ExecutionContext:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"{self.__class__.__name__}(id=0x{id(self):x}, {state})"


# ---------------------------------------------------------------------------
# Per-thread default context
# ---------------------------------------------------------------------------

_THREAD_STATE = threading.local()


def thread_context() -> ExecutionContext:
    """Return the calling thread's private context, creating it on first use.

    A closed context is replaced by a fresh one on the next call.
    """
    ctx: ExecutionContext | None = getattr(_THREAD_STATE, "context", None)
    if ctx is None or ctx.closed:
        ctx = ExecutionContext.create()
        _THREAD_STATE.context = ctx
    return ctx


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _as_area_of_interest(
    area: AreaOfInterest | BoundingBox | None,
) -> AreaOfInterest | None:
    if area is None or isinstance(area, AreaOfInterest):
        return area
    Validators.assert_bounding_box(area)
    west, south, east, north = (float(v) for v in area)
    return AreaOfInterest(
        west_lon_degree=west,
        south_lat_degree=south,
        east_lon_degree=east,
        north_lat_degree=north,
    )


def _describe(spec: CrsSpec) -> str:
    text = " ".join(str(spec).split())
    return text if len(text) <= 60 else text[:57] + "..."
