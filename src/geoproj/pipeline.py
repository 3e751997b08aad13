"""
GeoProj — Transformation Pipeline
==================================
Provides :class:`TransformationPipeline`, one compiled PROJ coordinate
operation bound to the :class:`~geoproj.context.ExecutionContext` that
built it.

The public contract is always conventional ``(x, y[, z[, t]])`` order
in and out.  When the compiled operation's source (or target) CRS
declares northing/latitude first, the first two components are swapped
before (or after) the engine call.  Axis orders, dimensionality and the
area of use are read once at construction and never re-derived.

Classes:
    TransformationPipeline   Forward / inverse / batch transforms.

Typical usage::

    from geoproj.context import ExecutionContext

    ctx = ExecutionContext.create()
    pipeline = ctx.pipeline_from("EPSG:4326", "EPSG:32631")
    easting, northing = pipeline.transform((2.0, 49.0))
    lon, lat = pipeline.transform_inverse((easting, northing))
"""

from __future__ import annotations

import logging
import math
import weakref
from typing import TYPE_CHECKING, Any, MutableSequence, Sequence, Tuple, Union

import numpy as np
import numpy.typing as npt
from pyproj import Transformer
from pyproj.aoi import AreaOfUse
from pyproj.enums import TransformDirection

from geoproj.axis import AxisOrder, axis_order_of, swap_xy
from geoproj.errors import ProjErrorCode
from geoproj.exceptions import ContextMisuseError, TransformError
from geoproj.validators import MAX_DIMENSIONS, MIN_DIMENSIONS, Validators

if TYPE_CHECKING:
    from geoproj.context import ExecutionContext

logger = logging.getLogger("geoproj.pipeline")

# (x, y[, z[, t]]), longitude/easting first.
CoordinateTuple = Tuple[float, ...]
CoordinateBatch = Union[MutableSequence[CoordinateTuple], npt.NDArray[np.floating]]


class TransformationPipeline:
    """A compiled, reusable coordinate operation.

    Instances are created by
    :meth:`ExecutionContext.pipeline_from <geoproj.context.ExecutionContext.pipeline_from>`
    and :meth:`~geoproj.context.ExecutionContext.pipeline_from_definition`;
    do not construct them directly.

    The pipeline keeps only a weak reference to its context.  Once the
    pipeline is closed, or its context is closed or garbage-collected,
    every transform call raises
    :class:`~geoproj.exceptions.ContextMisuseError`.

    Attributes:
        label: Short description of the CRS pair or definition.
        source_axis_order: Native axis order of the source CRS.
        target_axis_order: Native axis order of the target CRS.
        dimensions: Number of source components the operation expects
            (2, 3 or 4).  Plain PROJ pipelines without CRS metadata
            report 4 since they accept ``(x, y, z, t)``.
        area_of_use: Advisory region where the operation is valid, or
            ``None``.  Points outside it are still transformed.
        definition: PROJ definition of the compiled operation.
        description: Human-readable operation description.
        accuracy: Operation accuracy in metres, ``-1`` when unknown.
        has_inverse: Whether :meth:`transform_inverse` is supported.
    """

    def __init__(
        self,
        context: ExecutionContext,
        transformer: Transformer,
        *,
        label: str,
    ) -> None:
        self._context_ref: weakref.ref[ExecutionContext] = weakref.ref(context)
        self._transformer: Transformer | None = transformer
        self.label: str = label

        source_crs = transformer.source_crs
        target_crs = transformer.target_crs
        self.source_axis_order: AxisOrder = axis_order_of(source_crs)
        self.target_axis_order: AxisOrder = axis_order_of(target_crs)
        if source_crs is not None and source_crs.axis_info:
            self.dimensions: int = min(
                max(len(source_crs.axis_info), MIN_DIMENSIONS), MAX_DIMENSIONS
            )
        else:
            self.dimensions = MAX_DIMENSIONS

        self.area_of_use: AreaOfUse | None = transformer.area_of_use
        self.definition: str = transformer.definition
        self.description: str = transformer.description
        self.accuracy: float = transformer.accuracy
        self.has_inverse: bool = transformer.has_inverse

    # ------------------------------------------------------------------
    # Scalar transforms
    # ------------------------------------------------------------------

    def transform(self, point: Sequence[float], *, radians: bool = False) -> CoordinateTuple:
        """Transform one point from the source to the target CRS.

        Args:
            point: ``(x, y[, z[, t]])`` in the source CRS.
            radians: Geographic components are in radians instead of
                degrees (input for geographic sources, output for
                geographic targets).

        Returns:
            The transformed point, same number of components as *point*.

        Raises:
            CoordinateTransformError: If the engine reports an error or
                produces a non-finite component.
            InputValidationError: If *point* does not have 2–4 components.
        """
        return self._transform_point(point, inverse=False, radians=radians)

    def transform_inverse(
        self, point: Sequence[float], *, radians: bool = False
    ) -> CoordinateTuple:
        """Transform one point from the target back to the source CRS.

        Uses the same compiled operation as :meth:`transform`.
        """
        return self._transform_point(point, inverse=True, radians=radians)

    def _transform_point(
        self,
        point: Sequence[float],
        *,
        inverse: bool,
        radians: bool,
        index: int | None = None,
    ) -> CoordinateTuple:
        Validators.assert_coordinate_dimensions(point)
        components = [float(value) for value in point]
        result = self._run(
            components, inverse=inverse, radians=radians, errcheck=True, index=index
        )
        values = tuple(float(value) for value in result)
        if not all(math.isfinite(value) for value in values):
            context, _ = self._native()
            raise context._fail(
                ProjErrorCode.COORD_TRANSFM,
                f"Non-finite result {values} for input {tuple(components)}.",
                index=index,
            )
        return values

    # ------------------------------------------------------------------
    # Batch transforms
    # ------------------------------------------------------------------

    def transform_batch(
        self,
        points: CoordinateBatch,
        *,
        inverse: bool = False,
        radians: bool = False,
        errcheck: bool = False,
    ) -> list[int]:
        """Transform a batch of points in place, preserving order.

        *points* is either a mutable sequence of coordinate tuples (each
        entry is replaced by the transformed tuple) or a float NumPy
        array of shape ``(N, 2..4)`` (overwritten row by row).

        Points the engine cannot convert come back with non-finite
        components; their positions are returned.  There is no
        atomicity: every entry holds the engine's output afterwards,
        failed or not.

        Args:
            points: The batch to transform.
            inverse: Transform from target to source instead.
            radians: See :meth:`transform`.
            errcheck: Raise after writing results back if any point
                failed.

        Returns:
            Sorted indices of entries with non-finite results; empty
            when every point converted.

        Raises:
            CoordinateTransformError: Only with ``errcheck=True``; carries
                the first failing ``index`` and the engine's message for
                that point.
            InputValidationError: If the batch is ragged or has the wrong
                shape.
        """
        if isinstance(points, np.ndarray):
            Validators.assert_coordinate_array(points)
            buffer = points
        else:
            dims = Validators.assert_uniform_dimensions(points)
            buffer = np.array(points, dtype=np.float64).reshape(len(points), dims)

        if len(buffer) == 0:
            return []

        original = buffer.copy() if errcheck else None
        results = self.transform_columns(
            *(buffer[:, i] for i in range(buffer.shape[1])),
            inverse=inverse,
            radians=radians,
        )
        for i, column in enumerate(results):
            buffer[:, i] = column

        if not isinstance(points, np.ndarray):
            for i, row in enumerate(buffer):
                points[i] = tuple(float(value) for value in row)

        failed = np.flatnonzero(~np.isfinite(buffer).all(axis=1)).tolist()
        if failed:
            logger.warning(
                "%d of %d point(s) could not be transformed by %s (first at index %d).",
                len(failed),
                len(buffer),
                self.label,
                failed[0],
            )
            if errcheck and original is not None:
                raise self._diagnose(original[failed[0]], failed[0], inverse, radians)
        return failed

    def transform_columns(
        self,
        xs: npt.ArrayLike,
        ys: npt.ArrayLike,
        zs: npt.ArrayLike | None = None,
        ts: npt.ArrayLike | None = None,
        *,
        inverse: bool = False,
        radians: bool = False,
    ) -> list[npt.NDArray[np.float64]]:
        """Transform flat per-axis buffers and return new ones.

        The low-level primitive behind :meth:`transform_batch` and
        :class:`~geoproj.batch.CoordinateBatchAdapter`.  Failed points
        come back as ``inf``; no exception is raised for them.

        Returns:
            ``[xs, ys]`` plus ``zs`` and ``ts`` when they were given.
        """
        if ts is not None and zs is None:
            zs = np.zeros_like(np.asarray(xs, dtype=np.float64))
        columns = [
            np.ascontiguousarray(column, dtype=np.float64)
            for column in (xs, ys, zs, ts)
            if column is not None
        ]
        results = self._run(columns, inverse=inverse, radians=radians, errcheck=False)
        return [np.asarray(column, dtype=np.float64) for column in results]

    # ------------------------------------------------------------------
    # Engine access
    # ------------------------------------------------------------------

    def _run(
        self,
        components: list[Any],
        *,
        inverse: bool,
        radians: bool,
        errcheck: bool,
        index: int | None = None,
    ) -> list[Any]:
        context, transformer = self._native()
        if inverse:
            in_order, out_order = self.target_axis_order, self.source_axis_order
            direction = TransformDirection.INVERSE
        else:
            in_order, out_order = self.source_axis_order, self.target_axis_order
            direction = TransformDirection.FORWARD

        if in_order is AxisOrder.REVERSED:
            components = swap_xy(components)
        result = context._invoke(
            transformer.transform,
            *components,
            radians=radians,
            errcheck=errcheck,
            direction=direction,
            index=index,
        )
        result = list(result)
        if out_order is AxisOrder.REVERSED:
            result = swap_xy(result)
        return result

    def _diagnose(
        self,
        point: npt.NDArray[np.float64],
        index: int,
        inverse: bool,
        radians: bool,
    ) -> TransformError:
        """Re-run one failed batch entry alone to capture the engine message."""
        try:
            self._transform_point(
                tuple(point.tolist()), inverse=inverse, radians=radians, index=index
            )
        except TransformError as exc:
            return exc
        context, _ = self._native()
        return context._fail(
            ProjErrorCode.COORD_TRANSFM,
            "Point failed in batch but converted on its own.",
            index=index,
        )

    def _native(self) -> tuple[ExecutionContext, Transformer]:
        context = self._context_ref()
        if self._transformer is None or context is None or context.closed:
            raise ContextMisuseError(
                ProjErrorCode.OTHER_API_MISUSE,
                f"Pipeline {self.label!r} used after it or its context was closed.",
            )
        return context, self._transformer

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._transformer is None

    def _release(self) -> None:
        if self._transformer is not None:
            self._transformer = None
            logger.debug("Released pipeline %s", self.label)

    def close(self) -> None:
        """Destroy the compiled operation.  Safe to call more than once."""
        context = self._context_ref()
        if context is not None:
            context._forget(self)
        self._release()

    def __enter__(self) -> TransformationPipeline:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "usable"
        return f"{self.__class__.__name__}({self.label!r}, {state})"
