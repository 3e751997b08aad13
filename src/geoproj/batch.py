"""
GeoProj — Coordinate Batch Adapter
===================================
Translates caller-side point collections into the flat float64 buffers
:class:`~geoproj.pipeline.TransformationPipeline` feeds to PROJ, and
writes the results back.

Supported inputs:

* any iterable of 2–4 component sequences → new list of tuples;
* ``(N, 2..4)`` float NumPy arrays → transformed in place;
* pandas DataFrames with named coordinate columns.

Classes:
    BatchReport              Immutable outcome of one batch call.
    CoordinateBatchAdapter   Front end over one pipeline.

Typical usage::

    import pandas as pd
    from geoproj import CoordinateBatchAdapter, ExecutionContext

    ctx = ExecutionContext.create()
    adapter = CoordinateBatchAdapter(ctx.pipeline_from("EPSG:32614", "EPSG:4326"))
    df, report = adapter.transform_dataframe(
        pd.read_csv("survey.csv"), x_col="easting", y_col="northing"
    )
    print(report.summary())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np
import numpy.typing as npt
import pandas as pd

from geoproj.exceptions import InputValidationError
from geoproj.pipeline import CoordinateTuple, TransformationPipeline
from geoproj.validators import Validators

logger = logging.getLogger("geoproj.batch")


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BatchReport:
    """Immutable outcome of a batch transformation.

    Attributes:
        rows_processed: Number of points handed to the engine.
        failed_indices: Positions whose results are non-finite.  Those
            entries still hold the engine output (``inf``/``nan``).
        label: Description of the pipeline that ran the batch.
    """

    rows_processed: int
    failed_indices: tuple[int, ...] = ()
    label: str = ""

    @property
    def rows_failed(self) -> int:
        return len(self.failed_indices)

    @property
    def ok(self) -> bool:
        """``True`` when every point converted."""
        return not self.failed_indices

    def summary(self) -> str:
        """Return a human-readable summary string for logging or display."""
        return (
            f"Transformed {self.rows_processed} rows "
            f"({self.rows_failed} failed) | {self.label}"
        )


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class CoordinateBatchAdapter:
    """Batch front end over a single :class:`TransformationPipeline`.

    Args:
        pipeline: The compiled pipeline every call delegates to.

    Example::

        adapter = CoordinateBatchAdapter(pipeline)
        out = adapter.transform_points([(2.0, 49.0), (3.0, 50.0)])
    """

    def __init__(self, pipeline: TransformationPipeline) -> None:
        self.pipeline: TransformationPipeline = pipeline

    def transform_points(
        self,
        points: Iterable[Sequence[float]],
        *,
        inverse: bool = False,
        radians: bool = False,
        errcheck: bool = False,
    ) -> list[CoordinateTuple]:
        """Transform an iterable of points into a new list of tuples.

        The input is not modified.  Failed points appear in the output
        with non-finite components at their original position.

        Raises:
            InputValidationError: If the points are ragged or malformed.
            CoordinateTransformError: With ``errcheck=True`` when any
                point fails.
        """
        batch = list(points)
        Validators.assert_uniform_dimensions(batch)
        out: list[CoordinateTuple] = [tuple(float(v) for v in point) for point in batch]
        self.pipeline.transform_batch(
            out, inverse=inverse, radians=radians, errcheck=errcheck
        )
        return out

    def transform_array(
        self,
        array: npt.NDArray[np.floating],
        *,
        inverse: bool = False,
        radians: bool = False,
        errcheck: bool = False,
    ) -> BatchReport:
        """Transform an ``(N, 2..4)`` float array in place.

        Returns:
            A :class:`BatchReport` for the call.
        """
        failed = self.pipeline.transform_batch(
            array, inverse=inverse, radians=radians, errcheck=errcheck
        )
        return BatchReport(len(array), tuple(failed), self.pipeline.label)

    def transform_dataframe(
        self,
        df: pd.DataFrame,
        x_col: str,
        y_col: str,
        z_col: str | None = None,
        t_col: str | None = None,
        *,
        inverse: bool = False,
        radians: bool = False,
        errcheck: bool = False,
        inplace: bool = False,
    ) -> tuple[pd.DataFrame, BatchReport]:
        """Transform coordinate columns of a DataFrame.

        Cells that are null or non-numeric are coerced to NaN and reported
        as failed rows.  Rows are never dropped, so the frame keeps its
        index and ordering.

        Args:
            df: Input frame.
            x_col: Column holding X / longitude / easting.
            y_col: Column holding Y / latitude / northing.
            z_col: Optional height column.
            t_col: Optional time column (requires *z_col*).
            inverse: Transform from target to source instead.
            radians: See :meth:`TransformationPipeline.transform`.
            errcheck: Raise if any row fails (results are written first).
            inplace: Overwrite *df* instead of working on a copy.

        Returns:
            ``(frame, report)`` — the transformed frame (``df`` itself
            when *inplace*) and a :class:`BatchReport`.

        Raises:
            ColumnNotFoundError: If a named column is missing.
            InputValidationError: If *t_col* is given without *z_col*.
        """
        if t_col is not None and z_col is None:
            raise InputValidationError("A time column needs a height column (z_col).")
        columns = [c for c in (x_col, y_col, z_col, t_col) if c is not None]
        Validators.assert_columns_exist(df, columns)

        out = df if inplace else df.copy()
        buffer = np.empty((len(out), len(columns)), dtype=np.float64)
        for i, column in enumerate(columns):
            buffer[:, i] = pd.to_numeric(out[column], errors="coerce").to_numpy(dtype=np.float64)

        try:
            failed = self.pipeline.transform_batch(
                buffer, inverse=inverse, radians=radians, errcheck=errcheck
            )
        finally:
            for i, column in enumerate(columns):
                out[column] = buffer[:, i]

        report = BatchReport(len(out), tuple(failed), self.pipeline.label)
        if report.ok:
            logger.info(report.summary())
        else:
            logger.warning(report.summary())
        return out, report

    @staticmethod
    def failed_mask(array: npt.ArrayLike) -> npt.NDArray[np.bool_]:
        """Return a boolean mask of rows holding any non-finite component."""
        values = np.asarray(array, dtype=np.float64)
        if values.ndim == 1:
            values = values.reshape(1, -1)
        return ~np.isfinite(values).all(axis=1)
