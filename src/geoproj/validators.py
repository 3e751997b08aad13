"""
GeoProj — Input Validators
===========================
Static precondition checks run before anything reaches the PROJ
engine.

All methods raise an :class:`~geoproj.exceptions.InputValidationError`
(or subclass) rather than returning booleans, so call sites stay flat::

    Validators.assert_coordinate_dimensions(point)
    Validators.assert_directory_exists(search_path)
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Sequence

import numpy as np
import numpy.typing as npt

from geoproj.exceptions import ColumnNotFoundError, InputValidationError

if TYPE_CHECKING:
    import pandas as pd

MIN_DIMENSIONS = 2
MAX_DIMENSIONS = 4


class Validators:
    """Collection of static precondition checks.

    All methods are ``@staticmethod`` — this class is never instantiated.
    It exists purely as a logical namespace.
    """

    # ------------------------------------------------------------------
    # File-system checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_directory_exists(path: Path | str) -> None:
        """Assert that *path* is an existing directory.

        Args:
            path: Path to check (grid search path, data directory …).

        Raises:
            InputValidationError: If *path* does not exist or is not a
                directory.
        """
        path = Path(path)
        if not path.exists():
            raise InputValidationError(f"Directory not found: '{path}'.")
        if not path.is_dir():
            raise InputValidationError(
                f"Expected a directory but got a file: '{path}'."
            )

    @staticmethod
    def assert_directory_writable(path: Path | str) -> None:
        """Assert that *path* is a directory the engine can write grids into.

        Creates the directory (and any missing parents) if it does not
        yet exist.

        Args:
            path: Intended grid cache directory.

        Raises:
            InputValidationError: If the directory cannot be created.
        """
        path = Path(path)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise InputValidationError(
                f"Cannot use '{path}' as a cache directory: {exc}"
            ) from exc

    # ------------------------------------------------------------------
    # Coordinate checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_coordinate_dimensions(point: Sequence[float]) -> None:
        """Assert that *point* has between 2 and 4 components.

        Args:
            point: A coordinate tuple ``(x, y[, z[, t]])``.

        Raises:
            InputValidationError: If *point* is not a sequence or has the
                wrong number of components.

        Example::

            Validators.assert_coordinate_dimensions((2.0, 49.0))
        """
        try:
            size = len(point)
        except TypeError as exc:
            raise InputValidationError(
                f"Expected a coordinate sequence, got {type(point).__name__}."
            ) from exc
        if not MIN_DIMENSIONS <= size <= MAX_DIMENSIONS:
            raise InputValidationError(
                f"A coordinate needs {MIN_DIMENSIONS} to {MAX_DIMENSIONS} "
                f"components (x, y[, z[, t]]); got {size}."
            )

    @staticmethod
    def assert_uniform_dimensions(points: Sequence[Sequence[float]]) -> int:
        """Assert that every entry of *points* has the same dimensionality.

        Args:
            points: Batch of coordinate tuples.

        Returns:
            The shared number of components, or ``MIN_DIMENSIONS`` for an
            empty batch.

        Raises:
            InputValidationError: On the first tuple whose length differs
                from the first one, or that is itself invalid.
        """
        if len(points) == 0:
            return MIN_DIMENSIONS
        Validators.assert_coordinate_dimensions(points[0])
        expected = len(points[0])
        for i, point in enumerate(points):
            Validators.assert_coordinate_dimensions(point)
            if len(point) != expected:
                raise InputValidationError(
                    f"Ragged batch: entry {i} has {len(point)} components, "
                    f"expected {expected}."
                )
        return expected

    @staticmethod
    def assert_coordinate_array(array: npt.NDArray[np.floating]) -> None:
        """Assert that *array* is a writable ``(N, 2..4)`` float array.

        Args:
            array: Array to be transformed in place.

        Raises:
            InputValidationError: If the shape, dtype or writability
                does not allow in-place transformation.
        """
        if not isinstance(array, np.ndarray):
            raise InputValidationError(
                f"Expected a numpy array, got {type(array).__name__}."
            )
        if array.ndim != 2 or not MIN_DIMENSIONS <= array.shape[1] <= MAX_DIMENSIONS:
            raise InputValidationError(
                f"Coordinate arrays must have shape (N, {MIN_DIMENSIONS}..{MAX_DIMENSIONS}); "
                f"got {array.shape}."
            )
        if not np.issubdtype(array.dtype, np.floating):
            raise InputValidationError(
                f"Coordinate arrays must have a floating dtype; got {array.dtype}."
            )
        if not array.flags.writeable:
            raise InputValidationError("Coordinate array is read-only.")

    @staticmethod
    def assert_bounding_box(area: Sequence[float]) -> None:
        """Assert that *area* is a ``(west, south, east, north)`` box in degrees.

        ``west`` may exceed ``east`` (antimeridian crossing); ``south``
        may not exceed ``north``.

        Raises:
            InputValidationError: If *area* has the wrong length, holds
                non-finite values, or has latitudes out of range.
        """
        try:
            values = [float(v) for v in area]
        except (TypeError, ValueError) as exc:
            raise InputValidationError(
                f"Expected a (west, south, east, north) tuple, got {area!r}."
            ) from exc
        if len(values) != 4:
            raise InputValidationError(
                f"A bounding box needs 4 values (west, south, east, north); got {len(values)}."
            )
        if not np.isfinite(values).all():
            raise InputValidationError(f"Bounding box has non-finite values: {area!r}.")
        west, south, east, north = values
        if not -90.0 <= south <= north <= 90.0:
            raise InputValidationError(
                f"Bounding box latitudes must satisfy -90 <= south <= north <= 90; "
                f"got south={south}, north={north}."
            )
        if not (-180.0 <= west <= 180.0 and -180.0 <= east <= 180.0):
            raise InputValidationError(
                f"Bounding box longitudes must lie in [-180, 180]; got west={west}, east={east}."
            )

    # ------------------------------------------------------------------
    # Tabular data checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_columns_exist(
        df: pd.DataFrame,
        required_columns: Sequence[str],
    ) -> None:
        """Assert that all *required_columns* are present in *df*.

        Args:
            df: A ``pandas.DataFrame``.
            required_columns: Column names that must be present.

        Raises:
            ColumnNotFoundError: On the first missing column found.

        Example::

            Validators.assert_columns_exist(df, ["easting", "northing"])
        """
        available = list(df.columns)
        for col in required_columns:
            if col not in available:
                raise ColumnNotFoundError(col, available)
