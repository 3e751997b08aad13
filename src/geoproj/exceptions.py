"""
GeoProj — Custom Exception Hierarchy
=====================================
Every failure raised by :mod:`geoproj` derives from
:class:`GeoProjError` so callers can catch at the level of granularity
they need.

Hierarchy::

    GeoProjError                              ← catch-all base
    ├── InputValidationError                  ← bad caller input (shape, paths)
    │   └── ColumnNotFoundError               ← DataFrame column missing
    └── TransformError                        ← engine failure (kind + code)
        ├── InvalidCRSError                   ← CRS text not recognised
        ├── PipelineConstructionError         ← no operation could be compiled
        ├── CoordinateTransformError          ← a point failed numerically
        ├── NetworkResourceUnavailableError   ← grid needed network access
        └── ContextMisuseError                ← wrapper contract violation

Usage::

    from geoproj.exceptions import InvalidCRSError

    try:
        ctx.pipeline_from("EPSG:999999999", "EPSG:4326")
    except InvalidCRSError as exc:
        print(exc.code, exc.message)
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from geoproj.errors import ProjErrorCode


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class GeoProjError(Exception):
    """Base exception for all :mod:`geoproj` errors.

    Args:
        message: Human-readable description of the error.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class InputValidationError(GeoProjError):
    """Raised when caller-supplied coordinates or paths are malformed.

    This covers problems detected before anything reaches the engine:
    tuples with the wrong number of components, ragged batches, missing
    directories.
    """


class ColumnNotFoundError(InputValidationError):
    """Raised when an expected column is absent from a DataFrame.

    Args:
        column: The name of the missing column.
        available: Column names that ARE present, used to build a
                   helpful error message.

    Example::

        raise ColumnNotFoundError("easting", df.columns.tolist())
    """

    def __init__(self, column: str, available: list[str]) -> None:
        available_str = ", ".join(f"'{c}'" for c in available)
        super().__init__(
            f"Column '{column}' not found. Available columns: {available_str}"
        )
        self.column: str = column
        self.available: list[str] = available


# ---------------------------------------------------------------------------
# Engine failures
# ---------------------------------------------------------------------------


class TransformErrorKind(str, Enum):
    """Tag identifying which branch of the taxonomy an error belongs to."""

    INVALID_CRS = "invalid_crs"
    PIPELINE_CONSTRUCTION_FAILED = "pipeline_construction_failed"
    COORDINATE_TRANSFORM_FAILED = "coordinate_transform_failed"
    NETWORK_RESOURCE_UNAVAILABLE = "network_resource_unavailable"
    CONTEXT_MISUSE = "context_misuse"


class TransformError(GeoProjError):
    """Raised when the PROJ engine reports a failure.

    Instances are produced by :func:`geoproj.errors.translate` from the
    engine's numeric code and the message captured right after the
    failing call.

    Args:
        code: PROJ numeric error code (see
              :class:`~geoproj.errors.ProjErrorCode`).
        message: Engine message captured at the moment of failure.
        index: Position of the failing point inside a batch, or
               ``None`` for scalar calls and construction failures.

    Attributes:
        kind: The :class:`TransformErrorKind` tag of the subclass.
    """

    kind: TransformErrorKind = TransformErrorKind.COORDINATE_TRANSFORM_FAILED

    def __init__(
        self,
        code: ProjErrorCode | int,
        message: str,
        *,
        index: int | None = None,
    ) -> None:
        super().__init__(message)
        self.code: int = int(code)
        self.index: int | None = index

    def __str__(self) -> str:
        where = f" at index {self.index}" if self.index is not None else ""
        return f"[{self.kind.value} {self.code}]{where} {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(code={self.code}, "
            f"message={self.message!r}, index={self.index!r})"
        )


class InvalidCRSError(TransformError):
    """Raised when a CRS or pipeline definition cannot be parsed.

    Example::

        raise InvalidCRSError(ProjErrorCode.INVALID_OP, "crs not found")
    """

    kind = TransformErrorKind.INVALID_CRS


class PipelineConstructionError(TransformError):
    """Raised when both CRSs are valid but no operation links them.

    Common causes: a required grid file is missing, or the
    dimensionality of the two systems is incompatible.
    """

    kind = TransformErrorKind.PIPELINE_CONSTRUCTION_FAILED


class CoordinateTransformError(TransformError):
    """Raised when a specific point cannot be transformed.

    Out-of-domain input, singular points (e.g. the antipode of an
    azimuthal projection's centre) and points outside a required grid
    all land here.
    """

    kind = TransformErrorKind.COORDINATE_TRANSFORM_FAILED


class NetworkResourceUnavailableError(TransformError):
    """Raised when a grid is needed from the network but cannot be fetched.

    Either networking is disabled for the engine or the remote fetch
    failed.  Retrying is left to the caller.
    """

    kind = TransformErrorKind.NETWORK_RESOURCE_UNAVAILABLE


class ContextMisuseError(TransformError):
    """Raised on an internal contract violation.

    Examples: reading the error slot when no call has failed, using a
    pipeline after it (or its context) was closed, or reconfiguring the
    engine after it was initialised.  This indicates a bug in the
    calling code or in :mod:`geoproj` itself, not bad coordinates.
    """

    kind = TransformErrorKind.CONTEXT_MISUSE
