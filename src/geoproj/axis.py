"""
GeoProj — Axis Normalizer
==========================
Decides, from compiled CRS metadata, whether PROJ's native axis order
for a CRS is the conventional ``(x, y)`` / ``(easting, northing)`` /
``(longitude, latitude)`` order or the reversed ``(y, x)`` order that
many authority definitions use (EPSG:4326 lists latitude first).

The decision is made once per CRS when a pipeline is built, from the
:class:`pyproj.CRS` objects attached to the compiled transformer, so it
is the same whether the caller supplied an authority code, WKT or a
PROJ string.
"""

from __future__ import annotations

from enum import Enum
from typing import Sequence, TypeVar

from pyproj import CRS

_NORTHING = frozenset({"north", "south"})
_EASTING = frozenset({"east", "west"})

T = TypeVar("T")


class AxisOrder(Enum):
    """Native order of the first two coordinate components of a CRS."""

    CONVENTIONAL = "xy"
    REVERSED = "yx"


def axis_order_of(crs: CRS | None) -> AxisOrder:
    """Return the native horizontal axis order of *crs*.

    Only positive evidence reverses: the first axis must point
    north/south and the second east/west.  Missing CRS metadata, fewer
    than two axes, or unusual directions (polar ``"south"``/``"south"``
    pairs, ``"geocentricX"`` …) all give
    :attr:`AxisOrder.CONVENTIONAL`.

    Args:
        crs: The source or target CRS of a compiled transformer, or
             ``None`` when the transformer carries no CRS metadata
             (plain PROJ pipelines).

    Returns:
        The :class:`AxisOrder` of *crs*.

    Example::

        >>> axis_order_of(CRS.from_epsg(4326))
        <AxisOrder.REVERSED: 'yx'>
        >>> axis_order_of(CRS.from_epsg(3857))
        <AxisOrder.CONVENTIONAL: 'xy'>
    """
    if crs is None:
        return AxisOrder.CONVENTIONAL

    axes = crs.axis_info
    if len(axes) < 2:
        return AxisOrder.CONVENTIONAL

    first = (axes[0].direction or "").lower()
    second = (axes[1].direction or "").lower()
    if first in _NORTHING and second in _EASTING:
        return AxisOrder.REVERSED
    return AxisOrder.CONVENTIONAL


def swap_xy(components: Sequence[T]) -> list[T]:
    """Return *components* with the first two entries exchanged.

    Works for scalar tuples and for per-axis column lists alike.
    """
    swapped = list(components)
    swapped[0], swapped[1] = swapped[1], swapped[0]
    return swapped
