"""
Tests — Transformation Pipeline
================================
Unit tests for :class:`~geoproj.pipeline.TransformationPipeline`.

Test strategy:
- Use real-world CRS pairs whose results are well known (Paris in Web
  Mercator, San Francisco in State Plane feet/metres).
- Check properties rather than single values where possible: round
  trips, axis-order invariance, batch/scalar equivalence.
- Use a north-polar azimuthal projection to produce a genuinely
  unconvertible point (the south pole).
"""

from __future__ import annotations

import math
from typing import Iterator

import numpy as np
import pytest
from pyproj import network

from geoproj.axis import AxisOrder
from geoproj.context import ExecutionContext
from geoproj.exceptions import (
    CoordinateTransformError,
    InputValidationError,
    PipelineConstructionError,
)
from geoproj.pipeline import TransformationPipeline

NORTH_POLAR_LAEA = (
    "+proj=laea +lat_0=90 +lon_0=0 +x_0=0 +y_0=0 +datum=WGS84 +units=m +no_defs +type=crs"
)
UTM31_DEFINITION = (
    "+proj=pipeline "
    "+step +proj=unitconvert +xy_in=deg +xy_out=rad "
    "+step +proj=utm +zone=31 +ellps=WGS84"
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def ctx() -> Iterator[ExecutionContext]:
    """Yield a fresh context and close it afterwards."""
    context = ExecutionContext.create()
    yield context
    context.close()


@pytest.fixture()
def web_mercator(ctx: ExecutionContext) -> TransformationPipeline:
    """WGS84 (lat/lon by definition) → Web Mercator."""
    return ctx.pipeline_from("EPSG:4326", "EPSG:3857")


@pytest.fixture()
def utm31(ctx: ExecutionContext) -> TransformationPipeline:
    """WGS84 → UTM zone 31N."""
    return ctx.pipeline_from("EPSG:4326", "EPSG:32631")


@pytest.fixture()
def polar(ctx: ExecutionContext) -> TransformationPipeline:
    """WGS84 → north-polar Lambert azimuthal equal-area (south pole singular)."""
    return ctx.pipeline_from("EPSG:4326", NORTH_POLAR_LAEA)


@pytest.fixture()
def network_off() -> Iterator[None]:
    """Disable PROJ network grid fetches for the duration of a test."""
    previous = network.is_network_enabled()
    network.set_network_enabled(active=False)
    yield
    network.set_network_enabled(active=previous)


# ---------------------------------------------------------------------------
# Scalar transforms
# ---------------------------------------------------------------------------


class TestScalarTransform:
    """Forward and inverse single-point transforms."""

    def test_paris_to_web_mercator(self, web_mercator: TransformationPipeline) -> None:
        x, y = web_mercator.transform((2.0, 49.0))
        assert x == pytest.approx(222638.98, abs=0.01)
        assert y == pytest.approx(6274861.39, abs=0.01)

    def test_inverse_uses_same_pipeline(self, web_mercator: TransformationPipeline) -> None:
        lon, lat = web_mercator.transform_inverse((222638.98, 6274861.39))
        assert lon == pytest.approx(2.0, abs=1e-6)
        assert lat == pytest.approx(49.0, abs=1e-6)

    def test_state_plane_feet_to_metres(self, ctx: ExecutionContext) -> None:
        pipeline = ctx.pipeline_from("EPSG:2230", "EPSG:26946")
        x, y = pipeline.transform((4760096.421921, 3744293.729449))
        assert x == pytest.approx(1450880.29, rel=1e-5)
        assert y == pytest.approx(1141263.01, rel=1e-5)

    def test_geographic_input_is_lon_lat(self, ctx: ExecutionContext) -> None:
        pipeline = ctx.pipeline_from("EPSG:4326", "EPSG:2230")
        x, y = pipeline.transform((-115.797615, 37.2647978))
        assert x == pytest.approx(6693625.67, rel=1e-5)
        assert y == pytest.approx(3497301.59, rel=1e-5)

    def test_three_components_preserved(self, ctx: ExecutionContext) -> None:
        pipeline = ctx.pipeline_from("EPSG:4979", "EPSG:4978")
        result = pipeline.transform((0.0, 0.0, 0.0))
        assert len(result) == 3
        assert result == pytest.approx((6378137.0, 0.0, 0.0), abs=1e-3)

    def test_singular_point_raises(self, polar: TransformationPipeline) -> None:
        with pytest.raises(CoordinateTransformError) as info:
            polar.transform((0.0, -90.0))
        assert info.value.index is None

    def test_recovers_after_failure(self, polar: TransformationPipeline) -> None:
        with pytest.raises(CoordinateTransformError):
            polar.transform((0.0, -90.0))
        x, y = polar.transform((0.0, 45.0))
        assert math.isfinite(x) and math.isfinite(y)

    def test_radians_input(self, utm31: TransformationPipeline) -> None:
        degrees = utm31.transform((2.0, 49.0))
        radians = utm31.transform((math.radians(2.0), math.radians(49.0)), radians=True)
        assert radians == pytest.approx(degrees, abs=1e-6)

    @pytest.mark.parametrize("point", [(1.0,), (1.0, 2.0, 3.0, 4.0, 5.0)])
    def test_bad_dimensions_rejected(
        self, web_mercator: TransformationPipeline, point: tuple[float, ...]
    ) -> None:
        with pytest.raises(InputValidationError):
            web_mercator.transform(point)


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class TestProperties:
    """Round trip, axis-order invariance, batch/scalar equivalence."""

    @pytest.mark.parametrize("point", [(2.0, 49.0), (0.5, 43.2), (5.9, 51.4)])
    def test_round_trip_geographic(
        self, utm31: TransformationPipeline, point: tuple[float, float]
    ) -> None:
        back = utm31.transform_inverse(utm31.transform(point))
        assert back == pytest.approx(point, abs=1e-7)

    def test_round_trip_projected(self, utm31: TransformationPipeline) -> None:
        point = (500_000.0, 5_427_000.0)
        back = utm31.transform(utm31.transform_inverse(point))
        assert back == pytest.approx(point, abs=1e-6)

    def test_axis_order_invariance(self, ctx: ExecutionContext) -> None:
        lat_first = ctx.pipeline_from("EPSG:4326", "EPSG:3857")
        lon_first = ctx.pipeline_from("OGC:CRS84", "EPSG:3857")
        assert lat_first.source_axis_order is AxisOrder.REVERSED
        assert lon_first.source_axis_order is AxisOrder.CONVENTIONAL
        assert lat_first.transform((2.0, 49.0)) == pytest.approx(
            lon_first.transform((2.0, 49.0)), abs=1e-6
        )

    def test_reversed_target_output_is_conventional(self, ctx: ExecutionContext) -> None:
        pipeline = ctx.pipeline_from("EPSG:3857", "EPSG:4326")
        assert pipeline.target_axis_order is AxisOrder.REVERSED
        lon, lat = pipeline.transform((222638.98, 6274861.39))
        assert lon == pytest.approx(2.0, abs=1e-6)
        assert lat == pytest.approx(49.0, abs=1e-6)

    def test_batch_matches_scalar(self, utm31: TransformationPipeline) -> None:
        points = [(2.0, 49.0), (1.0, 45.5), (4.25, 50.75), (3.0, 0.0)]
        expected = [utm31.transform(p) for p in points]
        batch = list(points)
        assert utm31.transform_batch(batch) == []
        for got, want in zip(batch, expected):
            assert got == pytest.approx(want, abs=1e-9)


# ---------------------------------------------------------------------------
# Batch transforms
# ---------------------------------------------------------------------------


class TestBatchTransform:
    """In-place batches, sentinel handling and errcheck."""

    def test_pole_in_batch_left_non_finite(self, polar: TransformationPipeline) -> None:
        points = [(0.0, 45.0), (0.0, -90.0), (90.0, 45.0)]
        failed = polar.transform_batch(points)

        assert failed == [1]
        assert all(math.isfinite(v) for v in points[0])
        assert not all(math.isfinite(v) for v in points[1])
        assert all(math.isfinite(v) for v in points[2])
        assert points[0] == pytest.approx(polar.transform((0.0, 45.0)), abs=1e-9)
        assert points[2] == pytest.approx(polar.transform((90.0, 45.0)), abs=1e-9)

    def test_errcheck_reports_first_failure_after_writing(
        self, polar: TransformationPipeline
    ) -> None:
        points = [(0.0, 45.0), (0.0, -90.0), (90.0, 45.0), (10.0, -90.0)]
        with pytest.raises(CoordinateTransformError) as info:
            polar.transform_batch(points, errcheck=True)

        assert info.value.index == 1
        assert all(math.isfinite(v) for v in points[2])
        assert not all(math.isfinite(v) for v in points[3])

    def test_numpy_array_in_place(self, utm31: TransformationPipeline) -> None:
        array = np.array([[2.0, 49.0], [3.0, 50.0]])
        expected = [utm31.transform(tuple(row)) for row in array]
        assert utm31.transform_batch(array) == []
        np.testing.assert_allclose(array, np.array(expected), atol=1e-9)

    def test_inverse_batch(self, utm31: TransformationPipeline) -> None:
        points = [utm31.transform((2.0, 49.0)), utm31.transform((3.0, 50.0))]
        utm31.transform_batch(points, inverse=True)
        assert points[0] == pytest.approx((2.0, 49.0), abs=1e-7)
        assert points[1] == pytest.approx((3.0, 50.0), abs=1e-7)

    def test_empty_batch(self, utm31: TransformationPipeline) -> None:
        points: list[tuple[float, ...]] = []
        assert utm31.transform_batch(points) == []
        assert points == []

    def test_ragged_batch_rejected(self, utm31: TransformationPipeline) -> None:
        with pytest.raises(InputValidationError):
            utm31.transform_batch([(2.0, 49.0), (2.0, 49.0, 10.0)])

    def test_integer_array_rejected(self, utm31: TransformationPipeline) -> None:
        with pytest.raises(InputValidationError):
            utm31.transform_batch(np.array([[2, 49]]))


# ---------------------------------------------------------------------------
# Definitions and metadata
# ---------------------------------------------------------------------------


class TestDefinitionPipelines:
    """Pipelines compiled from a single PROJ definition string."""

    def test_definition_matches_crs_pair(
        self, ctx: ExecutionContext, utm31: TransformationPipeline
    ) -> None:
        pipeline = ctx.pipeline_from_definition(UTM31_DEFINITION)
        assert pipeline.source_axis_order is AxisOrder.CONVENTIONAL
        assert pipeline.transform((2.0, 49.0)) == pytest.approx(
            utm31.transform((2.0, 49.0)), abs=1e-3
        )

    def test_definition_inverse(self, ctx: ExecutionContext) -> None:
        pipeline = ctx.pipeline_from_definition(UTM31_DEFINITION)
        back = pipeline.transform_inverse(pipeline.transform((2.0, 49.0)))
        assert back == pytest.approx((2.0, 49.0), abs=1e-7)

    def test_missing_grid_is_construction_failure(
        self, ctx: ExecutionContext, network_off: None
    ) -> None:
        with pytest.raises(PipelineConstructionError):
            ctx.pipeline_from_definition(
                "+proj=hgridshift +grids=geoproj_missing_grid_file.gsb"
            )


class TestMetadata:
    """Cached pipeline metadata."""

    def test_area_of_use_is_cached(self, utm31: TransformationPipeline) -> None:
        area = utm31.area_of_use
        assert area is not None
        assert area.west <= 2.0 <= area.east

    def test_dimensions(self, ctx: ExecutionContext, web_mercator: TransformationPipeline) -> None:
        assert web_mercator.dimensions == 2
        assert ctx.pipeline_from("EPSG:4979", "EPSG:4978").dimensions == 3
        assert ctx.pipeline_from_definition(UTM31_DEFINITION).dimensions == 4

    def test_definition_and_description(self, web_mercator: TransformationPipeline) -> None:
        assert "merc" in web_mercator.definition
        assert web_mercator.description
        assert web_mercator.has_inverse
