"""
GeoProj
=======
Safe, axis-order-normalised coordinate transformations over the PROJ
engine (via pyproj).

Re-exports the public surface so callers can import from one place::

    from geoproj import ExecutionContext, CoordinateBatchAdapter
    from geoproj import InvalidCRSError, CoordinateTransformError
"""

from geoproj.axis import AxisOrder, axis_order_of
from geoproj.batch import BatchReport, CoordinateBatchAdapter
from geoproj.config import EngineConfig, configure_engine, configure_logging, engine_config
from geoproj.context import ExecutionContext, thread_context
from geoproj.errors import ProjErrorCode, translate
from geoproj.exceptions import (
    ColumnNotFoundError,
    ContextMisuseError,
    CoordinateTransformError,
    GeoProjError,
    InputValidationError,
    InvalidCRSError,
    NetworkResourceUnavailableError,
    PipelineConstructionError,
    TransformError,
    TransformErrorKind,
)
from geoproj.pipeline import CoordinateTuple, TransformationPipeline

__all__ = [
    "ExecutionContext",
    "thread_context",
    "TransformationPipeline",
    "CoordinateTuple",
    "CoordinateBatchAdapter",
    "BatchReport",
    "AxisOrder",
    "axis_order_of",
    "EngineConfig",
    "configure_engine",
    "configure_logging",
    "engine_config",
    "ProjErrorCode",
    "translate",
    "GeoProjError",
    "InputValidationError",
    "ColumnNotFoundError",
    "TransformError",
    "TransformErrorKind",
    "InvalidCRSError",
    "PipelineConstructionError",
    "CoordinateTransformError",
    "NetworkResourceUnavailableError",
    "ContextMisuseError",
]
__version__ = "1.0.0"
