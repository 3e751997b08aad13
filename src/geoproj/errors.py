"""
GeoProj — Error Translator
===========================
Maps the PROJ engine's numeric error domain onto the
:mod:`geoproj.exceptions` taxonomy.

PROJ reports failures as an integer ``errno`` on the context plus a
message that is overwritten by the next call into the same context.
:mod:`pyproj` surfaces these as :class:`pyproj.exceptions.ProjError`
(or its :class:`~pyproj.exceptions.CRSError` subclass) whose text embeds
the engine message.  This module recovers the numeric code from that
text and picks the matching exception class.

The translator must run synchronously, right after the failing call and
before anything else touches the same context —
:class:`~geoproj.context.ExecutionContext` guarantees this by calling it
while still holding the context lock.

Functions:
    code_for_message     Recover a :class:`ProjErrorCode` from engine text.
    code_for_exception   Recover a code from a pyproj exception.
    translate            Build the matching :class:`TransformError`.
"""

from __future__ import annotations

import logging
import re
from enum import IntEnum

from pyproj.exceptions import CRSError, DataDirError

from geoproj.exceptions import (
    ContextMisuseError,
    CoordinateTransformError,
    InvalidCRSError,
    NetworkResourceUnavailableError,
    PipelineConstructionError,
    TransformError,
)

logger = logging.getLogger("geoproj.errors")


class ProjErrorCode(IntEnum):
    """PROJ error codes (``PROJ_ERR_*`` in ``proj.h``).

    Codes are grouped in families; the family base value is also used
    for "unspecified" errors within that family.
    """

    OK = 0

    INVALID_OP = 1024
    INVALID_OP_WRONG_SYNTAX = 1025
    INVALID_OP_MISSING_ARG = 1026
    INVALID_OP_ILLEGAL_ARG_VALUE = 1027
    INVALID_OP_MUTUALLY_EXCLUSIVE_ARGS = 1028
    INVALID_OP_FILE_NOT_FOUND_OR_INVALID = 1029

    COORD_TRANSFM = 2048
    COORD_TRANSFM_INVALID_COORD = 2049
    COORD_TRANSFM_OUTSIDE_PROJECTION_DOMAIN = 2050
    COORD_TRANSFM_NO_OPERATION = 2051
    COORD_TRANSFM_OUTSIDE_GRID = 2052
    COORD_TRANSFM_GRID_AT_NODATA = 2053

    OTHER = 4096
    OTHER_API_MISUSE = 4097
    OTHER_NO_INVERSE_OP = 4098
    OTHER_NETWORK_ERROR = 4099


# "proj_create: Error 1027 (Invalid value for an argument): ..."
_ERRNO_PATTERN = re.compile(r"\berror\s+(\d{4})\b", re.IGNORECASE)

# Matched in order; more specific fragments must come before generic ones.
_MESSAGE_CODES: tuple[tuple[str, ProjErrorCode], ...] = (
    ("network error", ProjErrorCode.OTHER_NETWORK_ERROR),
    ("network access", ProjErrorCode.OTHER_NETWORK_ERROR),
    ("api misuse", ProjErrorCode.OTHER_API_MISUSE),
    ("no inverse operation", ProjErrorCode.OTHER_NO_INVERSE_OP),
    ("inverse not available", ProjErrorCode.OTHER_NO_INVERSE_OP),
    ("could not find required grid", ProjErrorCode.INVALID_OP_FILE_NOT_FOUND_OR_INVALID),
    ("file not found or invalid", ProjErrorCode.INVALID_OP_FILE_NOT_FOUND_OR_INVALID),
    ("grid(s) not found", ProjErrorCode.INVALID_OP_FILE_NOT_FOUND_OR_INVALID),
    ("falls outside grid", ProjErrorCode.COORD_TRANSFM_OUTSIDE_GRID),
    ("outside grid", ProjErrorCode.COORD_TRANSFM_OUTSIDE_GRID),
    ("evaluates to nodata", ProjErrorCode.COORD_TRANSFM_GRID_AT_NODATA),
    ("no operation matching criteria", ProjErrorCode.COORD_TRANSFM_NO_OPERATION),
    ("point outside of projection domain", ProjErrorCode.COORD_TRANSFM_OUTSIDE_PROJECTION_DOMAIN),
    ("latitude or longitude exceeded limits", ProjErrorCode.COORD_TRANSFM_OUTSIDE_PROJECTION_DOMAIN),
    ("tolerance condition error", ProjErrorCode.COORD_TRANSFM_OUTSIDE_PROJECTION_DOMAIN),
    ("related to coordinate operation initialization", ProjErrorCode.INVALID_OP),
    ("invalid coordinate", ProjErrorCode.COORD_TRANSFM_INVALID_COORD),
    ("related to coordinate transformation", ProjErrorCode.COORD_TRANSFM),
    ("invalid proj string syntax", ProjErrorCode.INVALID_OP_WRONG_SYNTAX),
    ("unrecognized format", ProjErrorCode.INVALID_OP_WRONG_SYNTAX),
    ("missing argument", ProjErrorCode.INVALID_OP_MISSING_ARG),
    ("invalid value for an argument", ProjErrorCode.INVALID_OP_ILLEGAL_ARG_VALUE),
    ("unknown projection", ProjErrorCode.INVALID_OP_ILLEGAL_ARG_VALUE),
    ("mutually exclusive arguments", ProjErrorCode.INVALID_OP_MUTUALLY_EXCLUSIVE_ARGS),
    ("crs not found", ProjErrorCode.INVALID_OP),
    ("unknown name", ProjErrorCode.INVALID_OP),
    ("invalid projection", ProjErrorCode.INVALID_OP),
    ("input is not a transformation", ProjErrorCode.OTHER),
)

# Numeric ranges of the invalid-operation family that mean "could not parse".
_PARSE_FAILURES = frozenset(
    {
        ProjErrorCode.INVALID_OP,
        ProjErrorCode.INVALID_OP_WRONG_SYNTAX,
        ProjErrorCode.INVALID_OP_MISSING_ARG,
        ProjErrorCode.INVALID_OP_ILLEGAL_ARG_VALUE,
        ProjErrorCode.INVALID_OP_MUTUALLY_EXCLUSIVE_ARGS,
    }
)


def _as_code(value: int) -> ProjErrorCode:
    try:
        return ProjErrorCode(value)
    except ValueError:
        # Unknown sub-code: fall back to its family.
        for base in (ProjErrorCode.OTHER, ProjErrorCode.COORD_TRANSFM, ProjErrorCode.INVALID_OP):
            if value & base.value:
                return base
        return ProjErrorCode.OTHER


def code_for_message(message: str, default: ProjErrorCode) -> ProjErrorCode:
    """Recover a :class:`ProjErrorCode` from an engine message.

    An explicit ``Error NNNN`` marker (PROJ 8+) wins; otherwise the first
    known message fragment decides; otherwise *default* is returned.

    Args:
        message: Text captured from the engine.
        default: Code to return when nothing in *message* is recognised.

    Returns:
        The recovered code.

    Example::

        >>> code_for_message("Point outside of projection domain", ProjErrorCode.OTHER)
        <ProjErrorCode.COORD_TRANSFM_OUTSIDE_PROJECTION_DOMAIN: 2050>
    """
    match = _ERRNO_PATTERN.search(message)
    if match:
        return _as_code(int(match.group(1)))

    lowered = message.lower()
    for fragment, code in _MESSAGE_CODES:
        if fragment in lowered:
            return code
    return default


def code_for_exception(exc: BaseException, *, construction: bool) -> ProjErrorCode:
    """Recover a :class:`ProjErrorCode` from a pyproj exception.

    Args:
        exc: The exception pyproj raised.
        construction: ``True`` when *exc* came from building a
                      transformer, ``False`` when it came from a
                      transform call.  Selects the fallback family.

    Returns:
        The recovered code.
    """
    if isinstance(exc, DataDirError):
        default = ProjErrorCode.INVALID_OP_FILE_NOT_FOUND_OR_INVALID
    elif isinstance(exc, CRSError):
        default = ProjErrorCode.INVALID_OP
    elif construction:
        default = ProjErrorCode.OTHER
    else:
        default = ProjErrorCode.COORD_TRANSFM
    return code_for_message(str(exc), default)


def translate(
    code: ProjErrorCode | int,
    message: str,
    *,
    construction: bool = False,
    index: int | None = None,
) -> TransformError:
    """Map an engine error code and message to a :class:`TransformError`.

    Args:
        code: PROJ numeric error code.
        message: Engine message captured immediately after the failing
                 call.
        construction: ``True`` when the failing call was building a
                      transformer.  Codes outside the parse-failure
                      family then mean no operation could be compiled.
        index: Position of the failing point in a batch, if any.

    Returns:
        An instance of the matching :class:`TransformError` subclass.
        The caller raises it.
    """
    proj_code = _as_code(int(code))

    if proj_code == ProjErrorCode.OTHER_NETWORK_ERROR:
        error_cls: type[TransformError] = NetworkResourceUnavailableError
    elif proj_code == ProjErrorCode.OTHER_API_MISUSE:
        error_cls = ContextMisuseError
    elif construction:
        error_cls = (
            InvalidCRSError if proj_code in _PARSE_FAILURES else PipelineConstructionError
        )
    else:
        error_cls = CoordinateTransformError

    logger.debug("Translated PROJ code %d to %s: %s", proj_code, error_cls.__name__, message)
    return error_cls(proj_code, message, index=index)
