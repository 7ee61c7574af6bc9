"""
Structured logging for varlayer.

Engine modules log events named after what happened to the layering, with the
numbers attached as key/value pairs::

    slicing_parameters_derived  min_layer_height=0.07 max_layer_height=0.3
    layer_height_range_dropped  z_low=9.0 z_high=9.00001
    layer_height_edited         action=smooth z=10.0 samples=52
    object_layers_generated     layers=100 top_z=20.0

Parameter derivation, range trimming and edits log at DEBUG, the adaptive
builder reports its result at INFO. Nothing is logged at WARNING or above by
the engine itself, so the CLI default keeps the output to its tables.

Usage::

    from varlayer.core.logging import configure_logging, get_logger

    configure_logging(level="DEBUG", json_output=True)
    logger = get_logger(__name__)
    logger.debug("layer_height_edited", action="increase", z=10.0)
"""

import logging
import sys
from typing import Any, Optional

import structlog

# Millimetre values are rounded to this many decimals in log output.
FLOAT_PRECISION = 4


def _round_floats(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Round float values so Z and height dumps stay readable."""
    for key, value in event_dict.items():
        if isinstance(value, float):
            event_dict[key] = round(value, FLOAT_PRECISION)
    return event_dict


def _event_processors() -> list[structlog.types.Processor]:
    """Processors applied to every varlayer event before rendering."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _round_floats,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]


def _renderer(json_output: bool) -> structlog.types.Processor:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    level: str = "WARNING",
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """
    Route varlayer and library log records through structlog.

    Called by the CLI from its ``--log-level`` and ``--json-logs`` options.
    Library users call it once before running the engine, or leave logging
    unconfigured.

    Args:
        level: Level name; unknown names fall back to WARNING.
        json_output: One JSON object per event instead of console lines.
        log_file: Also append every event to this file.
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    streams: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        streams.append(logging.FileHandler(log_file))
    logging.basicConfig(format="%(message)s", level=log_level, handlers=streams, force=True)
    # trimesh is chatty at DEBUG while loading meshes
    logging.getLogger("trimesh").setLevel(max(log_level, logging.INFO))

    structlog.configure(
        processors=_event_processors()
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(json_output),
        ],
    )
    for stream in streams:
        stream.setFormatter(formatter)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Logger for a varlayer module, usually called with ``__name__``."""
    return structlog.get_logger(name)
