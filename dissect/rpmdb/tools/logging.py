from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from dissect.rpmdb.helpers.logging import TRACE_LEVEL


def custom_obj_renderer(
    logger: structlog.types.WrappedLogger,
    name: str,
    event_dict: structlog.types.EventDict,
) -> dict[Any, str]:
    """Simple str() serialization for the event dict values for purely aesthetic reasons"""
    return {key: str(value) for key, value in event_dict.items()}


def render_stacktrace_only_in_debug_or_less(
    logger: structlog.types.WrappedLogger,
    name: str,
    event_dict: structlog.types.EventDict,
) -> dict[Any, str]:
    """Render the stack trace of an exception only if ``logger`` is configured at ``DEBUG`` or lower,
    otherwise render the ``str()`` of the exception.
    """
    if event_dict.get("exc_info") and logger.getEffectiveLevel() > logging.DEBUG:
        exc_info = event_dict.pop("exc_info")
        exc = exc_info if isinstance(exc_info, BaseException) else sys.exc_info()[1]
        event_dict["exc"] = str(exc)
    return event_dict


def configure_logging(verbose_value: int, be_quiet: bool, as_plain_text: bool = True) -> None:
    """Configure the logging level of the ``dissect`` root logger.

    Without ``-v`` the level is ``WARNING``, ``-v`` gives ``INFO``, ``-vv`` gives ``DEBUG`` and ``-vvv`` or
    more enables ``TRACE``. When ``be_quiet`` is set, the level is the least noisy ``CRITICAL``.
    """

    renderer = (
        structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty(), pad_event=10)
        if as_plain_text
        else structlog.processors.JSONRenderer(sort_keys=True)
    )

    attr_processors = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    structlog.configure(
        processors=(
            [
                # If log level is too low, abort pipeline and throw away log entry.
                structlog.stdlib.filter_by_level,
            ]
            + attr_processors
            + [
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.StackInfoRenderer(),
                custom_obj_renderer,
                render_stacktrace_only_in_debug_or_less,
                # Wrapping is needed in order to use formatter down the line
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ]
        ),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.captureWarnings(True)

    dissect_logger = logging.getLogger("dissect")

    if be_quiet:
        dissect_logger.setLevel(level=logging.CRITICAL)
    elif verbose_value == 0:
        dissect_logger.setLevel(level=logging.WARNING)
    elif verbose_value == 1:
        dissect_logger.setLevel(level=logging.INFO)
    elif verbose_value == 2:
        dissect_logger.setLevel(level=logging.DEBUG)
    elif verbose_value > 2:
        dissect_logger.setLevel(level=TRACE_LEVEL)

    formatter = structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=attr_processors)

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    # Set handler on the root logger
    logging.getLogger().handlers = [handler]

