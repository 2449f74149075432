import logging
import os
import sys
from typing import Any, Literal

import structlog

LogFormat = Literal["json", "plain", "auto"]

CI_ENV_VARS = ("CI", "CONTINUOUS_INTEGRATION", "GITHUB_ACTIONS", "JENKINS_URL")
ROOT_LOGGER = "boundsplit"


def _should_use_json_format() -> bool:
    """JSON when running under CI or when stderr is not a terminal."""
    if any(os.environ.get(var) for var in CI_ENV_VARS):
        return True
    return not sys.stderr.isatty()


def _level_number(level: str) -> int:
    number = logging.getLevelName(level.upper())
    return number if isinstance(number, int) else logging.INFO


def get_logger(name: str = ROOT_LOGGER) -> Any:
    """
    structlog logger backed by the stdlib logger ``name``.

    Until ``setup_logging`` runs, events go to an unconfigured stdlib logger,
    so library callers see nothing below WARNING.
    """
    return structlog.wrap_logger(logging.getLogger(name))


def setup_logging(format_type: LogFormat = "auto", level: str = "info") -> None:
    """
    Configure structlog for the CLI.

    Events are written to stderr so chunk records on stdout stay parseable.

    Args:
        format_type: "json", "plain" for console rendering, or "auto" to pick
                JSON under CI or when stderr is redirected.
        level: Minimum level to emit; unknown names fall back to info.
    """
    if format_type == "auto":
        format_type = "json" if _should_use_json_format() else "plain"
    min_level = _level_number(level)

    renderer: Any
    if format_type == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger(ROOT_LOGGER)
    root.handlers[:] = [handler]
    root.setLevel(min_level)
    root.propagate = False

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Module-level loggers must pick up later reconfiguration
        cache_logger_on_first_use=False,
    )


log = get_logger()
