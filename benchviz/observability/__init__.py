"""Observability utilities: logging setup.

This module configures standard logging for the CLI. Library modules only
obtain loggers via ``logging.getLogger(__name__)`` and never configure
handlers themselves.
"""

from __future__ import annotations

import logging


def setup_logging(level: str = "INFO") -> None:
    """Configure application logging.

    Parameters
    ----------
    level: str
        Logging level name (e.g., "DEBUG", "INFO"). Defaults to "INFO".

    Behavior
    --------
    - Initializes Python's logging on stderr, so that stdout stays available
      for JSON or YAML output. Existing root handlers are kept.
    - Applies the requested level to the ``benchviz`` loggers. Unknown level
      names fall back to INFO.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format=("%(asctime)s %(levelname)s %(name)s - %(message)s"),
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    logging.getLogger("benchviz").setLevel(numeric_level)
