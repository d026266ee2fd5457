"""Input reader interfaces and registry.

Readers turn the raw output of ``go test -bench`` (plain text, or the JSON
event stream of ``go test -json``) into :class:`RecordGroup` objects, one per
input file.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Protocol, TextIO

from ..domain.models import RecordGroup

logger = logging.getLogger(__name__)


class InputError(ValueError):
    """Raised when a benchmark input cannot be opened or read."""


class InputReader(Protocol):
    """Protocol for benchmark input readers.

    A reader declares the ``format`` it handles and parses a whole stream
    into the records of one input file.
    """

    format: str

    def read(self, stream: TextIO, source: str = "-") -> RecordGroup:
        """Parse ``stream`` read from ``source`` into a record group."""
        raise NotImplementedError


_readers: Dict[str, InputReader] = {}


def register_reader(reader: InputReader) -> None:
    """Register a reader under its ``format`` name."""
    _readers[reader.format] = reader
    logger.debug("Registered input reader: '%s'", reader.format)


def get_reader(fmt: str) -> InputReader:
    """Retrieve the reader registered for ``fmt``.

    Raises
    ------
    InputError
        If no reader handles the requested format.
    """
    try:
        return _readers[fmt]
    except KeyError:
        raise InputError(
            f"unsupported input format {fmt!r} "
            f"(available: {', '.join(get_available_formats())})"
        ) from None


def get_available_formats() -> List[str]:
    """Names of the registered input formats."""
    return list(_readers.keys())


def reset_readers() -> None:
    """Clear the registry and register the built-in Go benchmark readers."""
    _readers.clear()
    from .gobench import GoBenchTextReader, GoTestJSONReader  # noqa: WPS433

    register_reader(GoBenchTextReader())
    register_reader(GoTestJSONReader())


reset_readers()
