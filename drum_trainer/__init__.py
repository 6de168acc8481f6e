"""Drum timing trainer: onset detection and timing judgement for practice sessions."""

import logging
import sys

__version__ = "0.2.0"


def setup_logging(level: str = "INFO") -> logging.Logger:
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    # mido's backend loader is chatty at debug level
    logging.getLogger("mido").setLevel(logging.WARNING)
    return logging.getLogger("drum_trainer")
