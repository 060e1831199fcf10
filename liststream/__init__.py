"""Duplex stream collector: materialize a stream into a queryable list."""

__version__ = "0.1.0"

from liststream.engine.collector import Collector, Mode, WriteAfterEndError
from liststream.engine.streaming import StreamHandler
from liststream.engine.logging import setup_logging

__all__ = ["Collector", "Mode", "WriteAfterEndError", "StreamHandler", "setup_logging"]
