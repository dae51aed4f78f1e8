"""Aggregate sink contract and the XHTML implementation."""

from .aggregate_sink import AggregateSink, document_anchor
from .base import Sink

__all__ = ["AggregateSink", "Sink", "document_anchor"]
