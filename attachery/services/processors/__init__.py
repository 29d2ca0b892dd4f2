"""Processors turning an uploaded file into style variants."""

from attachery.services.processors.processor import Processor
from attachery.services.processors.thumbnail import Thumbnail

__all__ = ["Processor", "Thumbnail"]
