"""
Pipeline error taxonomy.

Only initialization-class and frame-source-class failures stop the loop;
everything else is recovered at the stage boundary.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for errors that take the inference loop out of service."""


class ModelLoadError(PipelineError):
    """The detector could not be initialized. Not retried automatically."""


class FrameSourceError(PipelineError):
    """The frame source could not be opened or stopped delivering frames."""
