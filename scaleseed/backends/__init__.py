"""Backend implementations for seed writes."""

from scaleseed.backends.direct import DirectBackend
from scaleseed.backends.staging import StagingBackend

__all__ = ["DirectBackend", "StagingBackend"]
