"""Run-level coordination shared by the ingestion service and its observers."""

from driverag.pipeline.progress_tracker import ProgressTracker

__all__ = ["ProgressTracker"]
