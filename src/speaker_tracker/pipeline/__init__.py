"""End-to-end speaker tracking loop."""

from speaker_tracker.pipeline.tracking_loop import FrameResult, SpeakerTrackingPipeline

__all__ = ["FrameResult", "SpeakerTrackingPipeline"]
