"""Exception types raised by the speaker tracker."""


class SpeakerTrackerError(Exception):
    """Base class for all speaker tracker errors."""


class InvalidInput(SpeakerTrackerError, ValueError):
    """A frame violates the buffer contract (size, finiteness, range).

    Fails that single frame only; callers skip it and keep streaming.
    """


class ConfigurationError(SpeakerTrackerError, ValueError):
    """A session or audio configuration is out of range.

    Raised at session start, before any frame is processed.
    """
