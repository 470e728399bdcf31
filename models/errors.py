class StudioError(Exception):
    """Base error for the studio pipeline"""


class ConfigurationError(StudioError):
    """Missing credential or invalid setting"""


class GenerationError(StudioError):
    """A remote generation call failed or returned nothing usable"""


class MalformedResponseError(GenerationError):
    """The model answered, but not in the shape we asked for"""


class SynthesisError(GenerationError):
    """Speech synthesis returned no audio"""


class ScriptLockedError(StudioError):
    """The script buffer is being written by a stream and cannot be edited"""


class SegmentBusyError(StudioError):
    """An audio segment is already being synthesized"""
