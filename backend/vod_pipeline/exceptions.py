"""
Pipeline error taxonomy

Access Gateway callers see NotFound / AccessDenied / InvalidParameter.
Transcoding failures are all TranscodeError subclasses and are terminal for
the task that raised them.
"""


class VideoPipelineError(Exception):
    """Base class for every error raised by the pipeline"""
    pass


class NotFound(VideoPipelineError):
    """Video, key or file is absent"""
    pass


class AccessDenied(VideoPipelineError):
    """No ownership, no valid permission grant, or a failed link signature"""
    pass


class InvalidParameter(VideoPipelineError):
    """Bad codec, resolution or quality value"""
    pass


class StorageError(VideoPipelineError):
    """Storage backend I/O failure not otherwise classified"""
    pass


class StorageNotFound(NotFound, StorageError):
    """A storage key does not exist, regardless of backend"""

    def __init__(self, key: str):
        super().__init__(f"Object not found: {key}")
        self.key = key


class TranscodeError(VideoPipelineError):
    """Base class for failures inside the transcoding engine"""
    pass


class SourceNotFound(TranscodeError):
    pass


class RemuxFailed(TranscodeError):
    pass


class UnsupportedMedia(TranscodeError):
    pass


class EncodeFailed(TranscodeError):
    pass


class PublishFailed(TranscodeError):
    pass
