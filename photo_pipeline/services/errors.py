class PipelineError(Exception):
    """Base for every failure the two handlers report.

    ``status_code`` and ``error`` drive the ``ErrorResponse`` the HTTP layer sends;
    the exception message becomes ``ErrorResponse.message``.
    """

    status_code = 500
    error = "Internal server error"


class InvalidRequest(PipelineError):
    status_code = 400
    error = "Missing or invalid filename"


class ConfigurationError(PipelineError):
    error = "Server configuration error"


class SigningError(PipelineError):
    error = "Upload token signing failed"


class MalformedTrigger(PipelineError):
    status_code = 400
    error = "Malformed trigger"


class DecodeError(PipelineError):
    error = "Image decode failed"


class ThumbnailError(PipelineError):
    error = "Thumbnail generation failed"


class StorageReadError(PipelineError):
    error = "Storage read failed"


class StorageWriteError(PipelineError):
    error = "Storage write failed"


class StorageDeleteError(PipelineError):
    error = "Storage delete failed"
