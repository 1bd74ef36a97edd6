# capture_errors.py
# Structured errors returned to the host instead of raw exceptions


class CaptureError(Exception):
    """Base error carrying a machine-readable payload"""

    kind = 'capture'
    default_error = 'Capture failed'

    def __init__(self, details=None, hint=None, error=None, **extra):
        self.error = error or self.default_error
        self.details = details
        self.hint = hint
        self.extra = extra
        super().__init__(f"{self.error}: {details}" if details else self.error)

    def to_payload(self):
        payload = {'error': self.error}
        if self.details is not None:
            payload['details'] = self.details
        if self.hint is not None:
            payload['hint'] = self.hint
        payload.update(self.extra)
        payload['kind'] = self.kind
        return payload


class EnumerationError(CaptureError):
    kind = 'enumeration'
    default_error = 'Failed to list monitors'


class RequestValidationError(CaptureError):
    kind = 'validation'
    default_error = 'Invalid request'


class ResourceError(CaptureError):
    kind = 'resource'
    default_error = 'Capture resource unavailable'


class CaptureBinaryNotFoundError(ResourceError):
    default_error = 'FFmpeg not found'


class ExecutionError(CaptureError):
    kind = 'execution'
    default_error = 'Capture command failed'


class ArtifactError(CaptureError):
    kind = 'artifact'
    default_error = 'Capture produced no output'


class PersistenceError(CaptureError):
    kind = 'persistence'
    default_error = 'Failed to save captured media'
