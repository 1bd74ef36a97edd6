# screenshot_engine.py
# Engine for screenshot functionality
# Captures one monitor through the capture backend and hands the image to the media store

import enum
import logging
import os
import sys
import time
from dataclasses import dataclass

from capture_backends import BackendError
from capture_config import as_number
from capture_errors import ArtifactError, CaptureError, ExecutionError, PersistenceError
from process_executor import ProcessError, ProcessTimeoutError

logger = logging.getLogger(__name__)

MAX_DELAY_SECONDS = 10
SCREENSHOT_TIMEOUT = 30
SCREENSHOT_MAX_BYTES = 10 * 1024 * 1024

CONTENT_TYPES = {
    'png': 'image/png',
    'jpeg': 'image/jpeg',
}


class CaptureState(enum.Enum):
    IDLE = 'idle'
    DELAYING = 'delaying'
    COMMAND_BUILT = 'command_built'
    EXECUTING = 'executing'
    VERIFYING = 'verifying'
    PERSISTED = 'persisted'
    FAILED = 'failed'


@dataclass(frozen=True)
class CaptureRequest:
    delay_seconds: float = 0
    monitor_index: int = 0
    image_format: str = 'png'

    @classmethod
    def from_params(cls, params, config):
        """Build a request from tool parameters, clamping instead of rejecting"""
        if not isinstance(params, dict):
            params = {}
        delay = as_number(params.get('delay'))
        delay = min(max(delay, 0), MAX_DELAY_SECONDS) if delay is not None else 0

        monitor = as_number(params.get('monitor'))
        if monitor is None:
            monitor = config.default_monitor if config.default_monitor is not None else 0
        monitor = max(0, int(monitor))

        image_format = config.screenshot_format if config.screenshot_format in CONTENT_TYPES else 'png'
        return cls(delay_seconds=delay, monitor_index=monitor, image_format=image_format)

    @property
    def content_type(self):
        return CONTENT_TYPES[self.image_format]


@dataclass(frozen=True)
class CaptureResult:
    path: str
    size: int
    content_type: str
    monitor_index: int
    image_format: str
    delay_seconds: float

    def details(self):
        return {
            'monitor': self.monitor_index,
            'format': self.image_format,
            'delay': self.delay_seconds,
            'savedPath': self.path,
        }


class ScreenshotCapturer:
    def __init__(self, backend, temp_manager, media_sink, timeout=SCREENSHOT_TIMEOUT,
                 sleep=time.sleep):
        self.backend = backend
        self.temp_manager = temp_manager
        self.media_sink = media_sink
        self.timeout = timeout
        self.sleep = sleep

        # Callback for state updates
        self.status_callback = None

    def set_status_callback(self, callback):
        """Set callback function for state updates"""
        self.status_callback = callback

    def update_status(self, state):
        """Report a state change and call callback if set"""
        logger.debug(f"Screenshot state: {state.value}")
        if self.status_callback:
            self.status_callback(state)

    def capture(self, request):
        """Take one screenshot and persist it.

        Raises CaptureError with the detected platform on any failure. Every
        temp file created for the capture is gone when this returns.
        """
        self.update_status(CaptureState.IDLE)
        try:
            result = self._capture(request)
        except CaptureError as e:
            self.update_status(CaptureState.FAILED)
            e.error = 'Screenshot capture failed'
            e.extra.setdefault('platform', sys.platform)
            raise
        except (OSError, BackendError) as e:
            self.update_status(CaptureState.FAILED)
            raise CaptureError(str(e), error='Screenshot capture failed', platform=sys.platform) from e
        self.update_status(CaptureState.PERSISTED)
        return result

    def _capture(self, request):
        if request.delay_seconds > 0:
            self.update_status(CaptureState.DELAYING)
            self.sleep(request.delay_seconds)

        with self.temp_manager.scope() as scope:
            output = scope.allocate('screenshot', f".{request.image_format}")
            self.update_status(CaptureState.COMMAND_BUILT)

            self.update_status(CaptureState.EXECUTING)
            try:
                self.backend.capture(scope, output.path, request.monitor_index,
                                     request.image_format, timeout=self.timeout)
            except ProcessTimeoutError as e:
                raise ExecutionError(str(e), hint='The capture script did not finish in time') from e
            except ProcessError as e:
                raise ExecutionError(str(e)) from e

            self.update_status(CaptureState.VERIFYING)
            if not os.path.exists(output.path):
                raise ArtifactError('Screenshot file was not created')
            with open(output.path, 'rb') as f:
                data = f.read()
            if not data:
                raise ArtifactError('Screenshot file is empty')

            try:
                saved = self.media_sink.save(
                    data,
                    request.content_type,
                    'screenshots',
                    SCREENSHOT_MAX_BYTES,
                    f"screenshot.{request.image_format}",
                )
            except (OSError, ValueError) as e:
                raise PersistenceError(str(e)) from e

        logger.info(f"Screenshot captured (monitor {request.monitor_index}, {request.image_format})")
        return CaptureResult(
            path=saved.path,
            size=saved.size,
            content_type=saved.content_type,
            monitor_index=request.monitor_index,
            image_format=request.image_format,
            delay_seconds=request.delay_seconds,
        )
