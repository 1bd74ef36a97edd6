# recording_engine.py
# Engine for screen recording functionality
# Records the desktop with FFmpeg gdigrab for a fixed duration and stores the mp4

import logging
import math
import os
import shutil
from dataclasses import dataclass, field
from typing import List, Optional

from capture_config import MAX_VIDEO_DURATION, as_number
from capture_errors import (
    ArtifactError,
    CaptureBinaryNotFoundError,
    CaptureError,
    ExecutionError,
    PersistenceError,
    RequestValidationError,
    ResourceError,
)
from process_executor import ProcessError, ProcessTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_FPS = 30
MIN_FPS = 10
MAX_FPS = 60
ENCODE_GRACE_SECONDS = 30
PROBE_TIMEOUT = 5
RECORDING_MAX_BYTES = 100 * 1024 * 1024
VIDEO_CONTENT_TYPE = 'video/mp4'

FFMPEG_INSTALL_HINT = ("Install FFmpeg: winget install ffmpeg, or download from ffmpeg.org "
                       "and add to PATH, or set ffmpegPath in plugin config")
RECORDING_HINT = "Ensure FFmpeg is installed and accessible. Try: winget install ffmpeg"


def _round_half_up(value):
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class RecordRequest:
    duration_seconds: int
    monitor_index: Optional[int] = None
    fps: int = DEFAULT_FPS

    @classmethod
    def from_params(cls, params, max_duration=MAX_VIDEO_DURATION):
        if not isinstance(params, dict):
            params = {}
        max_duration = max(1, min(int(max_duration), MAX_VIDEO_DURATION))

        duration = as_number(params.get('duration'))
        if duration is None:
            raise RequestValidationError(
                error='duration is required',
                hint=f"Specify duration in seconds (1-{max_duration})",
            )
        duration = min(max(_round_half_up(duration), 1), max_duration)

        monitor = as_number(params.get('monitor'))
        if monitor is not None:
            monitor = max(0, int(monitor))

        fps = as_number(params.get('fps'))
        fps = min(max(_round_half_up(fps), MIN_FPS), MAX_FPS) if fps is not None else DEFAULT_FPS
        return cls(duration_seconds=duration, monitor_index=monitor, fps=fps)


@dataclass(frozen=True)
class RecordResult:
    path: str
    size: int
    content_type: str
    duration_seconds: int
    fps: int
    monitor_index: Optional[int] = None
    monitor_bounds: Optional[dict] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def message(self):
        target = f"monitor {self.monitor_index}" if self.monitor_index is not None else "all monitors"
        return f"Recorded {self.duration_seconds}s of {target} at {self.fps}fps"

    def to_payload(self):
        payload = {
            'success': True,
            'message': self.message,
            'path': self.path,
            'size': self.size,
            'contentType': self.content_type,
            'duration': self.duration_seconds,
            'fps': self.fps,
            'monitor': self.monitor_index,
            'monitorBounds': self.monitor_bounds,
        }
        if self.warnings:
            payload['warnings'] = list(self.warnings)
        return payload


def well_known_ffmpeg_paths():
    home = os.path.expanduser('~')
    return [
        'C:\\ffmpeg\\bin\\ffmpeg.exe',
        'C:\\Program Files\\ffmpeg\\bin\\ffmpeg.exe',
        'C:\\Program Files (x86)\\ffmpeg\\bin\\ffmpeg.exe',
        os.path.join(home, 'ffmpeg', 'bin', 'ffmpeg.exe'),
        os.path.join(home, 'scoop', 'shims', 'ffmpeg.exe'),
    ]


def ffmpeg_candidates(configured_path=None):
    """Candidate binaries in the order they are tried"""
    candidates = []
    if configured_path:
        candidates.append(configured_path)
    on_path = shutil.which('ffmpeg')
    if on_path:
        candidates.append(on_path)
    candidates.extend(well_known_ffmpeg_paths())
    return candidates


def build_ffmpeg_args(output_path, duration, fps, bounds=None):
    """gdigrab arguments for the whole desktop or one monitor's region"""
    args = ['-f', 'gdigrab', '-framerate', str(fps)]
    if bounds:
        args += [
            '-offset_x', str(bounds['x']),
            '-offset_y', str(bounds['y']),
            '-video_size', f"{bounds['width']}x{bounds['height']}",
        ]
    args += [
        '-i', 'desktop',
        '-t', str(duration),
        # H.264 needs even frame dimensions
        '-vf', 'pad=ceil(iw/2)*2:ceil(ih/2)*2',
        '-c:v', 'libx264',
        '-pix_fmt', 'yuv420p',
        '-preset', 'ultrafast',
        '-y',
        output_path,
    ]
    return args


class ScreenRecorder:
    def __init__(self, executor, enumerator, temp_manager, media_sink, ffmpeg_path=None):
        self.executor = executor
        self.enumerator = enumerator
        self.temp_manager = temp_manager
        self.media_sink = media_sink
        self.ffmpeg_path = ffmpeg_path

        # Callback for UI updates
        self.status_callback = None

    def set_status_callback(self, callback):
        """Set callback function for status updates"""
        self.status_callback = callback

    def update_status(self, message):
        """Update status and call callback if set"""
        if self.status_callback:
            self.status_callback(message)

    def find_ffmpeg(self):
        """First candidate that answers -version, or None"""
        for candidate in ffmpeg_candidates(self.ffmpeg_path):
            if self.executor.probe(candidate, ['-version'], timeout=PROBE_TIMEOUT):
                logger.debug(f"Using FFmpeg at {candidate}")
                return candidate
        return None

    def record(self, request):
        """Record the screen and persist the video.

        Raises CaptureError. Bounds and binary problems are reported under
        their own error titles; everything after the encoder starts is
        reported as "Screen recording failed".
        """
        ffmpeg = self.find_ffmpeg()
        if not ffmpeg:
            raise CaptureBinaryNotFoundError(hint=FFMPEG_INSTALL_HINT)

        bounds = None
        if request.monitor_index is not None:
            monitor = self.enumerator.bounds_of(request.monitor_index)
            if monitor is None:
                raise ResourceError(
                    error='Failed to get monitor bounds',
                    hint='Use list_monitors to see available monitors',
                )
            bounds = monitor.bounds()

        try:
            return self._record(ffmpeg, request, bounds)
        except CaptureError as e:
            self.update_status('Idle')
            e.error = 'Screen recording failed'
            if e.hint is None:
                e.hint = RECORDING_HINT
            raise
        except OSError as e:
            self.update_status('Idle')
            raise CaptureError(str(e), error='Screen recording failed', hint=RECORDING_HINT) from e

    def _record(self, ffmpeg, request, bounds):
        warnings = []
        with self.temp_manager.scope() as scope:
            output = scope.allocate('recording', '.mp4')
            args = build_ffmpeg_args(output.path, request.duration_seconds, request.fps, bounds)

            logger.info(f"Recording screen for {request.duration_seconds}s...")
            self.update_status('Recording')
            try:
                # ffmpeg writes progress to stderr and its exit code is unreliable here;
                # the output file decides success
                result = self.executor.run(
                    ffmpeg, args,
                    timeout=request.duration_seconds + ENCODE_GRACE_SECONDS,
                    hide_window=True,
                    capture_output=False,
                )
            except ProcessTimeoutError as e:
                raise ExecutionError(str(e), hint='Encoding did not finish in time; try a shorter duration') from e
            except ProcessError as e:
                raise ExecutionError(str(e)) from e

            if not os.path.exists(output.path):
                raise ArtifactError('Recording failed - no output file created')
            if os.path.getsize(output.path) == 0:
                raise ArtifactError('Recording produced empty file')

            if not result.ok:
                warning = f"FFmpeg exited with status {result.returncode}"
                logger.warning(f"{warning}; output file looks valid, keeping it")
                warnings.append(warning)

            with open(output.path, 'rb') as f:
                data = f.read()

            try:
                saved = self.media_sink.save(
                    data,
                    VIDEO_CONTENT_TYPE,
                    'recordings',
                    RECORDING_MAX_BYTES,
                    f"screen-recording-{request.duration_seconds}s.mp4",
                )
            except (OSError, ValueError) as e:
                raise PersistenceError(str(e)) from e

        self.update_status(f"Saved: {os.path.basename(saved.path)}")
        return RecordResult(
            path=saved.path,
            size=saved.size,
            content_type=saved.content_type,
            duration_seconds=request.duration_seconds,
            fps=request.fps,
            monitor_index=request.monitor_index,
            monitor_bounds=bounds,
            warnings=warnings,
        )
