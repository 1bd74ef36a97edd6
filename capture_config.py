# capture_config.py
# Settings for the capture tools, loaded from the host or a JSON file

import json
import logging
import math
import os
from dataclasses import asdict, dataclass
from typing import Optional

logger = logging.getLogger(__name__)

MAX_VIDEO_DURATION = 60
SCREENSHOT_FORMATS = ('png', 'jpeg')
CAPTURE_BACKENDS = ('script', 'native')

DEFAULT_SETTINGS = {
    'ffmpeg_path': None,
    'default_monitor': None,
    'screenshot_format': 'png',
    'max_video_duration': MAX_VIDEO_DURATION,
    'capture_backend': 'script',
    'media_dir': os.path.join(os.path.expanduser('~'), '.snapcapture', 'media'),
}

# host settings arrive camelCased
_KEY_ALIASES = {
    'ffmpegPath': 'ffmpeg_path',
    'captureBinaryPath': 'ffmpeg_path',
    'defaultMonitor': 'default_monitor',
    'screenshotFormat': 'screenshot_format',
    'maxVideoDuration': 'max_video_duration',
    'captureBackend': 'capture_backend',
    'mediaDir': 'media_dir',
}

CONFIG_UI_HINTS = {
    'ffmpegPath': {
        'label': 'FFmpeg Path',
        'help': 'Path to FFmpeg executable (if not in PATH)',
        'placeholder': 'C:\\ffmpeg\\bin\\ffmpeg.exe',
    },
    'defaultMonitor': {
        'label': 'Default Monitor',
        'help': 'Monitor index to capture (0 = primary)',
    },
    'screenshotFormat': {
        'label': 'Screenshot Format',
        'help': 'Image format for screenshots (png or jpeg)',
    },
    'maxVideoDuration': {
        'label': 'Max Video Duration',
        'help': 'Maximum video recording duration in seconds (max 60)',
    },
    'captureBackend': {
        'label': 'Capture Backend',
        'help': 'script = PowerShell/.NET, native = in-process mss capture',
    },
    'mediaDir': {
        'label': 'Media Folder',
        'help': 'Folder where screenshots and recordings are stored',
    },
}


@dataclass(frozen=True)
class CaptureConfig:
    ffmpeg_path: Optional[str] = None
    default_monitor: Optional[int] = None
    screenshot_format: str = 'png'
    max_video_duration: int = MAX_VIDEO_DURATION
    capture_backend: str = 'script'
    media_dir: str = DEFAULT_SETTINGS['media_dir']

    def to_dict(self):
        return asdict(self)


def as_number(value):
    """The value if it is a finite int or float, else None"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def parse_config(raw):
    """Sanitize a host-provided settings mapping into a CaptureConfig"""
    if not isinstance(raw, dict):
        return CaptureConfig()

    settings = {}
    for key, value in raw.items():
        settings[_KEY_ALIASES.get(key, key)] = value

    ffmpeg_path = settings.get('ffmpeg_path')
    default_monitor = settings.get('default_monitor')
    screenshot_format = settings.get('screenshot_format')
    max_duration = settings.get('max_video_duration')
    backend = settings.get('capture_backend')
    media_dir = settings.get('media_dir')

    if as_number(max_duration) is not None:
        max_duration = max(1, min(int(max_duration), MAX_VIDEO_DURATION))
    else:
        max_duration = MAX_VIDEO_DURATION

    return CaptureConfig(
        ffmpeg_path=ffmpeg_path if isinstance(ffmpeg_path, str) and ffmpeg_path else None,
        default_monitor=max(0, int(default_monitor)) if as_number(default_monitor) is not None else None,
        screenshot_format=screenshot_format if screenshot_format in SCREENSHOT_FORMATS else 'png',
        max_video_duration=max_duration,
        capture_backend=backend if backend in CAPTURE_BACKENDS else 'script',
        media_dir=media_dir if isinstance(media_dir, str) and media_dir else DEFAULT_SETTINGS['media_dir'],
    )


def load_config(path):
    """Load settings from a JSON file, falling back to defaults"""
    saved = {}
    try:
        if os.path.exists(path):
            with open(path, 'r', encoding='utf-8') as f:
                saved = json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Error loading settings from {path}: {e}")
        saved = {}
    return parse_config(saved)


def save_config(config, path):
    """Save settings to a JSON file"""
    try:
        folder = os.path.dirname(path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(config.to_dict(), f, ensure_ascii=False, indent=2)
        return True
    except OSError as e:
        logger.error(f"Error saving settings to {path}: {e}")
        return False
