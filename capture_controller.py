# capture_controller.py
# Controller that exposes the capture engines as host tools
# This bridges the host's tool calls and the screenshot/recording engines

import base64
import json
import logging
import sys
from dataclasses import dataclass
from typing import Any, Callable, Dict

from capture_backends import create_backend
from capture_config import CONFIG_UI_HINTS, CaptureConfig, parse_config
from capture_errors import CaptureError
from media_store import FileMediaStore
from monitor_enumerator import MonitorEnumerator
from process_executor import ProcessExecutor
from recording_engine import RecordRequest, ScreenRecorder
from screenshot_engine import CaptureRequest, ScreenshotCapturer
from temp_resources import TempResourceManager

logger = logging.getLogger(__name__)

MONITOR_HINT = ("Use the 'monitor' parameter in take_screenshot or record_screen "
                "to capture a specific monitor by index.")


def json_result(payload):
    return {
        'content': [{'type': 'text', 'text': json.dumps(payload, indent=2)}],
        'details': payload,
    }


def image_result(payload):
    """Tool result with the text summary followed by the image itself"""
    content = [{'type': 'text', 'text': payload['text']}]
    image = payload.get('image')
    if image:
        content.append({'type': 'image', 'data': image['data'], 'mimeType': image['mimeType']})
    return {'content': content, 'details': payload['details']}


@dataclass
class CaptureTool:
    name: str
    label: str
    description: str
    parameters: Dict[str, Any]
    execute: Callable


class CaptureController:
    def __init__(self, config=None, executor=None, temp_manager=None, media_sink=None, backend=None):
        self.config = config if isinstance(config, CaptureConfig) else parse_config(config)
        self.executor = executor or ProcessExecutor()
        self.temp_manager = temp_manager or TempResourceManager()
        self.media_sink = media_sink or FileMediaStore(self.config.media_dir)
        self.backend = backend or create_backend(self.config.capture_backend, self.executor)

        self.enumerator = MonitorEnumerator(self.backend, self.temp_manager)
        self.screenshots = ScreenshotCapturer(self.backend, self.temp_manager, self.media_sink)
        self.recorder = ScreenRecorder(
            self.executor, self.enumerator, self.temp_manager, self.media_sink,
            ffmpeg_path=self.config.ffmpeg_path,
        )

    def set_status_callback(self, callback):
        """Set callback for status updates from both engines"""
        self.screenshots.set_status_callback(callback)
        self.recorder.set_status_callback(callback)

    def list_monitors(self):
        enumeration = self.enumerator.enumerate_with_diagnostic()
        if enumeration.error:
            return {'error': 'Failed to list monitors', 'details': enumeration.error}
        return {
            'monitors': [monitor.to_dict() for monitor in enumeration.monitors],
            'count': len(enumeration.monitors),
            'hint': MONITOR_HINT,
        }

    def take_screenshot(self, params=None, include_image=True):
        try:
            request = CaptureRequest.from_params(params, self.config)
            result = self.screenshots.capture(request)
        except CaptureError as e:
            return e.to_payload()
        except Exception as e:
            logger.exception("Unexpected screenshot failure")
            return {'error': 'Screenshot capture failed', 'details': str(e), 'platform': sys.platform}

        payload = {
            'label': 'Screenshot',
            'path': result.path,
            'size': result.size,
            'contentType': result.content_type,
            'text': (f"Screenshot captured (monitor {result.monitor_index}, {result.image_format}). "
                     f"Saved to: {result.path}"),
            'details': result.details(),
        }
        if include_image:
            try:
                with open(result.path, 'rb') as f:
                    data = base64.b64encode(f.read()).decode('ascii')
                payload['image'] = {'data': data, 'mimeType': result.content_type}
            except OSError as e:
                logger.warning(f"Could not read saved screenshot {result.path}: {e}")
        return payload

    def record_screen(self, params=None):
        try:
            request = RecordRequest.from_params(params, self.config.max_video_duration)
            return self.recorder.record(request).to_payload()
        except CaptureError as e:
            return e.to_payload()
        except Exception as e:
            logger.exception("Unexpected recording failure")
            return {'error': 'Screen recording failed', 'details': str(e)}

    def tools(self):
        max_duration = self.config.max_video_duration

        def run_list_monitors(tool_call_id=None, params=None):
            return json_result(self.list_monitors())

        def run_take_screenshot(tool_call_id=None, params=None):
            payload = self.take_screenshot(params)
            if 'error' in payload:
                return json_result(payload)
            return image_result(payload)

        def run_record_screen(tool_call_id=None, params=None):
            return json_result(self.record_screen(params))

        return [
            CaptureTool(
                name='list_monitors',
                label='List Monitors',
                description=("List all available monitors/displays on the system. Returns monitor index, "
                             "name, resolution, and position. Use this to see which monitors are "
                             "available before taking a screenshot."),
                parameters={'type': 'object', 'properties': {}},
                execute=run_list_monitors,
            ),
            CaptureTool(
                name='take_screenshot',
                label='Take Screenshot',
                description=("Take a screenshot of the desktop screen. Returns the captured image. Use "
                             "this when you need to see what's on the user's screen or capture visual "
                             "information."),
                parameters={
                    'type': 'object',
                    'properties': {
                        'delay': {
                            'type': 'number', 'minimum': 0, 'maximum': 10,
                            'description': 'Seconds to wait before capturing (0-10). Default: 0',
                        },
                        'monitor': {
                            'type': 'number', 'minimum': 0,
                            'description': 'Monitor index to capture (0 = primary). Default: 0',
                        },
                    },
                },
                execute=run_take_screenshot,
            ),
            CaptureTool(
                name='record_screen',
                label='Record Screen',
                description=("Record a video of the desktop screen. Requires FFmpeg to be installed. "
                             "Use this to capture a video showing actions on the screen, "
                             "demonstrations, or to document a process. Returns a path to the "
                             "recorded video file."),
                parameters={
                    'type': 'object',
                    'properties': {
                        'duration': {
                            'type': 'number', 'minimum': 1, 'maximum': max_duration,
                            'description': f"Duration in seconds to record (1-{max_duration}). Required.",
                        },
                        'monitor': {
                            'type': 'number', 'minimum': 0,
                            'description': ("Monitor index to capture. Use list_monitors to see available "
                                            "monitors. If not specified, captures all monitors combined."),
                        },
                        'fps': {
                            'type': 'number', 'minimum': 10, 'maximum': 60,
                            'description': "Frames per second (10-60). Default: 30. Lower fps = smaller file size.",
                        },
                    },
                    'required': ['duration'],
                },
                execute=run_record_screen,
            ),
        ]


class ScreenCapturePlugin:
    id = 'screen-capture'
    name = 'Screen Capture'
    description = 'Take screenshots and record videos of your desktop screen (Windows)'
    config_schema = {
        'parse': parse_config,
        'ui_hints': CONFIG_UI_HINTS,
    }

    def __init__(self, platform=None):
        self.platform = platform or sys.platform

    def register(self, api):
        """Register the capture tools with the host; Windows only"""
        host_logger = getattr(api, 'logger', None) or logger
        if self.platform != 'win32':
            host_logger.warning("Screen Capture plugin is currently Windows-only")
            return False

        controller = CaptureController(parse_config(getattr(api, 'plugin_config', None)))
        for tool in controller.tools():
            api.register_tool(tool)
        host_logger.info("Screen Capture plugin registered (list_monitors + screenshot + video tools)")
        return True
