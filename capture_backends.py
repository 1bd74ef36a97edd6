# capture_backends.py
# Swappable ways of enumerating monitors and grabbing a still image
# Dependencies: mss, pillow

import logging

import mss
import mss.exception
from PIL import Image

from capture_scripts import PRIMARY_FLAG, list_monitors_script, screenshot_script

logger = logging.getLogger(__name__)

_PIL_FORMATS = {
    'png': 'PNG',
    'jpeg': 'JPEG',
}


class BackendError(Exception):
    """The native capture library failed"""


class ScriptCaptureBackend:
    """Generates a PowerShell script per call and runs it through the executor"""

    name = 'script'

    def __init__(self, executor, powershell='powershell'):
        self.executor = executor
        self.powershell = powershell

    def monitor_records(self, scope, timeout=10):
        result = self._run_script(scope, 'list-monitors', list_monitors_script(), timeout)
        return [line for line in result.stdout.splitlines() if line.strip()]

    def capture(self, scope, output_path, monitor_index, image_format='png', timeout=30):
        script = screenshot_script(output_path, monitor_index, image_format)
        self._run_script(scope, 'screenshot', script, timeout)

    def _run_script(self, scope, purpose, script, timeout):
        artifact = scope.allocate(purpose, '.ps1')
        with open(artifact.path, 'w', encoding='utf-8') as f:
            f.write(script)
        args = ['-NoProfile', '-ExecutionPolicy', 'Bypass', '-File', artifact.path]
        return self.executor.run(self.powershell, args, timeout=timeout, hide_window=True).check()


class NativeCaptureBackend:
    """In-process capture through mss; no script or child process needed"""

    name = 'native'

    def monitor_records(self, scope=None, timeout=None):
        try:
            with mss.mss() as sct:
                # monitors[0] is the combined virtual screen
                physical = sct.monitors[1:]
        except mss.exception.ScreenShotError as e:
            raise BackendError(f"Monitor enumeration failed: {e}") from e

        records = []
        for i, monitor in enumerate(physical):
            # the primary display always sits at the desktop origin
            primary = PRIMARY_FLAG if monitor['left'] == 0 and monitor['top'] == 0 else ''
            records.append((
                i, f"DISPLAY{i + 1}", monitor['width'], monitor['height'],
                monitor['left'], monitor['top'], primary,
            ))
        return records

    def capture(self, scope, output_path, monitor_index, image_format='png', timeout=None):
        try:
            with mss.mss() as sct:
                physical = sct.monitors[1:] or sct.monitors
                if monitor_index >= len(physical):
                    monitor_index = 0
                shot = sct.grab(physical[monitor_index])
        except mss.exception.ScreenShotError as e:
            raise BackendError(f"Screen grab failed: {e}") from e

        image = Image.frombytes("RGB", shot.size, shot.bgra, "raw", "BGRX")
        pil_format = _PIL_FORMATS.get(image_format, 'PNG')
        if pil_format == 'JPEG':
            image.save(output_path, format='JPEG', quality=95, optimize=True)
        else:
            image.save(output_path, format='PNG', optimize=True)


def create_backend(name, executor):
    if name == 'native':
        return NativeCaptureBackend()
    return ScriptCaptureBackend(executor)
