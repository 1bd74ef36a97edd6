# process_executor.py
# Runs external capture utilities with a hard timeout and a hidden window
# Dependencies: psutil

import logging
import subprocess
import sys

import psutil

logger = logging.getLogger(__name__)

# Windows-only flags to keep console windows from flashing up
_CREATE_NO_WINDOW = getattr(subprocess, 'CREATE_NO_WINDOW', 0)


class ProcessError(Exception):
    """Base class for subprocess failures"""

    def __init__(self, command, message):
        super().__init__(message)
        self.command = command


class ProcessSpawnError(ProcessError):
    """The command could not be started at all"""

    def __init__(self, command, cause):
        super().__init__(command, f"Failed to start {command}: {cause}")
        self.cause = cause


class ProcessTimeoutError(ProcessError, TimeoutError):
    """The command ran past its deadline and was killed"""

    def __init__(self, command, timeout):
        super().__init__(command, f"{command} timed out after {timeout:g}s")
        self.timeout = timeout


class ProcessExitError(ProcessError):
    """The command finished with a non-zero exit status"""

    def __init__(self, command, returncode, stdout=''):
        super().__init__(command, f"{command} exited with status {returncode}")
        self.returncode = returncode
        self.stdout = stdout


class ProcessResult:
    def __init__(self, command, returncode, stdout=''):
        self.command = command
        self.returncode = returncode
        self.stdout = stdout

    @property
    def ok(self):
        return self.returncode == 0

    def check(self):
        """Raise ProcessExitError unless the command exited cleanly"""
        if not self.ok:
            raise ProcessExitError(self.command, self.returncode, self.stdout)
        return self

    def __repr__(self):
        return f"ProcessResult(command={self.command!r}, returncode={self.returncode})"


def _hidden_startupinfo():
    if sys.platform != 'win32':
        return None
    info = subprocess.STARTUPINFO()
    info.dwFlags |= subprocess.STARTF_USESHOWWINDOW
    info.wShowWindow = subprocess.SW_HIDE
    return info


class ProcessExecutor:
    """Bounded subprocess runner shared by enumeration, screenshot and recording.

    stdout is captured (or discarded for long encoder runs), stderr is always
    discarded because capture tools use it for progress noise. A timeout kills
    the child together with anything it spawned and raises ProcessTimeoutError.
    """

    def __init__(self, encoding='utf-8'):
        self.encoding = encoding

    def run(self, command, args=(), timeout=30, hide_window=True, capture_output=True):
        argv = [str(command)] + [str(arg) for arg in args]
        popen_kwargs = {
            'stdin': subprocess.DEVNULL,
            'stdout': subprocess.PIPE if capture_output else subprocess.DEVNULL,
            'stderr': subprocess.DEVNULL,
        }
        if hide_window and sys.platform == 'win32':
            popen_kwargs['creationflags'] = _CREATE_NO_WINDOW
            popen_kwargs['startupinfo'] = _hidden_startupinfo()

        logger.debug(f"Running {argv[0]} (timeout {timeout}s)")
        try:
            process = subprocess.Popen(argv, **popen_kwargs)
        except (OSError, ValueError) as e:
            raise ProcessSpawnError(argv[0], e) from e

        with process:
            try:
                stdout, _ = process.communicate(timeout=timeout)
            except subprocess.TimeoutExpired:
                self._kill_tree(process)
                raise ProcessTimeoutError(argv[0], timeout)
            except BaseException:
                # interrupted; never leave the child writing into a temp file
                self._kill_tree(process)
                raise

        text = stdout.decode(self.encoding, errors='replace') if stdout else ''
        return ProcessResult(argv[0], process.returncode, text)

    def probe(self, command, args=('-version',), timeout=5):
        """Return True if the command starts and exits with status 0"""
        try:
            return self.run(command, args, timeout=timeout, capture_output=False).ok
        except ProcessError as e:
            logger.debug(f"Probe failed for {command}: {e}")
            return False

    def _kill_tree(self, process):
        try:
            children = psutil.Process(process.pid).children(recursive=True)
        except psutil.Error:
            children = []
        for child in children:
            try:
                child.kill()
            except psutil.Error:
                pass
        process.kill()
        # reap the child so no zombie is left behind; pipes close with the Popen context
        try:
            process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            logger.warning(f"Process {process.pid} did not exit after kill")
