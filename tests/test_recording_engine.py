import os

import pytest

import recording_engine
from capture_errors import CaptureError, RequestValidationError
from conftest import VIDEO_BYTES, FakeBackend, FakeExecutor
from monitor_enumerator import MonitorEnumerator
from process_executor import ProcessSpawnError, ProcessTimeoutError
from recording_engine import (
    RecordRequest,
    ScreenRecorder,
    build_ffmpeg_args,
    ffmpeg_candidates,
    well_known_ffmpeg_paths,
)

CONFIGURED = '/opt/tools/ffmpeg'
ON_PATH = '/usr/bin/ffmpeg'


@pytest.fixture(autouse=True)
def ffmpeg_on_path(monkeypatch):
    monkeypatch.setattr(recording_engine.shutil, 'which', lambda name: ON_PATH)


def make_recorder(executor, temp_manager, media_store, backend=None, ffmpeg_path=None):
    enumerator = MonitorEnumerator(backend or FakeBackend(), temp_manager)
    return ScreenRecorder(executor, enumerator, temp_manager, media_store, ffmpeg_path=ffmpeg_path)


# =============================================================================
# Request validation
# =============================================================================

def test_duration_is_required():
    with pytest.raises(RequestValidationError) as excinfo:
        RecordRequest.from_params({'fps': 30}, 60)
    payload = excinfo.value.to_payload()
    assert payload['error'] == 'duration is required'
    assert payload['hint'] == 'Specify duration in seconds (1-60)'


@pytest.mark.parametrize('duration, max_duration, expected', [
    (120, 60, 60),
    (0, 60, 1),
    (-4, 60, 1),
    (2.5, 60, 3),
    (45, 30, 30),
    (45, 300, 45),
])
def test_duration_is_rounded_and_clamped(duration, max_duration, expected):
    assert RecordRequest.from_params({'duration': duration}, max_duration).duration_seconds == expected


@pytest.mark.parametrize('fps, expected', [(None, 30), (5, 10), (100, 60), (24.5, 25), ('60', 30)])
def test_fps_is_clamped(fps, expected):
    params = {'duration': 5}
    if fps is not None:
        params['fps'] = fps
    assert RecordRequest.from_params(params).fps == expected


def test_monitor_is_optional():
    assert RecordRequest.from_params({'duration': 5}).monitor_index is None
    assert RecordRequest.from_params({'duration': 5, 'monitor': 1}).monitor_index == 1


# =============================================================================
# FFmpeg resolution
# =============================================================================

def test_candidates_are_ordered():
    candidates = ffmpeg_candidates(CONFIGURED)
    assert candidates[:2] == [CONFIGURED, ON_PATH]
    assert candidates[2:] == well_known_ffmpeg_paths()


def test_configured_path_wins(temp_manager, media_store):
    executor = FakeExecutor(available={CONFIGURED, ON_PATH})
    recorder = make_recorder(executor, temp_manager, media_store, ffmpeg_path=CONFIGURED)
    assert recorder.find_ffmpeg() == CONFIGURED
    assert executor.probes == [CONFIGURED]


def test_path_lookup_used_when_configured_path_fails(temp_manager, media_store):
    executor = FakeExecutor(available={ON_PATH})
    recorder = make_recorder(executor, temp_manager, media_store, ffmpeg_path=CONFIGURED)
    assert recorder.find_ffmpeg() == ON_PATH
    assert executor.probes == [CONFIGURED, ON_PATH]


def test_well_known_locations_tried_last(temp_manager, media_store, monkeypatch):
    monkeypatch.setattr(recording_engine.shutil, 'which', lambda name: None)
    known = well_known_ffmpeg_paths()
    executor = FakeExecutor(available={known[2]})
    recorder = make_recorder(executor, temp_manager, media_store)
    assert recorder.find_ffmpeg() == known[2]
    assert executor.probes == known[:3]


def test_missing_ffmpeg_fails_before_any_recording(temp_manager, media_store, temp_dir):
    executor = FakeExecutor(available=())
    recorder = make_recorder(executor, temp_manager, media_store)

    with pytest.raises(CaptureError) as excinfo:
        recorder.record(RecordRequest(duration_seconds=5))

    payload = excinfo.value.to_payload()
    assert payload['error'] == 'FFmpeg not found'
    assert 'winget install ffmpeg' in payload['hint']
    assert executor.runs == []
    assert os.listdir(temp_dir) == []


# =============================================================================
# Recording
# =============================================================================

def test_build_args_for_whole_desktop():
    args = build_ffmpeg_args('out.mp4', 5, 30)
    assert args[:4] == ['-f', 'gdigrab', '-framerate', '30']
    assert '-offset_x' not in args
    assert args[args.index('-i') + 1] == 'desktop'
    assert args[args.index('-t') + 1] == '5'
    assert args[args.index('-vf') + 1] == 'pad=ceil(iw/2)*2:ceil(ih/2)*2'
    assert args[-2:] == ['-y', 'out.mp4']


def test_build_args_for_one_monitor():
    args = build_ffmpeg_args('out.mp4', 5, 15, {'x': 1920, 'y': 0, 'width': 1280, 'height': 1024})
    assert args[args.index('-offset_x') + 1] == '1920'
    assert args[args.index('-offset_y') + 1] == '0'
    assert args[args.index('-video_size') + 1] == '1280x1024'
    assert args.index('-video_size') < args.index('-i')


def test_successful_recording(temp_manager, media_store, temp_dir, media_dir):
    executor = FakeExecutor(available={ON_PATH})
    recorder = make_recorder(executor, temp_manager, media_store)

    result = recorder.record(RecordRequest(duration_seconds=5))

    payload = result.to_payload()
    assert payload['success'] is True
    assert payload['size'] == len(VIDEO_BYTES) > 0
    assert payload['contentType'] == 'video/mp4'
    assert payload['duration'] == 5
    assert payload['fps'] == 30
    assert payload['monitor'] is None
    assert payload['monitorBounds'] is None
    assert payload['message'] == 'Recorded 5s of all monitors at 30fps'
    assert 'warnings' not in payload
    assert os.path.dirname(result.path) == str(media_dir / 'recordings')
    assert os.path.basename(result.path).startswith('screen-recording-5s')

    run = executor.runs[0]
    assert run['command'] == ON_PATH
    assert run['timeout'] == 35
    assert run['hide_window'] is True
    assert os.listdir(temp_dir) == []


def test_specific_monitor_uses_its_bounds(temp_manager, media_store):
    executor = FakeExecutor(available={ON_PATH})
    recorder = make_recorder(executor, temp_manager, media_store)

    payload = recorder.record(RecordRequest(duration_seconds=3, monitor_index=1, fps=20)).to_payload()

    assert payload['monitor'] == 1
    assert payload['monitorBounds'] == {'x': 1920, 'y': 0, 'width': 1280, 'height': 1024}
    assert payload['message'] == 'Recorded 3s of monitor 1 at 20fps'
    assert '-video_size' in executor.runs[0]['args']


def test_unknown_monitor_records_first_monitor(temp_manager, media_store):
    executor = FakeExecutor(available={ON_PATH})
    recorder = make_recorder(executor, temp_manager, media_store)
    payload = recorder.record(RecordRequest(duration_seconds=3, monitor_index=9)).to_payload()
    assert payload['monitor'] == 9
    assert payload['monitorBounds'] == {'x': 0, 'y': 0, 'width': 1920, 'height': 1080}


def test_unavailable_bounds_is_a_hard_error(temp_manager, media_store, temp_dir):
    executor = FakeExecutor(available={ON_PATH})
    recorder = make_recorder(executor, temp_manager, media_store, backend=FakeBackend(records=[]))

    with pytest.raises(CaptureError) as excinfo:
        recorder.record(RecordRequest(duration_seconds=3, monitor_index=0))

    assert excinfo.value.error == 'Failed to get monitor bounds'
    assert executor.runs == []
    assert os.listdir(temp_dir) == []


@pytest.mark.parametrize('output, details', [
    (None, 'Recording failed - no output file created'),
    (b'', 'Recording produced empty file'),
])
def test_bad_artifact_fails_and_cleans_up(temp_manager, media_store, temp_dir, media_dir, output, details):
    executor = FakeExecutor(available={ON_PATH}, output=output)
    recorder = make_recorder(executor, temp_manager, media_store)

    with pytest.raises(CaptureError) as excinfo:
        recorder.record(RecordRequest(duration_seconds=2))

    payload = excinfo.value.to_payload()
    assert payload['error'] == 'Screen recording failed'
    assert payload['details'] == details
    assert payload['kind'] == 'artifact'
    assert 'hint' in payload
    assert os.listdir(temp_dir) == []
    assert not media_dir.exists()


@pytest.mark.parametrize('error', [ProcessTimeoutError('ffmpeg', 32), ProcessSpawnError('ffmpeg', OSError('denied'))])
def test_execution_failures(temp_manager, media_store, temp_dir, error):
    executor = FakeExecutor(available={ON_PATH}, error=error)
    recorder = make_recorder(executor, temp_manager, media_store)

    with pytest.raises(CaptureError) as excinfo:
        recorder.record(RecordRequest(duration_seconds=2))

    assert excinfo.value.kind == 'execution'
    assert excinfo.value.error == 'Screen recording failed'
    assert os.listdir(temp_dir) == []


def test_nonzero_exit_with_valid_file_is_only_a_warning(temp_manager, media_store):
    executor = FakeExecutor(available={ON_PATH}, returncode=255)
    recorder = make_recorder(executor, temp_manager, media_store)

    payload = recorder.record(RecordRequest(duration_seconds=2)).to_payload()

    assert payload['success'] is True
    assert payload['warnings'] == ['FFmpeg exited with status 255']


def test_status_updates(temp_manager, media_store):
    executor = FakeExecutor(available={ON_PATH})
    recorder = make_recorder(executor, temp_manager, media_store)
    messages = []
    recorder.set_status_callback(messages.append)
    recorder.record(RecordRequest(duration_seconds=2))
    assert messages[0] == 'Recording'
    assert messages[-1].startswith('Saved: screen-recording-2s')


def test_non_mapping_params_mean_missing_duration():
    with pytest.raises(RequestValidationError):
        RecordRequest.from_params(['duration', 5], 60)
