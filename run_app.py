# run_app.py
# Main entry point for the SnapCapture screenshot & screen recording tools

"""
SnapCapture command line
========================

Runs the same tools the host plugin registers:

    snapcapture monitors
    snapcapture screenshot --delay 2 --monitor 1
    snapcapture record --duration 10 --fps 30

Each command prints the JSON result; the exit code is 1 when the result
carries an error.

Settings come from a JSON file (--config), using the same keys as the
plugin configuration (ffmpegPath, defaultMonitor, screenshotFormat,
maxVideoDuration, captureBackend, mediaDir).
"""

import argparse
import json
import logging
import sys

from capture_config import load_config
from capture_controller import CaptureController

DEFAULT_CONFIG_FILE = "snapcapture_settings.json"


def build_parser():
    parser = argparse.ArgumentParser(prog='snapcapture', description='Desktop screenshot and screen recording')
    parser.add_argument('--config', default=DEFAULT_CONFIG_FILE, help='JSON settings file')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    commands = parser.add_subparsers(dest='command', required=True)

    commands.add_parser('monitors', help='List available monitors')

    screenshot = commands.add_parser('screenshot', help='Take a screenshot')
    screenshot.add_argument('--delay', type=float, help='Seconds to wait before capturing (0-10)')
    screenshot.add_argument('--monitor', type=int, help='Monitor index to capture')

    record = commands.add_parser('record', help='Record the screen')
    record.add_argument('--duration', type=float, required=True, help='Seconds to record')
    record.add_argument('--monitor', type=int, help='Monitor index (default: all monitors)')
    record.add_argument('--fps', type=int, help='Frames per second (10-60)')
    return parser


def _params(args, *names):
    return {name: getattr(args, name) for name in names if getattr(args, name) is not None}


def run(argv=None, controller=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    if controller is None:
        controller = CaptureController(load_config(args.config))

    if args.command == 'monitors':
        payload = controller.list_monitors()
    elif args.command == 'screenshot':
        payload = controller.take_screenshot(_params(args, 'delay', 'monitor'), include_image=False)
    else:
        payload = controller.record_screen(_params(args, 'duration', 'monitor', 'fps'))

    print(json.dumps(payload, indent=2))
    return 1 if 'error' in payload else 0


def main():
    """Main entry point"""
    try:
        sys.exit(run())
    except KeyboardInterrupt:
        print("\nApplication terminated by user")
        sys.exit(130)


if __name__ == "__main__":
    main()
