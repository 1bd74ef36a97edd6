# monitor_enumerator.py
# Lists connected displays through the active capture backend

import logging
from dataclasses import asdict, dataclass
from typing import List, NamedTuple, Optional

from capture_backends import BackendError
from capture_scripts import MONITOR_RECORD_SEPARATOR, PRIMARY_FLAG
from process_executor import ProcessError

logger = logging.getLogger(__name__)

ENUMERATION_TIMEOUT = 10
_RECORD_FIELDS = 7


@dataclass(frozen=True)
class MonitorDescriptor:
    index: int
    name: str
    width: int
    height: int
    x: int
    y: int
    primary: bool

    def to_dict(self):
        return asdict(self)

    def bounds(self):
        return {'x': self.x, 'y': self.y, 'width': self.width, 'height': self.height}


class MonitorEnumeration(NamedTuple):
    monitors: List[MonitorDescriptor]
    error: Optional[str] = None


def parse_monitor_records(records):
    """Turn backend records into descriptors indexed 0..n-1 in emission order.

    The backend's own index column is ignored. Records with the wrong number
    of fields or unusable geometry are skipped.
    """
    monitors = []
    for record in records:
        if isinstance(record, str):
            fields = record.strip().split(MONITOR_RECORD_SEPARATOR)
        else:
            fields = list(record)
        if len(fields) != _RECORD_FIELDS:
            logger.debug(f"Skipping malformed monitor record: {record!r}")
            continue

        _, name, width, height, x, y, flag = fields
        try:
            width, height, x, y = int(width), int(height), int(x), int(y)
        except (TypeError, ValueError):
            logger.debug(f"Skipping monitor record with bad geometry: {record!r}")
            continue
        if width <= 0 or height <= 0:
            continue

        monitors.append(MonitorDescriptor(
            index=len(monitors),
            name=str(name).strip(),
            width=width,
            height=height,
            x=x,
            y=y,
            primary=str(flag).strip() == PRIMARY_FLAG,
        ))
    return monitors


class MonitorEnumerator:
    def __init__(self, backend, temp_manager, timeout=ENUMERATION_TIMEOUT):
        self.backend = backend
        self.temp_manager = temp_manager
        self.timeout = timeout

    def enumerate_with_diagnostic(self):
        """Enumerate monitors; failures give an empty list plus a message"""
        try:
            with self.temp_manager.scope() as scope:
                records = self.backend.monitor_records(scope, timeout=self.timeout)
        except (ProcessError, BackendError, OSError) as e:
            logger.warning(f"Monitor enumeration failed: {e}")
            return MonitorEnumeration([], str(e))

        monitors = parse_monitor_records(records)
        if records and not monitors:
            sample = ', '.join(repr(record) for record in list(records)[:3])
            error = f"Could not parse monitor list: {sample}"
            logger.warning(error)
            return MonitorEnumeration([], error)
        return MonitorEnumeration(monitors)

    def enumerate(self):
        return self.enumerate_with_diagnostic().monitors

    def bounds_of(self, index):
        """Monitor at index, monitor 0 if out of range, None if none found"""
        monitors = self.enumerate()
        if not monitors:
            return None
        if index is not None and 0 <= index < len(monitors):
            return monitors[index]
        logger.info(f"Monitor {index} not found, using monitor 0")
        return monitors[0]
