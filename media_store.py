# media_store.py
# Persists captured bytes under a size quota and returns a stable reference

import logging
import mimetypes
import os
import re
import uuid
from dataclasses import dataclass
from datetime import datetime

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    'image/png': '.png',
    'image/jpeg': '.jpg',
    'video/mp4': '.mp4',
}


class MediaTooLargeError(ValueError):
    def __init__(self, size, max_bytes):
        super().__init__(f"Media exceeds {max_bytes // (1024 * 1024)}MB limit ({size} bytes)")
        self.size = size
        self.max_bytes = max_bytes


@dataclass(frozen=True)
class SavedMedia:
    path: str
    size: int
    content_type: str


class FileMediaStore:
    """Stores media in sub-folders of a root folder.

    Anything with a save(data, content_type, subdir, max_bytes, filename)
    method returning SavedMedia can stand in for this class.
    """

    def __init__(self, root_dir):
        self.root_dir = root_dir

    def save(self, data, content_type=None, subdir='', max_bytes=None, filename=None):
        size = len(data)
        if max_bytes is not None and size > max_bytes:
            raise MediaTooLargeError(size, max_bytes)

        folder = os.path.join(self.root_dir, subdir) if subdir else self.root_dir
        os.makedirs(folder, exist_ok=True)

        path = os.path.join(folder, self._unique_name(filename, content_type))
        with open(path, 'wb') as f:
            f.write(data)

        if not content_type:
            content_type = mimetypes.guess_type(path)[0] or 'application/octet-stream'
        logger.info(f"Saved {os.path.basename(path)} ({size / 1024:.1f}KB)")
        return SavedMedia(path=path, size=size, content_type=content_type)

    def _unique_name(self, filename, content_type):
        stem, ext = os.path.splitext(os.path.basename(filename or 'media'))
        stem = re.sub(r'[^A-Za-z0-9._-]+', '_', stem).strip('._') or 'media'
        if not ext:
            ext = _EXTENSIONS.get(content_type) or mimetypes.guess_extension(content_type or '') or ''
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return f"{stem}_{timestamp}_{uuid.uuid4().hex[:8]}{ext}"
