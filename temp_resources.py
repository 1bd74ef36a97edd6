# temp_resources.py
# Ephemeral file paths for generated scripts and intermediate media

import logging
import os
import tempfile
import uuid
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TempArtifact:
    path: str
    owner: str
    purpose: str


def new_owner_id():
    """Opaque id for one tool invocation"""
    return uuid.uuid4().hex


class TempResourceManager:
    """Hands out collision-free paths in a shared temp directory.

    Paths are only reserved by name; the capture tool creates the file.
    """

    def __init__(self, directory=None):
        self.directory = directory or tempfile.gettempdir()

    def allocate(self, purpose, suffix='', owner=None):
        filename = f"{purpose}-{uuid.uuid4()}{suffix}"
        return TempArtifact(
            path=os.path.join(self.directory, filename),
            owner=owner or new_owner_id(),
            purpose=purpose,
        )

    def release(self, artifact):
        """Delete the artifact's file, ignoring errors"""
        try:
            os.remove(artifact.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.debug(f"Could not remove temp file {artifact.path}: {e}")

    def scope(self, owner=None):
        return TempScope(self, owner or new_owner_id())


class TempScope:
    """Owns every artifact allocated through it and releases them on exit"""

    def __init__(self, manager, owner):
        self.manager = manager
        self.owner = owner
        self._artifacts = []

    def allocate(self, purpose, suffix=''):
        artifact = self.manager.allocate(purpose, suffix, owner=self.owner)
        self._artifacts.append(artifact)
        return artifact

    @property
    def artifacts(self):
        return tuple(self._artifacts)

    def close(self):
        while self._artifacts:
            self.manager.release(self._artifacts.pop())

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
