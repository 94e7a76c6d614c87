"""Shared fixtures for path resolution tests."""

import json
import os
import threading
import time

import pytest

from constants import Constants
from pathresolution.cache import CacheBackend
from pathresolution.errors import ErrorKind
from pathresolution.models import InstallationKind, StrategyPriority
from pathresolution.strategies.base import PathResolutionStrategy


class StubStrategy(PathResolutionStrategy):
    """Strategy returning a fixed (or computed) path and counting calls."""

    def __init__(
        self,
        identifier,
        path_kinds,
        installation_kinds=None,
        priority=StrategyPriority.MEDIUM,
        result=None,
        raises=None,
        delay=0.0,
    ):
        self.identifier = identifier
        self.path_kinds = frozenset(path_kinds)
        self.installation_kinds = frozenset(installation_kinds or InstallationKind.concrete())
        self._priority = priority
        self._result = result
        self._raises = raises
        self._delay = delay
        self._lock = threading.Lock()
        self.calls = 0

    def priority(self, path_kind, installation_kind):
        return self._priority

    def resolve(self, request):
        with self._lock:
            self.calls += 1
        if self._delay:
            time.sleep(self._delay)
        if self._raises is not None:
            raise self._raises
        path = self._result(request) if callable(self._result) else self._result
        if path is None:
            return self._failure(
                request, ErrorKind.CANDIDATE_NOT_FOUND, f"{self.identifier} found nothing",
                attempted=[os.path.join(request.installation_root, self.identifier)],
            )
        return self._success(request, path)


class DictBackend(CacheBackend):
    """In-memory persistent layer used to observe write-through."""

    def __init__(self):
        self.data = {}
        self.set_calls = 0

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value, ttl=None):
        self.set_calls += 1
        self.data[key] = value

    def has(self, key):
        return key in self.data

    def delete(self, key):
        self.data.pop(key, None)

    def clear(self):
        self.data.clear()


def build_tree(root, dirs=(), files=None):
    """Create directories and files under ``root``; dict contents are written as JSON."""
    for directory in dirs:
        os.makedirs(os.path.join(str(root), directory), exist_ok=True)
    for relative, content in (files or {}).items():
        path = os.path.join(str(root), relative)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        if isinstance(content, (dict, list)):
            content = json.dumps(content)
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(content)
    return str(root)


@pytest.fixture
def site(tmp_path):
    """Builder for an installation rooted at ``<tmp>/site``."""
    root = tmp_path / "site"
    root.mkdir()

    def _build(dirs=(), files=None):
        return build_tree(root, dirs, files)

    return _build


@pytest.fixture
def stub_strategy():
    return StubStrategy


@pytest.fixture
def dict_backend():
    return DictBackend()


@pytest.fixture(autouse=True)
def restore_constants():
    """Keep Constants overrides from leaking between tests."""
    saved = {k: v for k, v in vars(Constants).items() if k.isupper()}
    yield
    for key, value in saved.items():
        setattr(Constants, key, value)
