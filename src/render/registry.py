"""Registries resolve a relative path to file content.

The default registry reads the local filesystem, relative to an optional
working directory, and fetches the path directly when it is a URL.
"""

import logging
import os
from pathlib import Path
from typing import Protocol, runtime_checkable
from urllib.parse import urlparse

import requests

from errors import LoadFileError

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY = 'default'
URL_TIMEOUT = 30


@runtime_checkable
class Registry(Protocol):
    def load_file(self, path: str) -> str:
        ...


def is_url(path: str) -> bool:
    parsed = urlparse(path)
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def expand_path(path: str) -> str:
    """Expand ~ and $VARS in a local path."""
    return os.path.expandvars(os.path.expanduser(path))


def load_url(url: str) -> str:
    logger.debug(f"Fetching {url}")
    try:
        resp = requests.get(url, timeout=URL_TIMEOUT)
    except requests.exceptions.RequestException as e:
        raise LoadFileError(f"unable to fetch {url}: {e}") from e
    if resp.status_code != 200:
        raise LoadFileError(f"unable to fetch {url}: HTTP {resp.status_code}")
    return resp.text


class DirectoryRegistry:
    """Registry rooted at a local working directory."""

    def __init__(self, working_directory: str = ''):
        self.working_directory = working_directory

    def __repr__(self) -> str:
        return f"DirectoryRegistry({self.working_directory!r})"

    def resolve_path(self, path: str) -> str:
        if is_url(path) or not self.working_directory:
            return path
        return str(Path(expand_path(self.working_directory)) / path)

    def load_file(self, path: str) -> str:
        resolved = self.resolve_path(path)
        if is_url(resolved):
            return load_url(resolved)
        local = Path(expand_path(resolved))
        try:
            return local.read_text()
        except OSError as e:
            raise LoadFileError(f"unable to read {local}: {e}") from e
