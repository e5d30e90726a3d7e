"""Fetching list files into a fresh temporary directory."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor

import requests

__all__ = ["VERSION", "USER_AGENT", "DownloadError", "Downloader", "compare_names"]

VERSION = "v0.17.1"
USER_AGENT = f"sanctionwatch:{VERSION}"
DEFAULT_TIMEOUT = 15.0

_ATTEMPTS = 3
_RETRY_DELAY = 0.1

_log = logging.getLogger(__name__)


class DownloadError(Exception):
    """Raised when the requested files could not all be gathered."""


def compare_names(found: Sequence[str], expected: Mapping[str, str]) -> tuple[str, str]:
    """Return the matched and missing (or unexpected) file names, each comma joined."""
    found_names = [os.path.basename(name) for name in found]
    matched = [name for name in expected if name in found_names]
    missing = [name for name in expected if name not in found_names]
    missing.extend(name for name in found_names if name not in expected)
    return ", ".join(matched), ", ".join(missing)


class Downloader:
    """Downloads files, preferring copies already present in a local directory."""

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout: float | None = DEFAULT_TIMEOUT,
    ) -> None:
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def get_files(
        self,
        initial_dir: str | os.PathLike[str] | None,
        names_and_sources: Mapping[str, str],
    ) -> list[str]:
        """Gather every named file into a new temporary directory and return their paths.

        Files found in ``initial_dir`` (matched case-insensitively) are copied
        instead of downloaded. Callers are expected to remove the directory.
        """
        try:
            directory = tempfile.mkdtemp(prefix="downloader")
        except OSError as err:
            raise DownloadError(f"downloader: unable to make temp dir: {err}") from err

        search_dir = os.fspath(initial_dir) if initial_dir else directory
        try:
            local_files = sorted(os.listdir(search_dir))
        except OSError as err:
            shutil.rmtree(directory, ignore_errors=True)
            raise DownloadError(f"readdir {search_dir}: {err}") from err

        workers = max(1, len(names_and_sources))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(self._fetch, search_dir, local_files, directory, name, source)
                for name, source in names_and_sources.items()
            ]
            for future in futures:
                future.result()

        found = sorted(os.listdir(directory))
        if len(found) != len(names_and_sources):
            matched, missing = compare_names(found, names_and_sources)
            shutil.rmtree(directory, ignore_errors=True)
            raise DownloadError(
                f"download: problem downloading (matched={matched} missing={missing})"
            )
        return [os.path.join(directory, name) for name in found]

    def _fetch(
        self,
        search_dir: str,
        local_files: list[str],
        directory: str,
        filename: str,
        url: str,
    ) -> None:
        target = os.path.join(directory, filename)

        for local in local_files:
            if os.path.basename(local).lower() == filename.lower():
                try:
                    shutil.copyfile(os.path.join(search_dir, local), target)
                except OSError as err:
                    _log.warning("problem copying local file %s: %s", local, err)
                return

        try:
            prepared = requests.Request(
                "GET", url, headers={"User-Agent": USER_AGENT}
            ).prepare()
        except (requests.RequestException, ValueError) as err:
            _log.warning("error building HTTP request: %s", err)
            return

        # Some sources are flaky, so allow a couple of retries.
        for _ in range(_ATTEMPTS):
            try:
                response = self.session.send(prepared, timeout=self.timeout)
            except requests.RequestException:
                time.sleep(_RETRY_DELAY)
                continue
            try:
                with open(target, "wb") as handle:
                    handle.write(response.content)
            except OSError as err:
                _log.warning("problem writing %s: %s", filename, err)
            finally:
                response.close()
            return