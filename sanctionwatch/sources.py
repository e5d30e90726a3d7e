"""Download helpers for the OFAC, CSL and DPL source lists."""

from __future__ import annotations

import os
import re

from .download import DownloadError, Downloader

__all__ = [
    "OFAC_FILENAMES",
    "DEFAULT_OFAC_TEMPLATE",
    "DEFAULT_CSL_TEMPLATE",
    "DEFAULT_DPL_TEMPLATE",
    "download_ofac",
    "download_csl",
    "download_dpl",
    "build_csl_download_url",
]

OFAC_FILENAMES = (
    "add.csv",  # Address
    "alt.csv",  # Alternate ID
    "sdn.csv",  # Specially Designated National
    "sdn_comments.csv",  # Specially Designated National Comments
)

DEFAULT_OFAC_TEMPLATE = "https://www.treasury.gov/ofac/downloads/%s"
DEFAULT_CSL_TEMPLATE = "https://api.trade.gov/static/consolidated_screening_list/%s"
DEFAULT_DPL_TEMPLATE = "https://www.bis.doc.gov/dpl/%s"

_SCHEME = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*:")


def _template(variable: str, default: str) -> str:
    return os.environ.get(variable) or default


def _fill(template: str, name: str) -> str:
    return template.replace("%s", name, 1)


def _validate_url(raw: str) -> str:
    """Reject URLs that cannot be parsed; return the URL unchanged otherwise."""
    if any(ord(char) < 0x20 or ord(char) == 0x7F for char in raw):
        raise ValueError(f"parse {raw!r}: invalid control character in URL")
    without_fragment = raw.split("#", 1)[0]
    if without_fragment.startswith(":"):
        raise ValueError(f"parse {raw!r}: missing protocol scheme")
    if _SCHEME.match(without_fragment):
        return raw
    rest = without_fragment.split("?", 1)[0]
    if rest and not rest.startswith("/"):
        segment = rest.split("/", 1)[0]
        if ":" in segment:
            raise ValueError(
                f"parse {raw!r}: first path segment in URL cannot contain colon"
            )
    return raw


def build_csl_download_url(template: str) -> str:
    """Build the URL of the consolidated CSV file from a ``%s`` template."""
    return _validate_url(_fill(template, "consolidated.csv"))


def _single(
    label: str,
    filename: str,
    url: str,
    initial_dir: str | os.PathLike[str] | None,
    downloader: Downloader | None,
) -> str:
    downloader = downloader if downloader is not None else Downloader()
    try:
        files = downloader.get_files(initial_dir, {filename: url})
    except DownloadError as err:
        raise DownloadError(f"{label} download: {err}") from err
    if not files:
        raise DownloadError(f"{label} download: no file found")
    return files[0]


def download_ofac(
    initial_dir: str | os.PathLike[str] | None = None,
    downloader: Downloader | None = None,
) -> list[str]:
    """Fetch the four OFAC files and return their paths."""
    downloader = downloader if downloader is not None else Downloader()
    template = _template("OFAC_DOWNLOAD_TEMPLATE", DEFAULT_OFAC_TEMPLATE)
    sources = {name: _fill(template, name) for name in OFAC_FILENAMES}
    return downloader.get_files(initial_dir, sources)


def download_csl(
    initial_dir: str | os.PathLike[str] | None = None,
    downloader: Downloader | None = None,
) -> str:
    """Fetch the Consolidated Screening List as ``csl.csv`` and return its path."""
    template = _template("CSL_DOWNLOAD_TEMPLATE", DEFAULT_CSL_TEMPLATE)
    url = build_csl_download_url(template)
    return _single("csl", "csl.csv", url, initial_dir, downloader)


def download_dpl(
    initial_dir: str | os.PathLike[str] | None = None,
    downloader: Downloader | None = None,
) -> str:
    """Fetch the Denied Persons List as ``dpl.txt`` and return its path."""
    template = _template("DPL_DOWNLOAD_TEMPLATE", DEFAULT_DPL_TEMPLATE)
    return _single("dpl", "dpl.txt", _fill(template, "dpl.txt"), initial_dir, downloader)