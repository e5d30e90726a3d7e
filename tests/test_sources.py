import os
import shutil

import pytest
import responses

from sanctionwatch.download import DownloadError, USER_AGENT
from sanctionwatch.sources import (
    DEFAULT_OFAC_TEMPLATE,
    build_csl_download_url,
    download_csl,
    download_dpl,
    download_ofac,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("OFAC_DOWNLOAD_TEMPLATE", "CSL_DOWNLOAD_TEMPLATE", "DPL_DOWNLOAD_TEMPLATE"):
        monkeypatch.delenv(name, raising=False)


def _write(directory, name, body):
    (directory / name).write_text(body)


def test_csl_download_initial_dir(tmp_path):
    _write(tmp_path, "sdn.csv", "file=sdn.csv")
    _write(tmp_path, "csl.csv", "file=csl.csv")
    _write(tmp_path, "csl.csv", "file=csl.csv")

    path = download_csl(tmp_path)
    try:
        assert os.path.basename(path).lower() == "csl.csv"
        with open(path) as handle:
            assert handle.read() == "file=csl.csv"
    finally:
        shutil.rmtree(os.path.dirname(path))


def test_dpl_download_initial_dir(tmp_path):
    _write(tmp_path, "sdn.csv", "file=sdn.csv")
    _write(tmp_path, "dpl.txt", "file=dpl.txt")

    path = download_dpl(tmp_path)
    try:
        assert os.path.basename(path).lower() == "dpl.txt"
        with open(path) as handle:
            assert handle.read() == "file=dpl.txt"
    finally:
        shutil.rmtree(os.path.dirname(path))


def test_ofac_download_initial_dir_and_network(tmp_path):
    _write(tmp_path, "sdn.csv", "file=sdn.csv")
    _write(tmp_path, "dpl.txt", "file=dpl.txt")

    with responses.RequestsMock() as rsps:
        for name in ("add.csv", "alt.csv", "sdn_comments.csv"):
            rsps.add(responses.GET, DEFAULT_OFAC_TEMPLATE % name, body=f"remote={name}")
        files = download_ofac(tmp_path)
        agents = {call.request.headers["User-Agent"] for call in rsps.calls}

    try:
        assert sorted(os.path.basename(f) for f in files) == [
            "add.csv",
            "alt.csv",
            "sdn.csv",
            "sdn_comments.csv",
        ]
        contents = {}
        for path in files:
            with open(path) as handle:
                contents[os.path.basename(path)] = handle.read()
        assert contents["sdn.csv"] == "file=sdn.csv"
        assert contents["add.csv"] == "remote=add.csv"
        assert agents == {USER_AGENT}
    finally:
        shutil.rmtree(os.path.dirname(files[0]))


def test_csl_download_uses_template(monkeypatch, tmp_path):
    monkeypatch.setenv("CSL_DOWNLOAD_TEMPLATE", "https://lists.example.com/%s")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "https://lists.example.com/consolidated.csv", body="a,b")
        path = download_csl(tmp_path)
    try:
        assert os.path.basename(path) == "csl.csv"
        with open(path) as handle:
            assert handle.read() == "a,b"
    finally:
        shutil.rmtree(os.path.dirname(path))


def test_dpl_download_failure(monkeypatch, tmp_path):
    monkeypatch.setenv("DPL_DOWNLOAD_TEMPLATE", "https://lists.example.com/%s")
    with responses.RequestsMock():
        with pytest.raises(DownloadError, match="dpl download"):
            download_dpl(tmp_path)


def test_csl_download_failure(monkeypatch, tmp_path):
    monkeypatch.setenv("CSL_DOWNLOAD_TEMPLATE", "https://lists.example.com/%s")
    with responses.RequestsMock():
        with pytest.raises(DownloadError, match="csl download"):
            download_csl(tmp_path)


def test_build_download_url_parse_error():
    with pytest.raises(ValueError):
        build_csl_download_url("\\\\://api.trade.gov/blah/blah/%s")


def test_build_download_url_default():
    url = build_csl_download_url(
        "https://api.trade.gov/static/consolidated_screening_list/%s"
    )
    assert url == "https://api.trade.gov/static/consolidated_screening_list/consolidated.csv"


def test_build_download_url_control_character():
    with pytest.raises(ValueError):
        build_csl_download_url("https://api.trade.gov/\x7f/%s")