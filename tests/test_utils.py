import io

import pytest
import requests

from rowgen import utils
from rowgen.utils import (
    SpecLoaderError,
    load_spec,
    load_spec_from_file,
    load_spec_from_stream,
    load_spec_from_url,
)


class _FakeResponse:
    def __init__(self, payload=None, status=200, content_type="application/json"):
        self._payload = payload
        self.status_code = status
        self.headers = {"content-type": content_type}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(response=self)

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON")
        return self._payload


def test_load_from_file(entities_file):
    source, data = load_spec_from_file(entities_file)
    assert source == str(entities_file)
    assert [e["name"] for e in data["entities"]] == ["Note", "Tag"]


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_spec_from_file(tmp_path / "nope.json")


def test_invalid_json_file(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{", encoding="utf-8")
    with pytest.raises(SpecLoaderError, match="Invalid JSON"):
        load_spec_from_file(path)


def test_load_from_url(monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return _FakeResponse({"name": "Tag"})

    monkeypatch.setattr(utils.requests, "get", fake_get)
    source, data = load_spec_from_url("https://example.com/entities.json", timeout=5)
    assert source == "https://example.com/entities.json"
    assert data == {"name": "Tag"}
    assert calls == [("https://example.com/entities.json", 5)]


def test_url_http_error(monkeypatch):
    monkeypatch.setattr(utils.requests, "get", lambda url, timeout: _FakeResponse(status=404))
    with pytest.raises(SpecLoaderError, match="HTTP error 404"):
        load_spec_from_url("https://example.com/entities.json")


def test_url_timeout(monkeypatch):
    def fake_get(url, timeout):
        raise requests.exceptions.Timeout()

    monkeypatch.setattr(utils.requests, "get", fake_get)
    with pytest.raises(SpecLoaderError, match="timeout"):
        load_spec_from_url("https://example.com/entities.json")


def test_url_invalid_body(monkeypatch):
    monkeypatch.setattr(utils.requests, "get", lambda url, timeout: _FakeResponse())
    with pytest.raises(SpecLoaderError, match="Invalid JSON response"):
        load_spec_from_url("https://example.com/entities.json")


def test_invalid_url():
    with pytest.raises(SpecLoaderError, match="Invalid URL"):
        load_spec_from_url("entities.json")


def test_load_from_stream():
    assert load_spec_from_stream(io.StringIO('{"name": "Tag"}')) == ("<stdin>", {"name": "Tag"})
    with pytest.raises(SpecLoaderError):
        load_spec_from_stream(io.StringIO("{"))


def test_load_spec_requires_exactly_one_source(entities_file):
    with pytest.raises(SpecLoaderError):
        load_spec()
    with pytest.raises(SpecLoaderError):
        load_spec(file_path=entities_file, url="https://example.com/x.json")
    assert load_spec(file_path=entities_file)[0] == str(entities_file)


def test_non_utf8_file(tmp_path):
    path = tmp_path / "latin1.json"
    path.write_bytes('{"name": "Café"}'.encode("latin-1"))
    with pytest.raises(SpecLoaderError, match="UTF-8"):
        load_spec_from_file(path)


def test_non_utf8_stream():
    stream = io.TextIOWrapper(io.BytesIO(b'{"name": "\xff"}'), encoding="utf-8")
    with pytest.raises(SpecLoaderError, match="UTF-8"):
        load_spec_from_stream(stream)
