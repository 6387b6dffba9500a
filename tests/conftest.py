import io
import json
import logging
import tarfile
import zipfile

import pytest
import requests


class FakeResponse:
    def __init__(self, status_code=200, body=b"", headers=None):
        self.status_code = status_code
        self._body = body
        self.headers = headers if headers is not None else {"content-length": str(len(body))}
        self.closed = False

    @property
    def text(self):
        return self._body.decode("utf-8")

    def json(self):
        return json.loads(self._body.decode("utf-8"))

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self._body), chunk_size):
            yield self._body[start:start + chunk_size]

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *_exc):
        self.close()
        return False


class FakeSession:
    """Serves canned responses by URL and records every request."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, url, body=b"", status_code=200, headers=None):
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[url] = (status_code, body, headers)

    def add_json(self, url, payload, status_code=200):
        self.add(url, json.dumps(payload), status_code=status_code)

    def add_error(self, url, exc):
        self.routes[url] = exc

    def get(self, url, headers=None, timeout=None, stream=False):
        self.requests.append({"url": url, "headers": headers, "timeout": timeout, "stream": stream})
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(status_code=404, body=b"not found")
        if isinstance(route, Exception):
            raise route
        status_code, body, route_headers = route
        return FakeResponse(status_code=status_code, body=body, headers=route_headers)

    def urls(self):
        return [r["url"] for r in self.requests]


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def connection_error():
    return requests.ConnectionError("network down")


def make_tar_gz(entries):
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, data in entries.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def make_zip(entries):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buffer.getvalue()


@pytest.fixture
def archive_builder():
    return {"tar.gz": make_tar_gz, "zip": make_zip}


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    yield
    # configure_logging() replaces root handlers; keep the rest of the suite unaffected
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)
