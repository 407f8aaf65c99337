import http.server
import threading

import pytest

from cloudseed.datasource import Metadata
from cloudseed.datasources.proc_cmdline import ProcCmdline, find_cloud_config_url
from cloudseed.httpclient import HttpClient, NotFoundError


@pytest.mark.parametrize(
    "text, expected",
    [
        ("cloud-config-url=example.com", "example.com"),
        ("cloud_config_url=example.com", "example.com"),
        ("cloud-config-url cloud-config-url=example.com", "example.com"),
        ("cloud-config-url= cloud-config-url=example.com", "example.com"),
        (
            "cloud-config-url=one.example.com cloud-config-url=two.example.com",
            "two.example.com",
        ),
        ("foo=bar cloud-config-url=example.com ping=pong", "example.com"),
    ],
)
def test_find_cloud_config_url(text, expected):
    assert find_cloud_config_url(text) == expected


@pytest.mark.parametrize("text", ["", "foo=bar", "cloud-config-url"])
def test_find_cloud_config_url_missing(text):
    with pytest.raises(LookupError, match="cloud-config-url not found"):
        find_cloud_config_url(text)


CLOUD_CONFIG_CONTENT = b"#cloud-config\n"


class _Handler(http.server.BaseHTTPRequestHandler):
    def do_GET(self):
        if self.path == "/config":
            self.send_response(200)
            self.send_header("Content-Length", str(len(CLOUD_CONFIG_CONTENT)))
            self.end_headers()
            self.wfile.write(CLOUD_CONFIG_CONTENT)
        else:
            self.send_response(404)
            self.send_header("Content-Length", "0")
            self.end_headers()

    def log_message(self, format, *args):
        pass


@pytest.fixture
def server_url():
    server = http.server.HTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()


def test_proc_cmdline_and_fetch_config(tmp_path, server_url):
    cmdline = tmp_path / "cmdline"
    cmdline.write_text(f"foo=bar cloud-config-url={server_url}/config\n")
    source = ProcCmdline(str(cmdline), client=HttpClient(max_retries=1))
    assert source.is_available() is True
    assert source.fetch_userdata() == CLOUD_CONFIG_CONTENT


class FakeClient:
    def __init__(self, resources):
        self.resources = resources
        self.requested = []

    def get_retry(self, url):
        self.requested.append(url)
        if url not in self.resources:
            raise NotFoundError(f"not found: {url!r}")
        return self.resources[url]


def test_fetch_userdata_uses_client(tmp_path):
    cmdline = tmp_path / "cmdline"
    cmdline.write_text("cloud_config_url=http://example.com/cfg\n")
    client = FakeClient({"http://example.com/cfg": b"data"})
    source = ProcCmdline(str(cmdline), client=client)
    assert source.fetch_userdata() == b"data"
    assert client.requested == ["http://example.com/cfg"]


def test_unavailable_without_flag(tmp_path):
    cmdline = tmp_path / "cmdline"
    cmdline.write_text("foo=bar\n")
    source = ProcCmdline(str(cmdline), client=FakeClient({}))
    assert source.is_available() is False
    with pytest.raises(LookupError):
        source.fetch_userdata()


def test_unavailable_without_file(tmp_path):
    source = ProcCmdline(str(tmp_path / "absent"), client=FakeClient({}))
    assert source.is_available() is False
    with pytest.raises(FileNotFoundError):
        source.fetch_userdata()


def test_defaults_and_descriptive_values():
    source = ProcCmdline(client=FakeClient({}))
    assert source.location == "/proc/cmdline"
    assert source.type() == "proc-cmdline"
    assert source.availability_changes() is False
    assert source.config_root() == ""
    assert source.fetch_metadata() == Metadata()