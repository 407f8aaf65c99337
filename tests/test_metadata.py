import pytest

from cloudseed.datasources.metadata import MetadataService
from cloudseed.httpclient import HttpTimeoutError, NotFoundError


class FakeClient:
    def __init__(self, resources=None, err=None):
        self.resources = resources or {}
        self.err = err

    def get_retry(self, url):
        if self.err is not None:
            raise self.err
        if url in self.resources:
            return self.resources[url].encode()
        raise NotFoundError(f"not found: {url!r}", status=404)

    def get(self, url):
        return self.get_retry(url)


def test_availability_changes():
    assert MetadataService(client=FakeClient()).availability_changes() is True


@pytest.mark.parametrize(
    "api_version,resources,expected",
    [
        ("2009-04-04", {"/2009-04-04": ""}, True),
        ("", {}, False),
    ],
)
def test_is_available(api_version, resources, expected):
    service = MetadataService(
        root="/", client=FakeClient(resources), api_version=api_version
    )
    assert service.is_available() is expected


def test_fetch_userdata_found():
    service = MetadataService(
        root="/",
        client=FakeClient({"/2009-04-04/user-data": "hello"}),
        userdata_path="2009-04-04/user-data",
    )
    assert service.fetch_userdata() == b"hello"


def test_fetch_userdata_not_found_is_empty():
    service = MetadataService(
        root="/", client=FakeClient(err=NotFoundError("test not found error"))
    )
    assert service.fetch_userdata() == b""


def test_fetch_userdata_timeout_raises():
    service = MetadataService(
        root="/", client=FakeClient(err=HttpTimeoutError("test timeout error"))
    )
    with pytest.raises(HttpTimeoutError, match="test timeout error"):
        service.fetch_userdata()


@pytest.mark.parametrize(
    "root,expect_root,userdata,metadata",
    [
        ("/", "/", "/2009-04-04/user-data", "/2009-04-04/meta-data"),
        (
            "http://169.254.169.254/",
            "http://169.254.169.254/",
            "http://169.254.169.254/2009-04-04/user-data",
            "http://169.254.169.254/2009-04-04/meta-data",
        ),
    ],
)
def test_urls(root, expect_root, userdata, metadata):
    service = MetadataService(
        root=root,
        client=FakeClient(),
        userdata_path="2009-04-04/user-data",
        metadata_path="2009-04-04/meta-data",
    )
    assert service.userdata_url() == userdata
    assert service.metadata_url() == metadata
    assert service.config_root() == expect_root


@pytest.mark.parametrize(
    "root,expect_root",
    [
        ("", "/"),
        ("/", "/"),
        ("http://169.254.169.254", "http://169.254.169.254/"),
        ("http://169.254.169.254/", "http://169.254.169.254/"),
    ],
)
def test_new_datasource(root, expect_root):
    assert MetadataService(root).root == expect_root


def test_default_client_carries_headers():
    service = MetadataService("/", headers={"Metadata-Flavor": "Google"})
    assert service.client.headers == {"Metadata-Flavor": "Google"}