import ipaddress

import pytest

from cloudseed.datasource import Metadata
from cloudseed.datasources.ec2 import Ec2MetadataService
from cloudseed.httpclient import HttpError, HttpTimeoutError, NotFoundError


class FakeClient:
    def __init__(self, resources=None, err=None):
        self.resources = resources or {}
        self.err = err

    def get_retry(self, url):
        if self.err is not None:
            raise self.err
        try:
            return self.resources[url].encode()
        except KeyError:
            raise NotFoundError(f"not found: {url!r}") from None

    def get(self, url):
        return self.get_retry(url)


TREE = {
    "/": "a\nb\nc/",
    "/c/": "d\ne/",
    "/c/e/": "f",
    "/a": "1",
    "/b": "2",
    "/c/d": "3",
    "/c/e/f": "4",
}


def test_type():
    assert Ec2MetadataService().type() == "ec2-metadata-service"


@pytest.mark.parametrize(
    "path, expect",
    [
        ("/", ["a", "b", "c/"]),
        ("/b", ["2"]),
        ("/c/d", ["3"]),
        ("/c/e/", ["f"]),
    ],
)
def test_fetch_attributes(path, expect):
    svc = Ec2MetadataService(client=FakeClient(TREE))
    assert svc.fetch_attributes(path) == expect


def test_fetch_attributes_error():
    svc = Ec2MetadataService(client=FakeClient(err=HttpError("test error")))
    with pytest.raises(HttpError, match="test error"):
        svc.fetch_attributes("")


def test_fetch_attributes_strips_carriage_returns():
    svc = Ec2MetadataService(client=FakeClient({"/x": "a\r\nb\r\n"}))
    assert svc.fetch_attributes("/x") == ["a", "b"]


@pytest.mark.parametrize(
    "path, expect",
    [("/a", "1"), ("/b", "2"), ("/c/d", "3"), ("/c/e/f", "4")],
)
def test_fetch_attribute(path, expect):
    svc = Ec2MetadataService(client=FakeClient(TREE))
    assert svc.fetch_attribute(path) == expect


def test_fetch_attribute_error():
    svc = Ec2MetadataService(client=FakeClient(err=HttpError("test error")))
    with pytest.raises(HttpError, match="test error"):
        svc.fetch_attribute("")


def test_fetch_attribute_missing_is_empty():
    svc = Ec2MetadataService(client=FakeClient(TREE))
    assert svc.fetch_attribute("/missing") == ""


def service(resources=None, err=None):
    return Ec2MetadataService("/", client=FakeClient(resources, err))


def test_fetch_metadata_malformed_key():
    svc = service({"/2009-04-04/meta-data/public-keys": "bad\n"})
    with pytest.raises(ValueError, match='malformed public key: "bad"'):
        svc.fetch_metadata()


@pytest.mark.parametrize("hostname", ["host", "host domain another_domain"])
def test_fetch_metadata(hostname):
    svc = service(
        {
            "/2009-04-04/meta-data/hostname": hostname,
            "/2009-04-04/meta-data/local-ipv4": "1.2.3.4",
            "/2009-04-04/meta-data/public-ipv4": "5.6.7.8",
            "/2009-04-04/meta-data/public-keys": "0=test1\n",
            "/2009-04-04/meta-data/public-keys/0": "openssh-key",
            "/2009-04-04/meta-data/public-keys/0/openssh-key": "key",
        }
    )
    assert svc.fetch_metadata() == Metadata(
        hostname="host",
        private_ipv4=ipaddress.ip_address("1.2.3.4"),
        public_ipv4=ipaddress.ip_address("5.6.7.8"),
        ssh_public_keys={"test1": "key"},
    )


def test_fetch_metadata_nothing_published():
    assert service({}).fetch_metadata() == Metadata()


def test_fetch_metadata_client_error():
    with pytest.raises(HttpTimeoutError, match="test error"):
        service(err=HttpTimeoutError("test error")).fetch_metadata()


def test_urls():
    svc = service()
    assert svc.userdata_url() == "/2009-04-04/user-data"
    assert svc.metadata_url() == "/2009-04-04/meta-data"