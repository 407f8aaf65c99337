import ipaddress

import pytest

from cloudseed.datasource import Metadata
from cloudseed.datasources.gce import GceMetadataService
from cloudseed.httpclient import HttpTimeoutError, NotFoundError


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


def service(resources=None, err=None):
    return GceMetadataService("/", client=FakeClient(resources, err))


def test_type():
    assert GceMetadataService().type() == "gce-metadata-service"


def test_default_client_sends_flavor_header():
    assert GceMetadataService().client.headers == {"Metadata-Flavor": "Google"}


def test_fetch_metadata_nothing_published():
    assert service({}).fetch_metadata() == Metadata()


def test_fetch_metadata_hostname_only():
    svc = service({"/computeMetadata/v1/instance/hostname": "host"})
    assert svc.fetch_metadata() == Metadata(hostname="host")


def test_fetch_metadata_full():
    svc = service(
        {
            "/computeMetadata/v1/instance/hostname": "host",
            "/computeMetadata/v1/instance/network-interfaces/0/ip": "1.2.3.4",
            "/computeMetadata/v1/instance/network-interfaces/0/access-configs/0/external-ip": "5.6.7.8",
        }
    )
    assert svc.fetch_metadata() == Metadata(
        hostname="host",
        private_ipv4=ipaddress.ip_address("1.2.3.4"),
        public_ipv4=ipaddress.ip_address("5.6.7.8"),
    )


def test_fetch_metadata_bad_ip():
    svc = service({"/computeMetadata/v1/instance/network-interfaces/0/ip": "nope"})
    with pytest.raises(ValueError, match="couldn't parse \"nope\" as IP address"):
        svc.fetch_metadata()


def test_fetch_metadata_client_error():
    with pytest.raises(HttpTimeoutError, match="test error"):
        service(err=HttpTimeoutError("test error")).fetch_metadata()


def test_fetch_userdata():
    svc = service({"/computeMetadata/v1/instance/attributes/user-data": "hello"})
    assert svc.fetch_userdata() == b"hello"
    assert service({}).fetch_userdata() == b""