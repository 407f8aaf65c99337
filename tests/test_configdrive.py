import posixpath

import pytest

from cloudseed.datasource import Metadata
from cloudseed.datasources.configdrive import ConfigDrive


def mock_filesystem(files):
    """A read_file callable over an in-memory tree of files."""
    contents = {posixpath.normpath(path): text for path, text in files.items()}
    directories = set()
    for path in contents:
        parent = posixpath.dirname(path)
        while parent not in ("/", ".", ""):
            directories.add(parent)
            parent = posixpath.dirname(parent)

    def read_file(filename):
        name = posixpath.normpath(filename)
        if name in directories:
            raise IsADirectoryError(f"read {filename}: is a directory")
        if name not in contents:
            raise FileNotFoundError(filename)
        return contents[name].encode()

    return read_file


@pytest.mark.parametrize(
    "root, files, expected",
    [
        ("/", {"/openstack/latest/meta_data.json": ""}, Metadata()),
        ("/", {"/openstack/latest/meta_data.json": '{"ignore": "me"}'}, Metadata()),
        (
            "/",
            {"/openstack/latest/meta_data.json": '{"hostname": "host"}'},
            Metadata(hostname="host"),
        ),
        (
            "/media/configdrive",
            {
                "/media/configdrive/openstack/latest/meta_data.json": (
                    '{"hostname": "host", "network_config": '
                    '{"content_path": "config_file.json"}, '
                    '"public_keys":{"1": "key1", "2": "key2"}}'
                ),
                "/media/configdrive/openstack/config_file.json": "make it work",
            },
            Metadata(
                hostname="host",
                network_config=b"make it work",
                ssh_public_keys={"1": "key1", "2": "key2"},
            ),
        ),
    ],
)
def test_fetch_metadata(root, files, expected):
    drive = ConfigDrive(root, mock_filesystem(files))
    assert drive.fetch_metadata() == expected


@pytest.mark.parametrize(
    "root, files, expected",
    [
        ("/", {}, b""),
        ("/", {"/openstack/latest/user_data": "userdata"}, b"userdata"),
        (
            "/media/configdrive",
            {"/media/configdrive/openstack/latest/user_data": "userdata"},
            b"userdata",
        ),
    ],
)
def test_fetch_userdata(root, files, expected):
    drive = ConfigDrive(root, mock_filesystem(files))
    assert drive.fetch_userdata() == expected


@pytest.mark.parametrize(
    "root, config_root",
    [("/", "/openstack"), ("/media/configdrive", "/media/configdrive/openstack")],
)
def test_config_root(root, config_root):
    assert ConfigDrive(root).config_root() == config_root


@pytest.mark.parametrize("root", ["", "/media/configdrive"])
def test_new_datasource_keeps_root(root):
    assert ConfigDrive(root).root == root


def test_missing_metadata_file_gives_empty_metadata():
    drive = ConfigDrive("/", mock_filesystem({}))
    assert drive.fetch_metadata() == Metadata()


def test_directory_in_place_of_file_is_an_error():
    files = {"/openstack/latest/user_data/inner": "x"}
    drive = ConfigDrive("/", mock_filesystem(files))
    with pytest.raises(IsADirectoryError, match="is a directory"):
        drive.fetch_userdata()


def test_reads_real_files(tmp_path):
    latest = tmp_path / "openstack" / "latest"
    latest.mkdir(parents=True)
    (latest / "user_data").write_bytes(b"#cloud-config\n")
    (latest / "meta_data.json").write_text('{"hostname": "host"}')
    drive = ConfigDrive(str(tmp_path))
    assert drive.is_available() is True
    assert drive.fetch_userdata() == b"#cloud-config\n"
    assert drive.fetch_metadata().hostname == "host"


def test_directory_on_real_filesystem_raises(tmp_path):
    (tmp_path / "openstack" / "latest" / "user_data").mkdir(parents=True)
    drive = ConfigDrive(str(tmp_path))
    with pytest.raises((IsADirectoryError, PermissionError)):
        drive.fetch_userdata()


def test_unavailable_when_root_missing(tmp_path):
    drive = ConfigDrive(str(tmp_path / "absent"))
    assert drive.is_available() is False


def test_type_and_availability_changes():
    drive = ConfigDrive("/")
    assert drive.type() == "cloud-drive"
    assert drive.availability_changes() is True


def test_non_object_metadata_is_rejected():
    drive = ConfigDrive("/", mock_filesystem({"/openstack/latest/meta_data.json": "[1]"}))
    with pytest.raises(ValueError):
        drive.fetch_metadata()