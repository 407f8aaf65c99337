# cloudseed

Building blocks for initialising a cloud instance at first boot:

- **Datasources** that read instance metadata and user-data. They cover the
  EC2, GCE, DigitalOcean and Packet metadata services, the CloudSigma server
  context, OpenStack-style config drives, the Azure agent's state directory,
  a local file, a remote URL, and a URL named on the kernel command line.
- **Network configuration**. Debian `interfaces` files and Packet network
  data become interface objects that render systemd-networkd `.netdev` and
  `.network` file contents.
- **Address substitution**. `$public_ipv4`, `$private_ipv4`, `$public_ipv6`
  and `$private_ipv6` in text are replaced with the instance's addresses.
- **SSH key listings**. Public keys are read from a JSON key-list endpoint.

The package uses only the standard library.

## Installation

```
pip install cloudseed
```

## Datasources

Every datasource derives from `cloudseed.datasource.Datasource` and has the
same methods:

- `is_available()`: whether the source can be read now
- `availability_changes()`: whether it is worth polling again later
- `config_root()`: the root of the configuration, or `""`
- `fetch_metadata()`: returns a `cloudseed.datasource.Metadata`
- `fetch_userdata()`: returns the raw user-data as `bytes`
- `type()`: a short name such as `"ec2-metadata-service"`

`Metadata` is a dataclass with these fields:

- `public_ipv4`, `public_ipv6`, `private_ipv4`, `private_ipv6`: `ipaddress` objects or `None`
- `hostname`
- `ssh_public_keys`: a dict from key name to key
- `network_config`

```python
from cloudseed.datasources.ec2 import Ec2MetadataService

source = Ec2MetadataService("http://169.254.169.254/")
if source.is_available():
    metadata = source.fetch_metadata()
    print(metadata.hostname, metadata.private_ipv4)
    userdata = source.fetch_userdata()
```

| Class | Module | Reads from |
| --- | --- | --- |
| `Ec2MetadataService` | `cloudseed.datasources.ec2` | EC2 metadata service |
| `GceMetadataService` | `cloudseed.datasources.gce` | GCE metadata service (sends `Metadata-Flavor: Google`) |
| `DigitalOceanMetadataService` | `cloudseed.datasources.digitalocean` | DigitalOcean metadata service |
| `PacketMetadataService` | `cloudseed.datasources.packet` | Packet metadata service |
| `ServerContextService` | `cloudseed.datasources.cloudsigma` | a CloudSigma server context client you supply |
| `ConfigDrive` | `cloudseed.datasources.configdrive` | `<root>/openstack/latest/` on a mounted drive |
| `WaAgent` | `cloudseed.datasources.waagent` | `SharedConfig.xml` and `CustomData` in the agent directory |
| `LocalFile` | `cloudseed.datasources.localfile` | a file path |
| `RemoteFile` | `cloudseed.datasources.url` | a URL |
| `ProcCmdline` | `cloudseed.datasources.proc_cmdline` | the `cloud-config-url=` value in `/proc/cmdline` |

The HTTP sources share `cloudseed.datasources.metadata.MetadataService`.
Its `fetch_data(url)` returns `b""` when the resource does not exist.

The sources that take a `client` argument accept any object with `get(url)`
and `get_retry(url)` methods. By default they use
`cloudseed.httpclient.HttpClient`.

`ConfigDrive` and `WaAgent` take an optional `read_file` callable. They treat
a missing file as empty data.

### HTTP client

`HttpClient(headers=None, *, timeout=10.0, max_retries=15, ...)` provides two
methods:

- `get(url)` fetches once.
- `get_retry(url)` retries timeouts, connection failures and 5xx responses,
  with doubling backoff capped at `max_backoff`.

Failures raise `HttpError`. A 404 raises its subclass `NotFoundError`, and a
timeout raises its subclass `HttpTimeoutError`.

## Network configuration

```python
from cloudseed.debian import process_debian_netconf

config = b"""
auto eth0
iface eth0 inet static
    address 192.168.1.100
    netmask 255.255.255.0
    gateway 192.168.1.1
"""
for iface in process_debian_netconf(config):
    print(iface.filename(), iface.type())
    print(iface.network())
```

`process_debian_netconf` does the following:

- joins continued lines and drops comments;
- parses the stanzas with `cloudseed.stanza.parse_stanzas`;
- builds `PhysicalInterface`, `BondInterface` and `VlanInterface` objects
  from `cloudseed.interfaces`, sorted by name.

Each interface object has these methods:

- `netdev()`, `link()` and `network()` return file contents.
- `filename()` returns the config depth in hex followed by the name, for example `00-eth0`.
- `modprobe_params()` returns kernel module parameters.

Malformed stanzas raise `cloudseed.stanza.StanzaError`.

`cloudseed.packet_network.process_packet_netconf(network_data)` turns the
`NetworkData` from `PacketMetadataService` into a `bond0` over every listed
NIC. If the data gives no DNS servers, it uses 8.8.8.8 and 8.8.4.4.

## Address substitution

```python
from cloudseed.datasource import Metadata
from cloudseed.environment import Environment

env = Environment("/", "/", "/var/lib/cloudseed", "", Metadata())
print(env.apply("ExecStart=/usr/bin/echo $private_ipv4"))
```

Where the metadata has no address, the value comes from one of these
variables:

- `MILPA_PUBLIC_IPV4`
- `MILPA_PRIVATE_IPV4`
- `MILPA_PUBLIC_IPV6`
- `MILPA_PRIVATE_IPV6`

They are read from `os.environ` unless you pass `environ=`.

To keep a placeholder as written, escape it with a backslash:
`\$private_ipv4`.

`default_environment_vars()` returns the non-empty addresses as a dict keyed
by those variable names.

## SSH keys

- `cloudseed.ssh_keys.fetch_user_keys(url, client=None)` reads a JSON array of
  `{"id": ..., "key": ...}` objects and returns the keys in order.
- `github_keys_url(user)` builds the GitHub key-listing URL for a user.

## What this package does not do

It reads configuration sources and renders text. It does not change the
system, and it has no command-line program. In particular:

- it does not parse cloud-config user-data;
- it does not write files, set the hostname, create users or install
  `authorized_keys`;
- it does not place, enable or restart systemd units;
- it does not run scripts.

`ServerContextService` needs a client object with `fetch_raw(key)` and
`meta()` methods. The package does not include a reader for the CloudSigma
server context itself.

## Running the tests

```
pip install -e ".[test]"
pytest
```