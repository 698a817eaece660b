# Copyright (C) 2026 IBM, Inc.
#
# This program is free software: you can redistribute it and/or modify it under
# the terms of the GNU General Public License as published by the Free Software
# Foundation, either version 3 of the License, or (at your option) any later
# version.
#
# This program is distributed in the hope that it will be useful, but WITHOUT ANY
# WARRANTY; without even the implied warranty of MERCHANTABILITY or FITNESS FOR A
# PARTICULAR PURPOSE.  See the GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License along with
# this program.  If not, see <https://www.gnu.org/licenses/>.


import base64
import logging
import os
from dataclasses import asdict, dataclass, field, fields

from openstack_machine.errors import ConfigurationError

DEFAULT_SSH_USER = "root"
DEFAULT_SSH_PORT = 22
DEFAULT_ACTIVE_TIMEOUT = 200
DEFAULT_IP_VERSION = 4

ENDPOINT_TYPES = ("publicURL", "adminURL", "internalURL")

ERROR_MANDATORY_ENV_OR_OPTION = (
    "{} must be specified either using the environment variable {} or the CLI option {}"
)
ERROR_MANDATORY_OPTION = "{} must be specified using the CLI option {}"
ERROR_EXCLUSIVE_OPTIONS = "Either {} or {} must be specified, not both"
ERROR_BOTH_OPTIONS = "Both {} and {} must be specified"
ERROR_WRONG_ENDPOINT_TYPE = (
    "Endpoint type must be 'publicURL', 'adminURL' or 'internalURL'"
)


@dataclass(frozen=True)
class Option:
    name: str
    env: str
    kind: type
    default: object
    help: str

    @property
    def flag(self):
        return "--" + self.name

    @property
    def dest(self):
        return self.name[len("openstack-"):].replace("-", "_")

    def parse(self, value):
        """Convert a raw string (environment, YAML scalar) to the option's kind."""
        if value is None:
            return None
        if self.kind is bool:
            if isinstance(value, bool):
                return value
            return str(value).strip().lower() in ("1", "true", "yes", "on")
        if self.kind is int:
            try:
                return int(value)
            except (TypeError, ValueError):
                raise ConfigurationError(f"{self.flag} expects an integer, got {value!r}")
        if self.kind is list:
            if isinstance(value, (list, tuple)):
                return [str(v) for v in value if str(v)]
            return [v.strip() for v in str(value).split(",") if v.strip()]
        return str(value)


OPTIONS = (
    Option("openstack-auth-url", "OS_AUTH_URL", str, "", "OpenStack authentication URL"),
    Option("openstack-insecure", "OS_INSECURE", bool, False, "Disable TLS credential checking."),
    Option("openstack-cacert", "OS_CACERT", str, "", "CA certificate bundle to verify against"),
    Option("openstack-domain-id", "OS_DOMAIN_ID", str, "", "OpenStack domain ID"),
    Option("openstack-domain-name", "OS_DOMAIN_NAME", str, "", "OpenStack domain name"),
    Option("openstack-user-id", "OS_USER_ID", str, "", "OpenStack user-id"),
    Option("openstack-username", "OS_USERNAME", str, "", "OpenStack username"),
    Option("openstack-password", "OS_PASSWORD", str, "", "OpenStack password"),
    Option("openstack-token", "OS_TOKEN", str, "", "OpenStack authentication token"),
    Option("openstack-tenant-name", "OS_TENANT_NAME", str, "", "OpenStack tenant name"),
    Option("openstack-tenant-id", "OS_TENANT_ID", str, "", "OpenStack tenant id"),
    Option("openstack-tenant-domain-name", "OS_TENANT_DOMAIN_NAME", str, "", "OpenStack tenant domain name"),
    Option("openstack-tenant-domain-id", "OS_TENANT_DOMAIN_ID", str, "", "OpenStack tenant domain id"),
    Option("openstack-user-domain-name", "OS_USER_DOMAIN_NAME", str, "", "OpenStack user domain name"),
    Option("openstack-user-domain-id", "OS_USER_DOMAIN_ID", str, "", "OpenStack user domain id"),
    Option("openstack-application-credential-id", "OS_APPLICATION_CREDENTIAL_ID", str, "", "OpenStack application credential id"),
    Option("openstack-application-credential-name", "OS_APPLICATION_CREDENTIAL_NAME", str, "", "OpenStack application credential name"),
    Option("openstack-application-credential-secret", "OS_APPLICATION_CREDENTIAL_SECRET", str, "", "OpenStack application credential secret"),
    Option("openstack-region", "OS_REGION_NAME", str, "", "OpenStack region name"),
    Option("openstack-availability-zone", "OS_AVAILABILITY_ZONE", str, "", "OpenStack availability zone"),
    Option("openstack-endpoint-type", "OS_ENDPOINT_TYPE", str, "", "OpenStack endpoint type (adminURL, internalURL or publicURL)"),
    Option("openstack-flavor-id", "OS_FLAVOR_ID", str, "", "OpenStack flavor id to use for the instance"),
    Option("openstack-flavor-name", "OS_FLAVOR_NAME", str, "", "OpenStack flavor name to use for the instance"),
    Option("openstack-image-id", "OS_IMAGE_ID", str, "", "OpenStack image id to use for the instance"),
    Option("openstack-image-name", "OS_IMAGE_NAME", str, "", "OpenStack image name to use for the instance"),
    Option("openstack-keypair-name", "OS_KEYPAIR_NAME", str, "", "OpenStack keypair to use to SSH to the instance"),
    Option("openstack-net-id", "OS_NETWORK_ID", list, [], "OpenStack comma separated network ids the machine will be connected on"),
    Option("openstack-net-name", "OS_NETWORK_NAME", list, [], "OpenStack comma separated network names the machine will be connected on"),
    Option("openstack-private-key-file", "OS_PRIVATE_KEY_FILE", str, "", "Private keyfile to use for SSH (absolute path)"),
    Option("openstack-user-data-file", "OS_USER_DATA_FILE", str, "", "File containing an openstack userdata script"),
    Option("openstack-sec-groups", "OS_SECURITY_GROUPS", list, [], "OpenStack comma separated security groups for the machine"),
    Option("openstack-nova-network", "OS_NOVA_NETWORK", bool, False, "Use the nova networking services instead of neutron."),
    Option("openstack-floatingip-pool", "OS_FLOATINGIP_POOL", str, "", "OpenStack floating IP pool to get an IP from to assign to the instance"),
    Option("openstack-ip-version", "OS_IP_VERSION", int, DEFAULT_IP_VERSION, "OpenStack version of IP address assigned for the machine"),
    Option("openstack-ssh-user", "OS_SSH_USER", str, DEFAULT_SSH_USER, "OpenStack SSH user"),
    Option("openstack-ssh-port", "OS_SSH_PORT", int, DEFAULT_SSH_PORT, "OpenStack SSH port"),
    Option("openstack-active-timeout", "OS_ACTIVE_TIMEOUT", int, DEFAULT_ACTIVE_TIMEOUT, "OpenStack active timeout"),
    Option("openstack-config-drive", "OS_CONFIG_DRIVE", bool, False, "Enables the OpenStack config drive for the instance"),
)

OPTIONS_BY_NAME = {o.name: o for o in OPTIONS}


def option(name):
    if not name.startswith("openstack-"):
        name = "openstack-" + name
    try:
        return OPTIONS_BY_NAME[name]
    except KeyError:
        raise ConfigurationError(f"unknown option: {name}")


def collect_options(cli=None, environ=None, file_values=None):
    """
    Merge option sources into {option name: value}.

    Precedence, lowest first: defaults, config file, environment, command
    line. cli maps option names to already-typed values, None meaning
    "not given". file_values may use names with or without the
    "openstack-" prefix.
    """
    cli = cli or {}
    environ = os.environ if environ is None else environ
    from_file = {}
    for key, value in (file_values or {}).items():
        from_file[option(key).name] = value

    merged = {}
    for o in OPTIONS:
        value = cli.get(o.name)
        if value is None and environ.get(o.env):
            value = o.parse(environ[o.env])
        if value is None and o.name in from_file:
            value = o.parse(from_file[o.name])
        if value is None:
            value = list(o.default) if o.kind is list else o.default
        merged[o.name] = value
    return merged


@dataclass
class DriverConfig:
    auth_url: str = ""
    insecure: bool = False
    cacert: str = ""
    domain_id: str = ""
    domain_name: str = ""
    user_id: str = ""
    username: str = ""
    password: str = ""
    token: str = ""
    tenant_name: str = ""
    tenant_id: str = ""
    tenant_domain_name: str = ""
    tenant_domain_id: str = ""
    user_domain_name: str = ""
    user_domain_id: str = ""
    application_credential_id: str = ""
    application_credential_name: str = ""
    application_credential_secret: str = ""
    region: str = ""
    availability_zone: str = ""
    endpoint_type: str = ""
    flavor_id: str = ""
    flavor_name: str = ""
    image_id: str = ""
    image_name: str = ""
    key_pair_name: str = ""
    network_ids: list = field(default_factory=list)
    network_names: list = field(default_factory=list)
    private_key_file: str = ""
    user_data: bytes = b""
    security_groups: list = field(default_factory=list)
    compute_network: bool = False
    floating_ip_pool: str = ""
    floating_ip_pool_id: str = ""
    ip_version: int = DEFAULT_IP_VERSION
    ssh_user: str = DEFAULT_SSH_USER
    ssh_port: int = DEFAULT_SSH_PORT
    active_timeout: int = DEFAULT_ACTIVE_TIMEOUT
    config_drive: bool = False

    @classmethod
    def from_options(cls, options):
        """
        Build and validate a configuration from {option name: value}.

        Missing options take their defaults. Raises ConfigurationError when
        the options are inconsistent; nothing is sent to the cloud.
        """
        given = {}
        for key, value in options.items():
            o = option(key)
            given[o.name] = o.parse(value)
        values = collect_options(cli=given, environ={})
        kwargs = {}
        for o in OPTIONS:
            dest = o.dest
            if dest == "user_data_file":
                continue
            kwargs[RENAMED.get(dest, dest)] = values[o.name]

        user_data_file = values["openstack-user-data-file"]
        if user_data_file:
            try:
                with open(user_data_file, "rb") as f:
                    kwargs["user_data"] = f.read()
            except OSError as e:
                raise ConfigurationError(
                    f"cannot read user data file {user_data_file}: {e}"
                ) from e

        config = cls(**kwargs)
        config.check()
        return config

    def check(self):
        self._check_auth()

        if not self.flavor_name and not self.flavor_id:
            raise ConfigurationError(
                ERROR_MANDATORY_OPTION.format(
                    "Flavor name or Flavor id",
                    "--openstack-flavor-name or --openstack-flavor-id",
                )
            )
        if self.flavor_name and self.flavor_id:
            raise ConfigurationError(
                ERROR_EXCLUSIVE_OPTIONS.format("Flavor name", "Flavor id")
            )

        if not self.image_name and not self.image_id:
            raise ConfigurationError(
                ERROR_MANDATORY_OPTION.format(
                    "Image name or Image id",
                    "--openstack-image-name or --openstack-image-id",
                )
            )
        if self.image_name and self.image_id:
            raise ConfigurationError(
                ERROR_EXCLUSIVE_OPTIONS.format("Image name", "Image id")
            )

        if self.network_names and self.network_ids:
            raise ConfigurationError(
                ERROR_EXCLUSIVE_OPTIONS.format("Network name", "Network id")
            )
        if self.endpoint_type and self.endpoint_type not in ENDPOINT_TYPES:
            raise ConfigurationError(ERROR_WRONG_ENDPOINT_TYPE)
        if bool(self.key_pair_name) != bool(self.private_key_file):
            raise ConfigurationError(
                ERROR_BOTH_OPTIONS.format("KeyPairName", "PrivateKeyFile")
            )

        if self.ip_version not in (4, 6):
            raise ConfigurationError(
                f"IP version must be 4 or 6, got {self.ip_version}"
            )
        if self.active_timeout <= 0:
            raise ConfigurationError("Active timeout must be a positive number of seconds")

    def _check_auth(self):
        if not self.auth_url:
            raise ConfigurationError(
                ERROR_MANDATORY_ENV_OR_OPTION.format(
                    "Authentication URL", "OS_AUTH_URL", "--openstack-auth-url"
                )
            )

        if self.application_credential_id or self.application_credential_name:
            if not self.application_credential_secret:
                raise ConfigurationError(
                    ERROR_BOTH_OPTIONS.format(
                        "Application credential id or name",
                        "Application credential secret",
                    )
                )
            # a credential name is only unique per user
            if (
                not self.application_credential_id
                and not self.user_id
                and not self.username
            ):
                raise ConfigurationError(
                    ERROR_BOTH_OPTIONS.format(
                        "Application credential name", "Username or User id"
                    )
                )
            return

        if self.token:
            return

        if not self.user_id and not self.username:
            raise ConfigurationError(
                ERROR_MANDATORY_ENV_OR_OPTION.format(
                    "Username", "OS_USERNAME", "--openstack-username"
                )
            )
        if not self.password:
            raise ConfigurationError(
                ERROR_MANDATORY_ENV_OR_OPTION.format(
                    "Password", "OS_PASSWORD", "--openstack-password"
                )
            )

    def to_dict(self):
        data = asdict(self)
        data["user_data"] = base64.b64encode(self.user_data).decode("ascii")
        return data

    @classmethod
    def from_dict(cls, data):
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        unknown = set(data) - known
        if unknown:
            logging.warning(f"ignoring unknown configuration keys: {sorted(unknown)}")
        if kwargs.get("user_data"):
            kwargs["user_data"] = base64.b64decode(kwargs["user_data"])
        else:
            kwargs["user_data"] = b""
        return cls(**kwargs)


# Option dest -> DriverConfig field where the flag spelling differs.
RENAMED = {
    "keypair_name": "key_pair_name",
    "net_id": "network_ids",
    "net_name": "network_names",
    "sec_groups": "security_groups",
    "nova_network": "compute_network",
    "floatingip_pool": "floating_ip_pool",
}
