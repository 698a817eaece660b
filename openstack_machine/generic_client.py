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

from openstack import connection, exceptions

from openstack_machine.client import FIXED, Address, Client, FloatingIP
from openstack_machine.errors import ActivationTimeout, ProviderError, ResourceNotFound

ENDPOINT_INTERFACES = {
    "publicURL": "public",
    "adminURL": "admin",
    "internalURL": "internal",
}

WAIT_INTERVAL = 2


def auth_arguments(config):
    """
    Translate driver options into openstacksdk connection arguments.

    The scheme is picked the same way the options are validated:
    application credential, then token, then password.
    """
    if config.application_credential_id or config.application_credential_name:
        auth_type = "v3applicationcredential"
        auth = {
            "application_credential_id": config.application_credential_id,
            "application_credential_name": config.application_credential_name,
            "application_credential_secret": config.application_credential_secret,
            "user_id": config.user_id,
            "username": config.username,
            "user_domain_id": config.user_domain_id,
            "user_domain_name": config.user_domain_name,
        }
    elif config.token:
        auth_type = "token"
        auth = {"token": config.token}
    else:
        auth_type = "password"
        auth = {
            "user_id": config.user_id,
            "username": config.username,
            "password": config.password,
            "user_domain_id": config.user_domain_id,
            "user_domain_name": config.user_domain_name,
        }

    if auth_type != "v3applicationcredential":
        auth.update(
            {
                "project_id": config.tenant_id,
                "project_name": config.tenant_name,
                "project_domain_id": config.tenant_domain_id,
                "project_domain_name": config.tenant_domain_name,
                "domain_id": config.domain_id,
                "domain_name": config.domain_name,
            }
        )

    kwargs = {k: v for k, v in auth.items() if v}
    kwargs["auth_type"] = auth_type
    kwargs["auth_url"] = config.auth_url
    kwargs["compute_api_version"] = "2"
    kwargs["verify"] = not config.insecure
    if config.cacert:
        kwargs["cacert"] = config.cacert
    if config.region:
        kwargs["region_name"] = config.region
    if config.endpoint_type:
        kwargs["interface"] = ENDPOINT_INTERFACES[config.endpoint_type]
    return kwargs


def parse_addresses(addresses):
    """Flatten a Nova "addresses" mapping into Address records."""
    result = []
    for network, entries in (addresses or {}).items():
        for entry in entries:
            result.append(
                Address(
                    address=entry.get("addr", ""),
                    address_type=entry.get("OS-EXT-IPS:type") or FIXED,
                    version=int(entry.get("version", 4)),
                    network=network,
                )
            )
    return result


class GenericClient(Client):
    """Client backed by an openstacksdk connection."""

    app_name = "openstack-machine"

    def __init__(self):
        self.conn = None

    def authenticate(self, config):
        if self.conn is None:
            logging.debug(f"authenticating against {config.auth_url}")
            self.conn = connection.Connection(
                app_name=self.app_name, **auth_arguments(config)
            )
        self.conn.authorize()

    def init_compute_client(self, config):
        # raises EndpointNotFound when the catalog has no compute service
        self.conn.compute.get_endpoint()

    def init_network_client(self, config):
        self.conn.network.get_endpoint()

    @staticmethod
    def _id_or_empty(resource):
        return resource.id if resource is not None else ""

    def get_network_id(self, config, name):
        return self._id_or_empty(self.conn.network.find_network(name, ignore_missing=True))

    def get_flavor_id(self, config, name):
        return self._id_or_empty(self.conn.compute.find_flavor(name, ignore_missing=True))

    def get_image_id(self, config, name):
        return self._id_or_empty(self.conn.image.find_image(name, ignore_missing=True))

    def get_floating_ip_pool_id(self, config, name):
        return self.get_network_id(config, name)

    def create_instance(self, config, name, key_pair_name):
        attrs = {
            "name": name,
            "flavor_id": config.flavor_id,
            "image_id": config.image_id,
            "key_name": key_pair_name,
            "config_drive": config.config_drive,
        }
        if config.network_ids:
            attrs["networks"] = [{"uuid": nid} for nid in config.network_ids]
        if config.security_groups:
            attrs["security_groups"] = [{"name": g} for g in config.security_groups]
        if config.availability_zone:
            attrs["availability_zone"] = config.availability_zone
        if config.user_data:
            attrs["user_data"] = base64.b64encode(config.user_data).decode("ascii")

        server = self.conn.compute.create_server(**attrs)
        return server.id

    def get_instance_state(self, instance_id):
        return self.conn.compute.get_server(instance_id).status

    def start_instance(self, instance_id):
        self.conn.compute.start_server(instance_id)

    def stop_instance(self, instance_id):
        self.conn.compute.stop_server(instance_id)

    def restart_instance(self, instance_id):
        self.conn.compute.reboot_server(instance_id, "SOFT")

    def delete_instance(self, instance_id):
        try:
            self.conn.compute.delete_server(instance_id, ignore_missing=False)
        except exceptions.NotFoundException as e:
            raise ResourceNotFound(f"instance {instance_id} not found") from e

    def wait_for_instance_status(self, instance_id, status, timeout):
        server = self.conn.compute.get_server(instance_id)
        try:
            self.conn.compute.wait_for_server(
                server,
                status=status,
                failures=["ERROR"],
                interval=WAIT_INTERVAL,
                wait=timeout,
            )
        except exceptions.ResourceTimeout as e:
            raise ActivationTimeout(
                f"instance {instance_id} did not reach status {status} within {timeout}s"
            ) from e

    def get_instance_ip_addresses(self, instance_id):
        server = self.conn.compute.get_server(instance_id)
        return parse_addresses(server.addresses)

    def _compute_json(self, method, url, **kwargs):
        # nova-network floating IPs have no openstacksdk resource
        response = self.conn.compute.request(url, method, raise_exc=False, **kwargs)
        exceptions.raise_from_response(response)
        return response.json()

    def get_floating_ips(self, config):
        if config.compute_network:
            body = self._compute_json("GET", "/os-floating-ips")
            return [
                FloatingIP(
                    id=str(ip.get("id", "")),
                    ip=ip.get("ip", ""),
                    port_id=ip.get("instance_id") or "",
                    pool=ip.get("pool", ""),
                )
                for ip in body.get("floating_ips", [])
                if ip.get("pool") == config.floating_ip_pool
            ]

        query = {"floating_network_id": config.floating_ip_pool_id}
        project_id = self.conn.current_project_id
        if project_id:
            query["project_id"] = project_id
        return [
            FloatingIP(
                id=ip.id,
                ip=ip.floating_ip_address,
                port_id=ip.port_id or "",
                pool=config.floating_ip_pool,
            )
            for ip in self.conn.network.ips(**query)
        ]

    def allocate_floating_ip(self, config):
        if config.compute_network:
            body = self._compute_json(
                "POST", "/os-floating-ips", json={"pool": config.floating_ip_pool}
            )
            ip = body["floating_ip"]
            return FloatingIP(
                id=str(ip.get("id", "")), ip=ip.get("ip", ""), pool=config.floating_ip_pool
            )

        ip = self.conn.network.create_ip(floating_network_id=config.floating_ip_pool_id)
        return FloatingIP(id=ip.id, ip=ip.floating_ip_address, pool=config.floating_ip_pool)

    def _instance_port_id(self, instance_id):
        for port in self.conn.network.ports(device_id=instance_id):
            return port.id
        raise ProviderError(f"no network port found for instance {instance_id}")

    def assign_floating_ip(self, config, instance_id, floating_ip):
        if config.compute_network:
            self.conn.compute.add_floating_ip_to_server(instance_id, floating_ip.ip)
            floating_ip.port_id = instance_id
            return

        port_id = self._instance_port_id(instance_id)
        self.conn.network.update_ip(floating_ip.id, port_id=port_id)
        floating_ip.port_id = port_id

    def create_key_pair(self, name, public_key):
        self.conn.compute.create_keypair(name=name, public_key=public_key)

    def get_public_key(self, name):
        return self.conn.compute.get_keypair(name).public_key.encode("utf-8")

    def delete_key_pair(self, name):
        try:
            self.conn.compute.delete_keypair(name, ignore_missing=False)
        except exceptions.NotFoundException as e:
            raise ResourceNotFound(f"key pair {name} not found") from e
