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


import abc
from dataclasses import dataclass

FIXED = "fixed"
FLOATING = "floating"


@dataclass
class Address:
    address: str
    address_type: str = FIXED
    version: int = 4
    network: str = ""


@dataclass
class FloatingIP:
    id: str = ""
    ip: str = ""
    # empty when the address is not attached to anything
    port_id: str = ""
    pool: str = ""


class Client(abc.ABC):
    """
    Everything the driver needs from an OpenStack cloud.

    Session methods must be safe to call repeatedly; the driver calls them
    before each operation. Lookups return "" for an unknown name. Deletes
    raise ResourceNotFound when the resource is already gone; any other
    failure is raised as whatever the underlying library raises.
    """

    @abc.abstractmethod
    def authenticate(self, config):
        pass

    @abc.abstractmethod
    def init_compute_client(self, config):
        pass

    @abc.abstractmethod
    def init_network_client(self, config):
        pass

    @abc.abstractmethod
    def get_network_id(self, config, name):
        pass

    @abc.abstractmethod
    def get_flavor_id(self, config, name):
        pass

    @abc.abstractmethod
    def get_image_id(self, config, name):
        pass

    @abc.abstractmethod
    def get_floating_ip_pool_id(self, config, name):
        pass

    @abc.abstractmethod
    def create_instance(self, config, name, key_pair_name):
        """Submit the server and return its id without waiting for it."""

    @abc.abstractmethod
    def get_instance_state(self, instance_id):
        """Return the raw Nova status string, e.g. "ACTIVE"."""

    @abc.abstractmethod
    def start_instance(self, instance_id):
        pass

    @abc.abstractmethod
    def stop_instance(self, instance_id):
        pass

    @abc.abstractmethod
    def restart_instance(self, instance_id):
        pass

    @abc.abstractmethod
    def delete_instance(self, instance_id):
        pass

    @abc.abstractmethod
    def wait_for_instance_status(self, instance_id, status, timeout):
        """Block until the server reaches status, fails, or timeout seconds pass."""

    @abc.abstractmethod
    def get_instance_ip_addresses(self, instance_id):
        """Return a list of Address, possibly empty while networking settles."""

    @abc.abstractmethod
    def get_floating_ips(self, config):
        """Return the FloatingIP entries of the configured pool, in listing order."""

    @abc.abstractmethod
    def allocate_floating_ip(self, config):
        pass

    @abc.abstractmethod
    def assign_floating_ip(self, config, instance_id, floating_ip):
        pass

    @abc.abstractmethod
    def create_key_pair(self, name, public_key):
        pass

    @abc.abstractmethod
    def get_public_key(self, name):
        """Return the public key material of a registered pair as bytes."""

    @abc.abstractmethod
    def delete_key_pair(self, name):
        pass
