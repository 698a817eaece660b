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


import enum
import logging
import os

from openstack_machine import retry, ssh
from openstack_machine.client import FIXED, FLOATING
from openstack_machine.config import DriverConfig
from openstack_machine.errors import (
    CreateCleanupError,
    NoIPFound,
    NotRunningError,
    ResolutionError,
    ResourceNotFound,
)
from openstack_machine.generic_client import GenericClient
from openstack_machine.state import State, from_status

DOCKER_PORT = 2376


class Phase(enum.Enum):
    UNINITIALIZED = "uninitialized"
    RESOLVING = "resolving"
    PROVISIONING_KEY = "provisioning-key"
    CREATING = "creating"
    WAITING_ACTIVE = "waiting-active"
    ASSIGNING_FLOATING_IP = "assigning-floating-ip"
    LOCATING_IP = "locating-ip"
    READY = "ready"
    FAILED_CREATE = "failed-create"
    REMOVED = "removed"


def join_host_port(host, port):
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


class Driver:
    """
    Lifecycle of a single OpenStack instance.

    A driver owns at most one server. Create resolves names, provisions the
    SSH key pair, boots the server, waits for it, optionally attaches a
    floating IP and finally finds its address. Once the server exists, any
    failure removes it again before the error is raised.
    """

    def __init__(self, machine_name, store_path, config, client=None, ip_policy=retry.IP_LOOKUP):
        if client is None:
            client = GenericClient()
        self.machine_name = machine_name
        self.store_path = store_path
        self.config = config
        self.client = client
        self.ip_policy = ip_policy

        self.machine_id = ""
        self.ip_address = ""
        self.key_pair_name = config.key_pair_name
        self.existing_key = bool(config.key_pair_name)
        self.phase = Phase.UNINITIALIZED

    def driver_name(self):
        return "openstack"

    def _set_phase(self, phase):
        logging.debug(f"{self.machine_name}: {self.phase.value} -> {phase.value}")
        self.phase = phase

    # paths

    def resolve_store_path(self, filename):
        return os.path.join(self.store_path, "machines", self.machine_name, filename)

    def get_ssh_key_path(self):
        return self.resolve_store_path("id_rsa")

    def _public_ssh_key_path(self):
        return self.get_ssh_key_path() + ".pub"

    def get_ssh_hostname(self):
        return self.get_ip()

    # sessions

    def _init_compute(self):
        self.client.authenticate(self.config)
        self.client.init_compute_client(self.config)

    def _init_network(self):
        self.client.authenticate(self.config)
        self.client.init_network_client(self.config)

    # lifecycle

    def create(self):
        self._set_phase(Phase.RESOLVING)
        try:
            self._resolve_ids()
            self._set_phase(Phase.PROVISIONING_KEY)
            if self.existing_key:
                self._load_ssh_key()
            else:
                self.key_pair_name = f"{self.machine_name}-{ssh.random_id()}"
                self._create_ssh_key()
            self._set_phase(Phase.CREATING)
            self._create_machine()
        except Exception:
            self._set_phase(Phase.FAILED_CREATE)
            raise

        try:
            self._set_phase(Phase.WAITING_ACTIVE)
            self._wait_for_instance_active()
            if self.config.floating_ip_pool:
                self._set_phase(Phase.ASSIGNING_FLOATING_IP)
                self._assign_floating_ip()
            self._set_phase(Phase.LOCATING_IP)
            self._look_for_ip_address()
        except Exception as e:
            self._set_phase(Phase.FAILED_CREATE)
            self._failed_to_create(e)
            raise

        self._set_phase(Phase.READY)
        logging.info(f"{self.machine_name}: instance {self.machine_id} ready at {self.ip_address}")

    def _failed_to_create(self, error):
        logging.warning(f"{self.machine_name}: create failed ({error}), removing instance {self.machine_id}")
        try:
            self.remove()
        except Exception as e:
            raise CreateCleanupError(error, e) from error
        # remove() leaves the driver REMOVED; the create itself still failed
        self.phase = Phase.FAILED_CREATE

    def start(self):
        self._init_compute()
        logging.info(f"{self.machine_name}: starting {self.machine_id}")
        self.client.start_instance(self.machine_id)

    def stop(self):
        self._init_compute()
        logging.info(f"{self.machine_name}: stopping {self.machine_id}")
        self.client.stop_instance(self.machine_id)

    def restart(self):
        self._init_compute()
        logging.info(f"{self.machine_name}: restarting {self.machine_id}")
        self.client.restart_instance(self.machine_id)

    def kill(self):
        return self.stop()

    def remove(self):
        logging.debug(f"deleting instance {self.machine_id}")
        logging.info("Deleting OpenStack instance...")
        self._init_compute()
        if self.machine_id:
            try:
                self.client.delete_instance(self.machine_id)
            except ResourceNotFound:
                logging.warning(
                    "Remote instance does not exist, proceeding with removing local reference"
                )
        else:
            logging.warning(f"{self.machine_name}: no instance recorded, nothing to delete")

        if not self.existing_key and self.key_pair_name:
            logging.debug(f"deleting key pair {self.key_pair_name}")
            try:
                self.client.delete_key_pair(self.key_pair_name)
            except ResourceNotFound:
                logging.warning(f"key pair {self.key_pair_name} already deleted")
            self.key_pair_name = ""

        self.machine_id = ""
        self.ip_address = ""
        self._set_phase(Phase.REMOVED)

    def has_cloud_resources(self):
        """True while an instance or a generated key pair may still exist."""
        return bool(self.machine_id) or (not self.existing_key and bool(self.key_pair_name))

    def get_state(self):
        logging.debug(f"Get status for OpenStack instance {self.machine_id}")
        self._init_compute()
        status = self.client.get_instance_state(self.machine_id)
        logging.debug(f"State for OpenStack instance {self.machine_id}: {status}")
        return from_status(status)

    def get_url(self):
        if self.get_state() != State.RUNNING:
            raise NotRunningError()
        ip = self.get_ip()
        if not ip:
            return ""
        return f"tcp://{join_host_port(ip, DOCKER_PORT)}"

    def get_ip(self):
        if self.ip_address:
            return self.ip_address

        logging.debug(f"Looking for the IP address of {self.machine_id}")
        self._init_compute()

        address_type = FLOATING if self.config.floating_ip_pool else FIXED
        version = self.config.ip_version

        def matching_address():
            for a in self.client.get_instance_ip_addresses(self.machine_id):
                if a.address_type == address_type and a.version == version:
                    return a.address
            return None

        # addresses show up some time after the server goes ACTIVE
        ip = retry.poll(matching_address, self.ip_policy, what=f"{address_type} IPv{version} address")
        if not ip:
            raise NoIPFound()
        return ip

    # create steps

    def _resolve_ids(self):
        config = self.config

        if config.network_names and not config.compute_network:
            self._init_network()
            ids = []
            for name in config.network_names:
                network_id = self.client.get_network_id(config, name)
                if not network_id:
                    raise ResolutionError("network", name)
                logging.debug(f"Found network id {network_id} using its name {name}")
                ids.append(network_id)
            config.network_ids = ids

        if config.flavor_name:
            self._init_compute()
            flavor_id = self.client.get_flavor_id(config, config.flavor_name)
            if not flavor_id:
                raise ResolutionError("flavor", config.flavor_name)
            config.flavor_id = flavor_id
            logging.debug(f"Found flavor id {flavor_id} using its name {config.flavor_name}")

        if config.image_name:
            self._init_compute()
            image_id = self.client.get_image_id(config, config.image_name)
            if not image_id:
                raise ResolutionError("image", config.image_name)
            config.image_id = image_id
            logging.debug(f"Found image id {image_id} using its name {config.image_name}")

        if config.floating_ip_pool and not config.compute_network:
            self._init_network()
            pool_id = self.client.get_floating_ip_pool_id(config, config.floating_ip_pool)
            if not pool_id:
                raise ResolutionError("network", config.floating_ip_pool)
            config.floating_ip_pool_id = pool_id
            logging.debug(
                f"Found floating IP pool id {pool_id} using its name {config.floating_ip_pool}"
            )

    def _load_ssh_key(self):
        logging.debug(f"Loading key pair {self.key_pair_name}")
        self._init_compute()
        logging.debug(f"Loading private key from {self.config.private_key_file}")
        with open(self.config.private_key_file, "rb") as f:
            private_key = f.read()
        public_key = self.client.get_public_key(self.key_pair_name)
        ssh.write_key_file(self.get_ssh_key_path(), private_key)
        ssh.write_key_file(self._public_ssh_key_path(), public_key)

    def _create_ssh_key(self):
        self.key_pair_name = ssh.sanitize_key_pair_name(self.key_pair_name)
        logging.debug(f"Creating key pair {self.key_pair_name}")
        public_key = ssh.generate_ssh_key(self.get_ssh_key_path())
        self._init_compute()
        self.client.create_key_pair(self.key_pair_name, public_key)

    def _create_machine(self):
        logging.info(
            f"{self.machine_name}: creating OpenStack instance "
            f"(flavor {self.config.flavor_id}, image {self.config.image_id})"
        )
        self._init_compute()
        self.machine_id = self.client.create_instance(
            self.config, self.machine_name, self.key_pair_name
        )
        logging.debug(f"{self.machine_name}: instance id {self.machine_id}")

    def _wait_for_instance_active(self):
        logging.debug(f"Waiting for the OpenStack instance {self.machine_id} to be ACTIVE")
        self.client.wait_for_instance_status(
            self.machine_id, "ACTIVE", self.config.active_timeout
        )

    def _assign_floating_ip(self):
        if self.config.compute_network:
            self._init_compute()
        else:
            self._init_network()

        logging.debug(
            f"Looking for an available floating IP in {self.config.floating_ip_pool} "
            f"for {self.machine_id}"
        )
        floating_ip = None
        for ip in self.client.get_floating_ips(self.config):
            if not ip.port_id:
                logging.debug(f"Available floating IP found: {ip.ip}")
                floating_ip = ip
                break

        if floating_ip is None:
            logging.debug("No available floating IP found. Allocating a new one...")
            floating_ip = self.client.allocate_floating_ip(self.config)
        logging.debug(f"Assigning floating IP {floating_ip.ip} to {self.machine_id}")
        self.client.assign_floating_ip(self.config, self.machine_id, floating_ip)
        self.ip_address = floating_ip.ip

    def _look_for_ip_address(self):
        ip = self.get_ip()
        self.ip_address = ip
        logging.debug(f"IP address {ip} found for {self.machine_id}")

    # persistence

    def to_dict(self):
        return {
            "machine_name": self.machine_name,
            "machine_id": self.machine_id,
            "ip_address": self.ip_address,
            "key_pair_name": self.key_pair_name,
            "existing_key": self.existing_key,
            "phase": self.phase.value,
            "config": self.config.to_dict(),
        }

    @classmethod
    def from_dict(cls, data, store_path, client=None):
        driver = cls(
            data["machine_name"],
            store_path,
            DriverConfig.from_dict(data["config"]),
            client=client,
        )
        driver.machine_id = data.get("machine_id", "")
        driver.ip_address = data.get("ip_address", "")
        driver.key_pair_name = data.get("key_pair_name", "")
        driver.existing_key = data.get("existing_key", False)
        driver.phase = Phase(data.get("phase", Phase.UNINITIALIZED.value))
        return driver
