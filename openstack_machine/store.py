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


import errno
import json
import logging
import os
import shutil

from openstack_machine.driver import Driver
from openstack_machine.errors import DriverError

CONFIG_FILE = "config.json"


def machine_dir(store_path, name):
    return os.path.join(store_path, "machines", name)


def save(driver):
    path = os.path.join(machine_dir(driver.store_path, driver.machine_name), CONFIG_FILE)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    tmp = path + ".tmp"
    with open(tmp, mode="w") as f:
        f.write(json.dumps(driver.to_dict(), indent=4))
    os.replace(tmp, path)
    logging.debug(f"saved {driver.machine_name} to {path}")
    return path


def load(store_path, name, client=None):
    path = os.path.join(machine_dir(store_path, name), CONFIG_FILE)
    try:
        with open(path) as f:
            data = json.load(f)
    except IOError as e:
        if e.errno == errno.ENOENT:
            raise DriverError(f"machine {name} does not exist in {store_path}") from e
        raise
    return Driver.from_dict(data, store_path, client=client)


def exists(store_path, name):
    return os.path.exists(os.path.join(machine_dir(store_path, name), CONFIG_FILE))


def delete(store_path, name):
    try:
        shutil.rmtree(machine_dir(store_path, name))
        logging.info(f"removed local state of {name}")
    except OSError as e:
        if e.errno != errno.ENOENT:
            raise e
