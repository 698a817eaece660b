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


import argparse
import json
import logging
import os
import sys

import yaml
from openstack import exceptions

from openstack_machine import store
from openstack_machine.config import OPTIONS, DriverConfig, collect_options
from openstack_machine.driver import Driver
from openstack_machine.errors import ConfigurationError, DriverError

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

DEFAULT_STORAGE_PATH = os.path.join("~", ".openstack-machine")

SECRET_KEYS = ("password", "token", "application_credential_secret")


def load_config_file(path):
    if not path:
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except IOError as e:
        raise ConfigurationError(f"cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"cannot parse config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping of option names to values")
    return data


def add_driver_options(parser):
    group = parser.add_argument_group("OpenStack options")
    for o in OPTIONS:
        help = f"{o.help} [${o.env}]"
        if o.kind is bool:
            group.add_argument(o.flag, dest=o.name, action="store_true", default=None, help=help)
        elif o.kind is int:
            group.add_argument(o.flag, dest=o.name, type=int, default=None, help=help)
        elif o.kind is list:
            group.add_argument(o.flag, dest=o.name, type=o.parse, default=None, help=help)
        else:
            group.add_argument(o.flag, dest=o.name, default=None, help=help)


def build_config(args, environ=None):
    cli = {o.name: getattr(args, o.name, None) for o in OPTIONS}
    options = collect_options(cli, environ, load_config_file(args.config))
    return DriverConfig.from_options(options)


def cmd_create(args):
    if store.exists(args.storage_path, args.name):
        raise DriverError(f"machine {args.name} already exists")

    config = build_config(args)
    driver = Driver(args.name, args.storage_path, config)
    try:
        driver.create()
    except Exception:
        # keep whatever is left on the cloud reachable for "rm"
        if driver.has_cloud_resources():
            store.save(driver)
        else:
            store.delete(args.storage_path, args.name)
        raise
    store.save(driver)
    print(driver.ip_address)


def cmd_start(args):
    store.load(args.storage_path, args.name).start()


def cmd_stop(args):
    store.load(args.storage_path, args.name).stop()


def cmd_restart(args):
    store.load(args.storage_path, args.name).restart()


def cmd_kill(args):
    store.load(args.storage_path, args.name).kill()


def cmd_rm(args):
    driver = store.load(args.storage_path, args.name)
    try:
        driver.remove()
    except (DriverError, exceptions.SDKException) as e:
        if not args.force:
            raise
        logging.warning(f"{args.name}: remove failed ({e}), dropping local state anyway")
    store.delete(args.storage_path, args.name)


def cmd_status(args):
    print(store.load(args.storage_path, args.name).get_state())


def cmd_ip(args):
    driver = store.load(args.storage_path, args.name)
    print(driver.get_ip())


def cmd_url(args):
    print(store.load(args.storage_path, args.name).get_url())


def cmd_inspect(args):
    data = store.load(args.storage_path, args.name).to_dict()
    for key in SECRET_KEYS:
        if data["config"].get(key):
            data["config"][key] = "********"
    print(json.dumps(data, indent=4))


def cmd_options(args):
    for o in OPTIONS:
        default = ",".join(o.default) if o.kind is list else o.default
        print(f"{o.flag:<45} {o.env:<35} {default!s:<8} {o.help}")


COMMANDS = {
    "create": cmd_create,
    "start": cmd_start,
    "stop": cmd_stop,
    "restart": cmd_restart,
    "kill": cmd_kill,
    "rm": cmd_rm,
    "status": cmd_status,
    "ip": cmd_ip,
    "url": cmd_url,
    "inspect": cmd_inspect,
    "options": cmd_options,
}


def make_parser():
    parser = argparse.ArgumentParser(prog="openstack-machine")
    parser.add_argument(
        "-s",
        "--storage-path",
        default=os.getenv("MACHINE_STORAGE_PATH", DEFAULT_STORAGE_PATH),
        help="Directory holding machine state [$MACHINE_STORAGE_PATH]",
    )
    parser.add_argument(
        "--config", help="YAML file with default values for the OpenStack options"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="cmd", required=True)

    create = subparsers.add_parser("create")
    create.add_argument("name")
    add_driver_options(create)

    for cmd in ("start", "stop", "restart", "kill", "status", "ip", "url", "inspect"):
        subparsers.add_parser(cmd).add_argument("name")

    rm = subparsers.add_parser("rm")
    rm.add_argument("name")
    rm.add_argument(
        "-f", "--force", action="store_true", help="Drop local state even if the cloud call fails"
    )

    subparsers.add_parser("options")
    return parser


def main(argv=None):
    args = make_parser().parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    args.storage_path = os.path.expanduser(args.storage_path)

    try:
        COMMANDS[args.cmd](args)
    except (DriverError, exceptions.SDKException, OSError) as e:
        if args.verbose:
            logging.exception(e)
        else:
            logging.error(e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
