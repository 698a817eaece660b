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


from openstack_machine.client import Address, Client, FloatingIP
from openstack_machine.config import OPTIONS, DriverConfig
from openstack_machine.driver import Driver, Phase
from openstack_machine.errors import (
    ActivationTimeout,
    ConfigurationError,
    CreateCleanupError,
    DriverError,
    NoIPFound,
    NotRunningError,
    ProviderError,
    ResolutionError,
    ResourceNotFound,
)
from openstack_machine.state import State

__version__ = "0.1.0"
