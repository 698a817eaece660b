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


class DriverError(RuntimeError):
    pass


class ConfigurationError(DriverError):
    """Invalid or incomplete driver options. Raised before any remote call."""


class ResolutionError(DriverError):
    def __init__(self, kind, name):
        super().__init__(f"Unable to find {kind} named {name}")
        self.kind = kind
        self.name = name


class ProviderError(DriverError):
    pass


class ResourceNotFound(ProviderError):
    pass


class ActivationTimeout(DriverError):
    pass


class NoIPFound(DriverError):
    def __str__(self):
        return "No IP found for the machine"


class NotRunningError(DriverError):
    def __str__(self):
        return "Host is not running"


# Create failed and the compensating removal failed too; local state
# may no longer match the cloud.
class CreateCleanupError(DriverError):
    def __init__(self, error, cleanup_error):
        super().__init__(f"{error}: {cleanup_error}")
        self.error = error
        self.cleanup_error = cleanup_error
