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


class State(enum.Enum):
    NONE = "None"
    RUNNING = "Running"
    PAUSED = "Paused"
    SAVED = "Saved"
    STOPPED = "Stopped"
    STARTING = "Starting"
    ERROR = "Error"

    def __str__(self):
        return self.value


# Nova server status -> machine state. Anything missing here is
# transitional (REBOOT, RESIZE, ...) and reported as NONE.
STATUS_MAP = {
    "ACTIVE": State.RUNNING,
    "PAUSED": State.PAUSED,
    "SUSPENDED": State.SAVED,
    "SHUTOFF": State.STOPPED,
    "BUILDING": State.STARTING,
    "ERROR": State.ERROR,
}


def from_status(status):
    return STATUS_MAP.get(status, State.NONE)
