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


import logging
import time
from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-count, fixed-delay polling budget.

    Worst case is roughly attempts * interval seconds; the IP lookup
    default (200 x 2s) keeps the historical ~6.6 minute bound.
    """

    attempts: int = 200
    interval: float = 2.0

    @property
    def budget(self):
        return self.attempts * self.interval


IP_LOOKUP = RetryPolicy(attempts=200, interval=2.0)


def poll(fetch, policy=IP_LOOKUP, what="result"):
    """
    Call fetch() until it returns something truthy or the policy runs out.

    Only an empty answer is retried: exceptions raised by fetch() propagate
    immediately. Returns None when every attempt came back empty.
    """
    for attempt in range(policy.attempts):
        result = fetch()
        if result:
            return result
        logging.debug(f"no {what} yet (attempt {attempt + 1}/{policy.attempts})")
        time.sleep(policy.interval)
    return None
