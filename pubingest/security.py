#  This file is part of PubIngest.
#  PubIngest is free software: you can redistribute it and/or modify
#  it under the terms of the GNU General Public License as published by
#  the Free Software Foundation, either version 3 of the License, or
#  (at your option) any later version.
#  PubIngest is distributed in the hope that it will be useful,
#  but WITHOUT ANY WARRANTY; without even the implied warranty of
#  MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#  GNU General Public License for more details.
#  You should have received a copy of the GNU General Public License
#  along with PubIngest.  If not, see <http://www.gnu.org/licenses/>.

"""
Ambient principal for repository calls.

The scheduler switches to the system user before running an ingestion
cycle; the repository stamps every node it creates with current_user().
"""

import threading
from contextlib import contextmanager

SYSTEM_USER = 'System'
GUEST_USER = 'guest'

_context = threading.local()


def current_user():
    return getattr(_context, 'user', GUEST_USER)


@contextmanager
def run_as(user):
    """Run the enclosed block as `user`, restoring the previous principal afterwards."""
    previous = current_user()
    _context.user = user
    try:
        yield user
    finally:
        _context.user = previous
