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
Unit tests for pubingest.security module.
"""

import threading

from pubingest.security import GUEST_USER, SYSTEM_USER, current_user, run_as


def test_default_user():
    assert current_user() == GUEST_USER


def test_run_as_restores_previous():
    with run_as(SYSTEM_USER):
        assert current_user() == SYSTEM_USER
        with run_as('editor'):
            assert current_user() == 'editor'
        assert current_user() == SYSTEM_USER
    assert current_user() == GUEST_USER


def test_run_as_restores_after_error():
    try:
        with run_as(SYSTEM_USER):
            raise RuntimeError('boom')
    except RuntimeError:
        pass
    assert current_user() == GUEST_USER


def test_principal_is_per_thread():
    seen = []

    def worker():
        seen.append(current_user())

    with run_as(SYSTEM_USER):
        t = threading.Thread(target=worker)
        t.start()
        t.join()
    assert seen == [GUEST_USER]
