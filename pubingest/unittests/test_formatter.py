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
Unit tests for pubingest.formatter module.
"""

import re

import pytest

from pubingest import formatter


class TestIsValidIdentifier:

    @pytest.mark.parametrize('identifier', ['9780486282146', '9780080569437'])
    def test_thirteen_digits(self, identifier):
        assert formatter.is_valid_identifier(identifier)

    @pytest.mark.parametrize('identifier', ['', None, '978048628214', '97804862821460',
                                            '978-0486282146', 'bad', '978048628214X'])
    def test_rejects(self, identifier):
        assert not formatter.is_valid_identifier(identifier)

    def test_custom_pattern(self):
        assert formatter.is_valid_identifier('PKG-0001', r'^PKG-\d{4}$')
        assert not formatter.is_valid_identifier('9780486282146', r'^PKG-\d{4}$')


class TestCheckInt:

    def test_converts(self):
        assert formatter.check_int('42', 0) == 42
        assert formatter.check_int(7, 0) == 7

    @pytest.mark.parametrize('value', [None, '', 'abc', [1]])
    def test_default(self, value):
        assert formatter.check_int(value, 100) == 100


class TestPlural:

    def test_one(self):
        assert formatter.plural(1) == ''
        assert formatter.plural('1') == ''

    def test_others(self):
        assert formatter.plural(0) == 's'
        assert formatter.plural(3) == 's'
        assert formatter.plural(None) == 's'


class TestTimestamps:

    def test_now_format(self):
        assert re.match(r'^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$', formatter.now())

    def test_filestamp_safe_for_filenames(self):
        stamp = formatter.filestamp()
        assert re.match(r'^\d{4}-\d{2}-\d{2}-\d{6}$', stamp)
        assert ':' not in stamp and ' ' not in stamp

