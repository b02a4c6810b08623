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

import datetime
import re


def now():
    dtnow = datetime.datetime.now()
    return dtnow.strftime("%Y-%m-%d %H:%M:%S")


def filestamp():
    # now() without characters that are awkward in filenames
    dtnow = datetime.datetime.now()
    return dtnow.strftime("%Y-%m-%d-%H%M%S")


def check_int(var, default):
    """
    Return an integer representation of var
    or return default value if var is not integer
    """
    if var is None or var == '':
        return default
    try:
        return int(var)
    except (ValueError, TypeError):
        return default


def plural(var):
    """
    Convenience function for log messages, if var = 1 return ''
    if var is anything else return 's'
    so book -> books, seed -> seeds
    """
    if check_int(var, 0) == 1:
        return ''
    return 's'


def is_valid_identifier(identifier, pattern=r'^\d{13}$'):
    """
    Check a product identifier (archive filename stem) against the
    configured identifier pattern. Default is a 13 digit ISBN with no
    separators, as the identifier doubles as a folder name.
    """
    if not identifier:
        return False
    return re.match(pattern, identifier) is not None
