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

from pubingest.repository.base import (
    ContentRepository,
    DuplicateNodeError,
    NodeRef,
    RepositoryError,
    guess_mimetype,
    MIMETYPE_PDF,
    MIMETYPE_XML,
    MIMETYPE_TEXT_PLAIN,
    TYPE_CONTENT,
    TYPE_FOLDER,
)
from pubingest.repository.filesystem import FilesystemRepository

__all__ = [
    'ContentRepository',
    'DuplicateNodeError',
    'FilesystemRepository',
    'NodeRef',
    'RepositoryError',
    'guess_mimetype',
    'MIMETYPE_PDF',
    'MIMETYPE_XML',
    'MIMETYPE_TEXT_PLAIN',
    'TYPE_CONTENT',
    'TYPE_FOLDER',
]
