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
Structural checks for chapter_xml packages.

Both checks only read the repository. A missing chapters folder counts
as zero PDF and zero XML files.
"""

from pubingest import logger
from pubingest.ingestion.errors import ChapterCountMismatchError, MissingDescriptorError
from pubingest.repository.base import MIMETYPE_PDF, MIMETYPE_XML


def find_content_descriptor(repository, package_ref, identifier, folder_name):
    """
    Return the master content XML {identifier}.xml from folder_name
    in the package, or raise MissingDescriptorError
    """
    filename = "%s.xml" % identifier
    folder = repository.get_child_by_name(package_ref, folder_name)
    descriptor = None
    if folder is not None:
        descriptor = repository.get_child_by_name(folder, filename)
    if descriptor is None:
        raise MissingDescriptorError(filename, folder_name)
    logger.debug("Found content XML %s in %s" % (filename, folder_name))
    return descriptor


def count_chapter_files(repository, package_ref, folder_name):
    pdf_count = 0
    xml_count = 0
    folder = repository.get_child_by_name(package_ref, folder_name)
    if folder is None:
        return pdf_count, xml_count
    for child in repository.list_children(folder):
        mimetype = repository.get_mimetype(child)
        if mimetype == MIMETYPE_PDF:
            pdf_count += 1
        elif mimetype == MIMETYPE_XML:
            xml_count += 1
    return pdf_count, xml_count


def validate_chapter_files(repository, package_ref, folder_name):
    """
    Every chapter PDF needs a matching chapter XML, and there must be
    at least one of each. Returns (pdf_count, xml_count).
    """
    pdf_count, xml_count = count_chapter_files(repository, package_ref, folder_name)
    if pdf_count == 0 or pdf_count != xml_count:
        raise ChapterCountMismatchError(pdf_count, xml_count, folder_name)
    logger.debug("%s holds %d chapter PDF and %d chapter XML files" % (folder_name, pdf_count, xml_count))
    return pdf_count, xml_count
