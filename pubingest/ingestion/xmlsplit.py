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
Split a master content XML into one XML file per chapter.

Only chapter elements that are not nested inside another chapter are
taken. Each one is written to the chapters folder as
{identifier}-chapter{n}.xml, where n is the element's numeric number
attribute or else its position in the document.
"""

import io
from xml.etree import ElementTree

from pubingest import logger
from pubingest.formatter import plural
from pubingest.ingestion.errors import DescriptorParseError
from pubingest.repository.base import MIMETYPE_XML

CHAPTER_TAG = 'chapter'


def _local_name(tag):
    if not isinstance(tag, str):
        # comments and processing instructions
        return ''
    if '}' in tag:
        tag = tag.split('}', 1)[1]
    return tag.lower()


def find_chapters(element):
    """Return the outermost chapter elements below element, in document order."""
    chapters = []
    for child in element:
        if _local_name(child.tag) == CHAPTER_TAG:
            chapters.append(child)
        else:
            chapters.extend(find_chapters(child))
    return chapters


def chapter_filename(identifier, chapter, position):
    number = chapter.get('number', '').strip()
    if not number.isdigit():
        number = str(position)
    else:
        number = str(int(number))
    return "%s-chapter%s.xml" % (identifier, number)


def split_chapters(repository, descriptor, package_ref, folder_name, identifier):
    """
    Write the chapters of the descriptor into folder_name of the package.
    Chapter files already present are left alone. Returns the number of
    chapter files written.
    """
    try:
        with repository.open_content(descriptor) as f:
            tree = ElementTree.parse(f)
    except ElementTree.ParseError as e:
        raise DescriptorParseError("Failed to parse content XML %s: %s" % (descriptor.name, e), e)

    root = tree.getroot()
    if _local_name(root.tag) == CHAPTER_TAG:
        chapters = [root]
    else:
        chapters = find_chapters(root)
    if not chapters:
        logger.warn("No chapters found in content XML %s" % descriptor.name)
        return 0

    folder = repository.get_or_create_folder(package_ref, folder_name)
    written = 0
    for position, chapter in enumerate(chapters, 1):
        filename = chapter_filename(identifier, chapter, position)
        if repository.get_child_by_name(folder, filename) is not None:
            logger.debug("%s already present in %s" % (filename, folder_name))
            continue
        data = ElementTree.tostring(chapter, encoding='utf-8')
        repository.write_content(folder, filename, io.BytesIO(data), MIMETYPE_XML)
        written += 1
    logger.debug("Split %s into %d chapter file%s" % (descriptor.name, written, plural(written)))
    return written
