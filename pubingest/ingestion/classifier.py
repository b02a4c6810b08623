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
Archive entry classification.

A taxonomy maps the path of a file inside a content ZIP to a destination
folder in the package, using the name of the directory the file sits in
and a few filename heuristics. Classification is pure: no I/O, and the
same path always gives the same answer.

Two taxonomies are supported:

- standard     content/, images/ and styles/ directories of an EPUB-like
               layout, filenames kept as they are
- chapter_xml  Adobe Chapters/, artwork/ and TFB XML/ directories of a
               print production package, chapter files renamed to
               {identifier}-chapter{n}.{ext} and the chapter PDFs
               cross-checked against the content XML after extraction
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from pubingest.ingestion import validator, xmlsplit


class ContentCategory(Enum):
    ROOT = 'root'
    CHAPTER = 'chapter'
    SUPPLEMENTARY = 'supplementary'
    ARTWORK = 'artwork'
    STYLE = 'style'
    XML = 'xml'
    UNRECOGNIZED = 'unrecognized'


@dataclass(frozen=True)
class ClassifiedEntry:
    """Where one archive entry should go.

    folder_name is None for files stored directly in the package folder.
    """
    entry_path: str
    dir_name: str
    filename: str
    category: ContentCategory
    folder_name: Optional[str] = None

    @property
    def ingestible(self) -> bool:
        return self.category != ContentCategory.UNRECOGNIZED


def split_entry_path(entry_path: str) -> Tuple[str, str]:
    """Split an archive entry path into (containing directory, filename).

    Only the immediate directory counts, so 9780080569437/Adobe Chapters/x.pdf
    gives ('Adobe Chapters', 'x.pdf'). Entries at the archive root give ''.
    """
    parts = [p for p in entry_path.replace('\\', '/').split('/') if p]
    if not parts:
        return '', ''
    if len(parts) == 1:
        return '', parts[0]
    return parts[-2], parts[-1]


def rename_chapter_file(filename: str) -> str:
    """Rewrite a chapter filename to {identifier}-chapter{n}.{ext}.

    9780080569437_Chapter_1.pdf -> 9780080569437-chapter1.pdf
    """
    return filename.replace('_', '-').replace('Chapter-', 'chapter')


class ContentTaxonomy(object):
    """Strategy deciding the destination of each archive entry."""

    name = None

    CHAPTER_FILENAME_PART = 'chapter'

    def classify(self, entry_path: str) -> ClassifiedEntry:
        raise NotImplementedError

    def verify(self, repository, package_ref, identifier: str) -> None:
        """Check the extracted package is structurally complete. No-op by default."""
        return None

    def _is_chapter(self, filename):
        return self.CHAPTER_FILENAME_PART in filename.lower()


class StandardTaxonomy(ContentTaxonomy):

    name = 'standard'

    CONTENT_DIR_NAME = 'content'
    ARTWORK_DIR_NAME = 'images'
    STYLES_DIR_NAME = 'styles'

    CHAPTERS_FOLDER_NAME = 'Chapters'
    SUPPLEMENTARY_FOLDER_NAME = 'Supplementary'
    ARTWORK_FOLDER_NAME = 'Artwork'
    STYLES_FOLDER_NAME = 'Styles'

    SUPPLEMENTARY_EXTENSIONS = ('.xhtml',)

    def classify(self, entry_path):
        dir_name, filename = split_entry_path(entry_path)

        def entry(category, folder_name=None):
            return ClassifiedEntry(entry_path, dir_name, filename, category, folder_name)

        if not dir_name:
            # Most likely the package.opf file of the EPub layout
            return entry(ContentCategory.ROOT)

        folder = dir_name.lower()
        if folder == self.CONTENT_DIR_NAME:
            if self._is_chapter(filename):
                return entry(ContentCategory.CHAPTER, self.CHAPTERS_FOLDER_NAME)
            if filename.lower().endswith(self.SUPPLEMENTARY_EXTENSIONS):
                # ToC, cover page and the like
                return entry(ContentCategory.SUPPLEMENTARY, self.SUPPLEMENTARY_FOLDER_NAME)
            return entry(ContentCategory.UNRECOGNIZED)
        if folder == self.ARTWORK_DIR_NAME:
            return entry(ContentCategory.ARTWORK, self.ARTWORK_FOLDER_NAME)
        if folder == self.STYLES_DIR_NAME:
            return entry(ContentCategory.STYLE, self.STYLES_FOLDER_NAME)
        return entry(ContentCategory.UNRECOGNIZED)


class ChapterXmlTaxonomy(ContentTaxonomy):

    name = 'chapter_xml'

    CHAPTERS_DIR_NAME = 'adobe chapters'
    ARTWORK_DIR_NAME = 'artwork'
    XML_DIR_NAME = 'tfb xml'

    CHAPTERS_FOLDER_NAME = 'Adobe Chapters'
    SUPPLEMENTARY_FOLDER_NAME = 'Supplementary'
    ARTWORK_FOLDER_NAME = 'Artwork'
    XML_FOLDER_NAME = 'TFB XML'

    def classify(self, entry_path):
        dir_name, filename = split_entry_path(entry_path)

        def entry(category, folder_name=None, name=filename):
            return ClassifiedEntry(entry_path, dir_name, name, category, folder_name)

        if not dir_name:
            return entry(ContentCategory.ROOT)

        folder = dir_name.lower()
        if folder == self.CHAPTERS_DIR_NAME:
            if self._is_chapter(filename):
                return entry(ContentCategory.CHAPTER, self.CHAPTERS_FOLDER_NAME, rename_chapter_file(filename))
            return entry(ContentCategory.SUPPLEMENTARY, self.SUPPLEMENTARY_FOLDER_NAME)
        if folder == self.ARTWORK_DIR_NAME:
            return entry(ContentCategory.ARTWORK, self.ARTWORK_FOLDER_NAME)
        if folder == self.XML_DIR_NAME:
            if filename.lower().endswith('xml'):
                return entry(ContentCategory.XML, self.XML_FOLDER_NAME)
            return entry(ContentCategory.UNRECOGNIZED)
        return entry(ContentCategory.UNRECOGNIZED)

    def verify(self, repository, package_ref, identifier):
        descriptor = validator.find_content_descriptor(repository, package_ref, identifier,
                                                       self.XML_FOLDER_NAME)
        xmlsplit.split_chapters(repository, descriptor, package_ref, self.CHAPTERS_FOLDER_NAME, identifier)
        validator.validate_chapter_files(repository, package_ref, self.CHAPTERS_FOLDER_NAME)


TAXONOMIES = {
    StandardTaxonomy.name: StandardTaxonomy,
    ChapterXmlTaxonomy.name: ChapterXmlTaxonomy,
}


def get_taxonomy(name: str) -> ContentTaxonomy:
    try:
        return TAXONOMIES[name]()
    except KeyError:
        raise ValueError("Unknown content taxonomy %s" % name)
