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
Content ZIP extraction.

Every file entry of the archive is classified by the configured taxonomy
and streamed into its destination folder below the package folder.
Destination folders are created on first use, so only categories that
occur in the archive get a folder.
"""

import dataclasses
import zipfile
import zlib
from typing import List

from pubingest import logger
from pubingest.formatter import filestamp, plural
from pubingest.ingestion.classifier import ClassifiedEntry, ContentTaxonomy, split_entry_path
from pubingest.ingestion.errors import ExtractionError
from pubingest.repository.base import ContentRepository, NodeRef, RepositoryError

# path: containing directory taken from each entry's own path (order independent)
# running: directory taken from the last directory entry seen (legacy archives)
DIRECTORY_STRATEGIES = ('path', 'running')

READ_ERRORS = (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, EOFError, OSError)


def is_unsafe_path(name):
    """True for absolute entry paths and paths with a parent directory segment."""
    name = name.replace('\\', '/')
    return name.startswith('/') or '..' in name.split('/')


class ArchiveExtractor:
    """Unpack a content ZIP into a package folder.

    Nothing is extracted to local disk, entry streams go straight to
    the repository.
    """

    def __init__(self, repository: ContentRepository, taxonomy: ContentTaxonomy,
                 directory_strategy: str = 'path', write_error_notes: bool = True):
        if directory_strategy not in DIRECTORY_STRATEGIES:
            raise ValueError("Unknown directory strategy %s" % directory_strategy)
        self.repository = repository
        self.taxonomy = taxonomy
        self.directory_strategy = directory_strategy
        self.write_error_notes = write_error_notes

    def extract(self, archive_path: str, package_ref: NodeRef, identifier: str) -> List[ClassifiedEntry]:
        """Extract archive_path into package_ref.

        Args:
            archive_path: Path to the content ZIP
            package_ref: Package folder receiving the content
            identifier: Package identifier, used for the error note name

        Returns:
            The entries that were stored

        Raises:
            ExtractionError: If the archive cannot be opened or read. Entries
                stored before the failure stay where they are.
        """
        stored = []
        try:
            with zipfile.ZipFile(archive_path, 'r') as zf:
                current_dir = ''
                for info in zf.infolist():
                    name = info.filename
                    if is_unsafe_path(name):
                        logger.warn("Skipping potentially dangerous path: %s" % name)
                        continue
                    if info.is_dir():
                        if self.directory_strategy == 'running':
                            current_dir = split_entry_path(name)[1]
                        continue

                    entry = self.classify(name, current_dir)
                    if not entry.ingestible:
                        logger.warn("Unrecognized entry %s in %s, not ingested" % (name, archive_path))
                        continue
                    self._store(zf, info, entry, package_ref)
                    stored.append(entry)
        except READ_ERRORS as e:
            msg = "Error extracting content ZIP %s [error=%s]" % (archive_path, e)
            logger.error(msg)
            if self.write_error_notes:
                self._write_error_note(package_ref, identifier, msg)
            raise ExtractionError(archive_path, e)

        logger.debug("Extracted %d file%s from %s" % (len(stored), plural(len(stored)), archive_path))
        return stored

    def classify(self, entry_path, current_dir=''):
        if self.directory_strategy == 'path':
            return self.taxonomy.classify(entry_path)
        filename = split_entry_path(entry_path)[1]
        path = current_dir + '/' + filename if current_dir else filename
        return dataclasses.replace(self.taxonomy.classify(path), entry_path=entry_path)

    def _store(self, zf, info, entry, package_ref):
        if entry.folder_name is None:
            folder = package_ref
        else:
            folder = self.repository.get_or_create_folder(package_ref, entry.folder_name)
        with zf.open(info) as src:
            self.repository.write_content(folder, entry.filename, src)
        logger.debug("Stored %s as %s/%s" % (entry.entry_path, entry.folder_name or '.', entry.filename))

    def _write_error_note(self, package_ref, identifier, msg):
        # lets downstream tooling see why the package never completed
        note_name = "%s-%s.txt" % (identifier, filestamp())
        try:
            self.repository.write_text(package_ref, note_name, msg)
        except RepositoryError as e:
            logger.error("Could not write error note %s: %s" % (note_name, e))
