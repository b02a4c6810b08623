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
Errors raised while ingesting a content package.

Every error carries a ProcessingErrorCode, shown in its message so the
log says which kind of failure stopped a package.
"""

from enum import Enum


class ProcessingErrorCode(Enum):
    INVALID_IDENTIFIER = 'Invalid identifier'
    CONTENT_INGESTION_SOURCE_DIR = 'Source directory unavailable'
    CONTENT_INGESTION_EXTRACT_ZIP = 'Could not extract content ZIP'
    CONTENT_INGESTION_CREATE_FOLDER = 'Could not create package folder'
    CONTENT_CHECKER_HANDLE_XML_FILE = 'Missing content XML'
    CONTENT_CHECKER_PARSE_XML_FILE = 'Unreadable content XML'
    CONTENT_CHECKER_CHAPTER_FILES_MISMATCH = 'Chapter PDF/XML mismatch'


class IngestionError(Exception):
    """Base class for all ingestion failures."""
    code = None

    def __init__(self, message, cause=None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self):
        if self.code is None:
            return self.message
        return "[%s] %s" % (self.code.name, self.message)


class InvalidIdentifierError(IngestionError):
    code = ProcessingErrorCode.INVALID_IDENTIFIER

    def __init__(self, filename):
        self.filename = filename
        super().__init__("Archive name %s is not a valid identifier" % filename)


class SourceDirectoryError(IngestionError):
    code = ProcessingErrorCode.CONTENT_INGESTION_SOURCE_DIR


class ExtractionError(IngestionError):
    code = ProcessingErrorCode.CONTENT_INGESTION_EXTRACT_ZIP

    def __init__(self, archive_name, cause):
        self.archive_name = archive_name
        super().__init__("Error extracting content ZIP %s [error=%s]" % (archive_name, cause), cause)


class PackageCreationError(IngestionError):
    code = ProcessingErrorCode.CONTENT_INGESTION_CREATE_FOLDER


class MissingDescriptorError(IngestionError):
    code = ProcessingErrorCode.CONTENT_CHECKER_HANDLE_XML_FILE

    def __init__(self, filename, folder_name):
        self.filename = filename
        super().__init__("Missing complete content XML file [%s] in %s" % (filename, folder_name))


class DescriptorParseError(IngestionError):
    code = ProcessingErrorCode.CONTENT_CHECKER_PARSE_XML_FILE


class ChapterCountMismatchError(IngestionError):
    code = ProcessingErrorCode.CONTENT_CHECKER_CHAPTER_FILES_MISMATCH

    def __init__(self, pdf_count, xml_count, folder_name):
        self.pdf_count = pdf_count
        self.xml_count = xml_count
        if pdf_count == 0 and xml_count == 0:
            message = "There are no PDF or XML files available in %s" % folder_name
        else:
            message = "There are [%d] PDF files but [%d] XML files in %s" % (pdf_count, xml_count, folder_name)
        super().__init__(message)
