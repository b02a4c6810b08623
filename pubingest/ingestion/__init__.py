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
Content ZIP ingestion pipeline.

The orchestrator scans the source directory, the lifecycle manager decides
what each archive means for the repository, the extractor unpacks it using
the configured taxonomy, and the taxonomy checks the result.
"""

from pubingest.ingestion.errors import (
    ProcessingErrorCode,
    IngestionError,
    InvalidIdentifierError,
    SourceDirectoryError,
    ExtractionError,
    PackageCreationError,
    MissingDescriptorError,
    DescriptorParseError,
    ChapterCountMismatchError,
)
from pubingest.ingestion.classifier import (
    ClassifiedEntry,
    ContentCategory,
    ContentTaxonomy,
    StandardTaxonomy,
    ChapterXmlTaxonomy,
    get_taxonomy,
)
from pubingest.ingestion.extractor import ArchiveExtractor
from pubingest.ingestion.lifecycle import (
    Disposition,
    DispositionResult,
    IngestionStatus,
    PackageLifecycleManager,
    PackageTarget,
)
from pubingest.ingestion.orchestrator import (
    ArchiveJob,
    IngestionOrchestrator,
    Outcome,
    RunStatistics,
    Stage,
)

__all__ = [
    'ProcessingErrorCode',
    'IngestionError',
    'InvalidIdentifierError',
    'SourceDirectoryError',
    'ExtractionError',
    'PackageCreationError',
    'MissingDescriptorError',
    'DescriptorParseError',
    'ChapterCountMismatchError',
    'ClassifiedEntry',
    'ContentCategory',
    'ContentTaxonomy',
    'StandardTaxonomy',
    'ChapterXmlTaxonomy',
    'get_taxonomy',
    'ArchiveExtractor',
    'Disposition',
    'DispositionResult',
    'IngestionStatus',
    'PackageLifecycleManager',
    'PackageTarget',
    'ArchiveJob',
    'IngestionOrchestrator',
    'Outcome',
    'RunStatistics',
    'Stage',
]
