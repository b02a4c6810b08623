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
Ingestion orchestrator: one scan of the source directory per run().

Each archive found goes through

    discovered -> name validated -> disposition resolved -> extracted
    -> validated -> completed

and any failure on the way ends it as failed. The archive always leaves
the source directory: deleted on success, moved to quarantine on failure.
run() never raises, so a bad archive cannot stop the scheduler.
"""

import os
import traceback
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional

from pubingest import logger
from pubingest.common import findFilesUsingExtension, moveToFailedDir
from pubingest.config.settings import IngestionSettings
from pubingest.formatter import is_valid_identifier, now, plural
from pubingest.ingestion.classifier import get_taxonomy
from pubingest.ingestion.errors import IngestionError, InvalidIdentifierError, SourceDirectoryError
from pubingest.ingestion.extractor import ArchiveExtractor
from pubingest.ingestion.lifecycle import Disposition, PackageLifecycleManager
from pubingest.repository.base import ContentRepository, NodeRef, RepositoryError


class Stage(Enum):
    DISCOVERED = 'discovered'
    NAME_VALIDATED = 'name validated'
    DISPOSITION_RESOLVED = 'disposition resolved'
    EXTRACTED = 'extracted'
    VALIDATED = 'validated'
    COMPLETED = 'completed'


class Outcome(Enum):
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'


@dataclass
class RunStatistics:
    last_run_time: Optional[str] = None
    number_of_runs: int = 0
    queue_size: int = 0


@dataclass
class ArchiveJob:
    """One archive's trip through a run."""
    source_path: str
    identifier: str
    stage: Stage = Stage.DISCOVERED
    disposition: Optional[Disposition] = None
    outcome: Optional[Outcome] = None
    package_ref: Optional[NodeRef] = None
    error: Optional[str] = None
    quarantine_path: Optional[str] = None

    @property
    def archive_name(self):
        return os.path.basename(self.source_path)


class IngestionOrchestrator:

    def __init__(self, settings: IngestionSettings, repository: ContentRepository,
                 lifecycle: Optional[PackageLifecycleManager] = None,
                 extractor: Optional[ArchiveExtractor] = None,
                 cron_expression: Optional[str] = None, cron_start_delay: Optional[int] = None):
        self.settings = settings
        self.repository = repository
        self.taxonomy = get_taxonomy(settings.taxonomy)
        self.lifecycle = lifecycle or PackageLifecycleManager(repository, settings.republish_folder)
        self.extractor = extractor or ArchiveExtractor(repository, self.taxonomy,
                                                       directory_strategy=settings.directory_strategy,
                                                       write_error_notes=settings.write_error_notes)
        self.cron_expression = cron_expression
        self.cron_start_delay = cron_start_delay
        self._stats = RunStatistics()
        self._root = None

    # read-only view for the introspection api
    @property
    def stats(self) -> RunStatistics:
        return replace(self._stats)

    @property
    def source_dir(self):
        return self.settings.source_dir

    @property
    def last_run_time(self):
        return self._stats.last_run_time

    @property
    def number_of_runs(self):
        return self._stats.number_of_runs

    @property
    def queue_size(self):
        return self._stats.queue_size

    def run(self) -> List[ArchiveJob]:
        """Process every archive waiting in the source directory.

        Returns the jobs of this run. Never raises.
        """
        self._stats.number_of_runs += 1
        self._stats.last_run_time = now()
        jobs = []
        try:
            archives = self.discover()
        except SourceDirectoryError as e:
            logger.error(str(e))
            return jobs
        except Exception as e:
            logger.error("Unhandled error scanning %s: %s %s" % (self.settings.source_dir, type(e).__name__, e))
            return jobs

        self._stats.queue_size = len(archives)
        if archives:
            logger.info("Found %d content ZIP%s in %s" % (len(archives), plural(len(archives)),
                                                         self.settings.source_dir))
        for archive in archives:
            identifier = os.path.splitext(os.path.basename(archive))[0]
            job = ArchiveJob(archive, identifier)
            jobs.append(job)
            try:
                self.process(job)
            finally:
                self._stats.queue_size = max(0, self._stats.queue_size - 1)

        failed = len([job for job in jobs if job.outcome == Outcome.FAILED])
        if jobs:
            logger.info("Ingestion run %d finished: %d ingested, %d failed" %
                        (self._stats.number_of_runs, len(jobs) - failed, failed))
        return jobs

    def discover(self):
        source_dir = self.settings.source_dir
        if not os.path.isdir(source_dir):
            raise SourceDirectoryError("Content ingestion source directory %s does not exist" % source_dir)
        try:
            return findFilesUsingExtension(source_dir, self.settings.archive_extension)
        except OSError as e:
            raise SourceDirectoryError("Cannot list content ingestion source directory %s: %s" %
                                       (source_dir, e), e)

    def process(self, job: ArchiveJob) -> ArchiveJob:
        try:
            self._ingest(job)
        except IngestionError as e:
            job.error = str(e)
            logger.error("Ingestion of %s failed at stage [%s]: %s" % (job.archive_name, job.stage.value, e))
        except RepositoryError as e:
            job.error = str(e)
            logger.error("Repository error ingesting %s at stage [%s]: %s" % (job.archive_name, job.stage.value, e))
        except Exception as e:
            job.error = "%s %s" % (type(e).__name__, e)
            logger.error("Unexpected error ingesting %s [identifier=%s] at stage [%s]: %s" %
                         (job.archive_name, job.identifier, job.stage.value, job.error))
            logger.debug(traceback.format_exc())
        else:
            job.outcome = Outcome.SUCCEEDED

        if job.outcome == Outcome.SUCCEEDED:
            self._remove_archive(job)
        else:
            job.outcome = Outcome.FAILED
            self._quarantine(job)
        return job

    def _ingest(self, job):
        if not is_valid_identifier(job.identifier, self.settings.identifier_pattern):
            raise InvalidIdentifierError(job.archive_name)
        job.stage = Stage.NAME_VALIDATED

        root = self.content_root()
        result = self.lifecycle.resolve_disposition(root, job.identifier)
        job.disposition = result.disposition
        job.stage = Stage.DISPOSITION_RESOLVED
        if result.disposition == Disposition.NEW:
            logger.info("Ingesting new package %s" % job.identifier)
        else:
            logger.info("Package %s already exists, disposition is %s" % (job.identifier, result.disposition.value))

        target = self.lifecycle.prepare_target(result, root)
        job.package_ref = self.lifecycle.create_package_folder(target.parent_ref, job.identifier,
                                                               replaces=target.stale_ref)
        self.extractor.extract(job.source_path, job.package_ref, job.identifier)
        job.stage = Stage.EXTRACTED

        self.taxonomy.verify(self.repository, job.package_ref, job.identifier)
        job.stage = Stage.VALIDATED

        self.lifecycle.mark_complete(job.package_ref)
        job.stage = Stage.COMPLETED
        logger.info("Ingested %s into %s" % (job.archive_name, self.repository.get_path(job.package_ref)))

    def content_root(self) -> NodeRef:
        # resolved on first use so rejected archive names never touch the repository
        if self._root is None or not self.repository.exists(self._root):
            self._root = self.repository.resolve_path(self.settings.content_folder_path, create=True)
        return self._root

    def _remove_archive(self, job):
        try:
            os.remove(job.source_path)
            logger.debug("Removed %s" % job.source_path)
        except OSError as e:
            logger.error("Ingested %s but could not remove it: %s" % (job.source_path, e))

    def _quarantine(self, job):
        try:
            job.quarantine_path = moveToFailedDir(job.source_path, self.settings.quarantine_dir)
            logger.warn("Moved %s to %s" % (job.archive_name, job.quarantine_path))
        except OSError as e:
            logger.error("Could not move %s to %s: %s" % (job.source_path, self.settings.quarantine_dir, e))
