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
Package lifecycle: status property, disposition and recovery.

A package folder is created with status In Progress and only moves to
Complete once extraction and validation have both succeeded, so a
folder still In Progress on a later run is the trace of an interrupted
attempt.

Recovery policy:

- new          ingest below the content root
- interrupted  replace the stale folder with a fresh one below the content root
- republish    leave the completed package alone and ingest into
               <root>/<republish_folder>/<identifier>, replacing any
               earlier republished copy

A stale folder is swapped for the new one in a single repository step,
so when the new folder is refused the old one is still there.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pubingest import logger
from pubingest.ingestion.errors import PackageCreationError
from pubingest.repository.base import ContentRepository, NodeRef, RepositoryError, TYPE_FOLDER

PROP_IDENTIFIER = 'identifier'
PROP_STATUS = 'ingestionStatus'


class IngestionStatus(Enum):
    IN_PROGRESS = 'In Progress'
    COMPLETE = 'Complete'


class Disposition(Enum):
    NEW = 'new'
    REPUBLISH = 'republish'
    INTERRUPTED = 'interrupted'


@dataclass(frozen=True)
class PackageTarget:
    """Where the package folder goes, and the stale folder it replaces, if any."""
    parent_ref: NodeRef
    stale_ref: Optional[NodeRef] = None


@dataclass(frozen=True)
class DispositionResult:
    disposition: Disposition
    target_ref: NodeRef
    package_ref: Optional[NodeRef] = None


class PackageLifecycleManager:

    def __init__(self, repository: ContentRepository, republish_folder: str = 'Republish'):
        self.repository = repository
        self.republish_folder = republish_folder

    def resolve_disposition(self, root_ref: NodeRef, identifier: str) -> DispositionResult:
        """Decide what an incoming archive means for the package already in root_ref.

        Returns new when there is no package folder, republish when the
        folder is Complete, and interrupted for any other status.
        """
        package = self.repository.get_child_by_name(root_ref, identifier)
        if package is None:
            return DispositionResult(Disposition.NEW, root_ref)
        if self.get_status(package) == IngestionStatus.COMPLETE:
            return DispositionResult(Disposition.REPUBLISH, root_ref, package)
        return DispositionResult(Disposition.INTERRUPTED, root_ref, package)

    def get_status(self, package_ref: NodeRef) -> Optional[IngestionStatus]:
        value = self.repository.get_property(package_ref, PROP_STATUS)
        try:
            return IngestionStatus(value)
        except ValueError:
            return None

    def prepare_target(self, result: DispositionResult, root_ref: NodeRef) -> PackageTarget:
        """Apply the recovery policy.

        Returns the parent for the new package folder and the stale folder
        it will replace. Nothing is deleted here.
        """
        if result.disposition == Disposition.INTERRUPTED:
            logger.warn("Package %s was interrupted, it will be ingested again" % result.package_ref.name)
            return PackageTarget(root_ref, result.package_ref)

        if result.disposition == Disposition.REPUBLISH:
            identifier = result.package_ref.name
            republish = self.repository.get_or_create_folder(root_ref, self.republish_folder)
            previous = self.repository.get_child_by_name(republish, identifier)
            if previous is not None:
                logger.info("Replacing earlier republished copy of %s" % identifier)
            return PackageTarget(republish, previous)

        return PackageTarget(root_ref)

    def create_package_folder(self, parent_ref: NodeRef, identifier: str,
                              replaces: Optional[NodeRef] = None) -> NodeRef:
        """Create the package folder with its identifier and In Progress status.

        With replaces, that folder and everything in it is swapped for the
        new one, or left untouched if the new one cannot be created.

        Raises:
            PackageCreationError: If the repository refuses the folder, for
                instance because another writer created it first
        """
        properties = {
            PROP_IDENTIFIER: identifier,
            PROP_STATUS: IngestionStatus.IN_PROGRESS.value,
        }
        try:
            if replaces is None:
                package = self.repository.create_node(parent_ref, identifier, TYPE_FOLDER, properties)
            else:
                package = self.repository.replace_node(replaces, TYPE_FOLDER, properties)
        except RepositoryError as e:
            raise PackageCreationError("Could not create package folder %s: %s" % (identifier, e), e)
        logger.debug("Created package folder %s" % self.repository.get_path(package))
        return package

    def mark_complete(self, package_ref: NodeRef) -> None:
        self.repository.set_property(package_ref, PROP_STATUS, IngestionStatus.COMPLETE.value)
        logger.debug("Package %s is complete" % package_ref.name)
