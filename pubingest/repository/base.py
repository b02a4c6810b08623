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
Content repository contract used by the ingestion pipeline.

A repository is a tree of nodes. Folder nodes hold other nodes, content
nodes hold a byte stream and a mimetype, and every node carries a set
of string properties.

Lookups raise RepositoryError when the store cannot be read, so a failed
lookup is never mistaken for a missing node or an unset property.
"""

import io
import mimetypes
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import BinaryIO, Dict, List, Optional

TYPE_FOLDER = 'cm:folder'
TYPE_CONTENT = 'cm:content'

PROP_NAME = 'name'
PROP_CREATOR = 'creator'

MIMETYPE_PDF = 'application/pdf'
MIMETYPE_XML = 'text/xml'
MIMETYPE_TEXT_PLAIN = 'text/plain'
MIMETYPE_BINARY = 'application/octet-stream'

# fixed table so chapter cross-checks do not depend on the platform mime database
MIMETYPE_MAP = {
    '.pdf': MIMETYPE_PDF,
    '.xml': MIMETYPE_XML,
    '.xhtml': 'application/xhtml+xml',
    '.html': 'text/html',
    '.htm': 'text/html',
    '.css': 'text/css',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.gif': 'image/gif',
    '.svg': 'image/svg+xml',
    '.opf': 'application/oebps-package+xml',
    '.ncx': 'application/x-dtbncx+xml',
    '.txt': MIMETYPE_TEXT_PLAIN,
}


def guess_mimetype(filename: str) -> str:
    ext = os.path.splitext(filename)[1].lower()
    if ext in MIMETYPE_MAP:
        return MIMETYPE_MAP[ext]
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or MIMETYPE_BINARY


class RepositoryError(Exception):
    """Raised when the repository cannot complete an operation."""
    pass


class DuplicateNodeError(RepositoryError):
    """Raised when a node with the same name already exists under the parent."""

    def __init__(self, parent_path, name):
        self.parent_path = parent_path
        self.name = name
        super().__init__("A node named %s already exists in %s" % (name, parent_path))


@dataclass(frozen=True)
class NodeRef:
    """Reference to a repository node."""
    node_id: str
    name: str


class ContentRepository(ABC):
    """Operations the ingestion pipeline needs from a content repository."""

    @abstractmethod
    def root(self) -> NodeRef:
        """Return the repository root folder."""

    @abstractmethod
    def get_child_by_name(self, parent: NodeRef, name: str) -> Optional[NodeRef]:
        """Return the child called `name`, or None."""

    @abstractmethod
    def list_children(self, parent: NodeRef) -> List[NodeRef]:
        """Return all children of `parent` ordered by name."""

    @abstractmethod
    def create_node(self, parent: NodeRef, name: str, type_tag: str = TYPE_FOLDER,
                    properties: Optional[Dict[str, str]] = None) -> NodeRef:
        """Create a folder-like node and its properties in one step.

        Raises:
            DuplicateNodeError: If `parent` already has a child called `name`
            RepositoryError: If the node cannot be created
        """

    @abstractmethod
    def replace_node(self, node: NodeRef, type_tag: str = TYPE_FOLDER,
                     properties: Optional[Dict[str, str]] = None) -> NodeRef:
        """Swap `node` and everything below it for a new empty node of the same name.

        The delete and the create happen in one step: if the new node
        cannot be created, `node` is left as it was.
        """

    @abstractmethod
    def write_content(self, parent: NodeRef, filename: str, stream: BinaryIO,
                      mimetype: Optional[str] = None) -> NodeRef:
        """Create a content node under `parent` from a binary stream."""

    @abstractmethod
    def open_content(self, node: NodeRef) -> BinaryIO:
        """Open the byte stream of a content node for reading."""

    @abstractmethod
    def get_property(self, node: NodeRef, key: str, default: Optional[str] = None) -> Optional[str]:
        pass

    @abstractmethod
    def set_property(self, node: NodeRef, key: str, value: str) -> None:
        pass

    @abstractmethod
    def get_mimetype(self, node: NodeRef) -> Optional[str]:
        pass

    @abstractmethod
    def get_path(self, node: NodeRef) -> str:
        """Return the repository path of a node, e.g. /Company Home/Content/9780486282146"""

    @abstractmethod
    def exists(self, node: NodeRef) -> bool:
        pass

    def resolve_path(self, path: str, create: bool = False) -> Optional[NodeRef]:
        """Walk a /-separated repository path from the root.

        Args:
            path: Repository path such as /Company Home/Data Dictionary
            create: Create missing folders on the way

        Returns:
            The node at `path`, or None if it does not exist and create is False
        """
        node = self.root()
        for segment in [s for s in path.split('/') if s]:
            child = self.get_child_by_name(node, segment)
            if child is None:
                if not create:
                    return None
                child = self.get_or_create_folder(node, segment)
            node = child
        return node

    def get_or_create_folder(self, parent: NodeRef, name: str) -> NodeRef:
        """Return the folder called `name` under `parent`, creating it if missing.

        Calling this twice returns the same reference and never creates
        a second folder, even when another writer creates it in between.
        """
        folder = self.get_child_by_name(parent, name)
        if folder is not None:
            return folder
        try:
            return self.create_node(parent, name, TYPE_FOLDER)
        except DuplicateNodeError:
            folder = self.get_child_by_name(parent, name)
            if folder is None:
                raise
            return folder

    def write_text(self, parent: NodeRef, filename: str, text: str) -> NodeRef:
        return self.write_content(parent, filename, io.BytesIO(text.encode('utf-8')), MIMETYPE_TEXT_PLAIN)
