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
Filesystem-backed content repository.

Folders and content live on disk under repository_dir, mirroring the
repository tree. Node identity, type, mimetype and properties live in the
sqlite database so that node creation can be atomic: the UNIQUE
(ParentID, Name) constraint decides which of two racing writers wins.
"""

import os
import shutil
import sqlite3
import uuid
from contextlib import contextmanager
from typing import BinaryIO, Dict, List, Optional

from pubingest import database, logger
from pubingest.formatter import now
from pubingest.repository.base import (
    ContentRepository, DuplicateNodeError, NodeRef, RepositoryError,
    PROP_CREATOR, PROP_NAME, TYPE_CONTENT, TYPE_FOLDER, guess_mimetype,
)
from pubingest.security import current_user


class FilesystemRepository(ContentRepository):

    def __init__(self, repository_dir: str, dbfile: str):
        self.repository_dir = repository_dir
        self.dbfile = dbfile
        if not os.path.isdir(repository_dir):
            os.makedirs(repository_dir)
        database.check_db(dbfile)

    @contextmanager
    def _db(self):
        myDB = database.DBConnection(self.dbfile)
        try:
            yield myDB
        finally:
            myDB.close()

    @staticmethod
    def _check_name(name):
        if not name or name in ('.', '..') or '/' in name or '\\' in name or '\0' in name:
            raise RepositoryError("Invalid node name [%s]" % name)

    def _abspath(self, relpath):
        return os.path.join(self.repository_dir, *relpath.split('/')) if relpath else self.repository_dir

    @staticmethod
    def _lookup(myDB, query, args):
        # a failed lookup must not read as "no such node" or "no value"
        try:
            return myDB.action(query, args).fetchall()
        except sqlite3.Error as e:
            raise RepositoryError("Repository lookup failed: %s" % e)

    def _row(self, myDB, node):
        rows = self._lookup(myDB, 'SELECT * FROM nodes WHERE NodeID=?', (node.node_id,))
        if not rows:
            raise RepositoryError("Node %s [%s] does not exist" % (node.name, node.node_id))
        return rows[0]

    def _insert(self, parent, name, type_tag, mimetype, properties, replaces=None):
        self._check_name(name)
        with self._db() as myDB:
            parent_row = self._row(myDB, parent)
            if parent_row['NodeType'] == TYPE_CONTENT:
                raise RepositoryError("Cannot add %s below content node %s" % (name, parent.name))
            relpath = parent_row['Path'] + '/' + name if parent_row['Path'] else name
            node_id = uuid.uuid4().hex
            stamp = now()
            props = {PROP_NAME: name, PROP_CREATOR: current_user()}
            props.update(properties or {})
            statements = []
            if replaces is not None:
                # children and properties go with it (ON DELETE CASCADE)
                statements.append(('DELETE FROM nodes WHERE NodeID=? AND ParentID=?',
                                   (replaces.node_id, parent.node_id)))
            statements.append(('INSERT INTO nodes (NodeID, ParentID, Name, NodeType, Path, MimeType, Created, Modified) '
                               'VALUES (?, ?, ?, ?, ?, ?, ?, ?)',
                               (node_id, parent.node_id, name, type_tag, relpath, mimetype, stamp, stamp)))
            for key, value in props.items():
                statements.append(('INSERT INTO properties (NodeID, Name, Value) VALUES (?, ?, ?)',
                                   (node_id, key, None if value is None else str(value))))
            try:
                myDB.atomic(statements)
            except sqlite3.IntegrityError:
                raise DuplicateNodeError('/' + parent_row['Path'], name)
            except sqlite3.Error as e:
                raise RepositoryError("Could not create %s: %s" % (name, e))
        return NodeRef(node_id, name), relpath

    def _forget(self, node):
        with self._db() as myDB:
            myDB.action('DELETE FROM nodes WHERE NodeID=?', (node.node_id,))

    def _discard(self, node, target):
        self._forget(node)
        if os.path.isfile(target):
            os.remove(target)

    def root(self) -> NodeRef:
        return NodeRef(database.ROOT_NODE_ID, '')

    def get_child_by_name(self, parent: NodeRef, name: str) -> Optional[NodeRef]:
        with self._db() as myDB:
            rows = self._lookup(myDB, 'SELECT NodeID, Name FROM nodes WHERE ParentID=? AND Name=?',
                                (parent.node_id, name))
        if not rows:
            return None
        return NodeRef(rows[0]['NodeID'], rows[0]['Name'])

    def list_children(self, parent: NodeRef) -> List[NodeRef]:
        with self._db() as myDB:
            rows = self._lookup(myDB, 'SELECT NodeID, Name FROM nodes WHERE ParentID=? ORDER BY Name',
                                (parent.node_id,))
        return [NodeRef(row['NodeID'], row['Name']) for row in rows]

    def create_node(self, parent: NodeRef, name: str, type_tag: str = TYPE_FOLDER,
                    properties: Optional[Dict[str, str]] = None) -> NodeRef:
        if type_tag == TYPE_CONTENT:
            raise RepositoryError("Use write_content to create content nodes")
        node, relpath = self._insert(parent, name, type_tag, None, properties)
        try:
            os.makedirs(self._abspath(relpath), exist_ok=True)
        except OSError as e:
            self._forget(node)
            raise RepositoryError("Could not create folder %s: %s" % (relpath, e))
        logger.debug("Created %s node %s" % (type_tag, relpath))
        return node

    def replace_node(self, node: NodeRef, type_tag: str = TYPE_FOLDER,
                     properties: Optional[Dict[str, str]] = None) -> NodeRef:
        if type_tag == TYPE_CONTENT:
            raise RepositoryError("Use write_content to create content nodes")
        if node.node_id == database.ROOT_NODE_ID:
            raise RepositoryError("Cannot replace the repository root")
        with self._db() as myDB:
            row = self._row(myDB, node)
        target = self._abspath(row['Path'])
        # moved aside first so a refused insert can put it straight back
        stale = '%s.stale-%s' % (target, uuid.uuid4().hex[:8])
        try:
            if os.path.exists(target):
                os.rename(target, stale)
        except OSError as e:
            raise RepositoryError("Could not move %s aside: %s" % (row['Path'], e))

        try:
            new_node, relpath = self._insert(NodeRef(row['ParentID'], ''), row['Name'], type_tag, None,
                                             properties, replaces=node)
        except RepositoryError:
            if os.path.exists(stale):
                os.rename(stale, target)
            raise

        try:
            os.makedirs(target, exist_ok=True)
        except OSError as e:
            self._forget(new_node)
            raise RepositoryError("Could not create folder %s: %s" % (relpath, e))
        if os.path.exists(stale):
            try:
                shutil.rmtree(stale)
            except OSError as e:
                logger.warn("Replaced node %s but could not remove %s: %s" % (relpath, stale, e))
        logger.debug("Replaced %s node %s" % (type_tag, relpath))
        return new_node

    def write_content(self, parent: NodeRef, filename: str, stream: BinaryIO,
                      mimetype: Optional[str] = None) -> NodeRef:
        mimetype = mimetype or guess_mimetype(filename)
        node, relpath = self._insert(parent, filename, TYPE_CONTENT, mimetype, None)
        target = self._abspath(relpath)
        try:
            with open(target, 'wb') as f:
                shutil.copyfileobj(stream, f)
        except OSError as e:
            self._discard(node, target)
            raise RepositoryError("Could not write %s: %s" % (relpath, e))
        except Exception:
            # the source stream failed, e.g. a corrupt archive member
            self._discard(node, target)
            raise
        logger.debug("Stored %s [%s]" % (relpath, mimetype))
        return node

    def open_content(self, node: NodeRef) -> BinaryIO:
        with self._db() as myDB:
            row = self._row(myDB, node)
        if row['NodeType'] != TYPE_CONTENT:
            raise RepositoryError("%s is not a content node" % node.name)
        return open(self._abspath(row['Path']), 'rb')

    def get_property(self, node: NodeRef, key: str, default: Optional[str] = None) -> Optional[str]:
        with self._db() as myDB:
            rows = self._lookup(myDB, 'SELECT Value FROM properties WHERE NodeID=? AND Name=?',
                                (node.node_id, key))
        if not rows:
            return default
        return rows[0]['Value']

    def set_property(self, node: NodeRef, key: str, value: str) -> None:
        with self._db() as myDB:
            self._row(myDB, node)
            myDB.upsert('properties', {'Value': None if value is None else str(value)},
                        {'NodeID': node.node_id, 'Name': key})
            myDB.action('UPDATE nodes SET Modified=? WHERE NodeID=?', (now(), node.node_id))

    def get_mimetype(self, node: NodeRef) -> Optional[str]:
        with self._db() as myDB:
            return self._row(myDB, node)['MimeType']

    def get_path(self, node: NodeRef) -> str:
        with self._db() as myDB:
            return '/' + self._row(myDB, node)['Path']

    def exists(self, node: NodeRef) -> bool:
        with self._db() as myDB:
            return bool(self._lookup(myDB, 'SELECT NodeID FROM nodes WHERE NodeID=?', (node.node_id,)))
