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

import sqlite3
import threading
import time

import pubingest
from pubingest import logger

db_lock = threading.Lock()

DB_VERSION = 1

SCHEMA = '''
    CREATE TABLE IF NOT EXISTS nodes (
        NodeID TEXT PRIMARY KEY,
        ParentID TEXT REFERENCES nodes(NodeID) ON DELETE CASCADE,
        Name TEXT NOT NULL,
        NodeType TEXT NOT NULL,
        Path TEXT NOT NULL,
        MimeType TEXT,
        Created TEXT,
        Modified TEXT,
        UNIQUE (ParentID, Name)
    );
    CREATE TABLE IF NOT EXISTS properties (
        NodeID TEXT NOT NULL REFERENCES nodes(NodeID) ON DELETE CASCADE,
        Name TEXT NOT NULL,
        Value TEXT,
        PRIMARY KEY (NodeID, Name)
    );
    CREATE TABLE IF NOT EXISTS joblocks (
        LockName TEXT PRIMARY KEY,
        Owner TEXT NOT NULL,
        Expires REAL NOT NULL
    );
    CREATE INDEX IF NOT EXISTS nodes_parent ON nodes (ParentID);
'''

ROOT_NODE_ID = 'root'


class DBConnection:
    def __init__(self, dbfile=None):
        self.connection = sqlite3.connect(dbfile or pubingest.DBFILE, 20)
        self.connection.execute("PRAGMA journal_mode = WAL")
        # sync less often as using WAL mode
        self.connection.execute("PRAGMA synchronous = NORMAL")
        # for cascade deletes
        self.connection.execute("PRAGMA foreign_keys = ON")
        self.connection.row_factory = sqlite3.Row

    def close(self):
        self.connection.close()

    # wrapper function with lock
    def action(self, query, args=None, suppress=None):
        if not query:
            return None
        with db_lock:
            return self._action(query, args, suppress)

    # do not use directly, use through action() or upsert() which add lock
    def _action(self, query, args=None, suppress=None):
        sqlResult = None
        attempt = 0

        while attempt < 5:
            try:
                if not args:
                    sqlResult = self.connection.execute(query)
                else:
                    sqlResult = self.connection.execute(query, args)
                self.connection.commit()
                break

            except sqlite3.OperationalError as e:
                if "unable to open database file" in str(e) or "database is locked" in str(e):
                    logger.warn('Database Error: %s' % e)
                    logger.debug("Attempted db query: [%s]" % query)
                    attempt += 1
                    if attempt == 5:
                        logger.error("Failed db query: [%s]" % query)
                        raise
                    time.sleep(1)
                else:
                    logger.error('Database error: %s' % e)
                    logger.error("Failed query: [%s]" % query)
                    raise

            except sqlite3.IntegrityError as e:
                # the python interface to sqlite only returns english text messages, not error codes
                msg = str(e).lower()
                if suppress and 'UNIQUE' in suppress and ('not unique' in msg or 'unique constraint failed' in msg):
                    logger.debug('Suppressed [%s] %s' % (query, e))
                    self.connection.commit()
                    break
                else:
                    logger.debug('Database Integrity error: %s' % e)
                    logger.debug("Failed query: [%s] args: [%s]" % (query, str(args)))
                    self.connection.rollback()
                    raise

            except sqlite3.DatabaseError as e:
                logger.error('Fatal error executing %s :: %s' % (query, e))
                raise

        return sqlResult

    def atomic(self, statements):
        # run (query, args) pairs as one transaction, all or nothing
        with db_lock:
            try:
                for query, args in statements:
                    self.connection.execute(query, args or ())
                self.connection.commit()
            except sqlite3.Error:
                self.connection.rollback()
                raise

    def match(self, query, args=None):
        try:
            # if there are no results, action() returns None and .fetchone() fails
            sqlResults = self.action(query, args).fetchone()
        except (sqlite3.Error, AttributeError):
            return []
        if not sqlResults:
            return []

        return sqlResults

    def select(self, query, args=None):
        try:
            # if there are no results, action() returns None and .fetchall() fails
            sqlResults = self.action(query, args).fetchall()
        except (sqlite3.Error, AttributeError):
            return []
        if not sqlResults:
            return []

        return sqlResults

    @staticmethod
    def genParams(myDict):
        return [x + " = ?" for x in list(myDict.keys())]

    def upsert(self, tableName, valueDict, keyDict):
        with db_lock:
            changesBefore = self.connection.total_changes

            query = "UPDATE " + tableName + " SET " + ", ".join(self.genParams(valueDict)) + \
                    " WHERE " + " AND ".join(self.genParams(keyDict))

            self._action(query, list(valueDict.values()) + list(keyDict.values()))

            if self.connection.total_changes == changesBefore:
                query = "INSERT INTO " + tableName + " ("
                query += ", ".join(list(valueDict.keys()) + list(keyDict.keys())) + ") VALUES ("
                query += ", ".join(["?"] * len(list(valueDict.keys()) + list(keyDict.keys()))) + ")"
                self._action(query, list(valueDict.values()) + list(keyDict.values()), suppress="UNIQUE")


def check_db(dbfile=None):
    """
    Create the repository tables if needed and return the schema version.
    Safe to call on every startup.
    """
    from pubingest.formatter import now

    myDB = DBConnection(dbfile)
    try:
        with db_lock:
            myDB.connection.executescript(SCHEMA)
        myDB.action("INSERT OR IGNORE INTO nodes (NodeID, ParentID, Name, NodeType, Path, Created, Modified) "
                    "VALUES (?, NULL, '', 'cm:folder', '', ?, ?)", (ROOT_NODE_ID, now(), now()))
        result = myDB.match('PRAGMA user_version')
        version = result[0] if result else 0
        if version < DB_VERSION:
            myDB.action('PRAGMA user_version=%d' % DB_VERSION)
            version = DB_VERSION
    finally:
        myDB.close()
    return version
