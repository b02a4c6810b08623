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

import os
import sys
import threading

from pubingest import logger, database
from pubingest.common import logHeader
from pubingest.config import ConfigLoader, ConfigError
from pubingest.formatter import check_int

FULL_PATH = None
PROG_DIR = None
SIGNAL = None
DATADIR = None
CONFIGFILE = None
DBFILE = None
SYS_ENCODING = ''
LOGLEVEL = None
LOGLIST = []
# legacy flat view of SETTINGS, used by the logger
CONFIG = {}
SETTINGS = None
REPOSITORY = None
ORCHESTRATOR = None
SCHED = None
HTTP_STARTED = False
INIT_LOCK = threading.Lock()
__INITIALIZED__ = False
started = False


def initialize():
    global CONFIG, SETTINGS, DBFILE, LOGLEVEL, REPOSITORY, ORCHESTRATOR, SCHED, __INITIALIZED__

    from pubingest.ingestion import IngestionOrchestrator
    from pubingest.repository import FilesystemRepository
    from pubingest.scheduler import ClusterLock, IngestionScheduler

    with INIT_LOCK:

        if __INITIALIZED__:
            return False

        loader = ConfigLoader(CONFIGFILE)
        try:
            SETTINGS = loader.load()
            SETTINGS.resolve_paths(DATADIR)
            SETTINGS.validate()
        except ConfigError as e:
            raise SystemExit('Invalid configuration in %s: %s' % (CONFIGFILE, e))

        CONFIG = loader.to_legacy_dict(SETTINGS)

        if not os.path.isdir(CONFIG['LOGDIR']):
            try:
                os.makedirs(CONFIG['LOGDIR'])
            except OSError as e:
                print('%s : Unable to create folder for logs: %s' % (CONFIG['LOGDIR'], str(e)))

        # command line overrides the config file
        if LOGLEVEL is None:
            LOGLEVEL = check_int(CONFIG['LOGLEVEL'], 1)
        CONFIG['LOGLEVEL'] = LOGLEVEL
        logger.pubingest_log.initLogger(loglevel=LOGLEVEL)
        logger.info("Log level set to [%s] - Log Directory is [%s]" % (LOGLEVEL, CONFIG['LOGDIR']))

        DBFILE = SETTINGS.repository.db_file
        try:
            version = database.check_db(DBFILE)
            logger.info("Database is version %s" % version)
        except Exception as e:
            logger.error("Can't connect to the database: %s %s" % (type(e).__name__, str(e)))
            sys.exit(0)

        debuginfo = logHeader()
        for item in debuginfo.splitlines():
            if 'missing' in item:
                logger.warn(item)
            else:
                logger.debug(item)

        for dirname in [SETTINGS.ingestion.source_dir, SETTINGS.ingestion.quarantine_dir,
                        SETTINGS.repository.repository_dir]:
            if not os.path.isdir(dirname):
                try:
                    os.makedirs(dirname)
                except OSError as e:
                    logger.error('Could not create %s: %s' % (dirname, e))

        REPOSITORY = FilesystemRepository(SETTINGS.repository.repository_dir, DBFILE)
        # make sure the package root exists before the first scheduled run
        REPOSITORY.resolve_path(SETTINGS.ingestion.content_folder_path, create=True)

        ORCHESTRATOR = IngestionOrchestrator(SETTINGS.ingestion, REPOSITORY,
                                             cron_expression=SETTINGS.scheduler.cron_expression,
                                             cron_start_delay=SETTINGS.scheduler.cron_start_delay)
        SCHED = IngestionScheduler(ORCHESTRATOR, SETTINGS.scheduler,
                                   lock=ClusterLock(DBFILE, ttl=SETTINGS.scheduler.lock_ttl))

        __INITIALIZED__ = True
        return True


def start():
    global started

    if __INITIALIZED__:
        SCHED.start()
        started = True


def shutdown():
    if HTTP_STARTED:
        from pubingest import webStart
        webStart.stop()
    if SCHED:
        SCHED.shutdown()

    logger.info('PubIngest is shutting down...')
    logger.pubingest_log.stopLogger()
    sys.exit(0)
