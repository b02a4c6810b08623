#!/usr/bin/env python
# -*- coding: UTF-8 -*-
#
import locale
import os
import signal
import sys
import threading
import time

import pubingest
from pubingest import webStart, logger
from pubingest.config import ConfigLoader, Configuration


def handle_signal(signum, frame):
    pubingest.SIGNAL = 'shutdown'


def main():
    # rename this thread
    threading.current_thread().name = "MAIN"

    # Set paths
    if hasattr(sys, 'frozen'):
        pubingest.FULL_PATH = os.path.abspath(sys.executable)
    else:
        pubingest.FULL_PATH = os.path.abspath(__file__)

    pubingest.PROG_DIR = os.path.dirname(pubingest.FULL_PATH)

    pubingest.SYS_ENCODING = None

    try:
        locale.setlocale(locale.LC_ALL, "")
        pubingest.SYS_ENCODING = locale.getpreferredencoding()
    except (locale.Error, IOError):
        pass

    # for OSes that are poorly configured just force UTF-8
    if not pubingest.SYS_ENCODING or pubingest.SYS_ENCODING in (
            'ANSI_X3.4-1968', 'US-ASCII', 'ASCII') or '1252' in pubingest.SYS_ENCODING:
        pubingest.SYS_ENCODING = 'UTF-8'

    # Set arguments
    from optparse import OptionParser

    p = OptionParser()
    p.add_option('-q', '--quiet', action="store_true",
                 dest='quiet', help="Don't log to console")
    p.add_option('--debug', action="store_true",
                 dest='debug', help="Show debuglog messages")
    p.add_option('--once', action="store_true",
                 dest='once', help="Run one ingestion cycle and exit")
    p.add_option('--nohttp', action="store_true",
                 dest='nohttp', help="Don't start the introspection web server")
    p.add_option('--port',
                 dest='port', default=None,
                 help="Force the web server to listen on this port")
    p.add_option('--datadir',
                 dest='datadir', default=None,
                 help="Path to the data directory")
    p.add_option('--config',
                 dest='config', default=None,
                 help="Path to config.ini file")

    options, args = p.parse_args()

    # left as None, initialize() then takes the level from the config file
    if options.debug:
        pubingest.LOGLEVEL = 2

    if options.quiet:
        pubingest.LOGLEVEL = 0

    if options.datadir:
        pubingest.DATADIR = str(options.datadir)
    else:
        pubingest.DATADIR = pubingest.PROG_DIR

    if options.config:
        pubingest.CONFIGFILE = str(options.config)
    else:
        pubingest.CONFIGFILE = os.path.join(pubingest.DATADIR, "config.ini")

    # create and check (optional) paths
    if not os.path.isdir(pubingest.DATADIR):
        try:
            os.makedirs(pubingest.DATADIR)
        except OSError:
            raise SystemExit('Could not create data directory: ' + pubingest.DATADIR + '. Exit ...')

    if not os.access(pubingest.DATADIR, os.W_OK):
        raise SystemExit('Cannot write to the data directory: ' + pubingest.DATADIR + '. Exit ...')

    if not os.path.isfile(pubingest.CONFIGFILE):
        # blank paths are filled in from the data directory when loaded
        ConfigLoader(pubingest.CONFIGFILE).save(Configuration())
        print("Created default config file %s" % pubingest.CONFIGFILE)

    print("PubIngest is starting up...")

    # REMINDER ############ NO LOGGING BEFORE HERE ###############
    # There is no point putting in any logging above this line, as its not set till after initialize.
    pubingest.initialize()

    if options.once:
        ran = pubingest.SCHED.run_once()
        stats = pubingest.ORCHESTRATOR.stats
        logger.info("Single run %s, last run %s" % ('finished' if ran else 'skipped', stats.last_run_time))
        pubingest.shutdown()

    signal.signal(signal.SIGTERM, handle_signal)

    if options.port:
        pubingest.CONFIG['HTTP_PORT'] = int(options.port)
        logger.info('Starting PubIngest on forced port: %s, webroot "%s"' %
                    (pubingest.CONFIG['HTTP_PORT'], pubingest.CONFIG['HTTP_ROOT']))

    if pubingest.CONFIG['HTTP_ENABLED'] and not options.nohttp:
        webStart.initialize({
            'http_port': int(pubingest.CONFIG['HTTP_PORT']),
            'http_host': pubingest.CONFIG['HTTP_HOST'],
            'http_root': pubingest.CONFIG['HTTP_ROOT'],
        })

    pubingest.start()

    while True:
        if not pubingest.SIGNAL:
            try:
                time.sleep(1)
            except KeyboardInterrupt:
                pubingest.shutdown()
        else:
            if pubingest.SIGNAL == 'shutdown':
                pubingest.shutdown()
            pubingest.SIGNAL = None


if __name__ == "__main__":
    main()
