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

import inspect
import logging
import os
import threading
from logging import handlers

import pubingest
from pubingest import formatter
from pubingest.security import current_user

LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
}


# Simple rotating log handler that uses RotatingFileHandler
class RotatingLogger(object):

    def __init__(self, filename):

        self.filename = filename
        self.filehandler = None
        self.consolehandler = None

    def stopLogger(self):
        lg = logging.getLogger('pubingest')
        if self.filehandler:
            lg.removeHandler(self.filehandler)
            self.filehandler.close()
            self.filehandler = None
        if self.consolehandler:
            lg.removeHandler(self.consolehandler)
            self.consolehandler = None

    def initLogger(self, loglevel=1):

        lg = logging.getLogger('pubingest')
        lg.setLevel(logging.DEBUG)
        # initialize() may run more than once in a test session
        self.stopLogger()

        logfile = os.path.join(pubingest.CONFIG['LOGDIR'], self.filename)

        filehandler = handlers.RotatingFileHandler(
            logfile,
            maxBytes=formatter.check_int(pubingest.CONFIG.get('LOGSIZE'), 204800),
            backupCount=formatter.check_int(pubingest.CONFIG.get('LOGFILES'), 10))

        filehandler.setLevel(logging.DEBUG)

        fileformatter = logging.Formatter('%(asctime)s - %(levelname)-7s :: %(message)s', '%d-%b-%Y %H:%M:%S')

        filehandler.setFormatter(fileformatter)
        lg.addHandler(filehandler)
        self.filehandler = filehandler

        if loglevel:
            consolehandler = logging.StreamHandler()
            if loglevel == 1:
                consolehandler.setLevel(logging.INFO)
            if loglevel >= 2:
                consolehandler.setLevel(logging.DEBUG)
            consoleformatter = logging.Formatter('%(asctime)s - %(levelname)s :: %(message)s', '%d-%b-%Y %H:%M:%S')
            consolehandler.setFormatter(consoleformatter)
            lg.addHandler(consolehandler)
            self.consolehandler = consolehandler

    @staticmethod
    def log(message, level):

        logger = logging.getLogger('pubingest')

        threadname = threading.current_thread().name
        # principal the calling thread runs as, System during an ingestion cycle
        user = current_user()
        program, method, lineno = _caller()

        if level != 'DEBUG' or loglevel() >= 2:
            # newest first, bounded by LOGLIMIT
            pubingest.LOGLIST.insert(0, (formatter.now(), level, threadname, program, method, lineno,
                                         message, user))
            del pubingest.LOGLIST[formatter.check_int(pubingest.CONFIG.get('LOGLIMIT'), 500):]

        logger.log(LEVELS.get(level, logging.ERROR),
                   "%s [%s] : %s:%s:%s : %s" % (threadname, user, program, method, lineno, message))


def _caller():
    # skip _caller, log() and the module level debug/info/warn/error wrapper
    stack = inspect.stack()
    if len(stack) > 3:
        frame = inspect.getframeinfo(stack[3][0])
        return os.path.basename(frame.filename), frame.function, frame.lineno
    return "", "", ""


def loglevel():
    # LOGLEVEL stays None until initialize() has run
    return pubingest.LOGLEVEL if pubingest.LOGLEVEL is not None else 1


pubingest_log = RotatingLogger('pubingest.log')


def debug(message):
    if loglevel() > 1:
        pubingest_log.log(message, level='DEBUG')


def info(message):
    if loglevel() > 0:
        pubingest_log.log(message, level='INFO')


def warn(message):
    pubingest_log.log(message, level='WARNING')


def error(message):
    pubingest_log.log(message, level='ERROR')
