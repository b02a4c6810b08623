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
import platform
import shutil
import sqlite3
import sys

import pubingest
from pubingest import logger


def findFilesUsingExtension(dirpath, extension):
    """
    Return full paths of the files in dirpath (not recursive) whose name
    ends in .extension, any case, sorted by name
    """
    suffix = '.' + extension.lower().lstrip('.')
    found = []
    for name in sorted(os.listdir(dirpath)):
        fullpath = os.path.join(dirpath, name)
        if name.lower().endswith(suffix) and os.path.isfile(fullpath):
            found.append(fullpath)
    return found


def moveToFailedDir(path, failed_dir):
    """
    Move a file into failed_dir, creating it if needed. If a file with the
    same name is already there the moved file gets a numeric suffix,
    eg 9780486282146-1.zip. Return the new path.
    Raises OSError if the file cannot be moved
    """
    if not os.path.isdir(failed_dir):
        os.makedirs(failed_dir)

    name = os.path.basename(path)
    dest = os.path.join(failed_dir, name)
    base, ext = os.path.splitext(name)
    count = 0
    while os.path.exists(dest):
        count += 1
        dest = os.path.join(failed_dir, "%s-%d%s" % (base, count, ext))
    shutil.move(path, dest)
    logger.debug("Moved %s to %s" % (path, dest))
    return dest


def showJobs(scheduler):
    """Describe the scheduled jobs, one line each"""
    result = []
    for job in scheduler.get_jobs():
        next_run = getattr(job, 'next_run_time', None)
        if next_run is None:
            result.append("%s: paused" % job.name)
        else:
            result.append("%s: next run at %s" % (job.name, next_run.strftime("%Y-%m-%d %H:%M:%S")))
    if not result:
        result.append("No jobs scheduled")
    return result


def logHeader():
    header = "Startup cmd: %s\n" % str(sys.argv)
    header += 'Interface: pubingest\n'
    header += 'Loglevel: %s\n' % pubingest.LOGLEVEL
    header += 'Sys_Encoding: %s\n' % pubingest.SYS_ENCODING
    for item in ['SOURCE_DIR', 'QUARANTINE_DIR', 'CONTENT_FOLDER_PATH', 'TAXONOMY', 'CRON_EXPRESSION',
                 'REPOSITORY_DIR', 'DBFILE']:
        header += '%s: %s\n' % (item.lower(), pubingest.CONFIG.get(item, ''))
    header += "\npython version: %s\n" % str(sys.version_info)
    header += "platform: %s\n" % str(platform.uname())
    header += "sqlite3: %s\n" % getattr(sqlite3, 'sqlite_version', 'missing')
    for module in ['apscheduler', 'fastapi', 'uvicorn']:
        try:
            mod = __import__(module)
            header += "%s: %s\n" % (module, getattr(mod, '__version__', 'unknown'))
        except ImportError:
            header += "%s: missing\n" % module
    return header
