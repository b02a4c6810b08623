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
Scheduling for the ingestion orchestrator.

The job fires on a cron cadence after a start delay. Each firing takes
an in-process lock and then a cluster lock shared through the database,
so a run never overlaps a previous run on this or any other node. The
cluster lock is renewed while the run lasts, so a long run keeps it. The
orchestrator is called as the system user.
"""

import os
import socket
import sqlite3
import threading
import time
import uuid
from datetime import datetime, timedelta

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from pubingest import database, logger
from pubingest.security import SYSTEM_USER, run_as

JOB_ID = 'content_ingestion'


class ClusterLock:
    """Named lock held as a row in the joblocks table.

    A lock whose holder died is taken over once it has expired. A live
    holder keeps it with renew().
    """

    def __init__(self, dbfile=None, ttl=3600):
        self.dbfile = dbfile
        self.ttl = ttl
        self.owner = "%s:%d:%s" % (socket.gethostname(), os.getpid(), uuid.uuid4().hex[:6])

    def acquire(self, name):
        stamp = time.time()
        myDB = database.DBConnection(self.dbfile)
        try:
            myDB.atomic([
                ('DELETE FROM joblocks WHERE LockName=? AND Expires<?', (name, stamp)),
                ('INSERT INTO joblocks (LockName, Owner, Expires) VALUES (?, ?, ?)',
                 (name, self.owner, stamp + self.ttl)),
            ])
        except sqlite3.IntegrityError:
            return False
        finally:
            myDB.close()
        logger.debug("Acquired lock %s" % name)
        return True

    @property
    def renew_interval(self):
        return max(self.ttl / 3.0, 0.1)

    def renew(self, name):
        """Push back the expiry of a lock held by this owner.

        Returns False if the lock is no longer ours.
        """
        myDB = database.DBConnection(self.dbfile)
        try:
            cursor = myDB.action('UPDATE joblocks SET Expires=? WHERE LockName=? AND Owner=?',
                                 (time.time() + self.ttl, name, self.owner))
            renewed = cursor is not None and cursor.rowcount > 0
        finally:
            myDB.close()
        return renewed

    def release(self, name):
        myDB = database.DBConnection(self.dbfile)
        try:
            myDB.action('DELETE FROM joblocks WHERE LockName=? AND Owner=?', (name, self.owner))
        finally:
            myDB.close()
        logger.debug("Released lock %s" % name)

    def holder(self, name):
        myDB = database.DBConnection(self.dbfile)
        try:
            row = myDB.match('SELECT Owner FROM joblocks WHERE LockName=? AND Expires>=?', (name, time.time()))
        finally:
            myDB.close()
        return row['Owner'] if row else None


class LockHeartbeat(threading.Thread):
    """Renews a held ClusterLock every renew_interval seconds until stopped."""

    def __init__(self, lock, lock_name):
        super().__init__(name='LOCKRENEW')
        self.daemon = True
        self.lock = lock
        self.lock_name = lock_name
        self._done = threading.Event()

    def run(self):
        while not self._done.wait(self.lock.renew_interval):
            try:
                if not self.lock.renew(self.lock_name):
                    logger.warn("Lock %s was lost while content ingestion is running" % self.lock_name)
                    return
            except sqlite3.Error as e:
                logger.error("Could not renew lock %s: %s" % (self.lock_name, e))

    def stop(self):
        self._done.set()
        self.join()


class IngestionScheduler:

    def __init__(self, orchestrator, settings, lock=None, scheduler=None):
        self.orchestrator = orchestrator
        self.settings = settings
        self.lock = lock
        self.scheduler = scheduler or BackgroundScheduler(misfire_grace_time=30)
        self._running = threading.Lock()

    @staticmethod
    def build_trigger(cron_expression, start_date=None):
        """CronTrigger from a 5 field crontab expression, starting no earlier than start_date"""
        fields = cron_expression.split()
        if len(fields) != 5:
            raise ValueError("Wrong number of fields in cron expression %s" % cron_expression)
        minute, hour, day, month, day_of_week = fields
        return CronTrigger(minute=minute, hour=hour, day=day, month=month, day_of_week=day_of_week,
                           start_date=start_date)

    def start(self):
        start_date = datetime.now() + timedelta(seconds=self.settings.cron_start_delay)
        trigger = self.build_trigger(self.settings.cron_expression, start_date)
        self.scheduler.add_job(self.execute, trigger, id=JOB_ID, name=self.settings.lock_name,
                               max_instances=1, coalesce=True, replace_existing=True)
        self.scheduler.start()
        logger.info("Content ingestion scheduled [%s], first run after %s" %
                    (self.settings.cron_expression, start_date.strftime("%Y-%m-%d %H:%M:%S")))

    def execute(self):
        """Run one ingestion cycle unless one is already running here or elsewhere.

        Returns True if the orchestrator was called.
        """
        if not self._running.acquire(blocking=False):
            logger.warn("Content ingestion is already running, skipping")
            return False
        try:
            name = self.settings.lock_name
            heartbeat = None
            if self.lock:
                try:
                    if not self.lock.acquire(name):
                        logger.info("Content ingestion is running on %s, skipping" % self.lock.holder(name))
                        return False
                except sqlite3.Error as e:
                    logger.error("Could not take lock %s: %s" % (name, e))
                    return False
                heartbeat = LockHeartbeat(self.lock, name)
                heartbeat.start()
            try:
                with run_as(SYSTEM_USER):
                    self.orchestrator.run()
            finally:
                if heartbeat:
                    heartbeat.stop()
                if self.lock:
                    try:
                        self.lock.release(name)
                    except sqlite3.Error as e:
                        logger.error("Could not release lock %s: %s" % (name, e))
            return True
        finally:
            self._running.release()

    def run_once(self):
        return self.execute()

    def get_jobs(self):
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, 'next_run_time', None)
            jobs.append({
                'id': job.id,
                'name': job.name,
                'next_run_time': next_run.strftime("%Y-%m-%d %H:%M:%S") if next_run else None,
            })
        return jobs

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
