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
Unit tests for pubingest.common module.

Tests cover:
- Archive discovery (findFilesUsingExtension)
- Quarantine moves (moveToFailedDir)
- Job and startup reporting
"""

import os
from datetime import datetime
from unittest.mock import Mock

import pytest

import pubingest
from pubingest import common


def touch(path, data=b'x'):
    with open(path, 'wb') as f:
        f.write(data)
    return path


class TestFindFilesUsingExtension:

    def test_matches_extension_any_case(self, tmp_path):
        touch(tmp_path / 'b.ZIP')
        touch(tmp_path / 'a.zip')
        touch(tmp_path / 'notes.txt')
        found = common.findFilesUsingExtension(str(tmp_path), 'zip')
        assert [os.path.basename(p) for p in found] == ['a.zip', 'b.ZIP']

    def test_not_recursive(self, tmp_path):
        sub = tmp_path / 'failed'
        sub.mkdir()
        touch(sub / 'old.zip')
        assert common.findFilesUsingExtension(str(tmp_path), 'zip') == []

    def test_skips_directories_named_like_archives(self, tmp_path):
        (tmp_path / 'folder.zip').mkdir()
        assert common.findFilesUsingExtension(str(tmp_path), '.zip') == []

    def test_missing_directory(self, tmp_path):
        with pytest.raises(OSError):
            common.findFilesUsingExtension(str(tmp_path / 'absent'), 'zip')


class TestMoveToFailedDir:

    def test_moves_and_creates_dir(self, tmp_path):
        src = touch(tmp_path / '9780486282146.zip')
        failed = tmp_path / 'failed'
        dest = common.moveToFailedDir(str(src), str(failed))
        assert dest == str(failed / '9780486282146.zip')
        assert os.path.isfile(dest)
        assert not os.path.exists(str(src))

    def test_name_clash_gets_suffix(self, tmp_path):
        failed = tmp_path / 'failed'
        failed.mkdir()
        touch(failed / 'bad.zip', b'old')
        touch(failed / 'bad-1.zip', b'older')
        dest = common.moveToFailedDir(str(touch(tmp_path / 'bad.zip', b'new')), str(failed))
        assert os.path.basename(dest) == 'bad-2.zip'
        with open(str(failed / 'bad.zip'), 'rb') as f:
            assert f.read() == b'old'

    def test_missing_source(self, tmp_path):
        with pytest.raises(OSError):
            common.moveToFailedDir(str(tmp_path / 'gone.zip'), str(tmp_path / 'failed'))


class TestShowJobs:

    def test_no_jobs(self):
        scheduler = Mock()
        scheduler.get_jobs.return_value = []
        assert common.showJobs(scheduler) == ['No jobs scheduled']

    def test_describes_jobs(self):
        running = Mock(next_run_time=datetime(2030, 1, 1, 12, 5, 0))
        running.name = 'ContentIngestion'
        paused = Mock(next_run_time=None)
        paused.name = 'Other'
        scheduler = Mock()
        scheduler.get_jobs.return_value = [running, paused]
        assert common.showJobs(scheduler) == ['ContentIngestion: next run at 2030-01-01 12:05:00',
                                              'Other: paused']


class TestLogHeader:

    def test_contains_versions_and_config(self, monkeypatch):
        monkeypatch.setitem(pubingest.CONFIG, 'SOURCE_DIR', '/srv/incoming')
        header = common.logHeader()
        assert 'source_dir: /srv/incoming' in header
        assert 'python version' in header
        assert 'apscheduler:' in header
        assert 'fastapi:' in header
