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
Pytest configuration and shared fixtures for PubIngest tests.
"""

import os
import shutil
import sys
import tempfile
import zipfile

import pytest

# Ensure pubingest package is importable
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

import pubingest
from pubingest.config.settings import IngestionSettings
from pubingest.repository import FilesystemRepository

CONTENT_FOLDER_PATH = '/Company Home/Data Dictionary/BestPub/Incoming/Content'


@pytest.fixture(scope='session', autouse=True)
def setup_pubingest_globals():
    """Initialize PubIngest global variables needed for tests."""
    pubingest.PROG_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    pubingest.DATADIR = tempfile.mkdtemp(prefix='pi_test_')
    pubingest.SYS_ENCODING = 'utf-8'
    pubingest.LOGLEVEL = 0  # Disable debug logging during tests

    if pubingest.CONFIG is None:
        pubingest.CONFIG = {}
    pubingest.CONFIG.setdefault('LOGLIMIT', 500)
    pubingest.CONFIG.setdefault('LOGDIR', os.path.join(pubingest.DATADIR, 'Logs'))
    pubingest.CONFIG.setdefault('LOGLEVEL', 0)

    log_dir = pubingest.CONFIG['LOGDIR']
    if not os.path.exists(log_dir):
        os.makedirs(log_dir, exist_ok=True)

    yield

    if os.path.exists(pubingest.DATADIR):
        shutil.rmtree(pubingest.DATADIR, ignore_errors=True)


@pytest.fixture
def repository(tmp_path):
    """A fresh filesystem repository with its own database."""
    return FilesystemRepository(str(tmp_path / 'repository'), str(tmp_path / 'pubingest.db'))


@pytest.fixture
def content_root(repository):
    """The folder packages are ingested into."""
    return repository.resolve_path(CONTENT_FOLDER_PATH, create=True)


@pytest.fixture
def ingestion_settings(tmp_path):
    """Ingestion settings pointing at temporary source and quarantine dirs."""
    source_dir = tmp_path / 'incoming'
    quarantine_dir = tmp_path / 'failed'
    source_dir.mkdir()
    quarantine_dir.mkdir()
    return IngestionSettings(source_dir=str(source_dir),
                             quarantine_dir=str(quarantine_dir),
                             content_folder_path=CONTENT_FOLDER_PATH)


def build_zip(path, entries, with_dirs=False):
    """
    Write a ZIP at path. entries is a list of (name, data) pairs written in
    order. With with_dirs, a directory entry is written before the first
    file of each directory, as most archivers do.
    """
    seen = set()
    with zipfile.ZipFile(str(path), 'w') as zf:
        for name, data in entries:
            if with_dirs and '/' in name:
                parts = name.split('/')[:-1]
                for i in range(1, len(parts) + 1):
                    dirname = '/'.join(parts[:i]) + '/'
                    if dirname not in seen:
                        seen.add(dirname)
                        zf.writestr(dirname, b'')
            zf.writestr(name, data)
    return str(path)


@pytest.fixture
def make_zip(tmp_path):
    """Factory fixture building test archives, see build_zip."""
    def _make(name, entries, directory=None, with_dirs=False):
        target = os.path.join(str(directory or tmp_path), name)
        return build_zip(target, entries, with_dirs=with_dirs)
    return _make


@pytest.fixture
def standard_entries():
    return _standard_entries


@pytest.fixture
def chapter_xml_entries():
    return _chapter_xml_entries


def _standard_entries(isbn='9780486282146'):
    """Archive content for an EPUB-like package."""
    return [
        ('package.opf', b'<package/>'),
        ('content/%s-chapter-1.xhtml' % isbn, b'<html>Chapter 1</html>'),
        ('images/cover.jpg', b'\xff\xd8\xff\xe0jpeg'),
        ('styles/book.css', b'body { margin: 0; }'),
    ]


def _chapter_xml_entries(isbn='9780080569437', chapters=2, xml_chapters=None):
    """Archive content for a print production package with its content XML."""
    if xml_chapters is None:
        xml_chapters = chapters
    entries = []
    for n in range(1, chapters + 1):
        entries.append(('%s/Adobe Chapters/%s_Chapter_%d.pdf' % (isbn, isbn, n), b'%PDF-1.4 chapter'))
    entries.append(('%s/Adobe Chapters/%s_Index.pdf' % (isbn, isbn), b'%PDF-1.4 index'))
    entries.append(('%s/artwork/fig1.jpg' % isbn, b'\xff\xd8\xff\xe0jpeg'))
    body = ''.join('<chapter number="%d"><title>Chapter %d</title></chapter>' % (n, n)
                   for n in range(1, xml_chapters + 1))
    entries.append(('%s/TFB XML/%s.xml' % (isbn, isbn),
                    ('<?xml version="1.0" encoding="UTF-8"?><book><body>%s</body></book>' % body).encode('utf-8')))
    return entries
