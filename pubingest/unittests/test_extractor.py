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
Unit tests for pubingest.ingestion.extractor module.

Tests cover:
- Routing entries into category folders
- Path derived and running directory strategies
- Skipping unrecognized and dangerous entries
- Corrupt archives and error notes
"""

import zipfile

import pytest

from pubingest.ingestion.classifier import ChapterXmlTaxonomy, ContentCategory, StandardTaxonomy
from pubingest.ingestion.errors import ExtractionError, ProcessingErrorCode
from pubingest.ingestion.extractor import ArchiveExtractor, is_unsafe_path

ISBN = '9780486282146'


def folder_names(repository, node):
    return sorted(child.name for child in repository.list_children(node))


@pytest.fixture
def package(repository, content_root):
    return repository.create_node(content_root, ISBN)


class TestStandardExtraction:

    def test_entries_routed_to_folders(self, repository, package, make_zip, standard_entries):
        archive = make_zip('%s.zip' % ISBN, standard_entries())
        stored = ArchiveExtractor(repository, StandardTaxonomy()).extract(archive, package, ISBN)

        assert len(stored) == 4
        assert folder_names(repository, package) == ['Artwork', 'Chapters', 'Styles', 'package.opf']
        chapters = repository.get_child_by_name(package, 'Chapters')
        assert folder_names(repository, chapters) == ['%s-chapter-1.xhtml' % ISBN]
        artwork = repository.get_child_by_name(package, 'Artwork')
        cover = repository.get_child_by_name(artwork, 'cover.jpg')
        assert repository.get_mimetype(cover) == 'image/jpeg'
        with repository.open_content(cover) as f:
            assert f.read() == b'\xff\xd8\xff\xe0jpeg'

    def test_only_present_categories_get_folders(self, repository, package, make_zip):
        archive = make_zip('%s.zip' % ISBN, [
            ('content/%s-chapter-1.xhtml' % ISBN, b'1'),
            ('content/toc.xhtml', b'toc'),
            ('images/cover.jpg', b'jpeg'),
            ('styles/book.css', b'css'),
        ])
        stored = ArchiveExtractor(repository, StandardTaxonomy()).extract(archive, package, ISBN)

        categories = set(entry.category for entry in stored)
        assert categories == {ContentCategory.CHAPTER, ContentCategory.SUPPLEMENTARY,
                              ContentCategory.ARTWORK, ContentCategory.STYLE}
        assert folder_names(repository, package) == ['Artwork', 'Chapters', 'Styles', 'Supplementary']

    def test_single_category_creates_single_folder(self, repository, package, make_zip):
        archive = make_zip('%s.zip' % ISBN, [('images/a.png', b'a'), ('images/b.png', b'b')])
        ArchiveExtractor(repository, StandardTaxonomy()).extract(archive, package, ISBN)
        assert folder_names(repository, package) == ['Artwork']

    def test_unrecognized_entries_skipped(self, repository, package, make_zip):
        archive = make_zip('%s.zip' % ISBN, [
            ('fonts/serif.otf', b'font'),
            ('content/notes.txt', b'notes'),
            ('styles/book.css', b'css'),
        ])
        stored = ArchiveExtractor(repository, StandardTaxonomy()).extract(archive, package, ISBN)
        assert [entry.filename for entry in stored] == ['book.css']
        assert folder_names(repository, package) == ['Styles']

    def test_dangerous_paths_skipped(self, repository, package, make_zip):
        archive = make_zip('%s.zip' % ISBN, [
            ('../styles/evil.css', b'x'),
            ('styles/book.css', b'css'),
        ])
        stored = ArchiveExtractor(repository, StandardTaxonomy()).extract(archive, package, ISBN)
        assert [entry.filename for entry in stored] == ['book.css']

    def test_double_dots_inside_a_name_allowed(self, repository, package, make_zip):
        archive = make_zip('%s.zip' % ISBN, [
            ('images/cover..jpg', b'jpeg'),
            ('images/../evil.jpg', b'x'),
            ('images\\..\\evil.png', b'x'),
        ])
        stored = ArchiveExtractor(repository, StandardTaxonomy()).extract(archive, package, ISBN)
        assert [entry.filename for entry in stored] == ['cover..jpg']
        artwork = repository.get_child_by_name(package, 'Artwork')
        assert folder_names(repository, artwork) == ['cover..jpg']

    @pytest.mark.parametrize('name, unsafe', [
        ('/etc/passwd', True),
        ('../styles/evil.css', True),
        ('content/..', True),
        ('content\\..\\x.xhtml', True),
        ('images/cover..jpg', False),
        ('content/..hidden.xhtml', False),
    ])
    def test_is_unsafe_path(self, name, unsafe):
        assert is_unsafe_path(name) is unsafe

    def test_directory_entries_not_stored(self, repository, package, make_zip, standard_entries):
        archive = make_zip('%s.zip' % ISBN, standard_entries(), with_dirs=True)
        stored = ArchiveExtractor(repository, StandardTaxonomy()).extract(archive, package, ISBN)
        assert len(stored) == 4


class TestDirectoryStrategies:

    def test_strategies_agree_on_well_formed_archive(self, tmp_path, repository, content_root, make_zip,
                                                     standard_entries):
        archive = make_zip('%s.zip' % ISBN, standard_entries(), with_dirs=True)
        results = {}
        for strategy in ('path', 'running'):
            package = repository.create_node(content_root, 'pkg-%s' % strategy)
            extractor = ArchiveExtractor(repository, StandardTaxonomy(), directory_strategy=strategy)
            stored = extractor.extract(archive, package, ISBN)
            results[strategy] = [(e.entry_path, e.category, e.folder_name, e.filename) for e in stored]
        assert results['path'] == results['running']

    def test_running_strategy_follows_directory_entries(self, repository, package, make_zip):
        # no containing directory in the file entry, only the preceding directory entry
        path = make_zip('%s.zip' % ISBN, [])
        with zipfile.ZipFile(path, 'w') as zf:
            zf.writestr('images/', b'')
            zf.writestr('cover.jpg', b'jpeg')
        extractor = ArchiveExtractor(repository, StandardTaxonomy(), directory_strategy='running')
        stored = extractor.extract(path, package, ISBN)
        assert stored[0].category == ContentCategory.ARTWORK
        assert stored[0].entry_path == 'cover.jpg'

    def test_unknown_strategy(self, repository):
        with pytest.raises(ValueError):
            ArchiveExtractor(repository, StandardTaxonomy(), directory_strategy='sorted')


class TestChapterXmlExtraction:

    def test_renamed_chapters(self, repository, content_root, make_zip, chapter_xml_entries):
        isbn = '9780080569437'
        package = repository.create_node(content_root, isbn)
        archive = make_zip('%s.zip' % isbn, chapter_xml_entries(isbn))
        ArchiveExtractor(repository, ChapterXmlTaxonomy()).extract(archive, package, isbn)

        assert folder_names(repository, package) == ['Adobe Chapters', 'Artwork', 'Supplementary', 'TFB XML']
        chapters = repository.get_child_by_name(package, 'Adobe Chapters')
        assert folder_names(repository, chapters) == ['%s-chapter1.pdf' % isbn, '%s-chapter2.pdf' % isbn]


class TestCorruptArchives:

    def test_not_a_zip(self, tmp_path, repository, package):
        archive = tmp_path / ('%s.zip' % ISBN)
        archive.write_bytes(b'this is not a zip file')
        with pytest.raises(ExtractionError) as excinfo:
            ArchiveExtractor(repository, StandardTaxonomy()).extract(str(archive), package, ISBN)

        assert excinfo.value.code == ProcessingErrorCode.CONTENT_INGESTION_EXTRACT_ZIP
        assert isinstance(excinfo.value.cause, zipfile.BadZipFile)
        notes = [name for name in folder_names(repository, package) if name.endswith('.txt')]
        assert len(notes) == 1
        assert notes[0].startswith('%s-' % ISBN)
        note = repository.get_child_by_name(package, notes[0])
        with repository.open_content(note) as f:
            assert b'Error extracting content ZIP' in f.read()

    def test_no_note_when_disabled(self, tmp_path, repository, package):
        archive = tmp_path / ('%s.zip' % ISBN)
        archive.write_bytes(b'garbage')
        extractor = ArchiveExtractor(repository, StandardTaxonomy(), write_error_notes=False)
        with pytest.raises(ExtractionError):
            extractor.extract(str(archive), package, ISBN)
        assert folder_names(repository, package) == []

    def test_corrupt_member_aborts(self, tmp_path, repository, package, make_zip):
        archive = make_zip('%s.zip' % ISBN, [('styles/book.css', b'css' * 100)])
        data = bytearray(open(archive, 'rb').read())
        # damage the stored member bytes so the CRC check fails on read
        start = data.index(b'csscss')
        data[start:start + 6] = b'XXXXXX'
        with open(archive, 'wb') as f:
            f.write(bytes(data))

        with pytest.raises(ExtractionError):
            ArchiveExtractor(repository, StandardTaxonomy()).extract(archive, package, ISBN)
        styles = repository.get_child_by_name(package, 'Styles')
        assert repository.get_child_by_name(styles, 'book.css') is None

    def test_missing_archive(self, tmp_path, repository, package):
        with pytest.raises(ExtractionError):
            ArchiveExtractor(repository, StandardTaxonomy()).extract(str(tmp_path / 'gone.zip'), package, ISBN)
