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
Type-safe configuration settings for PubIngest.

Each INI section maps onto one dataclass. Paths left blank in the config
file are derived from the data directory by Configuration.resolve_paths().
"""

import os
import re
from dataclasses import dataclass, field, asdict
from typing import Any, Dict

TAXONOMIES = ('standard', 'chapter_xml')
DIRECTORY_STRATEGIES = ('path', 'running')


class ConfigError(Exception):
    """Exception raised for configuration errors."""
    pass


@dataclass
class GeneralSettings:
    """Logging settings."""
    log_dir: str = ''
    log_level: int = 1
    log_limit: int = 500
    log_files: int = 10
    log_size: int = 204800

    def validate(self) -> None:
        if self.log_level < 0:
            raise ConfigError("Log level cannot be negative")
        if self.log_files < 0 or self.log_size < 0:
            raise ConfigError("Log rotation values cannot be negative")


@dataclass
class IngestionSettings:
    """Content ingestion settings."""
    source_dir: str = ''
    quarantine_dir: str = ''
    content_folder_path: str = '/Company Home/Data Dictionary/BestPub/Incoming/Content'
    archive_extension: str = 'zip'
    identifier_pattern: str = r'^\d{13}$'
    taxonomy: str = 'standard'
    directory_strategy: str = 'path'
    write_error_notes: bool = True
    republish_folder: str = 'Republish'

    def validate(self) -> None:
        """Validate ingestion settings."""
        if not self.source_dir or not os.path.isabs(self.source_dir):
            raise ConfigError("Source directory must be an absolute path")
        if not self.quarantine_dir or not os.path.isabs(self.quarantine_dir):
            raise ConfigError("Quarantine directory must be an absolute path")
        if os.path.normpath(self.source_dir) == os.path.normpath(self.quarantine_dir):
            raise ConfigError("Quarantine directory must differ from the source directory")
        if not self.content_folder_path.startswith('/'):
            raise ConfigError("Content folder path must be an absolute repository path")
        if self.taxonomy not in TAXONOMIES:
            raise ConfigError("Unknown taxonomy %s, expected one of %s" % (self.taxonomy, ', '.join(TAXONOMIES)))
        if self.directory_strategy not in DIRECTORY_STRATEGIES:
            raise ConfigError("Unknown directory strategy %s" % self.directory_strategy)
        if not self.archive_extension:
            raise ConfigError("Archive extension cannot be empty")
        if not self.republish_folder:
            raise ConfigError("Republish folder name cannot be empty")
        try:
            re.compile(self.identifier_pattern)
        except re.error as e:
            raise ConfigError("Invalid identifier pattern: %s" % e)


@dataclass
class SchedulerSettings:
    """Scheduling and cluster lock settings."""
    cron_expression: str = '*/5 * * * *'
    cron_start_delay: int = 60
    lock_name: str = 'ContentIngestion'
    lock_ttl: int = 3600

    def validate(self) -> None:
        if len(self.cron_expression.split()) != 5:
            raise ConfigError("Cron expression must have 5 fields: %s" % self.cron_expression)
        if self.cron_start_delay < 0:
            raise ConfigError("Cron start delay cannot be negative")
        if self.lock_ttl < 1:
            raise ConfigError("Lock TTL must be at least 1 second")


@dataclass
class RepositorySettings:
    """Content repository storage."""
    repository_dir: str = ''
    db_file: str = ''


@dataclass
class HttpSettings:
    """Introspection server settings."""
    enabled: bool = True
    host: str = '0.0.0.0'
    port: int = 5299
    root: str = ''

    def validate(self) -> None:
        if self.port < 21 or self.port > 65535:
            raise ConfigError("HTTP port must be between 21 and 65535")


@dataclass
class Configuration:
    """Complete PubIngest configuration."""
    general: GeneralSettings = field(default_factory=GeneralSettings)
    ingestion: IngestionSettings = field(default_factory=IngestionSettings)
    scheduler: SchedulerSettings = field(default_factory=SchedulerSettings)
    repository: RepositorySettings = field(default_factory=RepositorySettings)
    http: HttpSettings = field(default_factory=HttpSettings)

    def resolve_paths(self, datadir: str) -> None:
        """Fill in blank paths relative to the data directory."""
        if not self.general.log_dir:
            self.general.log_dir = os.path.join(datadir, 'Logs')
        if not self.ingestion.source_dir:
            self.ingestion.source_dir = os.path.join(datadir, 'incoming')
        if not self.ingestion.quarantine_dir:
            self.ingestion.quarantine_dir = os.path.join(self.ingestion.source_dir, 'failed')
        if not self.repository.repository_dir:
            self.repository.repository_dir = os.path.join(datadir, 'repository')
        if not self.repository.db_file:
            self.repository.db_file = os.path.join(datadir, 'pubingest.db')

    def validate(self) -> None:
        """Validate all settings.

        Raises:
            ConfigError: If any settings are invalid
        """
        self.general.validate()
        self.ingestion.validate()
        self.scheduler.validate()
        self.http.validate()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
