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
Configuration loader for PubIngest.

This module provides functionality to load and save configuration
from INI files, and to publish the flat CONFIG dict used by the logger.
"""

import configparser
import os
from typing import Any, Dict, Optional

from pubingest.config.settings import Configuration, ConfigError


class ConfigLoader:
    """Loads and saves configuration from INI files.

    This class provides methods to:
    - Load configuration from a file into a Configuration object
    - Save configuration back to a file
    - Convert a Configuration into the legacy CONFIG dict
    """

    SECTIONS = ['General', 'Ingestion', 'Scheduler', 'Repository', 'HTTP']

    def __init__(self, config_file: Optional[str] = None):
        """Initialize the config loader.

        Args:
            config_file: Path to the configuration file
        """
        self.config_file = config_file
        # patterns and cron expressions must be read verbatim
        self._parser = configparser.ConfigParser(interpolation=None)

    def load(self, config_file: Optional[str] = None) -> Configuration:
        """Load configuration from a file.

        A missing file is not an error, all settings keep their defaults.

        Args:
            config_file: Path to config file (overrides constructor path)

        Returns:
            Configuration object with loaded values

        Raises:
            ConfigError: If file cannot be read or holds bad values
        """
        file_path = config_file or self.config_file
        if not file_path:
            raise ConfigError("No configuration file specified")

        config = Configuration()

        if os.path.isfile(file_path):
            try:
                self._parser.read(file_path)
            except configparser.Error as e:
                raise ConfigError("Failed to read config file: %s" % str(e))

            try:
                self._load_general_settings(config)
                self._load_ingestion_settings(config)
                self._load_scheduler_settings(config)
                self._load_repository_settings(config)
                self._load_http_settings(config)
            except ValueError as e:
                raise ConfigError("Bad value in config file: %s" % str(e))

        return config

    def save(self, config: Configuration, config_file: Optional[str] = None) -> None:
        """Save configuration to a file.

        Args:
            config: Configuration object to save
            config_file: Path to config file (overrides constructor path)

        Raises:
            ConfigError: If file cannot be written
        """
        file_path = config_file or self.config_file
        if not file_path:
            raise ConfigError("No configuration file specified")

        for section in self.SECTIONS:
            self._ensure_section(section)

        self._save_general_settings(config)
        self._save_ingestion_settings(config)
        self._save_scheduler_settings(config)
        self._save_repository_settings(config)
        self._save_http_settings(config)

        try:
            with open(file_path, 'w') as f:
                self._parser.write(f)
        except OSError as e:
            raise ConfigError("Failed to write config file: %s" % str(e))

    @staticmethod
    def to_legacy_dict(config: Configuration) -> Dict[str, Any]:
        """Convert a Configuration to a flat CONFIG dictionary.

        Args:
            config: Configuration object

        Returns:
            Dictionary in legacy CONFIG format
        """
        legacy = {}

        legacy['LOGDIR'] = config.general.log_dir
        legacy['LOGLEVEL'] = config.general.log_level
        legacy['LOGLIMIT'] = config.general.log_limit
        legacy['LOGFILES'] = config.general.log_files
        legacy['LOGSIZE'] = config.general.log_size

        legacy['SOURCE_DIR'] = config.ingestion.source_dir
        legacy['QUARANTINE_DIR'] = config.ingestion.quarantine_dir
        legacy['CONTENT_FOLDER_PATH'] = config.ingestion.content_folder_path
        legacy['TAXONOMY'] = config.ingestion.taxonomy

        legacy['CRON_EXPRESSION'] = config.scheduler.cron_expression
        legacy['CRON_START_DELAY'] = config.scheduler.cron_start_delay

        legacy['REPOSITORY_DIR'] = config.repository.repository_dir
        legacy['DBFILE'] = config.repository.db_file

        legacy['HTTP_ENABLED'] = 1 if config.http.enabled else 0
        legacy['HTTP_HOST'] = config.http.host
        legacy['HTTP_PORT'] = config.http.port
        legacy['HTTP_ROOT'] = config.http.root

        return legacy

    def _ensure_section(self, section: str) -> None:
        """Ensure a section exists in the parser."""
        if not self._parser.has_section(section):
            self._parser.add_section(section)

    def _get_setting(self, section: str, key: str, default: Any = None) -> Any:
        """Get a setting from the parser."""
        try:
            return self._parser.get(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return default

    def _get_bool(self, section: str, key: str, default: bool = False) -> bool:
        """Get a boolean setting, accepting 1/0, true/false and yes/no."""
        value = self._get_setting(section, key)
        if value is None or value == '':
            return default
        return value.strip().lower() in ('true', '1', 'yes', 'on')

    def _load_general_settings(self, config: Configuration) -> None:
        """Load logging settings from parser."""
        config.general.log_dir = self._get_setting('General', 'logdir', '') or ''
        config.general.log_level = int(self._get_setting('General', 'loglevel', 1) or 1)
        config.general.log_limit = int(self._get_setting('General', 'loglimit', 500) or 500)
        config.general.log_files = int(self._get_setting('General', 'logfiles', 10) or 10)
        config.general.log_size = int(self._get_setting('General', 'logsize', 204800) or 204800)

    def _load_ingestion_settings(self, config: Configuration) -> None:
        """Load ingestion settings from parser."""
        ingestion = config.ingestion
        ingestion.source_dir = self._get_setting('Ingestion', 'source_dir', '') or ''
        ingestion.quarantine_dir = self._get_setting('Ingestion', 'quarantine_dir', '') or ''
        ingestion.content_folder_path = self._get_setting(
            'Ingestion', 'content_folder_path', ingestion.content_folder_path
        ) or ingestion.content_folder_path
        ingestion.archive_extension = (self._get_setting('Ingestion', 'archive_extension', 'zip')
                                       or 'zip').lstrip('.').lower()
        ingestion.identifier_pattern = self._get_setting(
            'Ingestion', 'identifier_pattern', ingestion.identifier_pattern
        ) or ingestion.identifier_pattern
        ingestion.taxonomy = (self._get_setting('Ingestion', 'taxonomy', 'standard') or 'standard').lower()
        ingestion.directory_strategy = (self._get_setting('Ingestion', 'directory_strategy', 'path')
                                        or 'path').lower()
        ingestion.write_error_notes = self._get_bool('Ingestion', 'write_error_notes', True)
        ingestion.republish_folder = self._get_setting('Ingestion', 'republish_folder', 'Republish') or 'Republish'

    def _load_scheduler_settings(self, config: Configuration) -> None:
        """Load scheduler settings from parser."""
        config.scheduler.cron_expression = self._get_setting(
            'Scheduler', 'cron_expression', '*/5 * * * *') or '*/5 * * * *'
        config.scheduler.cron_start_delay = int(self._get_setting('Scheduler', 'cron_start_delay', 60) or 0)
        config.scheduler.lock_name = self._get_setting(
            'Scheduler', 'lock_name', 'ContentIngestion') or 'ContentIngestion'
        config.scheduler.lock_ttl = int(self._get_setting('Scheduler', 'lock_ttl', 3600) or 3600)

    def _load_repository_settings(self, config: Configuration) -> None:
        """Load repository settings from parser."""
        config.repository.repository_dir = self._get_setting('Repository', 'repository_dir', '') or ''
        config.repository.db_file = self._get_setting('Repository', 'db_file', '') or ''

    def _load_http_settings(self, config: Configuration) -> None:
        """Load HTTP settings from parser."""
        config.http.enabled = self._get_bool('HTTP', 'http_enabled', True)
        config.http.host = self._get_setting('HTTP', 'http_host', '0.0.0.0') or '0.0.0.0'
        config.http.port = int(self._get_setting('HTTP', 'http_port', 5299) or 5299)
        config.http.root = self._get_setting('HTTP', 'http_root', '') or ''

    def _save_general_settings(self, config: Configuration) -> None:
        """Save logging settings to parser."""
        self._parser.set('General', 'logdir', config.general.log_dir)
        self._parser.set('General', 'loglevel', str(config.general.log_level))
        self._parser.set('General', 'loglimit', str(config.general.log_limit))
        self._parser.set('General', 'logfiles', str(config.general.log_files))
        self._parser.set('General', 'logsize', str(config.general.log_size))

    def _save_ingestion_settings(self, config: Configuration) -> None:
        """Save ingestion settings to parser."""
        ingestion = config.ingestion
        self._parser.set('Ingestion', 'source_dir', ingestion.source_dir)
        self._parser.set('Ingestion', 'quarantine_dir', ingestion.quarantine_dir)
        self._parser.set('Ingestion', 'content_folder_path', ingestion.content_folder_path)
        self._parser.set('Ingestion', 'archive_extension', ingestion.archive_extension)
        self._parser.set('Ingestion', 'identifier_pattern', ingestion.identifier_pattern)
        self._parser.set('Ingestion', 'taxonomy', ingestion.taxonomy)
        self._parser.set('Ingestion', 'directory_strategy', ingestion.directory_strategy)
        self._parser.set('Ingestion', 'write_error_notes', '1' if ingestion.write_error_notes else '0')
        self._parser.set('Ingestion', 'republish_folder', ingestion.republish_folder)

    def _save_scheduler_settings(self, config: Configuration) -> None:
        """Save scheduler settings to parser."""
        self._parser.set('Scheduler', 'cron_expression', config.scheduler.cron_expression)
        self._parser.set('Scheduler', 'cron_start_delay', str(config.scheduler.cron_start_delay))
        self._parser.set('Scheduler', 'lock_name', config.scheduler.lock_name)
        self._parser.set('Scheduler', 'lock_ttl', str(config.scheduler.lock_ttl))

    def _save_repository_settings(self, config: Configuration) -> None:
        """Save repository settings to parser."""
        self._parser.set('Repository', 'repository_dir', config.repository.repository_dir)
        self._parser.set('Repository', 'db_file', config.repository.db_file)

    def _save_http_settings(self, config: Configuration) -> None:
        """Save HTTP settings to parser."""
        self._parser.set('HTTP', 'http_enabled', '1' if config.http.enabled else '0')
        self._parser.set('HTTP', 'http_host', config.http.host)
        self._parser.set('HTTP', 'http_port', str(config.http.port))
        self._parser.set('HTTP', 'http_root', config.http.root)
