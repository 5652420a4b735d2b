"""
Backup service for exporting and importing the record database.

A backup is a folder holding copies of the SQLite database file and its
-wal/-shm companions, plus a manifest of MD5 checksums.
"""

import json
import logging
import shutil
import uuid
from pathlib import Path

from daily_health_log.infrastructure.storage.record_store import RecordStore
from daily_health_log.utils.exceptions import BackupError
from daily_health_log.utils.hashing import compute_file_hash

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"
BACKUP_SUFFIX = ".dhlbackup"
COMPANION_SUFFIXES = ("", "-wal", "-shm")


class BackupService:
    """
    Service copying the record database to and from backup folders.

    After an import the store is reloaded; records read before the import
    are stale.
    """

    def __init__(self, store: RecordStore) -> None:
        """
        Initialize backup service.

        Args:
            store: Record store whose database is backed up.

        Raises:
            BackupError: If the store is not backed by a database file.
        """
        if store.database_path is None:
            raise BackupError("Backups need a file-based SQLite database")
        self.store = store
        self.database_path: Path = store.database_path

    def _store_files(self) -> list[Path]:
        """Existing database files (main file and companions)."""
        candidates = [
            self.database_path.with_name(self.database_path.name + suffix)
            for suffix in COMPANION_SUFFIXES
        ]
        return [p for p in candidates if p.exists()]

    def export_database(self, dest_dir: Path) -> Path:
        """
        Copy the database files into a fresh backup folder.

        Args:
            dest_dir: Directory receiving the backup folder.

        Returns:
            Path of the created backup folder.

        Raises:
            BackupError: If there is nothing to export or a copy is corrupt.
        """
        # Release connections so the files on disk are complete
        self.store.close()

        files = self._store_files()
        if not files:
            raise BackupError(f"Database file not found: {self.database_path}")

        folder = Path(dest_dir) / f"{uuid.uuid4().hex}{BACKUP_SUFFIX}"

        try:
            folder.mkdir(parents=True, exist_ok=False)
            checksums: dict[str, str] = {}

            for source in files:
                target = folder / source.name
                shutil.copy2(source, target)
                checksum = compute_file_hash(target)
                if checksum != compute_file_hash(source):
                    raise BackupError(f"Checksum mismatch after copying {source.name}")
                checksums[source.name] = checksum

            manifest = {"database": self.database_path.name, "files": checksums}
            with open(folder / MANIFEST_NAME, "w", encoding="utf-8") as f:
                json.dump(manifest, f, indent=2)

        except OSError as e:
            raise BackupError(f"Failed to export database: {e}") from e

        logger.info(f"Exported {len(files)} database files to {folder}")
        return folder

    def _read_manifest(self, folder: Path) -> dict[str, str | dict[str, str]]:
        manifest_path = folder / MANIFEST_NAME
        if not manifest_path.exists():
            raise BackupError(f"Backup manifest not found in {folder}")

        try:
            with open(manifest_path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise BackupError(f"Invalid backup manifest in {folder}: {e}") from e

    def import_database(self, folder: Path) -> list[Path]:
        """
        Replace the database with the files of a backup folder.

        Every file is checked against the manifest before anything on disk
        is replaced. The store is reloaded afterwards.

        Args:
            folder: Backup folder created by export_database.

        Returns:
            Paths of the restored database files.

        Raises:
            BackupError: If the backup is incomplete or corrupt, or copying fails.
        """
        folder = Path(folder)
        manifest = self._read_manifest(folder)
        source_name = str(manifest.get("database", ""))
        checksums = manifest.get("files", {})
        if not isinstance(checksums, dict) or source_name not in checksums:
            raise BackupError(f"Backup in {folder} does not contain a database file")

        for name, expected in checksums.items():
            path = folder / name
            if not path.exists():
                raise BackupError(f"Backup file missing: {name}")
            if compute_file_hash(path) != expected:
                raise BackupError(f"Backup file is corrupt: {name}")

        self.store.close()
        restored: list[Path] = []

        try:
            for existing in self._store_files():
                existing.unlink()

            for suffix in COMPANION_SUFFIXES:
                source = folder / f"{source_name}{suffix}"
                if source.name not in checksums:
                    continue
                target = self.database_path.with_name(self.database_path.name + suffix)
                shutil.copy2(source, target)
                restored.append(target)

        except OSError as e:
            raise BackupError(f"Failed to import database: {e}") from e

        self.store.reload()
        logger.info(f"Imported {len(restored)} database files from {folder}")
        return restored
