"""JSON snapshot storage.

The whole application state lives in one file, ``<data_dir>/app_state.json``.
Every read is validated against ``SnapshotDocument`` and migrated forward
from older ``schema_version`` values. Writes go through a temporary file and
an atomic rename, so a crash mid-write leaves the previous snapshot intact.

All methods are synchronous and return a ``Result``; callers on the event
loop run them in an executor.
"""

from __future__ import annotations

import hashlib
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import orjson
from pydantic import ValidationError as SchemaValidationError

from aquarium_core.clock import Clock, SystemClock
from aquarium_core.config.defaults import APP_VERSION
from aquarium_core.exceptions import AppError, ErrorCode, PersistenceError
from aquarium_core.result import Err, Ok, Result
from aquarium_backend.schema import (
    SCHEMA_VERSION,
    ExportEnvelope,
    ExportMetadata,
    SnapshotDocument,
)

logger = logging.getLogger(__name__)

STATE_FILE_NAME = "app_state.json"

RawDocument = Dict[str, Any]


def _migrate_v1_to_v2(raw: RawDocument) -> RawDocument:
    """Rename ``migration_version`` and add the water manager timestamps."""
    raw.pop("migration_version", None)
    config = raw.setdefault("aquarium_config", {})
    config.setdefault("last_update_time", None)
    config.setdefault("last_reset_time", None)
    raw["schema_version"] = 2
    return raw


# Migration applied to a document at the key's schema version
MIGRATIONS: Dict[int, Callable[[RawDocument], RawDocument]] = {
    1: _migrate_v1_to_v2,
}


def schema_version_of(raw: RawDocument) -> int:
    version = raw.get("schema_version", raw.get("migration_version", 1))
    return int(version) if version else 1


def migrate(raw: RawDocument) -> RawDocument:
    """Bring a raw document up to ``SCHEMA_VERSION``.

    Raises:
        PersistenceError: The document is newer than this build understands
            or a migration step is missing
    """
    version = schema_version_of(raw)
    if version > SCHEMA_VERSION:
        raise PersistenceError(f"Snapshot schema {version} is newer than supported {SCHEMA_VERSION}")
    while version < SCHEMA_VERSION:
        step = MIGRATIONS.get(version)
        if step is None:
            raise PersistenceError(f"No migration from schema version {version}")
        logger.info(f"Migrating snapshot from schema {version} to {version + 1}")
        raw = step(raw)
        version += 1
    return raw


def encode_document(document: SnapshotDocument) -> bytes:
    return orjson.dumps(document.model_dump(mode="json"), option=orjson.OPT_INDENT_2)


def document_checksum(document: SnapshotDocument) -> str:
    payload = orjson.dumps(document.model_dump(mode="json"), option=orjson.OPT_SORT_KEYS)
    return hashlib.sha256(payload).hexdigest()


def _storage_error(message: str, **context: Any) -> Err[AppError]:
    return Err(AppError(ErrorCode.STORAGE_ERROR, message, context))


@dataclass(frozen=True)
class StorageInfo:
    path: Path
    exists: bool
    total_size: int  # bytes
    last_updated: Optional[datetime]
    schema_version: Optional[int]


class SnapshotStore:
    """Load/save/export of the single application snapshot file."""

    def __init__(self, data_dir: Path, clock: Optional[Clock] = None) -> None:
        self.data_dir = Path(data_dir)
        self.path = self.data_dir / STATE_FILE_NAME
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Raw I/O
    # ------------------------------------------------------------------

    def _read_raw(self) -> Optional[RawDocument]:
        if not self.path.exists():
            return None
        raw = orjson.loads(self.path.read_bytes())
        if not isinstance(raw, dict):
            raise PersistenceError("Snapshot root is not an object")
        return raw

    def _write_document(self, document: SnapshotDocument) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".json.tmp")
        tmp_path.write_bytes(encode_document(document))
        os.replace(tmp_path, self.path)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def load(self) -> Result[SnapshotDocument, AppError]:
        """Read, migrate and validate the snapshot.

        A missing file is not an error: it yields a default document.
        """
        try:
            raw = self._read_raw()
            if raw is None:
                logger.info(f"No snapshot at {self.path}, using defaults")
                return Ok(SnapshotDocument(last_updated=self._clock.now()))
            migrated = schema_version_of(raw) != SCHEMA_VERSION
            document = SnapshotDocument.model_validate(migrate(raw))
            if migrated:
                self._write_document(document)
            return Ok(document)
        except (orjson.JSONDecodeError, SchemaValidationError, PersistenceError, OSError) as e:
            logger.error(f"Failed to load snapshot {self.path}: {e}", exc_info=True)
            return _storage_error(f"Failed to load snapshot: {e}", path=str(self.path))

    def save(self, partial: Dict[str, Any]) -> Result[None, AppError]:
        """Merge top-level fields into the stored snapshot and write it.

        Args:
            partial: SnapshotDocument field names mapped to record values
        """
        unknown = set(partial) - set(SnapshotDocument.model_fields)
        if unknown:
            return Err(AppError(ErrorCode.INVALID_INPUT, f"Unknown snapshot fields: {sorted(unknown)}"))

        current = self.load()
        if current.is_err():
            return current
        try:
            merged = current.unwrap().model_copy(update={**partial, "last_updated": self._clock.now()})
            document = SnapshotDocument.model_validate(merged.model_dump())
            self._write_document(document)
        except (SchemaValidationError, OSError) as e:
            logger.error(f"Failed to save snapshot fields {sorted(partial)}: {e}", exc_info=True)
            return _storage_error(f"Failed to save snapshot: {e}", fields=sorted(partial))
        logger.debug(f"Saved snapshot fields {sorted(partial)}")
        return Ok(None)

    def write(self, document: SnapshotDocument) -> Result[None, AppError]:
        """Replace the stored snapshot with ``document``."""
        try:
            self._write_document(document)
        except OSError as e:
            logger.error(f"Failed to write snapshot {self.path}: {e}", exc_info=True)
            return _storage_error(f"Failed to write snapshot: {e}", path=str(self.path))
        logger.info(f"Saved snapshot to {self.path.name}")
        return Ok(None)

    def reset(self) -> Result[None, AppError]:
        result = self.write(SnapshotDocument(last_updated=self._clock.now()))
        if result.is_ok():
            logger.info("Snapshot reset to defaults")
        return result

    def export_data(self) -> Result[str, AppError]:
        """Backup text: the document, export metadata and a sha256 checksum."""
        loaded = self.load()
        if loaded.is_err():
            return loaded
        document = loaded.unwrap()
        envelope = ExportEnvelope(
            data=document,
            metadata=ExportMetadata(exported_at=self._clock.now(), app_version=APP_VERSION),
            checksum=document_checksum(document),
        )
        return Ok(orjson.dumps(envelope.model_dump(mode="json"), option=orjson.OPT_INDENT_2).decode("utf-8"))

    def import_data(self, text: str) -> Result[SnapshotDocument, AppError]:
        """Validate a backup produced by ``export_data`` and store its document."""
        try:
            raw = orjson.loads(text)
            if not isinstance(raw, dict) or not isinstance(raw.get("data"), dict):
                return Err(AppError(ErrorCode.INVALID_INPUT, "Backup has no data section"))
            raw["data"] = migrate(raw["data"])
            envelope = ExportEnvelope.model_validate(raw)
        except (orjson.JSONDecodeError, SchemaValidationError, PersistenceError) as e:
            logger.warning(f"Rejected backup import: {e}")
            return Err(AppError(ErrorCode.INVALID_INPUT, f"Invalid backup: {e}"))

        if document_checksum(envelope.data) != envelope.checksum:
            logger.warning("Rejected backup import: checksum mismatch")
            return Err(AppError(ErrorCode.INVALID_INPUT, "Backup checksum does not match its data"))

        written = self.write(envelope.data)
        if written.is_err():
            return written
        logger.info(f"Imported backup exported at {envelope.metadata.exported_at.isoformat()}")
        return Ok(envelope.data)

    def storage_info(self) -> Result[StorageInfo, AppError]:
        try:
            if not self.path.exists():
                return Ok(StorageInfo(self.path, False, 0, None, None))
            size = self.path.stat().st_size
            raw = self._read_raw() or {}
        except (OSError, orjson.JSONDecodeError, PersistenceError) as e:
            logger.error(f"Failed to inspect snapshot {self.path}: {e}", exc_info=True)
            return _storage_error(f"Failed to inspect snapshot: {e}", path=str(self.path))

        last_updated = raw.get("last_updated")
        return Ok(StorageInfo(
            path=self.path,
            exists=True,
            total_size=size,
            last_updated=datetime.fromisoformat(last_updated) if isinstance(last_updated, str) else None,
            schema_version=schema_version_of(raw),
        ))
