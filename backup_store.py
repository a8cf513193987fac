# backup_store.py
from __future__ import annotations

import errno
import hashlib
import logging
import os
import shutil
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Tuple, Union

from models import BackupKind, BackupRecord

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

PathLike = Union[str, "os.PathLike[str]"]


class BackupError(Exception):
    def __init__(self, message: str, source_path: str = "") -> None:
        super().__init__(message)
        self.source_path = source_path


class BackupNotFoundError(BackupError):
    pass


class BackupPermissionError(BackupError):
    pass


class BackupIOError(BackupError):
    pass


def _translate(exc: OSError, source_path: str, action: str) -> BackupError:
    message = f"Failed to {action} {source_path}: {exc}"
    if isinstance(exc, FileNotFoundError):
        return BackupNotFoundError(message, source_path)
    if isinstance(exc, PermissionError) or exc.errno in (errno.EACCES, errno.EPERM):
        return BackupPermissionError(message, source_path)
    return BackupIOError(message, source_path)


def _hash_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _walk_files(root: Path) -> Iterator[Tuple[str, Path]]:
    """Yield (relative posix path, path) for regular files, sorted by relative path."""
    found: List[Tuple[str, Path]] = []
    for dirpath, _dirnames, filenames in os.walk(root):
        for filename in filenames:
            path = Path(dirpath) / filename
            if path.is_symlink() or not path.is_file():
                continue
            found.append((path.relative_to(root).as_posix(), path))
    yield from sorted(found, key=lambda item: item[0])


def compute_checksum(path: PathLike) -> str:
    """
    sha256 of a file's bytes. For a directory the checksum is the sha256 of
    one "<relative path>\\0<file sha256>\\n" line per regular file, sorted by
    relative path, so it does not depend on directory listing order.
    """
    p = Path(path)
    if not p.is_dir():
        return _hash_file(p)
    digest = hashlib.sha256()
    for rel, file_path in _walk_files(p):
        digest.update(f"{rel}\0{_hash_file(file_path)}\n".encode("utf-8"))
    return digest.hexdigest()


def compute_size(path: PathLike) -> int:
    p = Path(path)
    if not p.is_dir():
        return p.stat().st_size
    return sum(file_path.stat().st_size for _rel, file_path in _walk_files(p))


def _copy_tree(src: Path, dest: Path) -> None:
    # regular files and directories only; symlinks and special files are skipped
    dest.mkdir(parents=True, exist_ok=False)
    with os.scandir(src) as entries:
        for entry in sorted(entries, key=lambda e: e.name):
            target = dest / entry.name
            if entry.is_symlink():
                logger.debug("Skipping symlink %s", entry.path)
            elif entry.is_dir(follow_symlinks=False):
                _copy_tree(Path(entry.path), target)
            elif entry.is_file(follow_symlinks=False):
                shutil.copy2(entry.path, target)
            else:
                logger.debug("Skipping special file %s", entry.path)


class BackupStore:
    """
    Content-addressed snapshots under a backup root. Snapshots are additive:
    every call writes a fresh "<id>-<epoch millis>" entry and nothing is ever
    deleted or overwritten by the store.
    """

    def __init__(self, root: PathLike) -> None:
        self.root = Path(root)

    def _ensure_root(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise _translate(exc, str(self.root), "create backup root") from exc

    def snapshot(self, source_path: PathLike, kind: BackupKind = BackupKind.FILE) -> BackupRecord:
        kind = BackupKind(kind)
        if kind not in (BackupKind.FILE, BackupKind.DIRECTORY):
            raise ValueError(f"Unsupported snapshot kind: {kind.value}")

        source = Path(source_path)
        try:
            os.stat(source)
        except OSError as exc:
            raise _translate(exc, str(source), "read backup source") from exc

        self._ensure_root()

        backup_id = uuid.uuid4()
        created_at = datetime.now(timezone.utc)
        millis = int(created_at.timestamp() * 1000)
        destination = self.root / f"{backup_id}-{millis}"

        # a partial snapshot is left in place on failure for the caller to inspect
        try:
            if kind is BackupKind.FILE:
                if source.is_dir():
                    raise IsADirectoryError(errno.EISDIR, "Is a directory", str(source))
                shutil.copy2(source, destination)
            else:
                if not source.is_dir():
                    raise NotADirectoryError(errno.ENOTDIR, "Not a directory", str(source))
                _copy_tree(source, destination)
        except OSError as exc:
            raise _translate(exc, str(source), "copy") from exc

        try:
            size = compute_size(destination)
            checksum = compute_checksum(destination)
        except OSError as exc:
            raise _translate(exc, str(destination), "hash snapshot") from exc

        record = BackupRecord(
            id=backup_id,
            created_at=created_at,
            kind=kind,
            source_path=str(source.absolute()),
            snapshot_path=str(destination),
            size_bytes=size,
            checksum=checksum,
        )
        logger.info("Snapshot %s of %s (%d bytes)", record.id, record.source_path, size)
        return record

    def verify(self, record: BackupRecord) -> bool:
        """Re-hash the snapshot and compare with the recorded checksum."""
        snapshot = Path(record.snapshot_path)
        if not snapshot.exists():
            logger.warning("Snapshot %s is missing: %s", record.id, snapshot)
            return False
        try:
            actual = compute_checksum(snapshot)
        except OSError as exc:
            logger.warning("Could not hash snapshot %s: %s", record.id, exc)
            return False
        if actual != record.checksum:
            logger.warning("Checksum mismatch for snapshot %s", record.id)
            return False
        return True
