# ledger.py
import json
import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from models import BackupRecord

logger = logging.getLogger(__name__)


class BackupLedger:
    """
    Append-only JSON-lines index of backup records, one record per line.
    Existing lines are never rewritten, so a damaged line costs only itself.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def load(self) -> List[BackupRecord]:
        if not self.path.exists():
            return []

        records: List[BackupRecord] = []
        for lineno, raw in enumerate(self.path.read_bytes().splitlines(), start=1):
            if not raw.strip():
                continue
            try:
                item = json.loads(raw.decode("utf-8"))
                records.append(BackupRecord.from_dict(item))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping unreadable entry %s:%d", self.path, lineno)
        return records

    def append(self, record: BackupRecord) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(record.to_dict(), sort_keys=True) + "\n"
        with self.path.open("a+b") as fh:
            # keep a torn last line from swallowing this record
            if fh.seek(0, os.SEEK_END) > 0:
                fh.seek(-1, os.SEEK_END)
                if fh.read(1) != b"\n":
                    line = "\n" + line
            fh.write(line.encode("utf-8"))

    def find(self, backup_id: str) -> Optional[BackupRecord]:
        for record in self.load():
            if str(record.id) == backup_id or str(record.id).startswith(backup_id):
                return record
        return None
