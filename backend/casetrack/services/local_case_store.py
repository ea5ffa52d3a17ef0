"""
Instance-local store for litigation cases the database refused to accept.

One JSON file per user, replaced atomically on every write.
"""
from __future__ import annotations

import json
import os
import tempfile
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List

from pydantic import ValidationError

from casetrack.core.config import settings
from casetrack.core.logger import logger
from casetrack.db.schemas import LitigationCaseCreate, LitigationCaseRecord

LOCAL_ID_PREFIX = "local-"


def is_local_id(case_id: str) -> bool:
    return str(case_id).startswith(LOCAL_ID_PREFIX)


class LocalCaseStore:
    """
    Per-user JSON list of cases the database refused to accept.

    Newest records come first; every mutation rewrites the whole list.
    """

    def __init__(self, base_dir: str | os.PathLike | None = None):
        self.base_dir = Path(base_dir or settings.LOCAL_CASE_STORE_DIR)
        self._lock = threading.Lock()

    def _path(self, user_id: str) -> Path:
        return self.base_dir / f"litigation_cases_{user_id}.json"

    def _read(self, user_id: str) -> List[LitigationCaseRecord]:
        path = self._path(user_id)
        if not path.exists():
            return []
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Local case store for user %s is unreadable: %s", user_id, e)
            return []
        if not isinstance(raw, list):
            return []

        records: List[LitigationCaseRecord] = []
        for entry in raw:
            try:
                records.append(LitigationCaseRecord.model_validate(entry))
            except ValidationError:
                logger.warning("Dropping malformed local case entry for user %s", user_id)
        return records

    def _write(self, user_id: str, records: List[LitigationCaseRecord]) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        path = self._path(user_id)
        payload = [record.model_dump(mode="json") for record in records]
        fd, tmp = tempfile.mkstemp(dir=self.base_dir, prefix=path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False)
            os.replace(tmp, path)
        except OSError:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def get(self, user_id: str) -> List[LitigationCaseRecord]:
        with self._lock:
            return self._read(str(user_id))

    def add(self, user_id: str, cases: Iterable[LitigationCaseCreate]) -> List[LitigationCaseRecord]:
        user_id = str(user_id)
        now = datetime.now(timezone.utc)
        new_records = [
            LitigationCaseRecord(
                **case.model_dump(),
                id=f"{LOCAL_ID_PREFIX}{uuid.uuid4()}",
                user_id=user_id,
                created_at=now,
                updated_at=now,
            )
            for case in cases
        ]
        with self._lock:
            existing = self._read(user_id)
            self._write(user_id, new_records + existing)
        logger.info("Stored %s litigation cases locally for user %s", len(new_records), user_id)
        return new_records

    def remove(self, user_id: str, case_id: str) -> bool:
        user_id = str(user_id)
        with self._lock:
            existing = self._read(user_id)
            remaining = [r for r in existing if r.id != case_id]
            if len(remaining) == len(existing):
                return False
            self._write(user_id, remaining)
        return True


local_case_store = LocalCaseStore()
