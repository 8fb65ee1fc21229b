"""
Draft Persistence
=================
Best-effort autosave of a student's in-progress answers and uploaded files,
so nothing is lost before submission.

Storage goes through a small key-value interface (get/set/clear) standing in
for the browser's localStorage. Two backends:
- MemoryStore: process-local dict (tests, single-process use)
- JsonFileStore: one JSON file on disk, shared by all sessions

Drafts are keyed per assignment and user. Storage failures are logged and
swallowed; they never block answering or submitting.
"""

import json
import logging
import os
import threading
from typing import Dict, List, Optional

from coursework.models import (
    Answer, Question, UploadedFile, parse_answers, parse_uploaded_files, serialize_answers,
)

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised by a store when a read or write cannot be completed."""


class DraftStore:
    """Key-value store interface. Values are strings."""

    def get(self, key) -> Optional[str]:
        raise NotImplementedError

    def set(self, key, value: str):
        raise NotImplementedError

    def clear(self, key):
        raise NotImplementedError


class MemoryStore(DraftStore):
    """In-memory store. max_bytes simulates a storage quota."""

    def __init__(self, max_bytes=None):
        self._data = {}
        self.max_bytes = max_bytes

    def get(self, key):
        return self._data.get(key)

    def set(self, key, value):
        if self.max_bytes is not None:
            used = sum(len(v) for k, v in self._data.items() if k != key)
            if used + len(value) > self.max_bytes:
                raise StorageError("Storage quota exceeded")
        self._data[key] = value

    def clear(self, key):
        self._data.pop(key, None)

    def keys(self):
        return list(self._data.keys())


class JsonFileStore(DraftStore):
    """Store backed by a single JSON object file."""

    def __init__(self, path):
        self.path = os.path.expanduser(str(path))
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError(f"Cannot read {self.path}: {e}") from e
        return data if isinstance(data, dict) else {}

    def _write_all(self, data):
        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            tmp_path = self.path + ".tmp"
            with open(tmp_path, 'w') as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Cannot write {self.path}: {e}") from e

    def get(self, key):
        with self._lock:
            value = self._read_all().get(key)
        return value if value is None or isinstance(value, str) else json.dumps(value)

    def set(self, key, value):
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)

    def clear(self, key):
        with self._lock:
            data = self._read_all()
            if key in data:
                del data[key]
                self._write_all(data)


def draft_key(assignment_id, user_id) -> str:
    return f"assignment_draft_{assignment_id}_{user_id}"


class Draft:
    """A loaded draft: parsed answers plus uploaded file list."""

    def __init__(self, answers: Dict[int, Answer], uploaded_files: List[UploadedFile]):
        self.answers = answers
        self.uploaded_files = uploaded_files


class DraftPersistence:
    """Draft read/write/delete for one (assignment, user) pair."""

    def __init__(self, store: DraftStore, assignment_id, user_id):
        self.store = store
        self.key = draft_key(assignment_id, user_id)

    def _stored_object(self) -> dict:
        raw = self.store.get(self.key)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Discarding corrupt draft under %s", self.key)
            return {}
        return data if isinstance(data, dict) else {}

    def save(self, answers: Optional[Dict[int, Answer]] = None,
             uploaded_files: Optional[List[UploadedFile]] = None) -> bool:
        """
        Merge the given fields into the stored draft. Fields passed as None
        keep whatever was saved earlier. Returns False if storage failed.
        """
        try:
            draft = self._stored_object()
            if answers is not None:
                draft["answers"] = serialize_answers(answers)
            if uploaded_files is not None:
                draft["uploadedFiles"] = [f.model_dump(exclude_none=True) for f in uploaded_files]
            self.store.set(self.key, json.dumps(draft))
            return True
        except (StorageError, TypeError, ValueError) as e:
            logger.error("Error saving draft %s: %s", self.key, e)
            return False

    def load(self, questions: List[Question]) -> Optional[Draft]:
        """Read the draft back, or None if there is none (or it is unreadable)."""
        try:
            raw = self.store.get(self.key)
        except StorageError as e:
            logger.error("Error loading draft %s: %s", self.key, e)
            return None
        if not raw:
            return None

        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.error("Error loading draft %s: %s", self.key, e)
            return None
        if not isinstance(data, dict):
            return None

        raw_answers = data.get("answers")
        answers = parse_answers(questions, raw_answers if isinstance(raw_answers, dict) else {})

        return Draft(answers, parse_uploaded_files(data.get("uploadedFiles")))

    def clear(self) -> bool:
        try:
            self.store.clear(self.key)
            return True
        except StorageError as e:
            logger.error("Error clearing draft %s: %s", self.key, e)
            return False
