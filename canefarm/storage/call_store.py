"""
Call record store

Append-only JSONL file, one call record per line.
"""

import os
import json
import logging
from typing import List, Optional

from ..models.calls import CallRecord, parse_timestamp

logger = logging.getLogger('canefarm.storage.call_store')

MAX_PAGE_SIZE = 100


def _sort_key(record: CallRecord):
    return parse_timestamp(record.created_at)


def check_page(limit, offset):
    """
    Raises:
        ValueError: If limit is outside 1..MAX_PAGE_SIZE or offset is negative
    """
    if not isinstance(limit, int) or not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValueError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    if not isinstance(offset, int) or offset < 0:
        raise ValueError("offset must be a non-negative integer")


class CallStore:
    """
    Persists CallRecords to a JSONL file

    Records are loaded once at construction and kept in memory; save()
    appends to both.
    """

    def __init__(self, path: str):
        """
        Initialize call store

        Args:
            path: JSONL file path (created on first save)
        """
        self.path = path
        self._records: List[CallRecord] = []
        self._load()
        logger.info("Call store initialized (%s, %d records)", self.path, len(self._records))

    def _load(self):
        if not os.path.exists(self.path):
            return
        with open(self.path, 'r', encoding='utf-8') as f:
            for line_no, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    self._records.append(CallRecord.from_dict(json.loads(line)))
                except ValueError as e:
                    # json.JSONDecodeError is a ValueError
                    logger.warning("Skipping bad call record at %s:%d: %s", self.path, line_no, e)

    def save(self, record) -> CallRecord:
        """
        Validate and append a call record

        Args:
            record: CallRecord or dict with at least transcript, summary,
                    categories and sentiment

        Returns:
            The stored CallRecord

        Raises:
            ValueError: If required fields are missing
        """
        if not isinstance(record, CallRecord):
            record = CallRecord.from_dict(record)

        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, 'a', encoding='utf-8') as f:
            f.write(json.dumps(record.to_dict()) + '\n')

        self._records.append(record)
        logger.info("Saved call %s (farmer: %s)", record.id, record.farmer_id)
        return record

    def list(self, limit: int = 10, offset: int = 0) -> List[CallRecord]:
        """
        Page through calls, newest first

        Raises:
            ValueError: If limit is outside 1..100 or offset is negative
        """
        check_page(limit, offset)
        return self.all()[offset:offset + limit]

    def all(self) -> List[CallRecord]:
        """All calls, newest first"""
        return sorted(self._records, key=_sort_key, reverse=True)

    def get(self, call_id: str) -> Optional[CallRecord]:
        for record in self._records:
            if record.id == call_id:
                return record
        return None

    def count(self) -> int:
        return len(self._records)

    def mark_resolved(self, call_id: str) -> CallRecord:
        """
        Set a call's resolved flag and rewrite the file

        Lines that failed to load are not carried into the rewritten file.

        Raises:
            LookupError: If no call has this id
        """
        record = self.get(call_id)
        if record is None:
            raise LookupError(f"No call with id {call_id}")
        if record.resolved:
            return record
        record.resolved = True
        self._rewrite()
        logger.info("Marked call %s resolved", call_id)
        return record

    def _rewrite(self):
        tmp_path = self.path + ".tmp"
        with open(tmp_path, 'w', encoding='utf-8') as f:
            for record in self._records:
                f.write(json.dumps(record.to_dict()) + '\n')
        os.replace(tmp_path, self.path)
