"""
Issue resolution store

JSONL file of Resolutions. Recording a resolution also marks its call
resolved in the CallStore.
"""

import os
import json
import logging
from typing import List, Optional

from ..models.calls import Resolution, parse_timestamp
from .call_store import CallStore, check_page

logger = logging.getLogger('canefarm.storage.resolution_store')


class ResolutionStore:
    """Append-only resolutions log, loaded into memory at construction"""

    def __init__(self, path: str):
        self.path = path
        self._resolutions: List[Resolution] = []
        if os.path.exists(path):
            with open(path, 'r', encoding='utf-8') as f:
                for line_no, line in enumerate(f, 1):
                    if not line.strip():
                        continue
                    try:
                        self._resolutions.append(Resolution.from_dict(json.loads(line)))
                    except ValueError as e:
                        logger.warning("Skipping bad resolution at %s:%d: %s", path, line_no, e)
        logger.info("Resolution store initialized (%s, %d resolutions)", path, len(self._resolutions))

    def add(self, resolution: Resolution) -> Resolution:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, 'a', encoding='utf-8') as f:
            f.write(json.dumps(resolution.to_dict()) + '\n')
        self._resolutions.append(resolution)
        return resolution

    def list(self, limit: int = 50, offset: int = 0, call_id: Optional[str] = None) -> List[Resolution]:
        """
        Resolutions newest first, optionally for one call

        Raises:
            ValueError: If limit is outside 1..100 or offset is negative
        """
        check_page(limit, offset)
        matches = [r for r in self._resolutions if call_id is None or r.call_id == call_id]
        matches.sort(key=lambda r: parse_timestamp(r.date_resolved), reverse=True)
        return matches[offset:offset + limit]

    def count(self) -> int:
        return len(self._resolutions)


def record_resolution(call_store: CallStore, resolution_store: ResolutionStore, data) -> Resolution:
    """
    Record a resolution and mark its call resolved

    Args:
        call_store: Store holding the call
        resolution_store: Store receiving the resolution
        data: Resolution or dict with call_id, resolved_by and issue_resolved

    Returns:
        The stored Resolution

    Raises:
        ValueError: If a required field is missing
        LookupError: If the call does not exist
    """
    resolution = data if isinstance(data, Resolution) else Resolution.from_dict(data)
    if call_store.get(resolution.call_id) is None:
        raise LookupError(f"No call with id {resolution.call_id}")

    resolution_store.add(resolution)
    call_store.mark_resolved(resolution.call_id)
    logger.info("Call %s resolved by %s", resolution.call_id, resolution.resolved_by)
    return resolution
