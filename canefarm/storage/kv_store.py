"""
Key-value stores

Small string state that survives between simulator runs, such as the id of
the last farmer shown.
"""

import os
import json
import logging
from typing import Dict, Optional

logger = logging.getLogger('canefarm.storage.kv_store')


class KeyValueStore:
    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str):
        raise NotImplementedError


class MemoryKeyValueStore(KeyValueStore):
    """Process-local store"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key, default=None):
        return self._data.get(key, default)

    def set(self, key, value):
        self._data[key] = value


class JsonFileKeyValueStore(KeyValueStore):
    """
    Store backed by a single JSON object on disk

    The file is rewritten on every set(); an unreadable file is treated as
    empty and replaced on the next write.
    """

    def __init__(self, path: str):
        self.path = path
        self._data: Dict[str, str] = self._read()

    def _read(self) -> Dict[str, str]:
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable key-value file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Key-value file %s does not hold an object, ignoring", self.path)
            return {}
        return data

    def get(self, key, default=None):
        return self._data.get(key, default)

    def set(self, key, value):
        self._data[key] = value
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = self.path + ".tmp"
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(self._data, f, indent=2)
        os.replace(tmp_path, self.path)
