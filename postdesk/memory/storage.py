"""Local JSON key/value storage"""

import json
import os
from typing import Any, Dict, Optional

from loguru import logger


class LocalStorage:
    """Key/value storage persisted as a single JSON file.

    Every write rewrites the whole file. A missing, empty or unreadable file
    loads as empty storage.
    """

    def __init__(self, path: str):
        self.path = path
        self.data: Dict[str, Any] = {}
        self._load()

    def _load(self):
        """Load JSON file into memory"""
        try:
            if os.path.exists(self.path) and os.path.getsize(self.path) > 0:
                with open(self.path, 'r', encoding='utf-8') as f:
                    loaded = json.load(f)
                if isinstance(loaded, dict):
                    self.data = loaded
                else:
                    logger.warning(f"Ignoring {self.path}: expected an object, found {type(loaded).__name__}")
                    self.data = {}
            else:
                self.data = {}
        except Exception as e:
            logger.error(f"Error loading local storage {self.path}: {e}")
            self.data = {}

    def _save(self):
        """Write JSON file"""
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(self.data, f, indent=2, default=str, ensure_ascii=False)
        except Exception as e:
            logger.error(f"Error saving local storage {self.path}: {e}")

    def get_item(self, key: str, default: Optional[Any] = None) -> Any:
        return self.data.get(key, default)

    def set_item(self, key: str, value: Any):
        self.data[key] = value
        self._save()

    def remove_item(self, key: str):
        if key in self.data:
            del self.data[key]
            self._save()
