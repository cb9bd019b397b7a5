"""
Key/value storage backends for the journal data.

The `JournalStore` never touches a file or a global directly; it is handed one of
these backends and only calls `get`, `set` and `delete` on it. Values are JSON
text, so a backend never needs to understand what it stores.

Two backends are provided:
- `MemoryStorage`, a dictionary with an optional size quota, used by tests and
  by short-lived sessions.
- `EncryptedFileStorage`, which keeps every key in a single Fernet-encrypted JSON
  document on disk (`records.json` by default).
"""
# medipattern/storage.py

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from cryptography.fernet import InvalidToken

from medipattern.exceptions import StorageError, StorageQuotaExceededError

logger = logging.getLogger(__name__)


class KeyValueStorage:
    """Interface shared by all storage backends."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def keys(self) -> List[str]:
        raise NotImplementedError

    def __contains__(self, key):
        return self.get(key) is not None


class MemoryStorage(KeyValueStorage):
    """Stores values in a dictionary.

    Args:
        quota_bytes: If given, the maximum combined UTF-8 size of keys and values. A
            write that would go over it raises `StorageQuotaExceededError` and
            leaves the previous value in place.
    """

    def __init__(self, quota_bytes: Optional[int] = None, initial: Optional[Dict[str, str]] = None):
        self.quota_bytes = quota_bytes
        self._items: Dict[str, str] = dict(initial or {})

    def _size_with(self, key: str, value: str) -> int:
        items = dict(self._items)
        items[key] = value
        return sum(len(k.encode("utf-8")) + len(v.encode("utf-8")) for k, v in items.items())

    def get(self, key):
        return self._items.get(key)

    def set(self, key, value):
        if self.quota_bytes is not None and self._size_with(key, value) > self.quota_bytes:
            raise StorageQuotaExceededError(f"Storage quota of {self.quota_bytes} bytes exceeded writing '{key}'")
        self._items[key] = value

    def delete(self, key):
        self._items.pop(key, None)

    def keys(self):
        return list(self._items)


class EncryptedFileStorage(KeyValueStorage):
    """Keeps all keys in one encrypted JSON file.

    The whole document is loaded when the storage is created and rewritten on
    every change.

    Args:
        path: Location of the data file.
        encryptor: An object with `encrypt(bytes)` and `decrypt(bytes)`, normally
            a `cryptography.fernet.Fernet`.
    """

    def __init__(self, path, encryptor):
        self.path = Path(path)
        self._encryptor = encryptor
        self._items = self._load_data()

    def _load_data(self) -> Dict[str, str]:
        """Loads and decrypts the data file.

        Returns:
            dict: The stored items, or an empty dictionary if the file doesn't exist or is corrupt.
        """
        try:
            encrypted_data = self.path.read_text()
            if not encrypted_data:
                return {}
            decrypted_data = self._encryptor.decrypt(encrypted_data.encode()).decode()
            data = json.loads(decrypted_data)
        except (FileNotFoundError, InvalidToken, json.JSONDecodeError) as e:
            # If the file is missing, corrupt, or invalid, start with a fresh data structure.
            logger.warning("Could not load data file %s (%r), starting with a new dataset", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Data file %s does not hold a key/value document, starting with a new dataset", self.path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _save_data(self, items: Dict[str, str]) -> None:
        """Encrypts and saves `items` to the data file."""
        data_to_encrypt = json.dumps(items, indent=4)
        encrypted_data = self._encryptor.encrypt(data_to_encrypt.encode())
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(encrypted_data.decode())
        except OSError as e:
            raise StorageError(f"Could not write data file {self.path}: {e}") from e

    def get(self, key):
        return self._items.get(key)

    def set(self, key, value):
        items = dict(self._items)
        items[key] = value
        # Only replace the in-memory view once the file write succeeded.
        self._save_data(items)
        self._items = items

    def delete(self, key):
        if key not in self._items:
            return
        items = {k: v for k, v in self._items.items() if k != key}
        self._save_data(items)
        self._items = items

    def keys(self):
        return list(self._items)
