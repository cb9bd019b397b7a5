"""
This module handles the encryption key for the application's data file.

It uses the `cryptography` library (Fernet symmetric encryption) so that the
journal data at rest is not readable without the key. The module is responsible for:
- Generating a secret key if one does not already exist.
- Storing and loading the key from a key file.
- Building a `Fernet` encryptor for the `EncryptedFileStorage`.

Security Note: the key file must be kept out of version control. Losing it makes
the stored journals unreadable.
"""
# medipattern/encryption.py

import logging
from pathlib import Path

from cryptography.fernet import Fernet

logger = logging.getLogger(__name__)


def write_key(key_path) -> bytes:
    """Generates a new Fernet key and saves it to `key_path`.

    Returns:
        bytes: The generated key.
    """
    key = Fernet.generate_key()
    path = Path(key_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(key)
    return key


def load_key(key_path) -> bytes:
    """Loads the Fernet key from `key_path`.

    Returns:
        bytes: The encryption key.
    """
    return Path(key_path).read_bytes()


def get_encryptor(key_path) -> Fernet:
    """Returns a Fernet instance for the key stored at `key_path`.

    On first run the key does not exist yet, so a new one is generated and saved.
    """
    try:
        key = load_key(key_path)
    except FileNotFoundError:
        logger.info("Encryption key not found at %s, generating a new one", key_path)
        key = write_key(key_path)
    return Fernet(key)
