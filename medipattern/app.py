"""
Builds the MediPattern services from settings.

The presentation layer calls `build_orchestrator` once and keeps the result for
the lifetime of the session; nothing here is a module-level singleton.
"""
# medipattern/app.py

from medipattern.config import configure_logging, load_settings
from medipattern.encryption import get_encryptor
from medipattern.gemini import GeminiClient
from medipattern.journal import JournalStore
from medipattern.orchestrator import IngestionOrchestrator
from medipattern.storage import EncryptedFileStorage


def build_store(settings) -> JournalStore:
    """Creates a journal store backed by the encrypted data file."""
    storage = EncryptedFileStorage(settings.data_file, get_encryptor(settings.key_file))
    return JournalStore(storage)


def build_orchestrator(settings=None, client=None) -> IngestionOrchestrator:
    """Wires storage, the Gemini client and the orchestrator together.

    Args:
        settings (Settings, optional): Defaults to `load_settings()`.
        client (optional): A service client to use instead of `GeminiClient`.

    Returns:
        IngestionOrchestrator: The orchestrator, with its store at `.store`.
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)
    store = build_store(settings)
    client = client or GeminiClient.from_settings(settings)
    return IngestionOrchestrator.from_settings(store, client, settings)
