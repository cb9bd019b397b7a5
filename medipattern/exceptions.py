"""
Exception types raised by the MediPattern services.

Callers in the presentation layer catch these to show a message to the user.
Input and extraction errors leave stored data untouched; storage errors mean a
write did not happen.
"""
# medipattern/exceptions.py


class MediPatternError(Exception):
    """Base class for all application errors."""


class ConfigurationError(MediPatternError):
    """Raised when a required setting, such as the API key, is missing."""


class EmptyEntryError(MediPatternError, ValueError):
    """Raised when a journal entry contains no text."""


class ResponseDecodeError(MediPatternError):
    """Raised when a model response does not match the expected schema."""


class ExtractionError(MediPatternError):
    """Raised when a journal entry could not be turned into metrics."""


class ExtractionTimeoutError(ExtractionError):
    """Raised when the extraction service does not answer in time."""


class StorageError(MediPatternError):
    """Raised when the storage medium cannot be written."""


class StorageQuotaExceededError(StorageError):
    """Raised when a write would exceed the storage quota."""


class EntryNotSavedError(StorageError):
    """Raised when an entry was extracted but could not be saved.

    Attributes:
        entry (JournalEntry): The entry that was built from the extraction.
    """
    def __init__(self, message, entry):
        super().__init__(message)
        self.entry = entry


class ReportError(MediPatternError):
    """Raised when a clinician report could not be generated."""


class ReportTimeoutError(ReportError):
    """Raised when the report service does not answer in time."""
