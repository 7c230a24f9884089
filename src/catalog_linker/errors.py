"""
Error types raised at the I/O boundary.

The matching engine itself never raises on well-typed input; these errors
come from the catalog and persistence collaborators and are handled by the
batch reconciler (skip-and-report for loads, retry-then-log for writes).
"""


class CatalogLinkerError(Exception):
    """Base class for all catalog-linker errors."""


class CandidateLoadFailure(CatalogLinkerError):
    """A category's candidate list could not be loaded."""

    def __init__(self, category_id: str, reason: str = ""):
        self.category_id = category_id
        self.reason = reason
        message = f"Could not load candidates for category '{category_id}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class PersistenceWriteFailure(CatalogLinkerError):
    """A match decision or variant flag update could not be written."""

    def __init__(self, operation: str, reason: str = ""):
        self.operation = operation
        self.reason = reason
        message = f"Write failed during {operation}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
