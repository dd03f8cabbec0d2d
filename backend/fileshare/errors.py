"""Error taxonomy shared by the record stores and engines.

Stores raise these; engines let them propagate, except that a remote
ConnectionFailureError or TransactionFailureError triggers a one-shot
fallback to the local store. Each class carries the HTTP status the API
renders it with.
"""


class FileShareError(Exception):
    """Base class for all record store and engine errors."""

    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(FileShareError):
    """Raised when a file id does not reference an existing record."""

    status_code = 404

    def __init__(self, file_id: str):
        self.file_id = file_id
        super().__init__(f"File not found: {file_id}")


class InvalidArgumentError(FileShareError):
    """Raised for reactions outside the allowed enum and rejected uploads."""

    status_code = 400


class ConnectionFailureError(FileShareError):
    """Raised when the remote store cannot be reached."""

    status_code = 503


class ConstraintViolationError(FileShareError):
    """Raised when the storage engine rejects a write on a uniqueness or check constraint.

    The reaction state machine never produces such writes, so seeing this
    means an integrity bug or a concurrent writer that slipped past the lock.
    """

    status_code = 409


class TransactionFailureError(FileShareError):
    """Raised when a transaction could not be applied in full and was rolled back."""

    status_code = 500


class QuotaExceededError(FileShareError):
    """Raised when a local store write would exceed its byte quota."""

    status_code = 507

    def __init__(
        self,
        quota_bytes: int,
        used_bytes: int,
        required_bytes: int,
    ) -> None:
        """Initialize QuotaExceededError.

        Args:
            quota_bytes: Total quota limit in bytes.
            used_bytes: Bytes currently persisted.
            required_bytes: Bytes the new state would occupy.
        """
        self.quota_bytes = quota_bytes
        self.used_bytes = used_bytes
        self.required_bytes = required_bytes
        super().__init__(
            f"Storage quota exceeded: need {required_bytes} bytes "
            f"(quota: {quota_bytes}, used: {used_bytes}). Please delete some files.",
        )


# Errors after which an operation is retried once against the local store
FALLBACK_ERRORS = (ConnectionFailureError, TransactionFailureError)
