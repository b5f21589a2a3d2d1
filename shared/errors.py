"""Error taxonomy for the support AI bridge.

Transient upstream errors are retried close to the call, malformed responses
are treated like transient ones, and caller errors surface immediately with
a specific HTTP status in the routers.
"""

from typing import Any


class SupportBridgeError(Exception):
    """Base class for all errors raised by the bridge."""


##########################################
########## TRANSIENT / UPSTREAM ##########
##########################################

class UpstreamRequestError(SupportBridgeError):
    """An upstream service answered with a non-success HTTP status."""

    def __init__(self, status_code: int, url: str, body: str = "") -> None:
        super().__init__(f"Request to {url} failed with status {status_code}")
        self.status_code = status_code
        self.url = url
        self.body = body

    def is_rate_limited(self) -> bool:
        return self.status_code == 429

    def is_server_error(self) -> bool:
        return self.status_code >= 500


class EmbeddingModelLoadingError(SupportBridgeError):
    """The embedding backend reported that the model is still loading."""


class InvalidEmbeddingError(SupportBridgeError):
    """The embedding payload was not a numeric vector of the expected dimension."""


class RetryExhaustedError(SupportBridgeError):
    """Every attempt allowed by a retry policy failed."""

    def __init__(self, attempts: int, last_error: Exception | None) -> None:
        super().__init__(f"Giving up after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error


##########################################
############# CALLER ERRORS ##############
##########################################

class UnsupportedFormatError(SupportBridgeError):
    """The document type or source type cannot be chunked."""


class MissingFileError(SupportBridgeError):
    """No file was provided for ingestion."""


class DocumentParseError(SupportBridgeError):
    """A supported document could not be parsed into text."""


class QuotaExceededError(SupportBridgeError):
    """A non-privileged user exhausted the daily chat allowance."""

    def __init__(self, user_id: str, message_count: int, limit: int) -> None:
        super().__init__("Message limit reached for today. Contact an admin for unlimited messages.")
        self.user_id = user_id
        self.message_count = message_count
        self.limit = limit


class SourceBusyError(SupportBridgeError):
    """An ingestion job for the same source is still pending or running."""

    def __init__(self, source_name: str, job_id: str) -> None:
        super().__init__(f"Document '{source_name}' is already being ingested by job {job_id}.")
        self.source_name = source_name
        self.job_id = job_id


class JobNotFoundError(SupportBridgeError):
    """No ingestion job exists for the requested id."""


##########################################
############ BATCH FAILURES ##############
##########################################

class IngestFailedError(SupportBridgeError):
    """No chunk of a non-empty document could be stored."""

    def __init__(self, result: Any) -> None:
        super().__init__(
            f"Failed to process any chunks of document '{result.source_name}' "
            f"(0/{result.total_chunks} chunks stored)."
        )
        self.result = result
