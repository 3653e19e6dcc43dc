"""Exception hierarchy for the Archival Lens workbench.

Caller-contract violations (unknown ids, illegal status transitions) are
raised synchronously to the caller. Malformed page/cluster data is never
an error: the aggregator skips it.
"""

from __future__ import annotations


class ArchLensError(Exception):
    """Base class for all workbench errors."""


class UnknownAuthorityError(ArchLensError, KeyError):
    """Raised when an authority id is not present in the vocabulary."""

    def __init__(self, authority_id: int) -> None:
        self.authority_id = authority_id
        super().__init__(f"Unknown authority id: {authority_id}")

    def __str__(self) -> str:
        return self.args[0]


class UnknownRecordError(ArchLensError, KeyError):
    """Raised when a reconciliation record id is not in the current list."""

    def __init__(self, record_id: str) -> None:
        self.record_id = record_id
        super().__init__(f"Unknown reconciliation record: {record_id}")

    def __str__(self) -> str:
        return self.args[0]


class UnknownClusterError(ArchLensError, KeyError):
    """Raised when a targeted cluster edit names a missing cluster id."""

    def __init__(self, cluster_id: int) -> None:
        self.cluster_id = cluster_id
        super().__init__(f"Unknown cluster id: {cluster_id}")

    def __str__(self) -> str:
        return self.args[0]


class UnknownPageError(ArchLensError, KeyError):
    """Raised when a page id is not part of the project."""

    def __init__(self, page_id: str) -> None:
        self.page_id = page_id
        super().__init__(f"Unknown page id: {page_id}")

    def __str__(self) -> str:
        return self.args[0]


class InvalidTransitionError(ArchLensError):
    """Raised when a reconciliation status change is not a legal transition."""

    pass


# ---------------------------------------------------------------------------
# Oracle (Gemini) boundary
# ---------------------------------------------------------------------------


class OracleError(ArchLensError):
    """Raised when an external page-analysis/transcription/clustering call fails."""


class RateLimitError(OracleError):
    """Raised when the Gemini API returns a 429 / RESOURCE_EXHAUSTED response."""


class OracleResponseError(OracleError):
    """Raised when the oracle returns output that cannot be parsed or validated."""
