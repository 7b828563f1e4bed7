from __future__ import annotations


class ReportFormatError(ValueError):
    """Malformed classification report line or depth transition."""


class AssemblySummaryError(ValueError):
    """Assembly summary row that cannot be interpreted."""


class ReconciliationError(RuntimeError):
    """Catalog and tree disagree about which taxa resolve a genome."""


class GenomeFetchError(RuntimeError):
    """A reference genome could not be provided by the genome store."""
