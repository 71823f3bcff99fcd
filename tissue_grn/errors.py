"""Error taxonomy and per-tissue status reporting."""

import enum


class ConfigurationError(ValueError):
    """Fatal misconfiguration; raised before any tissue is processed."""


class DataQualityWarning(UserWarning):
    """Recoverable per-tissue data issue; the pipeline continues."""


class TissueStatus(str, enum.Enum):
    """Outcome of processing one tissue.

    COMPLETED: confirmed interactions, regulons and activity scores produced.
    SKIPPED_NO_OVERLAP: no confirmed interactions after evidence fusion.
    DEGENERATE: interactions exist but no regulon reached the scoring size,
        or the tissue-specific sets are empty.
    """

    COMPLETED = "completed"
    SKIPPED_NO_OVERLAP = "skipped_no_overlap"
    DEGENERATE = "degenerate"
