"""Core library for the OpenCSPaper reviewer.

Modules include the data model, conference registry, user configuration,
prompts and response schemas, snapshot storage, text extraction and report
export.
"""

from .types import ReviewStatus, ReviewResult, Submission, merge_results  # re-export for convenience

__all__ = [
    "ReviewStatus",
    "ReviewResult",
    "Submission",
    "merge_results",
]
