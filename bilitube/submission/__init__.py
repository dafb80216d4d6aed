"""
Submission boundary: validation, per-client rate guard and ticket filing.
"""
from .guard import SubmissionRateGuard
from .schema import SubmissionRequest, validate_submission
from .service import SubmissionOutcome, SubmissionService, SubmissionStatus, create_submission_service
from .tickets import GitHubTicketFiler, Ticket

__all__ = [
    "SubmissionRateGuard",
    "SubmissionRequest",
    "validate_submission",
    "SubmissionOutcome",
    "SubmissionService",
    "SubmissionStatus",
    "create_submission_service",
    "GitHubTicketFiler",
    "Ticket",
]
