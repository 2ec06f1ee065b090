"""
Batch planning and execution utilities.
"""
from .batch_runner import BatchOutcome, BatchRunner
from .submission_plan import SubmissionPlan, SubmissionSpec, load_submission_plan

__all__ = ["BatchOutcome", "BatchRunner", "SubmissionPlan", "SubmissionSpec", "load_submission_plan"]
