"""
Grading Module.

Grade ledger with time-boxed edits and the trimmed-mean aggregator.
"""

from peer_jury.grading.aggregator import MIN_GRADES_FOR_SCORE, final_score
from peer_jury.grading.ledger import GradeLedger, normalize_grade_value

__all__ = [
    "GradeLedger",
    "MIN_GRADES_FOR_SCORE",
    "final_score",
    "normalize_grade_value",
]
