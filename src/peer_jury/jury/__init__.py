"""
Jury Module.

Decides who may grade a deliverable and draws its jury once it is due.
"""

from peer_jury.jury.eligibility import eligible_jurors
from peer_jury.jury.selector import JurySelector

__all__ = [
    "JurySelector",
    "eligible_jurors",
]
