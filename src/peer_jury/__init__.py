"""
Peer Jury - anonymous peer grading for team deliverables.

Students publish deliverables for their projects, a randomly drawn jury
of peers grades each one inside a bounded edit window, and supervisors
see only identity-stripped aggregates.
"""

__version__ = "1.0.0"
__author__ = "Peer Jury Team"
