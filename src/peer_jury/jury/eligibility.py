"""
Eligibility resolution for jury selection.

A deliverable may be graded by any registered student who is not on the
team that owns its project.
"""

from typing import Iterable

from peer_jury.models import Project, User


def eligible_jurors(project: Project, users: Iterable[User]) -> tuple[User, ...]:
    """
    Compute the pool of users that may be drawn as jurors.

    Args:
        project: Project owning the deliverable.
        users: All registered users, in registration order.

    Returns:
        Students outside the project team, in the order given. The pool may
        be smaller than the requested jury size; that is not an error here.
    """
    return tuple(u for u in users if u.is_student and not project.has_member(u.username))
