"""Access review request building and verdict evaluation (no I/O)."""

from __future__ import annotations

import logging

from meshauthz.authz.errors import NotAuthorizedError
from meshauthz.authz.models import AccessQuery, AccessVerdict, GroupKind, ResourceDescriptor, SubjectDescriptor

logger = logging.getLogger(__name__)


def build_self_query(resource: ResourceDescriptor) -> AccessQuery:
    """Query evaluated against the caller's own credential."""
    return AccessQuery(resource=resource)


def build_subject_query(resource: ResourceDescriptor, subject: SubjectDescriptor) -> AccessQuery:
    """Query evaluated on behalf of `subject` (user + groups)."""
    return AccessQuery(resource=resource, subject=subject)


def evaluate_access_review_status(group_kind: GroupKind, verdict: AccessVerdict) -> None:
    """
    Map a server-reported verdict to success or `NotAuthorizedError`.

    The server's reason, when present, is carried through verbatim; the verdict itself
    is never overridden locally.
    """
    if verdict.allowed:
        logger.debug("Access to %s allowed", group_kind)
        return None

    logger.debug("Access to %s denied (reason=%r)", group_kind, verdict.reason)
    raise NotAuthorizedError(group_kind, verdict.reason)
