"""Review aggregation rule.

Maps the decisions recorded on a paper's reviews to the paper's overall
status.  This is the only place that derives paper status from reviews.
"""

from typing import Iterable

from ..core.models import PaperStatus, Review, ReviewStatus


def aggregate(
    reviews: Iterable[Review],
    current: PaperStatus = PaperStatus.UNDER_REVIEW,
) -> PaperStatus:
    """Return the paper status implied by ``reviews``.

    - no reviews: ``current`` is returned unchanged
    - every review ACCEPTED: ACCEPTED
    - any review REVISION_REQUESTED: REVISION_REQUESTED
    - otherwise (pending reviews, none requesting revision): UNDER_REVIEW

    Acceptance must be unanimous; a single revision request outweighs any
    number of acceptances and also dominates pending reviews.
    """
    statuses = [r.status for r in reviews]
    if not statuses:
        return current
    if all(s == ReviewStatus.ACCEPTED for s in statuses):
        return PaperStatus.ACCEPTED
    if any(s == ReviewStatus.REVISION_REQUESTED for s in statuses):
        return PaperStatus.REVISION_REQUESTED
    return PaperStatus.UNDER_REVIEW
