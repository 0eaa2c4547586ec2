"""
Service request status workflow

The transition table is the single source of truth for which status moves
are legal. RequestService.update_status is the only caller that applies a
move; everything else just asks questions.
"""
from typing import Dict, FrozenSet, List, Optional, Tuple

from servicedesk.core.exceptions import InvalidStatusTransitionError
from servicedesk.models.enums import RequestStatus

S = RequestStatus

STATUS_TRANSITIONS: Dict[RequestStatus, Tuple[RequestStatus, ...]] = {
    S.DRAFT: (S.SUBMITTED, S.CANCELLED),
    S.SUBMITTED: (S.UNDER_REVIEW, S.REJECTED, S.CANCELLED),
    S.UNDER_REVIEW: (S.APPROVED, S.REJECTED, S.ON_HOLD, S.CANCELLED),
    S.APPROVED: (S.IN_PROGRESS, S.CANCELLED),
    S.IN_PROGRESS: (S.COMPLETED, S.ON_HOLD, S.CANCELLED),
    S.ON_HOLD: (S.IN_PROGRESS, S.UNDER_REVIEW, S.CANCELLED),
    S.COMPLETED: (S.DELIVERED,),
    S.REJECTED: (),
    S.DELIVERED: (),
    S.CANCELLED: (),
}

INITIAL_STATUS = S.DRAFT

TERMINAL_STATUSES: FrozenSet[RequestStatus] = frozenset(
    status for status, targets in STATUS_TRANSITIONS.items() if not targets
)

# Moves a customer may make on their own request
CUSTOMER_ALLOWED_TARGETS: FrozenSet[RequestStatus] = frozenset({S.SUBMITTED, S.CANCELLED})


def allowed_transitions(current: RequestStatus) -> List[RequestStatus]:
    """Destinations reachable from `current`, in table order."""
    return list(STATUS_TRANSITIONS.get(RequestStatus(current), ()))


def is_terminal(status: RequestStatus) -> bool:
    return RequestStatus(status) in TERMINAL_STATUSES


def can_transition(current: RequestStatus, target: RequestStatus) -> bool:
    return RequestStatus(target) in STATUS_TRANSITIONS.get(RequestStatus(current), ())


def validate_transition(current: RequestStatus, target: RequestStatus) -> None:
    """
    Raise InvalidStatusTransitionError unless current → target is an edge.

    The error lists every destination allowed from `current`.
    """
    current = RequestStatus(current)
    target = RequestStatus(target)
    if not can_transition(current, target):
        raise InvalidStatusTransitionError(
            current_status=current.value,
            requested_status=target.value,
            allowed=[s.value for s in allowed_transitions(current)],
        )


def transition_side_effects(
    target: RequestStatus,
    reason: Optional[str] = None,
    reason_ar: Optional[str] = None,
    now=None,
) -> Dict[str, object]:
    """
    Column updates that accompany a move into `target`.

    REJECTED and CANCELLED capture the (unvalidated) bilingual reason;
    COMPLETED and DELIVERED stamp their timestamp. Other targets change
    nothing besides the status itself.
    """
    target = RequestStatus(target)
    if target == S.REJECTED:
        return {"rejection_reason": reason, "rejection_reason_ar": reason_ar}
    if target == S.CANCELLED:
        return {"cancellation_reason": reason, "cancellation_reason_ar": reason_ar}
    if target == S.COMPLETED:
        return {"completed_at": now}
    if target == S.DELIVERED:
        return {"delivered_at": now}
    return {}
