"""
Workload approval state machine.

    pending --submit--> submitted --approve--> approved
                        submitted --reject---> pending

approved is terminal; only the administrative override can move it.
"""

from enum import Enum
from typing import Dict, List, Optional, Tuple

from fastapi import status

from coursetrack.core.enums import WorkloadApproval
from coursetrack.core.exceptions import BusinessError


class WorkloadAction(str, Enum):
    submit = "submit"
    approve = "approve"
    reject = "reject"


TRANSITIONS: Dict[Tuple[WorkloadApproval, WorkloadAction], WorkloadApproval] = {
    (WorkloadApproval.pending, WorkloadAction.submit): WorkloadApproval.submitted,
    (WorkloadApproval.submitted, WorkloadAction.approve): WorkloadApproval.approved,
    (WorkloadApproval.submitted, WorkloadAction.reject): WorkloadApproval.pending,
}

# (message, code, http status) for every refused (state, action) pair
_REFUSALS: Dict[Tuple[WorkloadApproval, WorkloadAction], Tuple[str, str, int]] = {
    (WorkloadApproval.submitted, WorkloadAction.submit): (
        "Workload already submitted and pending approval",
        "ALREADY_SUBMITTED",
        status.HTTP_409_CONFLICT,
    ),
    (WorkloadApproval.approved, WorkloadAction.submit): (
        "Workload already approved. Cannot resubmit.",
        "ALREADY_APPROVED",
        status.HTTP_409_CONFLICT,
    ),
    (WorkloadApproval.pending, WorkloadAction.approve): (
        "Cannot approve workload that has not been submitted",
        "NOT_SUBMITTED",
        status.HTTP_400_BAD_REQUEST,
    ),
    (WorkloadApproval.approved, WorkloadAction.approve): (
        "Workload already approved",
        "ALREADY_APPROVED",
        status.HTTP_409_CONFLICT,
    ),
    (WorkloadApproval.pending, WorkloadAction.reject): (
        "Cannot reject workload that has not been submitted",
        "NOT_SUBMITTED",
        status.HTTP_400_BAD_REQUEST,
    ),
    (WorkloadApproval.approved, WorkloadAction.reject): (
        "Cannot reject workload that has already been approved",
        "ALREADY_APPROVED",
        status.HTTP_400_BAD_REQUEST,
    ),
}


def coerce_state(value: Optional[str]) -> WorkloadApproval:
    """Stored value to enum. Rows predating the column carry NULL, which reads as pending."""
    if value is None:
        return WorkloadApproval.pending
    return WorkloadApproval(value)


def apply_transition(current: Optional[str], action: WorkloadAction) -> WorkloadApproval:
    """Return the next state for action, or raise the BusinessError describing why it is refused."""
    state = coerce_state(current)
    target = TRANSITIONS.get((state, action))
    if target is not None:
        return target
    message, code, http_status = _REFUSALS[(state, action)]
    raise BusinessError(message, code, http_status)


def allowed_actions(current: Optional[str]) -> List[str]:
    state = coerce_state(current)
    return [action.value for (from_state, action) in TRANSITIONS if from_state == state]
