"""
Submission state transitions

The allowed moves are an explicit table. Adding a transition means adding it
here and, if the target state is new, mapping it to the design event that
records it; nothing else in the workflow guesses at submission rules.
"""

from types import MappingProxyType

from design_pipeline.events.models import DesignEventType
from design_pipeline.submissions.models import SubmissionState

ALLOWED_TRANSITIONS: MappingProxyType[SubmissionState, frozenset[SubmissionState]] = (
    MappingProxyType(
        {
            SubmissionState.UNSUBMITTED: frozenset(
                {SubmissionState.SUBMITTED, SubmissionState.APPROVED}
            ),
            SubmissionState.SUBMITTED: frozenset(
                {
                    SubmissionState.APPROVED,
                    SubmissionState.REVISION_REQUESTED,
                    SubmissionState.UNSUBMITTED,
                }
            ),
            SubmissionState.REVISION_REQUESTED: frozenset(
                {
                    SubmissionState.SUBMITTED,
                    SubmissionState.APPROVED,
                    SubmissionState.UNSUBMITTED,
                }
            ),
            SubmissionState.APPROVED: frozenset(
                {SubmissionState.SUBMITTED, SubmissionState.UNSUBMITTED}
            ),
            SubmissionState.SKIPPED: frozenset(),
        }
    )
)

# Event appended when a submission enters a state
STATE_EVENTS: MappingProxyType[SubmissionState, DesignEventType] = MappingProxyType(
    {
        SubmissionState.UNSUBMITTED: DesignEventType.STEP_SUBMISSION_UNSTARTED,
        SubmissionState.SUBMITTED: DesignEventType.STEP_SUBMISSION_RE_REVIEW_REQUEST,
        SubmissionState.APPROVED: DesignEventType.STEP_SUBMISSION_APPROVAL,
        SubmissionState.REVISION_REQUESTED: DesignEventType.REVISION_REQUEST,
    }
)


def can_transition(current: SubmissionState, target: SubmissionState) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())
