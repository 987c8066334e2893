"""
Submission Workflow

Assignment and state changes of approval step submissions. Every accepted
change appends exactly one design event; a request that changes nothing
appends none.
"""

from design_pipeline.collaborators.repository import CollaboratorRepository, TeamUserRepository
from design_pipeline.events.models import DesignEvent, DesignEventType, create_design_event
from design_pipeline.events.store import DesignEventStore
from design_pipeline.kernel.database import Transaction
from design_pipeline.kernel.errors import InvalidStateError
from design_pipeline.kernel.ids import generate_id
from design_pipeline.kernel.time import TimeProvider
from design_pipeline.steps.models import ApprovalStep
from design_pipeline.steps.repository import ApprovalStepRepository
from design_pipeline.submissions.models import (
    ApprovalStepSubmission,
    SubmissionArtifactType,
    SubmissionState,
)
from design_pipeline.submissions.repository import ApprovalSubmissionRepository
from design_pipeline.submissions.transitions import STATE_EVENTS
from design_pipeline.workflow.commands import (
    AssignSubmission,
    CreateSubmission,
    TransitionSubmission,
)
from design_pipeline.workflow.invariants import (
    validate_assignee_change_allowed,
    validate_collaborator_on_design,
    validate_single_assignee,
    validate_submission_transition,
)


class SubmissionWorkflow:
    def __init__(
        self,
        events: DesignEventStore,
        submissions: ApprovalSubmissionRepository,
        steps: ApprovalStepRepository,
        collaborators: CollaboratorRepository,
        team_users: TeamUserRepository,
        time_provider: TimeProvider,
    ) -> None:
        self.events = events
        self.submissions = submissions
        self.steps = steps
        self.collaborators = collaborators
        self.team_users = team_users
        self.time_provider = time_provider

    def create_submission(
        self, trx: Transaction, command: CreateSubmission
    ) -> ApprovalStepSubmission:
        step = self.steps.get(trx, command.step_id)
        [submission] = self.submissions.create_all(
            trx,
            [
                ApprovalStepSubmission(
                    id=generate_id(),
                    step_id=step.id,
                    title=command.title,
                    artifact_type=SubmissionArtifactType.CUSTOM,
                    created_at=self.time_provider.now(),
                )
            ],
        )
        return submission

    def delete_submission(self, trx: Transaction, submission_id: str) -> None:
        """
        Soft-delete a submission nobody has started on

        Raises:
            SubmissionNotFound: If the submission does not exist
            InvalidStateError: If it is assigned or no longer UNSUBMITTED
        """
        submission = self.submissions.get(trx, submission_id)
        if submission.state != SubmissionState.UNSUBMITTED or submission.is_assigned:
            raise InvalidStateError(
                f"Submission {submission.id} is in progress and cannot be deleted"
            )
        self.submissions.delete(trx, submission.id, self.time_provider.now())

    def assign_submission(
        self, trx: Transaction, command: AssignSubmission, actor_id: str
    ) -> list[DesignEvent]:
        """
        Assign a submission to a collaborator or a team user; neither unassigns

        Raises:
            InvalidAssignee: If both a collaborator and a team user are given
            AssigneeLockedAfterApproval: If the submission is APPROVED
            CollaboratorNotOnDesign: If the collaborator belongs to another design
            SubmissionNotFound / CollaboratorNotFound / TeamUserNotFound
        """
        validate_single_assignee(command.collaborator_id, command.team_user_id)
        submission = self.submissions.get(trx, command.submission_id)
        validate_assignee_change_allowed(submission)

        if (
            submission.collaborator_id == command.collaborator_id
            and submission.team_user_id == command.team_user_id
        ):
            return []

        target_id: str | None = None
        target_team_id: str | None = None
        if command.collaborator_id is not None:
            collaborator = self.collaborators.get(trx, command.collaborator_id)
            step = self.steps.get(trx, submission.step_id)
            validate_collaborator_on_design(collaborator, step.design_id)
            target_id, target_team_id = collaborator.user_id, collaborator.team_id
            event_type = DesignEventType.STEP_SUBMISSION_ASSIGNMENT
        elif command.team_user_id is not None:
            team_user = self.team_users.get(trx, command.team_user_id)
            target_id = team_user.user_id
            event_type = DesignEventType.STEP_SUBMISSION_ASSIGNMENT
        else:
            event_type = DesignEventType.STEP_SUBMISSION_UNASSIGNMENT

        self.submissions.update(
            trx,
            submission,
            collaborator_id=command.collaborator_id,
            team_user_id=command.team_user_id,
            assignee=True,
        )
        return [
            self._append(
                trx,
                submission,
                event_type,
                actor_id,
                target_id=target_id,
                target_team_id=target_team_id,
            )
        ]

    def approve_submission(
        self, trx: Transaction, submission_id: str, actor_id: str
    ) -> list[DesignEvent]:
        """
        Raises:
            SubmissionAlreadyApproved: If the submission is already APPROVED
        """
        return self.transition_submission(
            trx,
            TransitionSubmission(submission_id=submission_id, state=SubmissionState.APPROVED),
            actor_id,
        )

    def request_revision(
        self, trx: Transaction, submission_id: str, actor_id: str
    ) -> list[DesignEvent]:
        return self.transition_submission(
            trx,
            TransitionSubmission(
                submission_id=submission_id, state=SubmissionState.REVISION_REQUESTED
            ),
            actor_id,
        )

    def transition_submission(
        self, trx: Transaction, command: TransitionSubmission, actor_id: str
    ) -> list[DesignEvent]:
        """
        Move a submission along ALLOWED_TRANSITIONS and record the matching event

        Requesting the state the submission is already in is a no-op, except
        for APPROVED, which is a conflict.

        Raises:
            SubmissionNotFound: If the submission does not exist
            SubmissionAlreadyApproved: If approving an approved submission
            InvalidSubmissionTransition: If the move is not allowed
        """
        submission = self.submissions.get(trx, command.submission_id)
        if submission.state == command.state and command.state != SubmissionState.APPROVED:
            return []
        validate_submission_transition(submission, command.state)

        self.submissions.update(trx, submission, state=command.state)
        return [self._append(trx, submission, STATE_EVENTS[command.state], actor_id)]

    def _append(
        self,
        trx: Transaction,
        submission: ApprovalStepSubmission,
        event_type: DesignEventType,
        actor_id: str,
        **targets: str | None,
    ) -> DesignEvent:
        step: ApprovalStep = self.steps.get(trx, submission.step_id)
        return self.events.append(
            trx,
            create_design_event(
                design_id=step.design_id,
                actor_id=actor_id,
                type=event_type,
                created_at=self.time_provider.now(),
                approval_step_id=step.id,
                approval_submission_id=submission.id,
                **targets,
            ),
        )
