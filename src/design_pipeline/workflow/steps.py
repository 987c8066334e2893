"""Step Workflow - creating, completing, reopening and assigning approval steps"""

from design_pipeline.collaborators.repository import CollaboratorRepository
from design_pipeline.designs.repository import DesignRepository
from design_pipeline.events.models import DesignEvent, DesignEventType, create_design_event
from design_pipeline.events.store import DesignEventStore
from design_pipeline.kernel.database import Transaction
from design_pipeline.kernel.errors import StepsAlreadyInitialized
from design_pipeline.kernel.time import TimeProvider
from design_pipeline.steps.defaults import build_default_steps
from design_pipeline.steps.models import ApprovalStep, ApprovalStepState
from design_pipeline.steps.repository import ApprovalStepRepository
from design_pipeline.workflow.commands import AssignStep, CompleteStep, ReopenStep
from design_pipeline.workflow.invariants import (
    validate_collaborator_on_design,
    validate_step_state,
)


class StepWorkflow:
    def __init__(
        self,
        events: DesignEventStore,
        steps: ApprovalStepRepository,
        designs: DesignRepository,
        collaborators: CollaboratorRepository,
        time_provider: TimeProvider,
    ) -> None:
        self.events = events
        self.steps = steps
        self.designs = designs
        self.collaborators = collaborators
        self.time_provider = time_provider

    def initialize_design_steps(self, trx: Transaction, design_id: str) -> list[ApprovalStep]:
        """
        Create Checkout (CURRENT), Technical Design and Sample (BLOCKED) and
        Production (UNSTARTED) for a new design

        Raises:
            DesignNotFound: If the design does not exist
            StepsAlreadyInitialized: If the design already has steps
        """
        design = self.designs.get(trx, design_id)
        if self.steps.find_by_design(trx, design.id):
            raise StepsAlreadyInitialized(design.id)
        return self.steps.create_all(
            trx, build_default_steps(design.id, self.time_provider.now())
        )

    def complete_step(
        self, trx: Transaction, command: CompleteStep, actor_id: str
    ) -> list[DesignEvent]:
        """
        CURRENT → COMPLETED; the cascade then starts the next step

        Raises:
            StepNotFound: If the step does not exist
            InvalidStepTransition: If the step is not CURRENT
        """
        step = self.steps.get(trx, command.step_id)
        validate_step_state(step, ApprovalStepState.CURRENT, ApprovalStepState.COMPLETED)

        event = self.events.append(
            trx,
            create_design_event(
                design_id=step.design_id,
                actor_id=actor_id,
                type=DesignEventType.STEP_COMPLETE,
                created_at=self.time_provider.now(),
                approval_step_id=step.id,
            ),
        )
        self.steps.update(trx, step.id, {"state": ApprovalStepState.COMPLETED})
        return [event]

    def reopen_step(
        self, trx: Transaction, command: ReopenStep, actor_id: str
    ) -> list[DesignEvent]:
        """
        COMPLETED → CURRENT; the cascade rewinds every later step

        Raises:
            StepNotFound: If the step does not exist
            InvalidStepTransition: If the step is not COMPLETED
        """
        step = self.steps.get(trx, command.step_id)
        validate_step_state(step, ApprovalStepState.COMPLETED, ApprovalStepState.CURRENT)

        event = self.events.append(
            trx,
            create_design_event(
                design_id=step.design_id,
                actor_id=actor_id,
                type=DesignEventType.STEP_REOPEN,
                created_at=self.time_provider.now(),
                approval_step_id=step.id,
            ),
        )
        self.steps.update(trx, step.id, {"state": ApprovalStepState.CURRENT})
        return [event]

    def assign_step(
        self, trx: Transaction, command: AssignStep, actor_id: str
    ) -> list[DesignEvent]:
        """
        Assign a step to a collaborator of its design, or unassign it

        Raises:
            StepNotFound: If the step does not exist
            CollaboratorNotFound: If the collaborator does not exist
            CollaboratorNotOnDesign: If the collaborator belongs to another design
        """
        step = self.steps.get(trx, command.step_id)
        if step.collaborator_id == command.collaborator_id:
            return []

        if command.collaborator_id is None:
            event_type = DesignEventType.STEP_UNASSIGNMENT
            previous = (
                self.collaborators.get(trx, step.collaborator_id)
                if step.collaborator_id
                else None
            )
            target_id = previous.user_id if previous else None
            target_team_id = previous.team_id if previous else None
        else:
            event_type = DesignEventType.STEP_ASSIGNMENT
            collaborator = self.collaborators.get(trx, command.collaborator_id)
            validate_collaborator_on_design(collaborator, step.design_id)
            target_id = collaborator.user_id
            target_team_id = collaborator.team_id

        event = self.events.append(
            trx,
            create_design_event(
                design_id=step.design_id,
                actor_id=actor_id,
                type=event_type,
                created_at=self.time_provider.now(),
                approval_step_id=step.id,
                target_id=target_id,
                target_team_id=target_team_id,
            ),
        )
        self.steps.update(
            trx,
            step.id,
            {"collaborator_id": command.collaborator_id, "team_user_id": None},
        )
        return [event]
