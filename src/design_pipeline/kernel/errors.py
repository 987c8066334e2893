"""
Custom exceptions for the design pipeline

Errors are grouped by how a caller should surface them: conflicts (409),
missing resources (404) and invalid state transitions (400). Database errors
that are not a recognized business conflict are never wrapped; they propagate
as the original sqlite3 exception and roll back the enclosing transaction.
"""


class PipelineError(Exception):
    """Base exception for all design pipeline errors"""

    status_code = 500


# Conflicts


class ConflictError(PipelineError):
    """Base class for expected business conflicts"""

    status_code = 409


class DuplicateAcceptRejectError(ConflictError):
    """
    Raised when a bid already has an accept or reject decision

    Backed by the one_accept_or_reject_per_bid unique index, so it is raised
    both by the pre-check and by a concurrent insert losing the race.
    """

    def __init__(self, bid_id: str | None = None) -> None:
        self.bid_id = bid_id
        super().__init__("This bid has already been accepted or rejected")


class ActiveBidExists(ConflictError):
    """Raised when the assignee already holds a live bid on the quote"""

    def __init__(self, quote_id: str, assignee_id: str) -> None:
        self.quote_id = quote_id
        self.assignee_id = assignee_id
        super().__init__(
            f"Quote {quote_id} already has an active bid for assignee {assignee_id}"
        )


class NoActiveInvoice(ConflictError):
    """Raised when a collection has no invoice to reverse"""

    def __init__(self, collection_id: str) -> None:
        self.collection_id = collection_id
        super().__init__(f"Collection {collection_id} has no active invoice")


class CheckoutAlreadyReversed(ConflictError):
    """Raised when every invoice of a collection is already fully credited"""

    def __init__(self, collection_id: str) -> None:
        self.collection_id = collection_id
        super().__init__(f"Checkout for collection {collection_id} was already reversed")


class SubmissionAlreadyApproved(ConflictError):
    """Raised when approving a submission that is already APPROVED"""

    def __init__(self, submission_id: str) -> None:
        self.submission_id = submission_id
        super().__init__(f"Submission {submission_id} is already approved")


class StepsAlreadyInitialized(ConflictError):
    """Raised when default steps are requested for a design that has steps"""

    def __init__(self, design_id: str) -> None:
        self.design_id = design_id
        super().__init__(f"Design {design_id} already has approval steps")


# Missing resources


class ResourceNotFound(PipelineError):
    """Base class for unknown ids referenced by an operation"""

    status_code = 404
    resource = "Resource"

    def __init__(self, resource_id: str) -> None:
        self.resource_id = resource_id
        super().__init__(f"{self.resource} {resource_id} not found")


class DesignNotFound(ResourceNotFound):
    resource = "Design"


class BidNotFound(ResourceNotFound):
    resource = "Bid"


class StepNotFound(ResourceNotFound):
    resource = "Approval step"


class SubmissionNotFound(ResourceNotFound):
    resource = "Approval submission"


class QuoteNotFound(ResourceNotFound):
    resource = "Pricing quote"


class CollaboratorNotFound(ResourceNotFound):
    resource = "Collaborator"


class TeamUserNotFound(ResourceNotFound):
    resource = "Team user"


# Invalid state


class InvalidStateError(PipelineError):
    """Raised when an operation is not allowed in the current state"""

    status_code = 400


class NotAssignedToBid(InvalidStateError):
    """Raised when the actor is not the bid's assignee"""

    def __init__(self, bid_id: str, actor_id: str) -> None:
        self.bid_id = bid_id
        self.actor_id = actor_id
        super().__init__("You may only accept or reject a bid you have been assigned to")


class BidNotOpen(InvalidStateError):
    """Raised when a bid decision is attempted on a removed or expired bid"""

    def __init__(self, bid_id: str, state: str) -> None:
        self.bid_id = bid_id
        self.state = state
        super().__init__(f"Bid {bid_id} is {state} and can no longer be decided")


class MissingRejectionReason(InvalidStateError):
    """Raised when a bid rejection carries no reason"""

    def __init__(self, bid_id: str) -> None:
        self.bid_id = bid_id
        super().__init__(f"Rejecting bid {bid_id} requires at least one reason")


class AssigneeLockedAfterApproval(InvalidStateError):
    """Raised when re-assigning a submission that is already approved"""

    def __init__(self, submission_id: str) -> None:
        self.submission_id = submission_id
        super().__init__(
            f"Submission {submission_id} is approved, its assignee cannot change"
        )


class InvalidAssignee(InvalidStateError):
    """Raised when both a collaborator and a team user are given as assignee"""

    def __init__(self) -> None:
        super().__init__("Assignee must be a collaborator or a team user, not both")


class CollaboratorNotOnDesign(InvalidStateError):
    """Raised when assigning work to a collaborator of another design"""

    def __init__(self, collaborator_id: str, design_id: str) -> None:
        self.collaborator_id = collaborator_id
        self.design_id = design_id
        super().__init__(f"Collaborator {collaborator_id} is not on design {design_id}")


class InvalidStepTransition(InvalidStateError):
    """Raised when a step operation does not match the step's current state"""

    def __init__(self, step_id: str, current_state: str, target_state: str) -> None:
        self.step_id = step_id
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(
            f"Approval step {step_id} cannot move from {current_state} to {target_state}"
        )


class InvalidSubmissionTransition(InvalidStateError):
    """Raised when a submission transition is missing from the transition table"""

    def __init__(self, submission_id: str, current_state: str, target_state: str) -> None:
        self.submission_id = submission_id
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(
            f"Submission {submission_id} cannot move from {current_state} to {target_state}"
        )


class EmptyCollection(InvalidStateError):
    """Raised when a quote is committed for a collection without designs"""

    def __init__(self, collection_id: str) -> None:
        self.collection_id = collection_id
        super().__init__(f"Collection {collection_id} has no designs")
