"""Menu planning workflow façade, commands and results."""

from menuplan.application.planning.commands import (
    AutoFillPlanCommand,
    CreateAssignmentCommand,
    CreatePlanCommand,
    DeleteAssignmentCommand,
    DeletePlanCommand,
    TransitionPlanCommand,
    UpdateAssignmentCommand,
    UpdatePlanCommand,
)
from menuplan.application.planning.result import (
    CommandResult,
    PlanListResult,
    PlanStatusSummary,
)
from menuplan.application.planning.service import MenuPlanningService

__all__ = [
    "AutoFillPlanCommand",
    "CommandResult",
    "CreateAssignmentCommand",
    "CreatePlanCommand",
    "DeleteAssignmentCommand",
    "DeletePlanCommand",
    "MenuPlanningService",
    "PlanListResult",
    "PlanStatusSummary",
    "TransitionPlanCommand",
    "UpdateAssignmentCommand",
    "UpdatePlanCommand",
]
