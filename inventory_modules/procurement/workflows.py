"""
Procurement Workflows.

State machine for purchase order processing.  The lifecycle controller
consults it for every status change; nothing else decides which edges
exist.
"""

from inventory_kernel.domain.workflow import Guard, Transition, Workflow
from inventory_kernel.logging_config import get_logger

logger = get_logger("modules.procurement.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

ITEMS_RESOLVABLE = Guard(
    name="items_resolvable",
    description="Every line with a product reference resolves to a stocked item",
)

logger.info(
    "procurement_workflow_guards_defined",
    extra={"guards": [ITEMS_RESOLVABLE.name]},
)


# -----------------------------------------------------------------------------
# Purchase Order Workflow
# -----------------------------------------------------------------------------

PURCHASE_ORDER_WORKFLOW = Workflow(
    name="purchase_order",
    description="Purchase order lifecycle",
    initial_state="pending",
    states=(
        "pending",
        "confirmed",
        "shipped",
        "received",
        "cancelled",
    ),
    transitions=(
        Transition("pending", "confirmed", action="confirm"),
        Transition("confirmed", "shipped", action="ship"),
        Transition("shipped", "received", action="receive", guard=ITEMS_RESOLVABLE, posts_stock=True),
        Transition("pending", "cancelled", action="cancel"),
        Transition("confirmed", "cancelled", action="cancel"),
        Transition("shipped", "cancelled", action="cancel"),
    ),
    terminal_states=("received", "cancelled"),
)

logger.info(
    "procurement_po_workflow_registered",
    extra={
        "workflow_name": PURCHASE_ORDER_WORKFLOW.name,
        "state_count": len(PURCHASE_ORDER_WORKFLOW.states),
        "transition_count": len(PURCHASE_ORDER_WORKFLOW.transitions),
        "initial_state": PURCHASE_ORDER_WORKFLOW.initial_state,
    },
)
