"""
Mediator - human-in-the-loop mediation bridge.

Lets a detached agent run pause mid-task and wait for a human decision
(tool permission or multiple-choice question).

Example:
    from mediator import MediationGateway, PendingRequestStore

    gateway = MediationGateway(PendingRequestStore())
    request_id = gateway.notify("permission", {"toolName": "edit_file", "toolInput": {}}, "run-1")
    gateway.decide(request_id, {"approved": True})
"""

from mediator.bridge.gateway import MediationGateway
from mediator.bridge.store import PendingRequestStore
from mediator.bridge.waiter import MediationWaiter, WaiterState
from mediator.conversations.correlator import LiveStatusCorrelator, merge_live_status

__version__ = "0.1.0"

__all__ = [
    "MediationGateway",
    "PendingRequestStore",
    "MediationWaiter",
    "WaiterState",
    "LiveStatusCorrelator",
    "merge_live_status",
]
