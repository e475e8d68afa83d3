"""
FastAPI dependencies.

Components are constructed once in create_app() and parked on app.state;
routes reach them through these accessors instead of module-level singletons.
"""

from fastapi import Request

from mediator.bridge.gateway import MediationGateway
from mediator.conversations.store import ConversationStore
from mediator.runs.live_status import LiveStatusFeed
from mediator.runs.registry import RunRegistry


def get_gateway(request: Request) -> MediationGateway:
    return request.app.state.gateway


def get_registry(request: Request) -> RunRegistry:
    return request.app.state.registry


def get_feed(request: Request) -> LiveStatusFeed:
    return request.app.state.feed


def get_conversation_store(request: Request) -> ConversationStore:
    return request.app.state.conversations
