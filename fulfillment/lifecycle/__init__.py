"""
Lifecycle Service

State machines for client requests and job applications, the status
transition service with its audit trail, and post-commit side effects.
"""

from .models import StatusTransitionRecord, TransitionResult
from .side_effects import LifecycleHandlers, SideEffectRegistry, build_default_registry
from .state_machine import (
    APPLICATION_MACHINE,
    ENTITY_APPLICATION,
    ENTITY_REQUEST,
    REQUEST_MACHINE,
    StatusMachine,
    get_machine,
)
from .status_service import StatusTransitionService

__all__ = [
    "StatusMachine",
    "REQUEST_MACHINE",
    "APPLICATION_MACHINE",
    "ENTITY_REQUEST",
    "ENTITY_APPLICATION",
    "get_machine",
    "StatusTransitionRecord",
    "TransitionResult",
    "StatusTransitionService",
    "SideEffectRegistry",
    "LifecycleHandlers",
    "build_default_registry",
]
