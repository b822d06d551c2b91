"""
Status Transition Service

Applies status changes to client requests and job applications through their
state machines, keeps the append-only audit trail and triggers registered
side effects after commit.
"""

from __future__ import annotations

import logging
from typing import Any

import psycopg2
from psycopg2 import errors as pg_errors

from fulfillment.shared import Database, NotFoundError, ValidationError

from .models import StatusTransitionRecord, TransitionResult
from .queries import (
    AUDIT_SAVEPOINT,
    AUDIT_SAVEPOINT_RELEASE,
    AUDIT_SAVEPOINT_ROLLBACK,
    GET_APPLICATION_STATUS_FOR_UPDATE,
    GET_REQUEST_STATUS_FOR_UPDATE,
    GET_STATUS_HISTORY,
    INSERT_STATUS_TRANSITION,
    UPDATE_APPLICATION_STATUS,
    UPDATE_REQUEST_STATUS,
)
from .side_effects import SideEffectRegistry
from .state_machine import ENTITY_APPLICATION, ENTITY_REQUEST, StatusMachine, get_machine

logger = logging.getLogger(__name__)

_LOCK_QUERIES = {
    ENTITY_REQUEST: GET_REQUEST_STATUS_FOR_UPDATE,
    ENTITY_APPLICATION: GET_APPLICATION_STATUS_FOR_UPDATE,
}


class StatusTransitionService:
    """Service for moving requests and applications between statuses."""

    def __init__(self, database: Database, side_effects: SideEffectRegistry | None = None):
        """Initialize the status transition service.

        Args:
            database: Database connection interface
            side_effects: Handlers to run after a committed transition
        """
        if not database:
            raise ValueError("Database is required")
        self.db = database
        self.side_effects = side_effects or SideEffectRegistry()

    def transition(
        self,
        entity_id: str,
        entity_type: str,
        target: str,
        actor: str,
        comment: str | None = None,
    ) -> TransitionResult:
        """Move an entity to a new status along a declared edge.

        The status update and the audit record are written in one transaction
        with the entity row locked. Side effects run after commit.

        Args:
            entity_id: Request or application ID
            entity_type: "request" or "application"
            target: Requested status
            actor: Who is making the change
            comment: Optional comment stored with the audit record

        Returns:
            TransitionResult; its record is None when the entity was already
            in the target status

        Raises:
            ValidationError: Unknown entity type or status, or missing actor
            NotFoundError: Entity does not exist
            InvalidTransitionError: Target is not an allowed next status
        """
        machine = get_machine(entity_type)
        if not machine.is_known(target):
            raise ValidationError(
                f"Unknown {entity_type} status '{target}'. "
                f"Must be one of: {', '.join(sorted(machine.statuses))}"
            )
        if not actor or not str(actor).strip():
            raise ValidationError("actor is required")

        with self.db.transaction() as cur:
            current = self._lock_status(cur, entity_id, entity_type)
            if current == target:
                logger.info(f"{entity_type} {entity_id} already '{target}', nothing to do")
                return TransitionResult(
                    entity_id=str(entity_id), entity_type=entity_type, status=current
                )

            machine.validate_transition(current, target)
            record = self._apply(cur, machine, entity_id, current, target, actor, comment)

        logger.info(
            f"Transitioned {entity_type} {entity_id} from '{current}' to '{target}' by {actor}"
        )
        self.run_side_effects(record)
        return TransitionResult(
            entity_id=str(entity_id), entity_type=entity_type, status=target, record=record
        )

    def advance_via_system_path(
        self,
        cur,
        entity_id: str,
        entity_type: str,
        target: str,
        actor: str,
        comment: str | None = None,
    ) -> list[StatusTransitionRecord]:
        """Drive an entity to a system-owned status inside the caller's transaction.

        Walks the shortest chain of declared edges from the current status,
        system-only edges included, writing one audit record per hop. The
        caller owns the transaction and runs side effects after its commit.

        Args:
            cur: Cursor of the caller's open transaction

        Returns:
            Audit records of every hop, in order (empty when already there)

        Raises:
            NotFoundError: Entity does not exist
            InvalidTransitionError: Target is unreachable from the current status
        """
        machine = get_machine(entity_type)
        current = self._lock_status(cur, entity_id, entity_type)

        records = []
        for next_status in machine.path_to(current, target):
            records.append(
                self._apply(cur, machine, entity_id, current, next_status, actor, comment)
            )
            current = next_status

        if records:
            path = " -> ".join([records[0].from_status] + [r.to_status for r in records])
            logger.info(f"System path for {entity_type} {entity_id}: {path} by {actor}")
        return records

    def run_side_effects(self, record: StatusTransitionRecord) -> None:
        """Run the handlers registered for a committed transition."""
        failures = self.side_effects.run(record)
        if failures:
            logger.warning(
                f"{failures} side effect(s) failed for {record.entity_type} "
                f"{record.entity_id} -> {record.to_status}"
            )

    def get_history(self, entity_id: str, entity_type: str) -> list[StatusTransitionRecord]:
        """Get the audit trail of an entity, oldest first.

        Raises:
            ValidationError: Unknown entity type
        """
        get_machine(entity_type)
        with self.db.get_cursor() as cur:
            try:
                cur.execute(GET_STATUS_HISTORY, (entity_id, entity_type))
            except pg_errors.InvalidTextRepresentation:
                return []
            columns = [desc[0] for desc in cur.description]
            rows = [dict(zip(columns, row)) for row in cur.fetchall()]

        return [StatusTransitionRecord.from_row(row) for row in rows]

    def allowed_targets(self, entity_type: str, status: str) -> list[str]:
        """Statuses a caller may move an entity to from ``status``."""
        return get_machine(entity_type).allowed_targets(status)

    def _lock_status(self, cur, entity_id: str, entity_type: str) -> str:
        try:
            cur.execute(_LOCK_QUERIES[entity_type], (entity_id,))
            row = cur.fetchone()
        except pg_errors.InvalidTextRepresentation:
            # Not a well-formed id, so no such entity
            row = None
        if not row:
            raise NotFoundError(
                f"{entity_type.capitalize()} {entity_id} not found",
                entity_type=entity_type,
                entity_id=str(entity_id),
            )
        return row[1]

    def _apply(
        self,
        cur,
        machine: StatusMachine,
        entity_id: str,
        current: str,
        target: str,
        actor: str,
        comment: str | None,
    ) -> StatusTransitionRecord:
        if machine.entity_type == ENTITY_APPLICATION:
            cur.execute(UPDATE_APPLICATION_STATUS, (target, comment, entity_id))
        else:
            cur.execute(UPDATE_REQUEST_STATUS, (target, entity_id))

        record = StatusTransitionRecord(
            entity_id=str(entity_id),
            entity_type=machine.entity_type,
            from_status=current,
            to_status=target,
            actor=str(actor),
            comment=comment,
        )
        return self._append_audit(cur, record)

    def _append_audit(self, cur, record: StatusTransitionRecord) -> StatusTransitionRecord:
        """Insert the audit record under a savepoint.

        A failed insert is rolled back to the savepoint and logged; the status
        change it describes still commits.
        """
        cur.execute(AUDIT_SAVEPOINT)
        try:
            cur.execute(
                INSERT_STATUS_TRANSITION,
                (
                    record.entity_id,
                    record.entity_type,
                    record.from_status,
                    record.to_status,
                    record.actor,
                    record.comment,
                ),
            )
            row: Any = cur.fetchone()
        except psycopg2.Error as e:
            cur.execute(AUDIT_SAVEPOINT_ROLLBACK)
            logger.warning(
                f"Failed to write audit record for {record.entity_type} {record.entity_id} "
                f"({record.from_status} -> {record.to_status}): {e}"
            )
            return record

        cur.execute(AUDIT_SAVEPOINT_RELEASE)
        if not row:
            return record
        return StatusTransitionRecord(
            id=row[0],
            entity_id=record.entity_id,
            entity_type=record.entity_type,
            from_status=record.from_status,
            to_status=record.to_status,
            actor=record.actor,
            comment=record.comment,
            created_at=row[1],
        )
