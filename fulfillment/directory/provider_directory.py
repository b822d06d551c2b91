"""Service for reading providers from the directory."""

from __future__ import annotations

import logging
from itertools import groupby
from typing import Any

from psycopg2 import errors as pg_errors

from fulfillment.shared import Database

from .models import Provider
from .queries import GET_PROVIDER_BY_ID, GET_PROVIDER_SERVICE, GET_PROVIDERS_FOR_SERVICE_TYPE

logger = logging.getLogger(__name__)


class ProviderDirectory:
    """
    Read-only provider directory.

    The core never writes providers through this class; the one write path
    (provisioning from an approved application) lives in the lifecycle side
    effects.
    """

    def __init__(self, database: Database):
        """Initialize the provider directory.

        Args:
            database: Database connection interface
        """
        if not database:
            raise ValueError("Database is required")
        self.db = database

    def query_providers(
        self, service_type: str, area: str | None = None, active_only: bool = True
    ) -> list[Provider]:
        """
        Get candidate providers offering a service type.

        Args:
            service_type: Service type the provider must offer
            area: Optional free-text area; providers whose location contains it match
            active_only: Exclude deactivated providers (default: True)

        Returns:
            List of providers ordered by id
        """
        params = {
            "service_type": service_type,
            "active_only": active_only,
            "area_pattern": f"%{area.strip()}%" if area and area.strip() else None,
        }
        with self.db.get_cursor() as cur:
            cur.execute(GET_PROVIDERS_FOR_SERVICE_TYPE, params)
            rows = _fetch_dicts(cur)

        providers = [
            Provider.from_rows(list(provider_rows))
            for _, provider_rows in groupby(rows, key=lambda row: str(row["provider_id"]))
        ]
        logger.debug(f"Directory returned {len(providers)} provider(s) for {service_type}")
        return providers

    def get_provider(self, provider_id: str) -> Provider | None:
        """Get a single provider with its active services, or None."""
        with self.db.get_cursor() as cur:
            try:
                cur.execute(GET_PROVIDER_BY_ID, (provider_id,))
            except pg_errors.InvalidTextRepresentation:
                return None
            rows = _fetch_dicts(cur)

        if not rows:
            return None
        return Provider.from_rows(rows)

    def get_provider_service(self, provider_id: str, service_id: str) -> dict[str, Any] | None:
        """
        Get one service offered by a provider.

        Returns:
            Dictionary with service_id, provider_id, service_type, hourly_rate and
            is_active, or None if the provider has no such service (malformed
            ids included)
        """
        with self.db.get_cursor() as cur:
            try:
                cur.execute(GET_PROVIDER_SERVICE, (provider_id, service_id))
            except pg_errors.InvalidTextRepresentation:
                return None
            columns = [desc[0] for desc in cur.description]
            row = cur.fetchone()

        if not row:
            return None
        return dict(zip(columns, row))


def _fetch_dicts(cur) -> list[dict[str, Any]]:
    columns = [desc[0] for desc in cur.description]
    return [dict(zip(columns, row)) for row in cur.fetchall()]
