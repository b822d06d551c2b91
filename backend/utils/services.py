from functools import lru_cache

from fulfillment.conversion import ConversionService
from fulfillment.directory import ProviderDirectory
from fulfillment.lifecycle import StatusTransitionService, build_default_registry
from fulfillment.matching import ProviderMatcher
from fulfillment.notifier import NotificationOrchestrator
from fulfillment.shared import PostgreSQLDatabase
from fulfillment.shared.settings import build_db_connection_string


def get_database() -> PostgreSQLDatabase:
    """
    Get a PostgreSQLDatabase built from the environment.

    Returns:
        PostgreSQLDatabase instance
    """
    return PostgreSQLDatabase(connection_string=build_db_connection_string())


def get_provider_directory() -> ProviderDirectory:
    """
    Get ProviderDirectory instance with database connection.

    Returns:
        ProviderDirectory instance
    """
    return ProviderDirectory(database=get_database())


def get_provider_matcher() -> ProviderMatcher:
    """
    Get ProviderMatcher instance reading from the provider directory.

    Returns:
        ProviderMatcher instance
    """
    return ProviderMatcher(directory=get_provider_directory())


@lru_cache(maxsize=1)
def get_notification_orchestrator() -> NotificationOrchestrator:
    """
    Get the process-wide NotificationOrchestrator.

    One instance is shared so background deliveries use a single thread pool.

    Returns:
        NotificationOrchestrator instance
    """
    return NotificationOrchestrator(database=get_database())


def get_status_service() -> StatusTransitionService:
    """
    Get StatusTransitionService instance with the built-in side effects.

    Returns:
        StatusTransitionService instance
    """
    database = get_database()
    registry = build_default_registry(database, notifier=get_notification_orchestrator())
    return StatusTransitionService(database=database, side_effects=registry)


def get_conversion_service() -> ConversionService:
    """
    Get ConversionService instance with database connection and notifier.

    Returns:
        ConversionService instance
    """
    database = get_database()
    status_service = get_status_service()
    return ConversionService(
        database=database,
        directory=ProviderDirectory(database=database),
        status_service=status_service,
        notifier=get_notification_orchestrator(),
    )


def shutdown_notifications() -> None:
    """Let queued background notifications finish; used at process exit."""
    if get_notification_orchestrator.cache_info().currsize:
        get_notification_orchestrator().shutdown(wait=True)
