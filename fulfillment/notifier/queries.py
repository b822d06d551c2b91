"""SQL queries for notifier services.

This module contains all SQL queries used by the notification services,
such as NotificationOrchestrator and PushNotifier.
"""

# Query to publish a push notification to the realtime feed
INSERT_REALTIME_NOTIFICATION = """
    INSERT INTO realtime_notifications (user_id, type, title, message, priority, created_at)
    VALUES (%s, %s, %s, %s, %s, NOW())
"""

# Query to write the one audit row per dispatched event
INSERT_NOTIFICATION_LOG = """
    INSERT INTO notification_logs (
        recipient_id, event_type, priority, status, channel_results, created_at
    )
    VALUES (%s, %s, %s, %s, %s::jsonb, NOW())
"""
