"""SQL queries for the conversion service.

This module contains all SQL queries used by ConversionService.
"""

_BOOKING_COLUMNS = """
        id,
        request_id,
        provider_id,
        service_id,
        service_type,
        location,
        scheduled_date,
        scheduled_time,
        price,
        status,
        created_by,
        created_at
"""

# Query to get the request being converted, with the fields copied onto the booking
GET_REQUEST_FOR_CONVERSION = """
    SELECT
        id,
        status,
        client_user_id,
        client_name,
        client_email,
        client_phone,
        service_type,
        location,
        preferred_date,
        preferred_time
    FROM client_requests
    WHERE id = %s
"""

# Query to lock the request row for the conversion transaction
LOCK_REQUEST_FOR_CONVERSION = """
    SELECT id, status
    FROM client_requests
    WHERE id = %s
    FOR UPDATE
"""

# Query to get the non-cancelled booking of a request
GET_LIVE_BOOKING_FOR_REQUEST = f"""
    SELECT {_BOOKING_COLUMNS}
    FROM bookings
    WHERE request_id = %s
        AND status <> 'cancelled'
    ORDER BY created_at ASC
    LIMIT 1
"""

# Query to create the booking; bookings_one_live_per_request rejects a second live booking
INSERT_BOOKING = f"""
    INSERT INTO bookings (
        request_id, provider_id, service_id, service_type, location,
        scheduled_date, scheduled_time, price, status, created_by, created_at
    )
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, NOW())
    RETURNING {_BOOKING_COLUMNS}
"""
