"""SQL queries for lifecycle services.

This module contains all SQL queries used by StatusTransitionService and the
side effects registered on status changes.
"""

# ============================================================
# Status Queries
# ============================================================

# Query to lock a client request row for a status change
GET_REQUEST_STATUS_FOR_UPDATE = """
    SELECT id, status
    FROM client_requests
    WHERE id = %s
    FOR UPDATE
"""

# Query to lock a job application row for a status change
GET_APPLICATION_STATUS_FOR_UPDATE = """
    SELECT id, status
    FROM job_applications
    WHERE id = %s
    FOR UPDATE
"""

# Query to update a client request status
UPDATE_REQUEST_STATUS = """
    UPDATE client_requests
    SET status = %s,
        updated_at = NOW()
    WHERE id = %s
"""

# Query to update a job application status, keeping the latest admin comment
UPDATE_APPLICATION_STATUS = """
    UPDATE job_applications
    SET status = %s,
        admin_comments = COALESCE(%s, admin_comments),
        updated_at = NOW()
    WHERE id = %s
"""

# ============================================================
# Status History Queries
# ============================================================

# Query to append an audit record
INSERT_STATUS_TRANSITION = """
    INSERT INTO status_transitions (
        entity_id, entity_type, from_status, to_status, actor, comment, created_at
    )
    VALUES (%s, %s, %s, %s, %s, %s, NOW())
    RETURNING id, created_at
"""

# Query to get the audit trail of one entity, oldest first
GET_STATUS_HISTORY = """
    SELECT
        id,
        entity_id,
        entity_type,
        from_status,
        to_status,
        actor,
        comment,
        created_at
    FROM status_transitions
    WHERE entity_id = %s AND entity_type = %s
    ORDER BY created_at ASC, id ASC
"""

AUDIT_SAVEPOINT = "SAVEPOINT status_audit"
AUDIT_SAVEPOINT_RELEASE = "RELEASE SAVEPOINT status_audit"
AUDIT_SAVEPOINT_ROLLBACK = "ROLLBACK TO SAVEPOINT status_audit"

# ============================================================
# Side Effect Queries
# ============================================================

# Query to get the client contact of a request
GET_REQUEST_CONTACT = """
    SELECT
        id,
        client_user_id,
        client_name,
        client_email,
        client_phone,
        service_type
    FROM client_requests
    WHERE id = %s
"""

# Query to get the applicant contact of a job application
GET_APPLICATION_CONTACT = """
    SELECT
        id,
        user_id,
        first_name,
        last_name,
        email,
        phone
    FROM job_applications
    WHERE id = %s
"""

# Query to create the provider account of an approved application
# (idempotent: one provider per application)
PROVISION_PROVIDER_FROM_APPLICATION = """
    INSERT INTO providers (
        application_id, user_id, business_name, location, email, phone,
        rating_average, is_verified, is_available, is_active, created_at
    )
    SELECT
        ja.id,
        ja.user_id,
        TRIM(ja.first_name || ' ' || ja.last_name),
        ja.city,
        ja.email,
        ja.phone,
        0,
        true,
        false,
        true,
        NOW()
    FROM job_applications ja
    WHERE ja.id = %s
    ON CONFLICT (application_id) DO NOTHING
    RETURNING id
"""
