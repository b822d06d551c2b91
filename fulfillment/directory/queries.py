"""SQL queries for the provider directory.

Rows come back one per (provider, active service) pair so a provider's full
rate card is available to the matching engine.
"""

# Query to get providers offering a service type, with all their active services
GET_PROVIDERS_FOR_SERVICE_TYPE = """
    SELECT
        p.id AS provider_id,
        p.business_name,
        p.location,
        p.latitude,
        p.longitude,
        p.rating_average,
        p.is_verified,
        p.is_available,
        p.email,
        p.phone,
        p.user_id,
        ps.service_type,
        ps.hourly_rate
    FROM providers p
    INNER JOIN provider_services ps
        ON ps.provider_id = p.id
        AND ps.is_active = true
    WHERE p.id IN (
            SELECT provider_id
            FROM provider_services
            WHERE service_type = %(service_type)s
              AND is_active = true
        )
        AND (%(active_only)s = false OR p.is_active = true)
        AND (%(area_pattern)s::text IS NULL OR p.location ILIKE %(area_pattern)s)
    ORDER BY p.id, ps.service_type
"""

# Query to get a single provider with all its active services
GET_PROVIDER_BY_ID = """
    SELECT
        p.id AS provider_id,
        p.business_name,
        p.location,
        p.latitude,
        p.longitude,
        p.rating_average,
        p.is_verified,
        p.is_available,
        p.email,
        p.phone,
        p.user_id,
        ps.service_type,
        ps.hourly_rate
    FROM providers p
    LEFT JOIN provider_services ps
        ON ps.provider_id = p.id
        AND ps.is_active = true
    WHERE p.id = %s
    ORDER BY ps.service_type
"""

# Query to get one offered service of a provider (service id scoped)
GET_PROVIDER_SERVICE = """
    SELECT
        ps.id AS service_id,
        ps.provider_id,
        ps.service_type,
        ps.hourly_rate,
        ps.is_active AND p.is_active AS is_active
    FROM provider_services ps
    INNER JOIN providers p
        ON p.id = ps.provider_id
    WHERE ps.provider_id = %s
        AND ps.id = %s
"""
