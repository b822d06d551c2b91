"""HTTP API for the fulfillment services."""
