"""Contract negotiation service for business/agency waste collection contracts."""
