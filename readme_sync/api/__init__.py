"""HTTP API and webhook endpoint."""
