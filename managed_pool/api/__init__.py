"""HTTP API for managed pools."""
