"""HTTP routers exposed by the ingestion service."""
