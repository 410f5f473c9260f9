"""Pure ingestion domain types."""
