"""Native vector index adapters backing the primary retrieval path."""
