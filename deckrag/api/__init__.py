"""HTTP layer: routes, schemas and middleware."""
