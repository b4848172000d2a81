"""Infrastructure adapters (Postgres, Redis, identity)."""
