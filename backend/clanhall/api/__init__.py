"""Application-wide HTTP helpers (error handlers, ops endpoints)."""
