"""Infrastructure glue for clans (idempotency, scheduler, socket registration)."""
