"""Idempotency helpers backed by Redis."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from hashlib import sha256
from typing import Any, Awaitable, Callable, TypeVar

from clanhall.clans.domain.exceptions import IdempotencyConflict
from clanhall.infra.redis import redis_client
from clanhall.settings import settings

_LOG = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class IdempotencyRecord:
	"""Serialized value stored in Redis."""

	hash: str
	payload: Any

	def to_json(self) -> str:
		return json.dumps({"hash": self.hash, "payload": self.payload})

	@staticmethod
	def from_json(raw: str) -> "IdempotencyRecord":
		data = json.loads(raw)
		return IdempotencyRecord(hash=data.get("hash", ""), payload=data.get("payload"))


def compute_hash(*, body: Any | None) -> str:
	"""Return a stable hash of the request body used for conflict detection."""
	if body is None:
		return ""
	materialised = json.dumps(body, sort_keys=True, separators=(",", ":"), default=str)
	return sha256(materialised.encode()).hexdigest()


def _decode(record: IdempotencyRecord, body_hash: str, deserializer: Callable[[Any], T] | None) -> T:
	if record.hash != body_hash:
		raise IdempotencyConflict()
	if deserializer:
		return deserializer(record.payload)
	return record.payload  # type: ignore[return-value]


async def resolve(
	*,
	key: str | None,
	scope: str,
	body_hash: str,
	producer: Callable[[], Awaitable[T]],
	serializer: Callable[[T], Any],
	deserializer: Callable[[Any], T] | None = None,
) -> T:
	"""Resolve an idempotent operation with the provided producer.

	If the key already exists and matches the incoming hash, return the cached payload.
	If the stored hash differs, raise :class:`IdempotencyConflict`.
	Otherwise compute, persist, and return the new payload.
	"""
	if not key:
		return await producer()

	redis_key = f"clans:idemp:{scope}:{key}"
	cached = await redis_client.get(redis_key)
	if cached:
		return _decode(IdempotencyRecord.from_json(cached), body_hash, deserializer)

	result = await producer()
	record = IdempotencyRecord(hash=body_hash, payload=serializer(result))
	stored = await redis_client.set(redis_key, record.to_json(), ex=settings.idempotency_ttl_seconds, nx=True)
	if not stored:
		cached_after = await redis_client.get(redis_key)
		if cached_after:
			return _decode(IdempotencyRecord.from_json(cached_after), body_hash, deserializer)
		_LOG.warning("clans.idempotency.race", extra={"key": key})
	return result
