"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNTER = Counter(
	"clanhall_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"clanhall_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"clanhall_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"clanhall_socketio_events_total",
	"Socket.IO events emitted per namespace",
	["namespace", "event"],
)

CLANS_CREATED = Counter(
	"clanhall_clans_created_total",
	"Clans created",
)

CLANS_DELETED = Counter(
	"clanhall_clans_deleted_total",
	"Clans deleted by their owner",
)

MEMBERSHIP_CHANGES = Counter(
	"clanhall_membership_changes_total",
	"Membership lifecycle transitions",
	["action"],
)

APPLICATIONS_HANDLED = Counter(
	"clanhall_applications_handled_total",
	"Clan applications resolved by moderators",
	["status"],
)

INVITATIONS = Counter(
	"clanhall_invitations_total",
	"Clan invitation lifecycle events",
	["action"],
)

OWNERSHIP_TRANSFERS = Counter(
	"clanhall_ownership_transfers_total",
	"Clan ownership transfers",
	["result"],
)

WARNINGS_ISSUED = Counter(
	"clanhall_warnings_issued_total",
	"Clan warnings issued",
)

MESSAGES_SENT = Counter(
	"clanhall_messages_sent_total",
	"Chat messages persisted",
	["kind"],
)

BACKGROUND_RUNS = Counter(
	"clanhall_background_runs_total",
	"Background job executions",
	["name", "result"],
)

BACKGROUND_DURATION = Histogram(
	"clanhall_background_duration_seconds",
	"Background job durations",
	["name"],
	buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)


def observe_request(route: str, method: str, status: int, duration_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(duration_seconds)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()


def membership_changed(action: str) -> None:
	MEMBERSHIP_CHANGES.labels(action=action).inc()


def application_handled(status: str) -> None:
	APPLICATIONS_HANDLED.labels(status=status).inc()


def invitation_event(action: str) -> None:
	INVITATIONS.labels(action=action).inc()


def ownership_transfer(result: str) -> None:
	OWNERSHIP_TRANSFERS.labels(result=result).inc()


def message_sent(kind: str) -> None:
	MESSAGES_SENT.labels(kind=kind).inc()
