from __future__ import annotations

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from clanhall.api import messages as messages_api
from clanhall.domain.messages import sockets as dm_sockets
from clanhall.domain.messages.service import DirectMessageService


@pytest.fixture()
def dm_service(messages_repo, monkeypatch) -> DirectMessageService:
	service = DirectMessageService(repository=messages_repo)
	monkeypatch.setattr(messages_api, "_service", service)
	return service


@pytest.mark.asyncio
async def test_send_fans_out_to_both_users(api_client, dm_service):
	namespace = dm_sockets.DirectMessageNamespace(service=dm_service)
	namespace.emit = AsyncMock()
	dm_sockets.set_namespace(namespace)
	sender, peer = uuid4(), uuid4()

	resp = await api_client.post(
		f"/api/v1/messages/{peer}",
		json={"content": "hello"},
		headers={"X-User-Id": str(sender)},
	)

	assert resp.status_code == 201
	assert resp.json()["recipient_id"] == str(peer)
	rooms = {call.kwargs["room"] for call in namespace.emit.await_args_list}
	assert rooms == {f"user:{sender}", f"user:{peer}"}


@pytest.mark.asyncio
async def test_send_survives_realtime_failure(api_client, dm_service):
	namespace = dm_sockets.DirectMessageNamespace(service=dm_service)
	namespace.emit = AsyncMock(side_effect=RuntimeError("socket down"))
	dm_sockets.set_namespace(namespace)

	resp = await api_client.post(f"/api/v1/messages/{uuid4()}", json={"content": "hi"}, headers={"X-User-Id": str(uuid4())})
	assert resp.status_code == 201


@pytest.mark.asyncio
async def test_conversation_previews_and_read(api_client, dm_service):
	alice, bob = uuid4(), uuid4()
	for text in ("one", "two"):
		await api_client.post(f"/api/v1/messages/{alice}", json={"content": text}, headers={"X-User-Id": str(bob)})

	previews = await api_client.get("/api/v1/messages", headers={"X-User-Id": str(alice)})
	assert previews.json()[0]["unread_count"] == 2

	thread = await api_client.get(f"/api/v1/messages/{bob}", params={"limit": 1}, headers={"X-User-Id": str(alice)})
	assert [item["content"] for item in thread.json()["items"]] == ["two"]

	marked = await api_client.post(f"/api/v1/messages/{bob}/read", headers={"X-User-Id": str(alice)})
	assert marked.json() == {"updated": 2}

	too_many = await api_client.get(f"/api/v1/messages/{bob}", params={"limit": 500}, headers={"X-User-Id": str(alice)})
	assert too_many.status_code == 422


@pytest.mark.asyncio
async def test_messaging_self_is_rejected(api_client, dm_service):
	me = uuid4()
	resp = await api_client.post(f"/api/v1/messages/{me}", json={"content": "echo"}, headers={"X-User-Id": str(me)})
	assert resp.status_code == 422
	assert resp.json()["detail"]["code"] == "cannot_message_self"


@pytest.mark.asyncio
async def test_non_uuid_identity_is_rejected(api_client, dm_service):
	resp = await api_client.get("/api/v1/messages", headers={"X-User-Id": "not-a-uuid"})
	assert resp.status_code == 422
	assert resp.json()["detail"] == "invalid_user_id"
