import pytest
from httpx import AsyncClient
from fastapi import status

from app.crud import chat_message as chat_crud
from app.services.ai_service import FALLBACK_RESPONSE, AIService, get_ai_service
from app.services.chat_service import generate_ai_reply

pytestmark = pytest.mark.asyncio


class TestChat:
    async def test_post_message_persists_user_and_ai_messages(self, client: AsyncClient, auth_headers: dict, create_case, fake_ai):
        case = await create_case(auth_headers)

        response = await client.post(
            f"/api/chat/case/{case['id']}", json={"content": "What is the statute of limitations?"}, headers=auth_headers
        )
        assert response.status_code == status.HTTP_201_CREATED
        message = response.json()["data"]
        assert message["sender"] == "user"
        assert message["content"] == "What is the statute of limitations?"
        assert message["caseId"] == case["id"]
        assert message["metadata"] is None

        response = await client.get(f"/api/chat/case/{case['id']}", headers=auth_headers)
        history = response.json()["data"]
        assert history["total"] == 2
        user_message, ai_message = history["messages"]
        assert user_message["sender"] == "user"
        assert ai_message["sender"] == "ai"
        assert ai_message["content"] == "Regarding your question: What is the statute of limitations?"
        assert ai_message["metadata"] == {"model": "fake-legal-model", "tokens": 42, "responseTime": 7}

    async def test_case_context_sent_to_assistant(self, client: AsyncClient, auth_headers: dict, create_case, fake_ai):
        case = await create_case(auth_headers)
        await client.post(f"/api/chat/case/{case['id']}", json={"content": "Summarize"}, headers=auth_headers)

        prompt, context = fake_ai.calls[0]
        assert prompt == "Summarize"
        assert "Smith v. Jones" in context
        assert "Jane Smith" in context
        assert "Contract dispute" in context

    async def test_latest_message(self, client: AsyncClient, auth_headers: dict, create_case):
        case = await create_case(auth_headers)
        response = await client.get(f"/api/chat/case/{case['id']}/latest", headers=auth_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"] is None

        await client.post(f"/api/chat/case/{case['id']}", json={"content": "First question"}, headers=auth_headers)
        response = await client.get(f"/api/chat/case/{case['id']}/latest", headers=auth_headers)
        assert response.json()["data"]["sender"] == "ai"

    async def test_history_limit(self, client: AsyncClient, auth_headers: dict, create_case):
        case = await create_case(auth_headers)
        for i in range(3):
            await client.post(f"/api/chat/case/{case['id']}", json={"content": f"Question {i}"}, headers=auth_headers)

        response = await client.get(f"/api/chat/case/{case['id']}", params={"limit": 2}, headers=auth_headers)
        history = response.json()["data"]
        assert len(history["messages"]) == 2
        assert history["total"] == 6
        assert history["messages"][0]["content"] == "Question 0"

    async def test_message_validation(self, client: AsyncClient, auth_headers: dict, create_case):
        case = await create_case(auth_headers)
        response = await client.post(f"/api/chat/case/{case['id']}", json={"content": ""}, headers=auth_headers)
        assert response.status_code == status.HTTP_400_BAD_REQUEST

        response = await client.post(
            f"/api/chat/case/{case['id']}", json={"content": "x" * 5001}, headers=auth_headers
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"][0]["field"] == "content"

    async def test_other_users_case(self, client: AsyncClient, register_user, create_case, fake_ai):
        owner_headers, _ = await register_user()
        intruder_headers, _ = await register_user()
        case = await create_case(owner_headers)

        response = await client.post(f"/api/chat/case/{case['id']}", json={"content": "Hi"}, headers=intruder_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND
        response = await client.get(f"/api/chat/case/{case['id']}", headers=intruder_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert fake_ai.calls == []


class TestChatFallback:
    async def test_unconfigured_service_stores_fallback(self, client: AsyncClient, test_app, test_settings, auth_headers: dict, create_case):
        # Real service without an API key
        test_app.dependency_overrides[get_ai_service] = lambda: AIService(test_settings)
        case = await create_case(auth_headers)

        await client.post(f"/api/chat/case/{case['id']}", json={"content": "Hello"}, headers=auth_headers)

        messages = (await client.get(f"/api/chat/case/{case['id']}", headers=auth_headers)).json()["data"]["messages"]
        ai_message = messages[-1]
        assert ai_message["sender"] == "ai"
        assert ai_message["content"] == FALLBACK_RESPONSE
        assert ai_message["metadata"]["model"] == test_settings.OPENAI_MODEL


class TestReplyAfterCaseDeleted:
    async def test_reply_for_deleted_case_is_not_stored(
        self, client: AsyncClient, test_app, fake_ai, register_user, create_case, db_session
    ):
        headers, user = await register_user()
        case = await create_case(headers)
        response = await client.delete(f"/api/cases/{case['id']}", headers=headers)
        assert response.status_code == status.HTTP_200_OK

        await generate_ai_reply(
            test_app.state.database, fake_ai, case["id"], user["id"], "Too late?", "Case: gone"
        )

        assert await chat_crud.count_by_case(db_session, case["id"]) == 0
