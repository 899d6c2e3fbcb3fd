import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from app.middleware.error_handlers import ExceptionHandlerMiddleware
from app.routers import chat
from app.services.conversation import ConversationalChain
from app.services.hybrid_search import HybridWeights
from app.services.pipeline import RetrievalPipeline
from app.services.session_manager import ConversationStore

from conftest import FakeResumeCollection, FakeVectorStore, record


@pytest.fixture
def generate():
    return MagicMock(return_value="alice.pdf lists Selenium WebDriver experience.")


@pytest.fixture
def store():
    return ConversationStore()


@pytest.fixture
def test_app(resume_docs, store, generate):
    vector_store = FakeVectorStore([(record("alice.pdf", "Selenium WebDriver"), 0.8)])
    pipeline = RetrievalPipeline(HybridWeights()).initialize(FakeResumeCollection(resume_docs), vector_store)

    app = FastAPI()
    app.add_middleware(ExceptionHandlerMiddleware)
    app.include_router(chat.router, prefix="/api/chat")
    app.state.conversation_store = store
    app.state.chain = ConversationalChain(pipeline, store, generate)
    app.state.model_info = {"provider": "ollama", "model": "llama3.1:8b"}
    return app


@pytest.fixture
def client(test_app):
    return TestClient(test_app)


class TestChatRouter:
    """Test cases for the chat endpoints"""

    def test_new_conversation(self, client):
        response = client.post("/api/chat/", json={"message": "Who knows Selenium?"})

        assert response.status_code == 200
        data = response.json()
        assert data["conversation_id"]
        assert data["message_count"] == 2
        assert data["response"].startswith("alice.pdf")
        assert data["model"] == "llama3.1:8b"
        assert data["provider"] == "ollama"
        assert data["search_results_used"]

    def test_follow_up_and_history(self, client):
        first = client.post("/api/chat/", json={"message": "Who knows Selenium?"}).json()
        conversation_id = first["conversation_id"]

        second = client.post(
            "/api/chat/",
            json={"message": "Any with Python?", "conversation_id": conversation_id, "search_type": "keyword"},
        )
        assert second.json()["message_count"] == 4

        history = client.get(f"/api/chat/{conversation_id}/messages")
        assert history.status_code == 200
        data = history.json()
        assert data["message_count"] == 4
        assert [m["role"] for m in data["messages"]] == ["user", "assistant", "user", "assistant"]
        assert data["messages"][2]["content"] == "Any with Python?"

    def test_history_of_unknown_conversation_is_404(self, client):
        response = client.get("/api/chat/nope/messages")

        assert response.status_code == 404
        assert response.json()["detail"]["error"]["error_code"] == "NOT_FOUND"

    def test_delete_conversation(self, client, store):
        conversation_id = client.post("/api/chat/", json={"message": "hello"}).json()["conversation_id"]

        response = client.delete(f"/api/chat/{conversation_id}")
        assert response.status_code == 200
        assert response.json() == {"conversation_id": conversation_id, "deleted": True}
        assert store.count() == 0

        assert client.delete(f"/api/chat/{conversation_id}").status_code == 404
        assert client.get(f"/api/chat/{conversation_id}/messages").status_code == 404

    def test_blank_message_is_400(self, client):
        response = client.post("/api/chat/", json={"message": "   "})
        assert response.status_code == 400

    def test_empty_message_is_rejected_by_schema(self, client):
        response = client.post("/api/chat/", json={"message": ""})
        assert response.status_code == 422

    def test_model_failure_is_502_and_keeps_history(self, client, generate, store):
        conversation_id = client.post("/api/chat/", json={"message": "hello"}).json()["conversation_id"]
        generate.side_effect = ConnectionError("ollama down")

        response = client.post("/api/chat/", json={"message": "still there?", "conversation_id": conversation_id})

        assert response.status_code == 502
        assert response.json()["detail"]["error"]["error_code"] == "MODEL_ERROR"
        assert len(store.get_messages(conversation_id)) == 2

    def test_failed_turn_leaves_no_conversation_behind(self, client, generate, store):
        generate.side_effect = ConnectionError("ollama down")

        assert client.post("/api/chat/", json={"message": "hello"}).status_code == 502
        assert client.post("/api/chat/", json={"message": "java", "search_type": "bogus"}).status_code == 400
        assert store.count() == 0

    def test_missing_chain_is_503(self):
        app = FastAPI()
        app.include_router(chat.router, prefix="/api/chat")

        response = TestClient(app).post("/api/chat/", json={"message": "hello"})

        assert response.status_code == 503


class TestApplication:
    """Root and health endpoints of the assembled app"""

    def test_root_and_health_before_startup(self):
        from app.main import create_app

        # lifespan only runs inside a ``with TestClient(...)`` block
        client = TestClient(create_app())

        assert client.get("/").json()["status"] == "ok"
        health = client.get("/health")
        assert health.status_code == 200
        data = health.json()
        assert data["pipeline_ready"] is False
        assert data["status"] == "starting"
        assert data["conversations"] == 0
        assert set(data["hybrid_weights"]) == {"vector_weight", "keyword_weight"}

    def test_search_before_startup_is_503(self):
        from app.main import create_app

        response = TestClient(create_app()).post("/api/search/", json={"query": "java"})

        assert response.status_code == 503
