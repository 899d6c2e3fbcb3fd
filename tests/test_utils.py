import pytest
import requests
from unittest.mock import AsyncMock, MagicMock, patch

from app.models.settings import HybridSearchConfig, load_settings
from app.services.db import init_indexes
from app.utils.exceptions import (
    ConfigurationError,
    DatabaseError,
    ExceptionContext,
    ExternalServiceError,
    ModelError,
    NotFoundError,
    NotInitializedError,
    SearchError,
    ValidationError,
    map_to_http_exception,
)
from app.utils.utils import OllamaClient


class TestSettings:

    def test_defaults(self, monkeypatch):
        for name in ("HYBRID_VECTOR_WEIGHT", "HYBRID_KEYWORD_WEIGHT", "ENABLE_LLM_RERANK", "CONVERSATION_MAX_TURNS"):
            monkeypatch.delenv(name, raising=False)

        settings = load_settings()

        assert settings.hybrid == HybridSearchConfig(vector_weight=0.7, keyword_weight=0.3)
        assert settings.enable_llm_rerank is False
        assert settings.conversation_max_turns is None

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("HYBRID_VECTOR_WEIGHT", "0.5")
        monkeypatch.setenv("HYBRID_KEYWORD_WEIGHT", "0.5")
        monkeypatch.setenv("ENABLE_LLM_RERANK", "true")
        monkeypatch.setenv("CONVERSATION_MAX_TURNS", "20")
        monkeypatch.setenv("LLM_MODEL", "mistral:7b")

        settings = load_settings()

        assert settings.hybrid.keyword_weight == 0.5
        assert settings.enable_llm_rerank is True
        assert settings.conversation_max_turns == 20
        assert settings.llm.model_name == "mistral:7b"

    @pytest.mark.parametrize("name, value", [
        ("HYBRID_VECTOR_WEIGHT", "heavy"),
        ("HYBRID_KEYWORD_WEIGHT", "-1"),
        ("LLM_TIMEOUT", "0"),
    ])
    def test_invalid_values_raise_configuration_error(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ConfigurationError):
            load_settings()


class TestOllamaClient:

    @patch("app.utils.utils.requests.post")
    def test_generate(self, mock_post):
        mock_post.return_value.json.return_value = {"response": "hello"}

        assert OllamaClient().generate("hi") == "hello"
        body = mock_post.call_args.kwargs["json"]
        assert body["stream"] is False
        assert body["prompt"] == "hi"

    @patch("app.utils.utils.requests.post")
    def test_generate_failure(self, mock_post):
        mock_post.side_effect = requests.ConnectionError("refused")

        with pytest.raises(ExternalServiceError) as exc_info:
            OllamaClient().generate("hi")
        assert exc_info.value.details["service_name"] == "ollama"

    @patch("app.utils.utils.requests.post")
    def test_embed(self, mock_post):
        mock_post.return_value.json.return_value = {"embedding": [0.5, 0.25]}
        assert OllamaClient().embed("java") == [0.5, 0.25]

    @patch("app.utils.utils.requests.post")
    def test_empty_embedding(self, mock_post):
        mock_post.return_value.json.return_value = {"embedding": []}
        with pytest.raises(ExternalServiceError):
            OllamaClient().embed("java")

    def test_info(self):
        info = OllamaClient().info()
        assert info["provider"] == "ollama"
        assert "model" in info


class TestExceptions:

    @pytest.mark.parametrize("exc, status", [
        (ValidationError("bad"), 400),
        (NotFoundError("gone"), 404),
        (NotInitializedError(), 503),
        (SearchError("down"), 502),
        (ModelError("down"), 502),
        (ExternalServiceError("down"), 502),
        (DatabaseError("down"), 500),
    ])
    def test_status_mapping(self, exc, status):
        http_exc = map_to_http_exception(exc)
        assert http_exc.status_code == status
        assert http_exc.detail["error"]["error_code"] == exc.error_code

    def test_context_wraps_foreign_errors(self):
        with pytest.raises(DatabaseError) as exc_info:
            with ExceptionContext("load", wrap_as=DatabaseError, collection="resumes"):
                raise OSError("socket closed")
        assert isinstance(exc_info.value.cause, OSError)
        assert exc_info.value.details["collection"] == "resumes"

    def test_context_keeps_custom_errors(self):
        with pytest.raises(NotFoundError):
            with ExceptionContext("load", wrap_as=DatabaseError):
                raise NotFoundError("missing")


@pytest.mark.asyncio
async def test_init_indexes_tolerates_existing_index():
    collection = MagicMock()
    collection.create_index = AsyncMock(side_effect=[Exception("Index already exists"), None, None])

    await init_indexes(collection)

    assert collection.create_index.await_count == 3
