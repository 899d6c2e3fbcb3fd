from typing import List

import numpy as np
import requests

from app.models.settings import EmbeddingSettings, LLMSettings
from app.utils.exceptions import ExternalServiceError
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


class OllamaClient:
    """Text generation and embeddings against an Ollama server.

    Both calls block; async callers run them through the threadpool.
    """

    def __init__(self, llm: LLMSettings = None, embedding: EmbeddingSettings = None):
        self.llm = llm or LLMSettings()
        self.embedding = embedding or EmbeddingSettings()

    def generate(self, prompt: str) -> str:
        url = f"{self.llm.base_url}/api/generate"
        try:
            resp = requests.post(
                url,
                json={
                    "model": self.llm.model_name,
                    "prompt": prompt,
                    "options": {"temperature": self.llm.temperature},
                    "stream": False  # important
                },
                timeout=self.llm.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            status = getattr(getattr(e, "response", None), "status_code", None)
            raise ExternalServiceError(
                f"Ollama generate failed: {e}",
                service_name="ollama",
                status_code=status,
                cause=e,
            ) from e
        return resp.json().get("response", "") or ""

    def embed(self, text: str) -> List[float]:
        url = f"{self.embedding.base_url}/api/embeddings"
        try:
            resp = requests.post(
                url,
                json={"model": self.embedding.model_name, "prompt": text},
                timeout=self.embedding.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            status = getattr(getattr(e, "response", None), "status_code", None)
            raise ExternalServiceError(
                f"Ollama embeddings failed: {e}",
                service_name="ollama",
                status_code=status,
                cause=e,
            ) from e

        data = resp.json()
        vector = np.asarray(data.get("embedding") or [], dtype=np.float32)
        if vector.size == 0:
            raise ExternalServiceError("Ollama returned an empty embedding", service_name="ollama")
        return vector.tolist()

    def info(self) -> dict:
        return {
            "provider": self.llm.provider,
            "model": self.llm.model_name,
            "temperature": self.llm.temperature,
            "embedding_model": self.embedding.model_name,
        }
