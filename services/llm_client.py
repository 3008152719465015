"""
Language-model client used by the model-assisted intent extractor.

The extractor only depends on ``LLMClient.complete``; the Vertex AI Gemini
implementation is the production backend and tests provide their own.
"""

from abc import ABC, abstractmethod
from typing import Optional
import structlog

from config.llm_config import LLMConfig

try:
    import vertexai
    from vertexai.generative_models import GenerationConfig, GenerativeModel
    VERTEX_AI_AVAILABLE = True
except ImportError:
    vertexai = None
    GenerationConfig = None
    GenerativeModel = None
    VERTEX_AI_AVAILABLE = False

logger = structlog.get_logger()


class LLMClientError(Exception):
    """Raised when the model cannot be reached or returns nothing usable"""


class LLMClient(ABC):
    @abstractmethod
    async def complete(self, system_instructions: str, user_prompt: str,
                       temperature: Optional[float] = None,
                       max_tokens: Optional[int] = None) -> str:
        """Return the raw text of the model's reply"""
        pass


class VertexAIClient(LLMClient):
    """Gemini on Vertex AI"""

    def __init__(self, project_id: Optional[str] = None, location: Optional[str] = None,
                 model_name: Optional[str] = None):
        self.project_id = project_id or LLMConfig.GOOGLE_CLOUD_PROJECT
        self.location = location or LLMConfig.VERTEX_AI_LOCATION
        self.model_name = model_name or LLMConfig.GEMINI_MODEL
        self._initialized = False

    @property
    def available(self) -> bool:
        return bool(self.project_id) and VERTEX_AI_AVAILABLE

    def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        if not self.available:
            raise LLMClientError("Vertex AI is not configured (GOOGLE_CLOUD_PROJECT unset or SDK missing)")
        vertexai.init(project=self.project_id, location=self.location)
        self._initialized = True
        logger.info(f"✅ Vertex AI initialized: {self.project_id} - {self.model_name}",
                    category="llm_client")

    async def complete(self, system_instructions: str, user_prompt: str,
                       temperature: Optional[float] = None,
                       max_tokens: Optional[int] = None) -> str:
        self._ensure_initialized()

        model = GenerativeModel(self.model_name, system_instruction=system_instructions)
        generation_config = GenerationConfig(
            temperature=LLMConfig.TEMPERATURE if temperature is None else temperature,
            max_output_tokens=max_tokens or LLMConfig.MAX_TOKENS,
        )
        response = await model.generate_content_async(user_prompt, generation_config=generation_config)

        try:
            text = response.text
        except ValueError as e:
            # Blocked or empty candidates
            raise LLMClientError(f"Model returned no text: {e}") from e
        if not text:
            raise LLMClientError("Model returned an empty reply")
        return text


def get_default_llm_client() -> Optional[LLMClient]:
    """The configured production client, or None when no model is available"""
    client = VertexAIClient()
    if client.available:
        return client
    logger.info("ℹ️ Vertex AI not configured, intent extraction runs on patterns only",
                category="llm_client")
    return None
