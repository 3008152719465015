# LLM configuration for the model-assisted intent extractor
# Values come from the environment (.env is loaded if present)

import os
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


class LLMConfig:
    """Configuration for the Vertex AI integration"""

    # Vertex AI project settings
    GOOGLE_CLOUD_PROJECT: Optional[str] = os.getenv("GOOGLE_CLOUD_PROJECT")
    VERTEX_AI_LOCATION: str = os.getenv("VERTEX_AI_LOCATION", "us-central1")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")

    # Extraction call parameters (low temperature keeps JSON output stable)
    TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0.3"))
    MAX_TOKENS: int = int(os.getenv("LLM_MAX_TOKENS", "500"))

    # Simplified retry prompt parameters
    RETRY_TEMPERATURE: float = 0.2
    RETRY_MAX_TOKENS: int = 300

    # Request timeout in seconds, a timeout counts as an extractor failure
    TIMEOUT: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "15"))

    @classmethod
    def is_configured(cls) -> bool:
        return bool(cls.GOOGLE_CLOUD_PROJECT)


"""
## Quick Setup Guide:

1. Create a Google Cloud project with the Vertex AI API enabled
2. Authenticate: gcloud auth application-default login
3. Set in .env:
   GOOGLE_CLOUD_PROJECT=your-project-id
   VERTEX_AI_LOCATION=us-central1
   GEMINI_MODEL=gemini-2.0-flash

Without GOOGLE_CLOUD_PROJECT the engine runs on pattern extraction alone and
asks the user for anything the patterns could not find.
"""
