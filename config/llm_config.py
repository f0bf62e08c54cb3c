"""LLM configuration and API key management."""
from typing import Optional
from config.env_config import env_config


class LLMConfig:
    """Configuration for the completion oracle (OpenAI-compatible endpoint)."""
    
    # Authorization; no key means every completion degrades to ""
    AI_API_KEY: Optional[str] = env_config.get("AI_API_KEY") or None
    
    # Endpoint; a full ".../chat/completions" URL is accepted as well
    AI_API_URL: str = env_config.get("AI_API_URL", "https://api.openai.com/v1")
    
    AI_MODEL: str = env_config.get("AI_MODEL", "gpt-4o-mini")
    
    TEMPERATURE: float = 0.7
    MAX_TOKENS: int = 2000
    
    @classmethod
    def get_base_url(cls) -> str:
        """Base URL for the OpenAI SDK."""
        url = cls.AI_API_URL.rstrip("/")
        suffix = "/chat/completions"
        if url.endswith(suffix):
            url = url[: -len(suffix)]
        return url
