from .llm_client import LLMClient, LLMClientError, VertexAIClient, get_default_llm_client

__all__ = ['LLMClient', 'LLMClientError', 'VertexAIClient', 'get_default_llm_client']
