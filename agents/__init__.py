"""
Travel Intent Agents

This package contains the classification and extraction agents that the
LangGraph turn pipeline runs for every user message.
"""

from .base_agent import BaseAgent

__all__ = ["BaseAgent"]
