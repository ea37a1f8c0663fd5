"""
deepchat - tool-calling conversation orchestrator for the DeepSeek chat-completion API.

This package drives multi-turn conversations in which the model may call
locally registered tools, enforces per-model capability rules before any
network call, and surfaces every failure through one error taxonomy.
"""

__version__ = "0.1.0"
