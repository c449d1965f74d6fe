"""
agentcore - Agent Orchestration Core
====================================

The execution core of a multimodal agent: a conversation Context that
talks to a language model, dispatches tool calls and streams replies, plus
workflows built on top of it.

This package provides:
- Media envelopes: one canonical shape for text, image, audio, video
  and documents
- Async primitives: lazy Tasks and cancellable AsyncStreams
- Tool registry with JSON Schema parameter validation
- Conversation Context with chat, tool-augmented chat and streaming chat
- Evaluator/optimizer workflow
"""

__version__ = "1.0.0"
