"""
Memory Module
=============

Conversation state owned by a Context:
- Message / Role / ToolCall: immutable conversation entries
- ConversationHistory: append-only, in-memory message store
"""

from agentcore.memory.history import (
    ConversationHistory,
    Message,
    Role,
    ToolCall,
    with_system_prompt,
)

__all__ = ["ConversationHistory", "Message", "Role", "ToolCall", "with_system_prompt"]
