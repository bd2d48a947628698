"""Tool-processing implementation: a registry of async tool handlers, the
LLM/tool round-trip loop that drives them, and the built-in knowledge-base
search tool."""

from kb_assistant.providers.tools.knowledge_base_tool import register_knowledge_base_tool
from kb_assistant.providers.tools.tool_loop_service import ToolHandler, ToolLoopService, ToolRegistry

__all__ = ["ToolHandler", "ToolLoopService", "ToolRegistry", "register_knowledge_base_tool"]
