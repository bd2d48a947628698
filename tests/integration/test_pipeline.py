"""End-to-end knowledge-base flows against the in-memory vector store.

Exercises ingestion, catalog paging, deletion and retrieval together, plus a
tool-loop turn where the model searches the knowledge base itself.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from kb_assistant.models.conversation import ChatMessage, ToolCall, ToolFunction
from kb_assistant.models.documents import ChunkSettings, FileFormat, FileUpload
from kb_assistant.providers.tools import ToolLoopService, ToolRegistry, register_knowledge_base_tool
from kb_assistant.services.context_fusion import ContextFusionEngine
from kb_assistant.services.knowledge_base import KnowledgeBaseService

_DEPLOYMENT = """\
apiVersion: apps/v1
kind: Deployment
metadata:
  name: api
  namespace: prod
spec:
  template:
    spec:
      containers:
        - name: api
          image: ghcr.io/acme/api:1.4
"""

_RUNBOOK = "\n".join(f"Step {i}: check the rollout status and pod events." for i in range(1, 30))


@pytest.mark.asyncio
@pytest.mark.parametrize("filtered_delete", [False, True])
async def test_ingest_list_delete_round_trip(
    make_vector_store, mock_embedding_provider, filtered_delete
) -> None:
    store = make_vector_store(page_size=7, filtered_delete=filtered_delete)
    kb = KnowledgeBaseService(mock_embedding_provider, store)
    settings = ChunkSettings(max_chunk_length=80, chunk_overlap=10)

    uploaded = await kb.upload_files(
        [
            FileUpload(file_name="api.yaml", content=_DEPLOYMENT),
            FileUpload(file_name="runbook.md", content=_RUNBOOK),
        ],
        settings,
    )
    chunk_counts = {u.file_name: u.chunk_count for u in uploaded}

    documents = {d.file_name: d for d in await kb.list_documents()}
    assert {name: d.chunk_count for name, d in documents.items()} == chunk_counts
    assert documents["api.yaml"].format is FileFormat.YAML
    assert documents["api.yaml"].kind == "Deployment"
    assert documents["api.yaml"].api_version == "apps/v1"
    assert documents["api.yaml"].namespace == "prod"
    assert documents["runbook.md"].line_count == 29
    # More chunks than one page
    assert len(store.documents) > 7

    result = await kb.delete_document("runbook.md")

    assert result.deleted_count == chunk_counts["runbook.md"]
    remaining = await kb.list_documents()
    assert [d.file_name for d in remaining] == ["api.yaml"]
    assert len(store.documents) == chunk_counts["api.yaml"]


@pytest.mark.asyncio
async def test_stored_chunk_positions_are_contiguous(vector_store, mock_embedding_provider) -> None:
    kb = KnowledgeBaseService(mock_embedding_provider, vector_store)

    await kb.upload_file(_RUNBOOK, "runbook.md", ChunkSettings(max_chunk_length=120, chunk_overlap=0))

    indexes = sorted(d.metadata["chunkIndex"] for d in vector_store.documents.values())
    totals = {d.metadata["totalChunks"] for d in vector_store.documents.values()}
    assert indexes == list(range(len(indexes)))
    assert totals == {len(indexes)}


@pytest.mark.asyncio
async def test_model_searches_knowledge_base_through_tool_loop(
    vector_store, mock_embedding_provider, mock_llm, make_reply
) -> None:
    kb = KnowledgeBaseService(mock_embedding_provider, vector_store)
    await kb.upload_file(_DEPLOYMENT, "api.yaml")
    registry = ToolRegistry()
    register_knowledge_base_tool(registry, kb)
    engine = ContextFusionEngine(mock_llm, knowledge_base=kb, tool_service=ToolLoopService(mock_llm, registry))

    search_call = ToolCall(
        id="call-1",
        function=ToolFunction(
            name="search_knowledge_base", arguments=json.dumps({"query": "api image", "format": "yaml"})
        ),
    )
    mock_llm.send_message = AsyncMock(
        side_effect=[make_reply(None, [search_call]), make_reply("It runs ghcr.io/acme/api:1.4.")]
    )

    response = await engine.send_chat_message(
        [ChatMessage(role="user", content="Which image does api use?")], enable_tools=True
    )

    assert response.tools_used == ["search_knowledge_base"]
    assert response.content == (
        "**Tools used:** search_knowledge_base\n\n---\n\nIt runs ghcr.io/acme/api:1.4."
    )
    tool_output = response.tool_responses[0].result
    assert "Source: api.yaml" in tool_output
    assert "ghcr.io/acme/api:1.4" in tool_output
