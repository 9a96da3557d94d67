#!/usr/bin/env python3
"""Diagnostic script to test embeddings, retrieval and memory connectivity.

Run from the project root to see what context a question would get:

    uv run python scripts/check_retrieval.py "What is AWP?"
    uv run python scripts/check_retrieval.py "What is AWP?" --threshold 0.5
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Allow running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.config import Settings
from src.llm.embeddings import EmbeddingClient
from src.memory.store import MemoryStore
from src.retrieval.store import DocumentStore


def banner(msg: str) -> None:
    print(f"\n{'=' * 60}")
    print(f"  {msg}")
    print(f"{'=' * 60}")


async def main(query: str, threshold: float | None, user_id: str) -> None:
    settings = Settings()
    banner("Retrieval Diagnostic")

    missing = [m for m in settings.missing_chat_credentials() if m != "ANTHROPIC_API_KEY"]
    if missing:
        print(f"FATAL: missing {', '.join(missing)}. Set them in .env")
        sys.exit(1)
    if threshold is not None:
        settings.similarity_threshold = threshold

    banner("Step 1: Embed query")
    embedder = EmbeddingClient.from_settings(settings)
    try:
        embedding = await embedder.embed_query(query)
    except Exception as exc:
        print(f"FAIL: embedding error: {exc}")
        sys.exit(1)
    finally:
        await embedder.close()
    print(f"OK: {len(embedding)} dimensions ({settings.embedding_model})")

    banner("Step 2: Search documents")
    try:
        store = await DocumentStore.open(settings)
    except Exception as exc:
        print(f"FAIL: cannot connect to document database: {exc}")
        sys.exit(1)
    try:
        passages = await store.search(embedding)
    finally:
        await store.close()

    print(
        f"{len(passages)} passage(s) above {settings.similarity_threshold} "
        f"in {settings.documents_table} (top {settings.retrieval_top_k})"
    )
    for i, passage in enumerate(passages, 1):
        preview = passage.content.replace("\n", " ")[:160]
        print(f"  {i}. [{passage.similarity:.3f}] {preview}")

    banner("Step 3: Memory")
    memory = MemoryStore.from_settings(settings)
    if not memory.enabled:
        print("SKIP: MEM0_API_KEY not set")
        return
    entries = await memory.search(query, user_id=user_id, limit=settings.memory_recall_limit)
    print(f"{len(entries)} memory entries for user {user_id}")
    for entry in entries:
        print(f"  - [{entry.score:.2f}] {entry.content}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.split("\n")[0])
    parser.add_argument("query", help="Question to embed and search for")
    parser.add_argument("--threshold", type=float, default=None, help="Override similarity threshold")
    parser.add_argument("--user-id", default="diagnostic", help="Mem0 user id for memory search")
    args = parser.parse_args()
    asyncio.run(main(args.query, args.threshold, args.user_id))
