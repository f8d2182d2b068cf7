"""
Concrete search sources: Discord messages, documentation, knowledge base.
"""

from __future__ import annotations
from typing import Dict, Type

from kb_search.models.metadata import DiscordMetadata, DocsMetadata, KnowledgeMetadata
from kb_search.services.filters import Comparator, FilterSpec
from kb_search.services.source_adapter import SourceAdapter


class DiscordSearchAdapter(SourceAdapter):
    name = "discord"
    label = "Discord messages"
    index_command = "python index_cli.py index discord --input <messages.jsonl>"
    filter_specs = (
        FilterSpec("server_id", "server_id", Comparator.EQUALS, "Discord server ID"),
        FilterSpec("channel_id", "channel_id", Comparator.EQUALS, "Discord channel ID"),
        FilterSpec("author", "author", Comparator.EQUALS, "Message author"),
        FilterSpec("start_date", "date", Comparator.ON_OR_AFTER, "Start date YYYY-MM-DD"),
        FilterSpec("end_date", "date", Comparator.ON_OR_BEFORE, "End date YYYY-MM-DD"),
    )
    result_fields = ("server_id", "channel_id", "author", "date", "time", "message_id")
    metadata_schema = DiscordMetadata


class DocsSearchAdapter(SourceAdapter):
    name = "docs"
    label = "Documentation"
    index_command = "python index_cli.py index docs"
    filter_specs = (
        FilterSpec("file_path", "file_path", Comparator.CONTAINS, "Substring of the file path"),
        FilterSpec("category", "category", Comparator.EQUALS, "tutorials | how-to | reference | explanation | other"),
        FilterSpec("doc_type", "doc_type", Comparator.EQUALS, "architecture | guides | reference | tutorials | knowledge | general"),
    )
    result_fields = ("file_path", "category", "doc_type", "section", "chunk_index", "total_chunks")
    metadata_schema = DocsMetadata


class KnowledgeSearchAdapter(SourceAdapter):
    name = "knowledge"
    label = "Knowledge base"
    index_command = "python index_cli.py index knowledge"
    filter_specs = (
        FilterSpec("cluster", "cluster", Comparator.EQUALS, "ai | company | rules | info-signals | general"),
        FilterSpec("file_path", "file_path", Comparator.CONTAINS, "Substring of the file path"),
    )
    result_fields = ("file_path", "cluster", "section", "chunk_index", "total_chunks")
    metadata_schema = KnowledgeMetadata


# Declaration order is the default unified search order.
SOURCE_ADAPTERS: Dict[str, Type[SourceAdapter]] = {
    DiscordSearchAdapter.name: DiscordSearchAdapter,
    DocsSearchAdapter.name: DocsSearchAdapter,
    KnowledgeSearchAdapter.name: KnowledgeSearchAdapter,
}
