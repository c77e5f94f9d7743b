"""Tag co-occurrence graph derived from every annotated document."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from .model import FileEntry, FileNotes


@dataclass(frozen=True)
class HighlightRef:
    file_uri: str
    file_name: str
    block_index: int
    highlighted_text: str
    highlight_id: str


@dataclass(frozen=True)
class GraphNode:
    tag: str
    count: int
    highlights: tuple[HighlightRef, ...] = ()


@dataclass(frozen=True)
class GraphEdge:
    tag1: str  # tag1 < tag2
    tag2: str
    weight: int


@dataclass(frozen=True)
class GraphData:
    nodes: tuple[GraphNode, ...] = ()
    edges: tuple[GraphEdge, ...] = ()

    def node(self, tag: str) -> GraphNode | None:
        for n in self.nodes:
            if n.tag == tag:
                return n
        return None

    def edge(self, a: str, b: str) -> GraphEdge | None:
        key = canonical_pair(a, b)
        for e in self.edges:
            if (e.tag1, e.tag2) == key:
                return e
        return None

    def max_count(self) -> int:
        return max((n.count for n in self.nodes), default=1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [
                {
                    "tag": n.tag,
                    "count": n.count,
                    "highlights": [
                        {
                            "fileUri": r.file_uri,
                            "fileName": r.file_name,
                            "blockIndex": r.block_index,
                            "highlightedText": r.highlighted_text,
                            "highlightId": r.highlight_id,
                        }
                        for r in n.highlights
                    ],
                }
                for n in self.nodes
            ],
            "edges": [
                {"tag1": e.tag1, "tag2": e.tag2, "weight": e.weight} for e in self.edges
            ],
        }


def canonical_pair(a: str, b: str) -> tuple[str, str]:
    return (a, b) if a < b else (b, a)


def build_graph(documents: Iterable[tuple[FileEntry, FileNotes]]) -> GraphData:
    """
    One node per tag (with every highlight carrying it) and one edge per
    pair of tags sharing a highlight, weighted by how many highlights
    share them.
    """
    buckets: dict[str, list[HighlightRef]] = {}
    weights: dict[tuple[str, str], int] = {}

    for entry, notes in documents:
        for h in notes.highlights:
            ref = HighlightRef(
                file_uri=entry.uri,
                file_name=entry.name,
                block_index=h.block_index,
                highlighted_text=h.highlighted_text,
                highlight_id=h.id,
            )
            tags = list(dict.fromkeys(h.tags))
            for tag in tags:
                buckets.setdefault(tag, []).append(ref)
            for i in range(len(tags)):
                for j in range(i + 1, len(tags)):
                    pair = canonical_pair(tags[i], tags[j])
                    weights[pair] = weights.get(pair, 0) + 1

    nodes = tuple(
        GraphNode(tag=tag, count=len(refs), highlights=tuple(refs))
        for tag, refs in buckets.items()
    )
    edges = tuple(GraphEdge(tag1=a, tag2=b, weight=w) for (a, b), w in weights.items())
    return GraphData(nodes=nodes, edges=edges)
