"""
gridlint/core/graph.py

Adjacency graph between rectangles of different fingerprints.
We do NOT look at formula text here; only geometry and fingerprints.

Public API expected by other modules:
  - build_adjacency_graph(groups) -> nx.Graph
      nodes: (fingerprint, Rectangle) with attrs fingerprint=str, size=int, order=int
      edges: rectangles of different fingerprints that touch along an edge or overlap
  - neighbors_by_fingerprint(g, node) -> dict fingerprint -> list of nodes (graph order)
"""

from __future__ import annotations

from typing import Dict, List, Tuple

import networkx as nx

from gridlint.core.geometry import Rectangle

Node = Tuple[str, Rectangle]


def build_adjacency_graph(groups: Dict[str, List[Rectangle]]) -> nx.Graph:
    g = nx.Graph()
    nodes: List[Node] = []
    for fp, rects in groups.items():
        for rect in rects:
            node = (fp, rect)
            if g.has_node(node):
                continue
            g.add_node(node, fingerprint=fp, size=rect.size(), order=len(nodes))
            nodes.append(node)

    for i, a in enumerate(nodes):
        for b in nodes[i + 1:]:
            if a[0] == b[0]:
                continue
            if a[1].is_adjacent(b[1]) or a[1].overlaps(b[1]):
                g.add_edge(a, b)
    return g


def neighbors_by_fingerprint(g: nx.Graph, node: Node) -> Dict[str, List[Node]]:
    out: Dict[str, List[Node]] = {}
    for nb in sorted(g.neighbors(node), key=lambda n: g.nodes[n]["order"]):
        out.setdefault(nb[0], []).append(nb)
    return out
