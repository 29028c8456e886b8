#!/usr/bin/env python3
"""
Link Graph Exporter

Builds a compact directed link graph from the stored webgraph edges and writes a
JSON file containing edges and basic node/domain stats.

Output:
 - link_graph.json -> {"nodes": [...], "edges": [[src,dst],...], "domain_counts": {...}, "pending": n}

Edges whose endpoints cannot be rebuilt (protocol or urlstub not stored under the
current field selection) are left out.
"""

import json
from collections import defaultdict

from schema import FieldSelectionPolicy, WebgraphSchema as W
from url_utils import domain_of


def edge_endpoints(doc, policy: FieldSelectionPolicy):
    parts = []
    for side in ("source", "target"):
        protocol = doc.get(policy.alias(W[f"{side}_protocol"]))
        urlstub = doc.get(policy.alias(W[f"{side}_urlstub"]))
        if not protocol or not urlstub:
            return None
        parts.append(f"{protocol}://{urlstub}")
    return tuple(parts)


def build_link_graph(docs, policy=None):
    policy = policy or FieldSelectionPolicy()
    process_alias = policy.alias(W.process)
    edges = set()
    nodes = set()
    pending = 0

    for doc in docs:
        if doc.get(process_alias):
            pending += 1
        ends = edge_endpoints(doc, policy)
        if ends is None:
            continue
        edges.add(ends)
        nodes.update(ends)

    domain_counts = defaultdict(int)
    for n in nodes:
        domain_counts[domain_of(n)] += 1

    # convert edges to sorted list for deterministic output
    edges_list = [list(e) for e in sorted(edges)]
    nodes_list = sorted(nodes)
    domain_counts = dict(sorted(domain_counts.items(), key=lambda kv: (-kv[1], kv[0])))

    return {
        'nodes': nodes_list,
        'edges': edges_list,
        'domain_counts': domain_counts,
        'pending': pending,
    }


def write_graph(outpath, graph):
    with open(outpath, 'w', encoding='utf-8') as f:
        json.dump(graph, f, ensure_ascii=False, indent=2)
