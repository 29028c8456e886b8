"""
Edge construction for the webgraph.

One crawled page yields one edge record per link, inbound links first, then
outbound links. Attributes that cannot be known at crawl time (the click depth
of the link target) are written with a provisional value and the record is
tagged in the `process` field so the post-processing pass rewrites it later.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from configs import CLICKDEPTH_PENDING
from schema import FieldSelectionPolicy, WebgraphSchema as W
from url_utils import WebURL, split_host
from utils import compute_edge_id, rel_flags, word_count

# task names carried in the process field
CLICKDEPTH = "CLICKDEPTH"
PROCESS_TYPES = (CLICKDEPTH,)

INBOUND, OUTBOUND = 0, 1


@dataclass
class ResponseMeta:
    last_modified: Optional[datetime] = None
    status: Optional[int] = None
    content_type: str = ""


@dataclass
class Subgraph:
    inbound: List[dict] = field(default_factory=list)
    outbound: List[dict] = field(default_factory=list)
    # per direction, positionally aligned with the edges of that direction
    url_protocols: List[List[str]] = field(default_factory=lambda: [[], []])
    url_stubs: List[List[str]] = field(default_factory=lambda: [[], []])

    @property
    def edges(self) -> List[dict]:
        return self.inbound + self.outbound

    def target_urls(self, direction):
        return [f"{p}://{s}" for p, s in zip(self.url_protocols[direction], self.url_stubs[direction])]


def _utcnow():
    return datetime.now(timezone.utc)


class EdgeBuilder:
    def __init__(self, policy: FieldSelectionPolicy = None):
        self.policy = policy or FieldSelectionPolicy()

    def build(self, source, response_meta, collections, source_clickdepth,
              link_attributes, image_alts, inbound_links, outbound_links,
              click_depth_known_good=True) -> Subgraph:
        source = WebURL.of(source)
        subgraph = Subgraph()
        for direction, links in ((INBOUND, inbound_links), (OUTBOUND, outbound_links)):
            for target in links or ():
                edge = self._build_edge(subgraph, direction, source, target, response_meta, collections,
                                        source_clickdepth, link_attributes or {}, image_alts or {},
                                        click_depth_known_good)
                if edge is None:
                    continue
                (subgraph.inbound if direction == INBOUND else subgraph.outbound).append(edge)
        return subgraph

    def _build_edge(self, subgraph, direction, source, target, response_meta, collections,
                    source_clickdepth, link_attributes, image_alts, click_depth_known_good):
        p = self.policy
        attrs = _lookup(link_attributes, target)
        if attrs is None:
            return None
        try:
            target_url = WebURL.of(target)
        except ValueError:
            logging.debug("Skipping unparsable link target %r", target)
            return None

        name = attrs.get("name") or ""
        text = attrs.get("text") or ""
        rel = attrs.get("rel") or ""
        process_types = []

        edge = {}
        p.write(edge, W.id, compute_edge_id(source.url_hash, target_url.url_hash, name, text, rel))
        load_date = _utcnow()
        mod_date = response_meta.last_modified if response_meta and response_meta.last_modified else load_date
        if mod_date.tzinfo is None:
            mod_date = mod_date.replace(tzinfo=timezone.utc)
        if mod_date > load_date:
            mod_date = load_date
        p.write(edge, W.load_date, load_date)
        p.write(edge, W.last_modified, mod_date)
        p.write(edge, W.collection, list(collections or []))

        # source attributes
        p.write(edge, W.source_id, source.url_hash)
        self._add_endpoint(edge, "source", source)
        if self._has_identity("source") and p.selects(W.source_clickdepth):
            p.write(edge, W.source_clickdepth, source_clickdepth)
            if source_clickdepth < 0 or source_clickdepth > 1:
                process_types.append(CLICKDEPTH)

        # link attributes, stored on the target side
        p.write(edge, W.target_inbound, direction == INBOUND)
        p.write(edge, W.target_name, name)
        p.write(edge, W.target_rel, rel)
        p.write(edge, W.target_relflags, rel_flags(rel))
        p.write(edge, W.target_linktext, text)
        p.write(edge, W.target_linktext_charcount, len(text))
        p.write(edge, W.target_linktext_wordcount, word_count(text))
        alt = _lookup(image_alts, target) or ""
        p.write(edge, W.target_alt, alt)
        p.write(edge, W.target_alt_charcount, len(alt))
        p.write(edge, W.target_alt_wordcount, word_count(alt))

        # target attributes
        p.write(edge, W.target_id, target_url.url_hash)
        subgraph.url_protocols[direction].append(target_url.protocol)
        subgraph.url_stubs[direction].append(target_url.urlstub)
        self._add_endpoint(edge, "target", target_url)

        if self._has_identity("target") and click_depth_known_good:
            if target_url.probably_root_url():
                # root depth anchors the traversal and is written whatever the selection says
                p.write(edge, W.target_clickdepth, 0, force=True)
            elif p.selects(W.target_clickdepth):
                p.write(edge, W.target_clickdepth, CLICKDEPTH_PENDING)
                process_types.append(CLICKDEPTH)

        p.write(edge, W.process, list(dict.fromkeys(process_types)))
        return edge

    def _has_identity(self, side):
        # protocol, urlstub and id are needed together to rebuild the URL later
        return all(self.policy.selects(W[f"{side}_{x}"]) for x in ("protocol", "urlstub", "id"))

    def _add_endpoint(self, edge, side, url):
        p = self.policy

        def f(suffix):
            return W[f"{side}_{suffix}"]

        p.write(edge, f("protocol"), url.protocol)
        p.write(edge, f("urlstub"), url.urlstub)
        search_part = url.search_part_map()
        if search_part is None:
            p.write(edge, f("parameter_count"), 0)
        else:
            p.write(edge, f("parameter_count"), len(search_part))
            p.write(edge, f("parameter_key"), list(search_part.keys()))
            p.write(edge, f("parameter_value"), list(search_part.values()))
        p.write(edge, f("chars"), len(url.url))
        host = url.host
        if host:
            subdom, orga, dnc = split_host(host)
            p.write(edge, f("host"), host)
            p.write(edge, f("host_id"), url.host_hash)
            p.write(edge, f("host_dnc"), dnc)
            p.write(edge, f("host_organization"), orga)
            p.write(edge, f("host_organizationdnc"), f"{orga}.{dnc}" if dnc else "")
            p.write(edge, f("host_subdomain"), subdom)
        p.write(edge, f("file_ext"), url.file_extension)
        p.write(edge, f("path"), url.path)
        if p.selects(f("path_folders_count")) or p.selects(f("path_folders")):
            paths = url.paths()
            if paths or not p.lazy:
                p.write(edge, f("path_folders_count"), len(paths), force=True)
                p.write(edge, f("path_folders"), paths, force=True)


def _lookup(mapping, key):
    """Find a per-link entry whether the caller keyed it by URL string or WebURL."""
    if key in mapping:
        return mapping[key]
    alt_key = key.url if isinstance(key, WebURL) else None
    if alt_key is None:
        try:
            alt_key = WebURL.parse(key)
        except ValueError:
            return None
    if alt_key in mapping:
        return mapping[alt_key]
    if isinstance(alt_key, WebURL) and alt_key.url in mapping:
        return mapping[alt_key.url]
    return None
