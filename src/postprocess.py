"""
Post-processing of pending webgraph edges.

Edges indexed with provisional attributes carry the names of the missing
computations in their `process` field. This pass streams those edges out of the
index, resolves what it can, drops the `process` tag and writes each edge back.
A record that fails stays pending and is picked up by the next run.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from configs import (
    CLICKDEPTH_PENDING,
    POSTPROCESS_BUFFER_SIZE,
    POSTPROCESS_MAX_COUNT,
    POSTPROCESS_PAGE_SIZE,
    POSTPROCESS_TIMEOUT,
)
from schema import FieldSelectionPolicy, WebgraphSchema as W
from url_utils import WebURL
from webgraph import CLICKDEPTH


@dataclass
class RecordOutcome:
    doc_id: Optional[str]
    ok: bool
    clickdepth_changed: int = 0
    reason: str = ""


@dataclass
class PostprocessStats:
    processed: int = 0
    clickdepth_changed: int = 0
    reference_changed: int = 0
    skipped: List[Tuple[Optional[str], str]] = field(default_factory=list)
    cancelled: bool = False

    def add(self, outcome: RecordOutcome):
        if outcome.ok:
            self.processed += 1
            self.clickdepth_changed += outcome.clickdepth_changed
        else:
            self.skipped.append((outcome.doc_id, outcome.reason))


class CrawlDepthResolver:
    """Click depth lookup backed by the depths recorded in the crawl state."""

    def __init__(self, crawl_db):
        self.crawl_db = crawl_db

    def clickdepth(self, url: WebURL) -> int:
        if url.probably_root_url():
            return 0
        depth = self.crawl_db.get_depth(url.url)
        return CLICKDEPTH_PENDING if depth is None else depth


def _side_url(policy, doc, side):
    protocol = doc.get(policy.alias(W[f"{side}_protocol"]))
    urlstub = doc.get(policy.alias(W[f"{side}_urlstub"]))
    url_id = doc.get(policy.alias(W[f"{side}_id"]))
    if protocol is None and urlstub is None and url_id is None:
        return None
    return WebURL.from_parts(protocol, urlstub, url_id)


def _resolve_clickdepth(policy, resolver, doc, sid, side) -> int:
    if not all(policy.selects(W[f"{side}_{x}"]) for x in ("protocol", "urlstub", "id")):
        return 0
    url = _side_url(policy, doc, side)
    if url is None:
        return 0
    depth_field = W[f"{side}_clickdepth"]
    depth = resolver.clickdepth(url)
    # an unresolvable depth never replaces a stored one
    if depth is None or depth == CLICKDEPTH_PENDING or depth == doc.get(policy.alias(depth_field)):
        return 0
    if depth != 0 and not policy.selects(depth_field):
        return 0
    policy.write(sid, depth_field, depth, force=depth == 0)
    return 1


def process_record(policy: FieldSelectionPolicy, index, resolver, doc) -> RecordOutcome:
    doc_id = doc.get(policy.alias(W.id))
    process_alias = policy.alias(W.process)
    try:
        sid = policy.to_input_document(doc)
        for depth_field in (W.source_clickdepth, W.target_clickdepth):
            alias = policy.alias(depth_field)
            if doc.get(alias) == 0:
                # forced root depth survives the field selection
                sid[alias] = 0
        changed = 0
        tags = doc.get(process_alias) or []
        if isinstance(tags, str):
            tags = [tags]
        for tag in tags:
            if tag == CLICKDEPTH:
                for side in ("source", "target"):
                    changed += _resolve_clickdepth(policy, resolver, doc, sid, side)
            else:
                return RecordOutcome(doc_id, False, reason=f"unknown process type {tag!r}")
        # every known task was attempted; the record is final now
        sid.pop(process_alias, None)
        index.add(sid)
        return RecordOutcome(doc_id, True, clickdepth_changed=changed)
    except Exception as e:
        logging.debug("Post-processing skipped %s", doc_id, exc_info=True)
        return RecordOutcome(doc_id, False, reason=f"{type(e).__name__}: {e}")


def postprocess_webgraph(policy: FieldSelectionPolicy, index, resolver, cancel_event=None,
                         max_count=POSTPROCESS_MAX_COUNT, timeout=POSTPROCESS_TIMEOUT,
                         buffer_size=POSTPROCESS_BUFFER_SIZE, page_size=POSTPROCESS_PAGE_SIZE) -> PostprocessStats:
    stats = PostprocessStats()
    if not policy.selects(W.process):
        return stats
    if resolver is None:
        logging.debug("No click depth resolver available; skipping webgraph post-processing")
        return stats

    # make everything indexed so far visible to the query
    index.commit()
    docs = index.stream_with_field(policy.alias(W.process), offset=0, max_count=max_count, timeout=timeout,
                                   buffer_size=buffer_size, page_size=page_size, cancel_event=cancel_event)
    try:
        for doc in docs:
            outcome = process_record(policy, index, resolver, doc)
            stats.add(outcome)
            if not outcome.ok:
                logging.debug("Edge %s left pending: %s", outcome.doc_id, outcome.reason)
            if cancel_event is not None and cancel_event.is_set():
                break
    except Exception:
        logging.exception("Pending edge query failed")
    finally:
        docs.close()

    stats.cancelled = bool(cancel_event is not None and cancel_event.is_set())
    if stats.cancelled:
        logging.info("Webgraph post-processing cancelled")
    logging.info(
        "cleanup_processing: re-calculated %d documents, %d clickdepth values changed, "
        "%d reference-count values changed, %d skipped.",
        stats.processed, stats.clickdepth_changed, stats.reference_changed, len(stats.skipped),
    )
    return stats
