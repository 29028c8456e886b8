import logging

from configs import CLICKDEPTH_PENDING, DEFAULT_COLLECTION
from download_utils import fetch_page
from html_parsing import parse_html_for_links
from url_utils import WebURL, domain_of
from utils import url_hash
from webgraph import INBOUND, OUTBOUND


def split_links(source, links):
    """Inbound links stay on the source host, everything else is outbound."""
    host = domain_of(source.url)
    inbound, outbound = [], []
    for link in links:
        (inbound if domain_of(link) == host else outbound).append(link)
    return inbound, outbound


def source_depth(source, crawl_db=None, clickdepth=None):
    if clickdepth is not None:
        return clickdepth
    if source.probably_root_url():
        return 0
    if crawl_db is not None:
        depth = crawl_db.get_depth(source.url)
        if depth is not None:
            return depth
    return CLICKDEPTH_PENDING


def index_page(session, url, builder, webgraph_index, crawl_db=None, collections=(DEFAULT_COLLECTION,),
               clickdepth=None):
    """Fetch one page, build its edges and store them. Returns the Subgraph or None."""
    try:
        source = WebURL.parse(url)
    except ValueError:
        logging.warning("Skipping malformed URL: %s", url)
        return None

    logging.info("Indexing: %s", source.url)
    meta, text = fetch_page(session, source.url)
    depth = source_depth(source, crawl_db, clickdepth)
    if crawl_db is not None:
        crawl_db.add_page(source.url, url_hash=source.url_hash, status=meta.status, depth=depth, visited=1)
        crawl_db.mark_visited(source.url, meta.status)
    if text is None:
        logging.info("No HTML content for %s (status=%s)", source.url, meta.status)
        return None

    links, images = parse_html_for_links(text, source.url)
    inbound, outbound = split_links(source, links)
    subgraph = builder.build(source, meta, list(collections), depth, links, images, inbound, outbound,
                             click_depth_known_good=crawl_db is not None)
    stored = webgraph_index.add_many(subgraph.edges)
    logging.info("Stored %d edges for %s (%d inbound, %d outbound)",
                 stored, source.url, len(subgraph.inbound), len(subgraph.outbound))

    if crawl_db is not None:
        target_depth = depth + 1 if depth < CLICKDEPTH_PENDING else CLICKDEPTH_PENDING
        for direction in (INBOUND, OUTBOUND):
            for target in subgraph.target_urls(direction):
                crawl_db.add_page(target, url_hash=url_hash(target), depth=target_depth, parent=source.url)
    return subgraph
