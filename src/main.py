#!/usr/bin/env python3
"""
Webgraph indexer

Commands:
- index:       fetch pages, build one edge record per link and store them in the webgraph index.
               Target URLs are remembered in the crawl state together with their depth.
- postprocess: rewrite edges that were indexed with a provisional click depth.
- export:      write the stored graph as JSON (nodes, edges, domain counts).

The field selection is read from <output>/webgraph.schema if present (or --schema);
without it every field is indexed.

Usage:
  pip install -e .
  webgraph index https://example.com https://example.com/about --output data --logfile webgraph.log
  webgraph postprocess --output data
  webgraph export --output data --out-file link_graph.json
"""

import argparse
import logging
import os
import signal
from logging.handlers import RotatingFileHandler
from threading import Event
from urllib.parse import urlparse

import requests

from configs import (
    DB_NAME,
    DEFAULT_COLLECTION,
    POSTPROCESS_MAX_COUNT,
    POSTPROCESS_TIMEOUT,
    SCHEMA_FILE,
    USER_AGENT,
    WEBGRAPH_DB_NAME,
)
from db import CrawlDB, WebgraphIndex
from indexer import index_page
from link_graph_exporter import build_link_graph, write_graph
from postprocess import CrawlDepthResolver, postprocess_webgraph
from schema import FieldSelectionPolicy, WebgraphSchema
from webgraph import EdgeBuilder

# set by the signal handler, checked by long running commands
shutdown_event = Event()


def _signal_handler(signum, frame):
    logging.info("Received signal %s - initiating graceful shutdown...", signum)
    shutdown_event.set()


def setup_logging(logfile=None, verbose=False):
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    # console handler
    ch = logging.StreamHandler()
    ch.setFormatter(formatter)
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)
    root_logger.addHandler(ch)
    # file handler
    if logfile:
        fh = RotatingFileHandler(logfile, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
        fh.setFormatter(formatter)
        fh.setLevel(logging.DEBUG)
        root_logger.addHandler(fh)


def load_policy(args):
    path = args.schema or os.path.join(args.output, SCHEMA_FILE)
    policy = FieldSelectionPolicy.load(path, lazy=args.lazy)
    if policy.is_select_all():
        logging.debug("No field selection in %s; indexing all fields", path)
    return policy


def open_index(args, policy):
    return WebgraphIndex(os.path.join(args.output, WEBGRAPH_DB_NAME), id_field=policy.alias(WebgraphSchema.id))


def cmd_index(args):
    bad = [u for u in args.urls if not urlparse(u).scheme]
    if bad:
        print("URL missing scheme (http:// or https://):", ", ".join(bad))
        return 2
    policy = load_policy(args)
    builder = EdgeBuilder(policy)
    index = open_index(args, policy)
    crawl_db = CrawlDB(os.path.join(args.output, DB_NAME))
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT})
    pages = edges = 0
    try:
        for url in args.urls:
            if shutdown_event.is_set():
                break
            try:
                subgraph = index_page(session, url, builder, index, crawl_db=crawl_db,
                                      collections=args.collection or [DEFAULT_COLLECTION],
                                      clickdepth=args.clickdepth)
            except Exception:
                logging.exception("Error indexing URL: %s", url)
                continue
            if subgraph is not None:
                pages += 1
                edges += len(subgraph.edges)
    finally:
        index.close()
        crawl_db.close()
    logging.info("Indexing finished. %d pages, %d edges. Data in %s", pages, edges, args.output)
    return 0


def cmd_postprocess(args):
    policy = load_policy(args)
    index = open_index(args, policy)
    crawl_db = CrawlDB(os.path.join(args.output, DB_NAME))
    try:
        stats = postprocess_webgraph(policy, index, CrawlDepthResolver(crawl_db), cancel_event=shutdown_event,
                                     max_count=args.max_count, timeout=args.timeout)
    finally:
        index.close()
        crawl_db.close()
    print("Post-processed %d edges, %d click depths changed, %d skipped"
          % (stats.processed, stats.clickdepth_changed, len(stats.skipped)))
    return 0


def cmd_export(args):
    policy = load_policy(args)
    index = open_index(args, policy)
    try:
        graph = build_link_graph(index.iter_documents(), policy)
    finally:
        index.close()
    outpath = os.path.join(args.output, args.out_file)
    write_graph(outpath, graph)
    print('Wrote link graph:', outpath)
    return 0


def build_parser():
    parser = argparse.ArgumentParser(description="Build and maintain a webgraph of crawled pages")
    parser.add_argument("--output", default="data", help="Directory holding the index and crawl state")
    parser.add_argument("--schema", default=None, help="Field selection file (default: <output>/webgraph.schema)")
    parser.add_argument("--lazy", action="store_true", help="Do not store empty field values")
    parser.add_argument("--logfile", type=str, default=None, help="Optional rotating logfile path")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose console logging (DEBUG)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_index = sub.add_parser("index", help="Fetch pages and index their links")
    p_index.add_argument("urls", nargs="+")
    p_index.add_argument("--collection", action="append", help="Collection tag (repeatable)")
    p_index.add_argument("--clickdepth", type=int, default=None, help="Click depth of the given pages, if known")
    p_index.set_defaults(func=cmd_index)

    p_post = sub.add_parser("postprocess", help="Resolve pending edge attributes")
    p_post.add_argument("--max-count", type=int, default=POSTPROCESS_MAX_COUNT)
    p_post.add_argument("--timeout", type=float, default=POSTPROCESS_TIMEOUT)
    p_post.set_defaults(func=cmd_postprocess)

    p_export = sub.add_parser("export", help="Export the stored graph as JSON")
    p_export.add_argument("--out-file", default="link_graph.json", help="Output filename inside output dir")
    p_export.set_defaults(func=cmd_export)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(args.logfile, args.verbose)
    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)
    os.makedirs(args.output, exist_ok=True)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
