# tests/test_indexer.py
from db import CrawlDB
from indexer import source_depth, split_links
from url_utils import WebURL


def test_split_links_by_host():
    src = WebURL.parse('https://example.com/a')
    inbound, outbound = split_links(src, ['https://example.com/b', 'https://www.example.com/c', 'http://x.org/'])
    assert inbound == ['https://example.com/b']
    assert outbound == ['https://www.example.com/c', 'http://x.org/']


def test_source_depth_order(tmp_path):
    db = CrawlDB(str(tmp_path / 'c.db'))
    try:
        db.add_page('https://example.com/known', depth=2)
        assert source_depth(WebURL.parse('https://example.com/known'), db, clickdepth=7) == 7
        assert source_depth(WebURL.parse('https://example.com/'), db) == 0
        assert source_depth(WebURL.parse('https://example.com/known'), db) == 2
        assert source_depth(WebURL.parse('https://example.com/other'), db) == 999
        assert source_depth(WebURL.parse('https://example.com/other')) == 999
    finally:
        db.close()
