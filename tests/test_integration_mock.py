# -----------------------------
# File: tests/test_integration_mock.py
# -----------------------------
import json
import os

import pytest

import main
from db import CrawlDB, WebgraphIndex
from indexer import index_page
from postprocess import CrawlDepthResolver, postprocess_webgraph
from schema import FieldSelectionPolicy
from webgraph import EdgeBuilder

PAGE = '''<html><body><p>Hi</p>
<a href="/">home</a>
<a href="/next" rel="nofollow">next page</a>
<a href="https://other.org/x">elsewhere</a>
<img src="/img.png" alt="pic"/>
</body></html>'''


class DummyResp:
    def __init__(self, url):
        self.url = url
        self.status_code = 200
        self.headers = {'Content-Type': 'text/html', 'Last-Modified': 'Mon, 01 Jan 2024 00:00:00 GMT'}
        self.text = PAGE
        self.content = self.text.encode('utf-8')


class DummySession:
    def __init__(self):
        self.headers = {}

    def get(self, url, headers=None, timeout=None, stream=False):
        return DummyResp(url)


@pytest.fixture
def stores(tmp_path):
    index = WebgraphIndex(str(tmp_path / 'webgraph.db'))
    crawl_db = CrawlDB(str(tmp_path / 'crawl_state.db'))
    yield index, crawl_db
    index.close()
    crawl_db.close()


def test_index_then_postprocess(stores):
    index, crawl_db = stores
    policy = FieldSelectionPolicy()
    sg = index_page(DummySession(), 'https://example.com/', EdgeBuilder(policy), index, crawl_db=crawl_db)
    assert sg is not None
    assert len(sg.inbound) == 2 and len(sg.outbound) == 1
    assert index.count() == 3
    # the self link to the root is final, the other two wait for their depth
    assert index.count('process') == 2
    assert crawl_db.get_depth('https://example.com/') == 0
    assert crawl_db.get_depth('https://example.com/next') == 1
    assert crawl_db.get_depth('https://other.org/x') == 1

    stats = postprocess_webgraph(policy, index, CrawlDepthResolver(crawl_db))
    assert stats.processed == 2
    assert stats.clickdepth_changed == 2
    assert index.count('process') == 0
    depths = {d['target_urlstub']: d['target_clickdepth'] for d in index.iter_documents()}
    assert depths == {'example.com/': 0, 'example.com/next': 1, 'other.org/x': 1}


def test_index_page_skips_malformed_url(stores):
    index, crawl_db = stores
    assert index_page(DummySession(), 'not a url', EdgeBuilder(), index, crawl_db=crawl_db) is None
    assert index.count() == 0


def test_cli_index_postprocess_export(tmp_path, monkeypatch):
    monkeypatch.setattr('main.requests.Session', lambda: DummySession())
    monkeypatch.setattr('main.setup_logging', lambda logfile=None, verbose=False: None)
    monkeypatch.setattr('main.signal.signal', lambda *a: None)
    out = tmp_path / 'data'
    assert main.main(['--output', str(out), 'index', 'https://example.com/']) == 0
    assert main.main(['--output', str(out), 'postprocess']) == 0
    assert main.main(['--output', str(out), 'export']) == 0
    with open(os.path.join(out, 'link_graph.json'), encoding='utf-8') as f:
        graph = json.load(f)
    assert ['https://example.com/', 'https://other.org/x'] in graph['edges']
    assert graph['pending'] == 0
    assert graph['domain_counts']['example.com'] == 2


def test_cli_rejects_urls_without_scheme(tmp_path, monkeypatch):
    monkeypatch.setattr('main.setup_logging', lambda logfile=None, verbose=False: None)
    monkeypatch.setattr('main.signal.signal', lambda *a: None)
    assert main.main(['--output', str(tmp_path), 'index', 'example.com/page']) == 2
