# tests/test_url_utils.py
import pytest

from url_utils import WebURL, public_suffix, split_host


def test_weburl_protocol_and_stub():
    u = WebURL.parse('http://b.example/q?x=1')
    assert u.protocol == 'http'
    assert u.urlstub == 'b.example/q?x=1'
    assert u.host == 'b.example'
    assert u.path == '/q'
    assert u.search_part_map() == {'x': '1'}
    assert len(u.url_hash) == 12


def test_weburl_normalizes_host_and_fragment():
    u = WebURL.parse('HTTP://WWW.Example.COM:80/a/b.html#top')
    assert u.url == 'http://www.example.com/a/b.html'


def test_weburl_without_query_has_no_search_part():
    assert WebURL.parse('https://example.com/a').search_part_map() is None


def test_weburl_query_keeps_order_and_blank_values():
    u = WebURL.parse('https://example.com/s?b=2&a=&c=3')
    m = u.search_part_map()
    assert list(m.keys()) == ['b', 'a', 'c']
    assert list(m.values()) == ['2', '', '3']


def test_weburl_paths_and_extension():
    u = WebURL.parse('https://example.com/docs/api/Index.HTML')
    assert u.paths() == ['docs', 'api']
    assert u.file_extension == 'html'
    assert WebURL.parse('https://example.com/p').paths() == []
    assert WebURL.parse('https://example.com/p').file_extension == ''
    assert WebURL.parse('https://example.com/a/b/').paths() == ['a', 'b']


@pytest.mark.parametrize("url,root", [
    ('https://example.com', True),
    ('https://example.com/', True),
    ('https://example.com/index.html', True),
    ('https://example.com/home.php', True),
    ('https://example.com/about', False),
    ('https://example.com/docs/index.html', False),
])
def test_probably_root_url(url, root):
    assert WebURL.parse(url).probably_root_url() is root


def test_from_parts_keeps_stored_hash():
    u = WebURL.from_parts('https', 'example.com/a', 'abcdefabcdef')
    assert u.url == 'https://example.com/a'
    assert u.url_hash == 'abcdefabcdef'


@pytest.mark.parametrize("protocol,stub", [('https', ''), ('', 'example.com/a'), (None, None)])
def test_from_parts_rejects_incomplete(protocol, stub):
    with pytest.raises(ValueError):
        WebURL.from_parts(protocol, stub, 'abcdefabcdef')


def test_parse_rejects_hostless():
    with pytest.raises(ValueError):
        WebURL.parse('not a url')


def test_equality_ignores_hash():
    assert WebURL.parse('https://example.com/a') == WebURL.parse('https://example.com/a', 'ffffffffffff')


def test_split_host():
    assert split_host('www.example.co.uk') == ('www', 'example', 'co.uk')
    assert split_host('a.b.example.com') == ('a.b', 'example', 'com')
    assert split_host('example.com') == ('', 'example', 'com')
    assert split_host('127.0.0.1') == ('', '', '')


def test_public_suffix_unknown_tld_falls_back_to_last_label():
    assert public_suffix('b.example') == 'example'
    assert split_host('b.example') == ('', 'b', 'example')


def test_ipv6_host_round_trips_through_parts():
    u = WebURL.parse('http://[2001:DB8::1]:8080/a/b.html#frag')
    assert u.url == 'http://[2001:db8::1]:8080/a/b.html'
    assert u.host == '2001:db8::1'
    assert u.urlstub == '[2001:db8::1]:8080/a/b.html'
    assert WebURL.from_parts(u.protocol, u.urlstub) == u
    assert split_host(u.host) == ('', '', '')
