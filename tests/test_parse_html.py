# -----------------------------
# File: tests/test_parse_html.py
# -----------------------------
from html_parsing import parse_html_for_links


def test_parse_html_links_and_images():
    html = '''
    <html><head><title>Hi</title><script>var a=1</script></head>
    <body>
    <h1>Header</h1>
    <a href="/link1" rel="nofollow">First   <b>link</b></a>
    <a href="https://other.example/two#frag" name="n2" rel="me">L2</a>
    <a href="/link1">duplicate</a>
    <a href="javascript:void(0)">js</a>
    <a href="/pic.png"><img src="/pic.png" alt=" A picture " /></a>
    </body></html>
    '''
    links, images = parse_html_for_links(html, 'https://example.com/base/')
    assert set(links) == {
        'https://example.com/link1',
        'https://other.example/two',
        'https://example.com/pic.png',
    }
    assert links['https://example.com/link1'] == {'name': '', 'text': 'First link', 'rel': 'nofollow'}
    assert links['https://other.example/two']['name'] == 'n2'
    assert links['https://other.example/two']['rel'] == 'me'
    assert links['https://example.com/pic.png']['text'] == ''
    assert images == {'https://example.com/pic.png': 'A picture'}


def test_parse_html_multi_valued_rel_is_joined():
    links, _ = parse_html_for_links('<a href="/x" rel="nofollow ugc">x</a>', 'https://example.com/')
    assert links['https://example.com/x']['rel'] == 'nofollow ugc'


def test_parse_html_respects_base_href():
    html = '<html><head><base href="https://cdn.example/root/"></head><body><a href="p">p</a></body></html>'
    links, _ = parse_html_for_links(html, 'https://example.com/')
    assert list(links) == ['https://cdn.example/root/p']
