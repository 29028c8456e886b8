from bs4 import BeautifulSoup

from url_utils import normalize_url


def _rel_value(tag):
    rel = tag.get("rel")
    if isinstance(rel, (list, tuple)):
        return " ".join(rel)
    return rel or ""


def parse_html_for_links(html, base_url):
    """
    Extract anchors and images from a page.

    Returns (links, images):
    - links: {normalized url: {"name": ..., "text": ..., "rel": ...}}, first anchor per URL wins
    - images: {normalized url: alt text}
    """
    try:
        soup = BeautifulSoup(html, "html.parser")
    except Exception:
        return {}, {}

    base = soup.find("base", href=True)
    if base:
        base_url = normalize_url(base_url, base.get("href")) or base_url

    links = {}
    for a in soup.find_all("a", href=True):
        n = normalize_url(base_url, a.get("href"))
        if not n or n in links:
            continue
        links[n] = {
            "name": (a.get("name") or "").strip(),
            "text": " ".join(a.get_text(" ", strip=True).split()),
            "rel": _rel_value(a).strip(),
        }

    images = {}
    for img in soup.find_all("img"):
        src = img.get("src") or img.get("data-src") or img.get("data-original")
        n = normalize_url(base_url, src) if src else None
        if n and n not in images:
            images[n] = (img.get("alt") or "").strip()

    return links, images
