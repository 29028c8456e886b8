import ipaddress
import re
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
from urllib.parse import parse_qsl, urldefrag, urljoin, urlparse

import tldextract

from utils import host_hash, url_hash

# bundled public suffix snapshot only; never fetch the list over the network
_suffix_extract = tldextract.TLDExtract(suffix_list_urls=())

ROOT_PATH_PATTERN = re.compile(
    r"^/?(index\.html?|index\.php|home\.html?|home\.php|default\.html?|default\.php|default\.asp)?$",
    re.IGNORECASE,
)


def normalize_url(base: str, link: str):
    if not link:
        return None
    link = link.strip()
    if link.startswith("javascript:") or link.startswith("mailto:") or link.startswith("data:"):
        return None
    try:
        joined = urljoin(base, link)
        clean, _ = urldefrag(joined)
        p = urlparse(clean)
        scheme = p.scheme or "http"
        netloc = p.hostname or ""
        if ":" in netloc:
            netloc = f"[{netloc}]"
        if p.port:
            if (scheme == "http" and p.port != 80) or (scheme == "https" and p.port != 443):
                netloc = f"{netloc}:{p.port}"
        normalized = f"{scheme}://{netloc}{p.path or ''}{('?' + p.query) if p.query else ''}"
        return normalized
    except Exception:
        return None


def domain_of(url: str):
    try:
        return urlparse(url).netloc.lower()
    except Exception:
        return ""


def public_suffix(host: str) -> str:
    """
    Public suffix ("dnc") of a host name, e.g. "co.uk" for www.example.co.uk.
    Hosts under a suffix unknown to the list fall back to their last label.
    IP addresses have no suffix.
    """
    if not host:
        return ""
    try:
        ipaddress.ip_address(host.strip("[]"))
        return ""
    except ValueError:
        pass
    suffix = _suffix_extract(host).suffix
    if suffix:
        return suffix
    return host.rsplit(".", 1)[-1]


def split_host(host: str) -> Tuple[str, str, str]:
    """Return (subdomain, organization, dnc) for a host name."""
    dnc = public_suffix(host)
    if not dnc:
        return "", "", ""
    subdom_orga = "" if len(host) - len(dnc) <= 0 else host[:len(host) - len(dnc) - 1]
    pp = subdom_orga.rfind(".")
    subdom = "" if pp < 0 else subdom_orga[:pp]
    orga = subdom_orga if pp < 0 else subdom_orga[pp + 1:]
    return subdom, orga, dnc


@dataclass(frozen=True)
class WebURL:
    """A normalized URL plus the identity and structure the webgraph records about it."""

    url: str
    url_hash: str = field(compare=False)

    @classmethod
    def parse(cls, url: str, hash_: Optional[str] = None) -> "WebURL":
        raw = (url or "").strip()
        try:
            p = urlparse(raw)
            host = p.hostname
        except ValueError:
            raise ValueError(f"not an absolute URL: {url!r}") from None
        if not p.scheme or not host or any(c.isspace() for c in host):
            raise ValueError(f"not an absolute URL: {url!r}")
        n = normalize_url(raw, raw)
        if not n:
            raise ValueError(f"not an absolute URL: {url!r}")
        return cls(n, hash_ or url_hash(n))

    @classmethod
    def from_parts(cls, protocol: str, urlstub: str, hash_: Optional[str] = None) -> "WebURL":
        if not protocol or not urlstub:
            raise ValueError(f"incomplete URL parts: {protocol!r} {urlstub!r}")
        return cls.parse(f"{protocol}://{urlstub}", hash_)

    @classmethod
    def of(cls, value) -> "WebURL":
        return value if isinstance(value, WebURL) else cls.parse(value)

    @property
    def protocol(self) -> str:
        return self.url[:self.url.index("://")]

    @property
    def urlstub(self) -> str:
        return self.url[self.url.index("://") + 3:]

    @property
    def host(self) -> Optional[str]:
        return urlparse(self.url).hostname

    @property
    def host_hash(self) -> str:
        return host_hash(self.host or "")

    @property
    def path(self) -> str:
        return urlparse(self.url).path or "/"

    def search_part_map(self) -> Optional[Dict[str, str]]:
        """Query parameters in order of appearance, or None when the URL has no query."""
        query = urlparse(self.url).query
        if not query:
            return None
        return dict(parse_qsl(query, keep_blank_values=True))

    @property
    def file_name(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @property
    def file_extension(self) -> str:
        name = self.file_name
        p = name.rfind(".")
        return "" if p < 0 else name[p + 1:].lower()

    def paths(self):
        # folder names only; the last path element is the file name
        s = self.path[1:] if self.path.startswith("/") else self.path
        p = s.rfind("/")
        if p < 0:
            return []
        return s[:p].split("/")

    def probably_root_url(self) -> bool:
        return bool(ROOT_PATH_PATTERN.match(self.path))

    def __str__(self):
        return self.url
