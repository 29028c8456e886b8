import hashlib


def url_hash(url: str) -> str:
    """Stable 12 character identity of a normalized URL."""
    return hashlib.sha1(url.encode("utf-8")).hexdigest()[:12]


def host_hash(host: str) -> str:
    return hashlib.sha1(host.encode("utf-8")).hexdigest()[:6]


def string_hash32(s: str) -> int:
    """
    31-polynomial string hash reduced to an unsigned 32 bit value.
    Unlike the builtin hash() it does not change between interpreter runs,
    so identifiers derived from it survive re-indexing.
    """
    h = 0
    for ch in s:
        h = (31 * h + ord(ch)) & 0xFFFFFFFF
    return h


def compute_edge_id(source_id: str, target_id: str, name: str, text: str, rel: str) -> str:
    # identical (source, target, name, text, rel) links collapse into one record
    suffix = format(string_hash32((name or "") + (text or "") + (rel or "")), "08x")
    return f"{source_id}{target_id}{suffix}"


def rel_flags(rel: str) -> int:
    """
    Encode an anchor rel attribute as a bitmask:
    - bit 0: rel is exactly "me"
    - bit 1: rel is exactly "nofollow"
    Only whole-value matches count, so "nofollow ugc" encodes to 0.
    """
    s = (rel or "").strip().lower()
    flags = 0
    if s == "me":
        flags += 1
    if s == "nofollow":
        flags += 2
    return flags


def word_count(text: str) -> int:
    if not text:
        return 0
    return len(text.split())
