import logging
from email.utils import parsedate_to_datetime

from configs import REQUEST_TIMEOUT, USER_AGENT
from webgraph import ResponseMeta


def parse_last_modified(value):
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        logging.debug("Unparsable Last-Modified header: %r", value)
        return None


def fetch_page(session, url):
    """Return (ResponseMeta, text); text is None unless the page could be read as HTML."""
    try:
        resp = session.get(url, headers={"User-Agent": USER_AGENT}, timeout=REQUEST_TIMEOUT)
        status = resp.status_code
        ctype = resp.headers.get("Content-Type", "") or ""
        meta = ResponseMeta(
            last_modified=parse_last_modified(resp.headers.get("Last-Modified")),
            status=status,
            content_type=ctype,
        )
        if status != 200:
            return meta, None
        if ctype and "html" not in ctype.lower():
            logging.debug("Not an HTML page: %s (%s)", url, ctype)
            return meta, None
        # attempt to return text; if it fails, decode bytes
        try:
            return meta, resp.text
        except Exception:
            try:
                return meta, resp.content.decode("utf-8", errors="replace")
            except Exception:
                return meta, ""
    except Exception:
        logging.exception("Exception fetching page: %s", url)
        return ResponseMeta(status=0), None
