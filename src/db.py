import json
import logging
import queue
import sqlite3
import time
from datetime import datetime
from threading import Event, Lock, Thread


class CrawlDB:
    """Crawl state: every URL seen so far and the smallest depth it was reached at."""

    def __init__(self, path):
        self.path = path
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
        self._init_tables()
        self.lock = Lock()

    def _init_tables(self):
        cur = self.conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS pages (
                url TEXT PRIMARY KEY,
                url_hash TEXT,
                status TEXT,
                depth INTEGER,
                parent TEXT,
                visited INTEGER DEFAULT 0
            )
            """
        )
        cur.execute("CREATE INDEX IF NOT EXISTS pages_url_hash ON pages(url_hash)")
        self.conn.commit()

    def add_page(self, url, url_hash=None, status=None, depth=0, parent=None, visited=0):
        # keeps the smallest depth a URL was ever reached at
        with self.lock:
            cur = self.conn.cursor()
            try:
                cur.execute(
                    """
                    INSERT INTO pages(url,url_hash,status,depth,parent,visited) VALUES(?,?,?,?,?,?)
                    ON CONFLICT(url) DO UPDATE SET
                        depth=MIN(depth, excluded.depth),
                        url_hash=COALESCE(pages.url_hash, excluded.url_hash)
                    """,
                    (url, url_hash, status or "", depth, parent or "", visited),
                )
                self.conn.commit()
            except Exception:
                logging.exception("Failed to add page to DB: %s", url)

    def mark_visited(self, url, status):
        with self.lock:
            cur = self.conn.cursor()
            try:
                cur.execute("UPDATE pages SET visited=1, status=? WHERE url=?", (str(status), url))
                self.conn.commit()
            except Exception:
                logging.exception("Failed to mark visited in DB: %s", url)

    def get_depth(self, url):
        with self.lock:
            cur = self.conn.cursor()
            cur.execute("SELECT depth FROM pages WHERE url=? LIMIT 1", (url,))
            r = cur.fetchone()
            return r[0] if r and r[0] is not None else None

    def close(self):
        try:
            self.conn.close()
        except Exception:
            pass


def _json_default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"cannot store value of type {type(value).__name__}")


# "field has any value": present, not null, not an empty string or empty list
_HAS_VALUE = (
    "json_type(doc, :path) IS NOT NULL AND json_type(doc, :path) != 'null'"
    " AND NOT (json_type(doc, :path) = 'array' AND json_array_length(doc, :path) = 0)"
    " AND NOT (json_type(doc, :path) = 'text' AND json_extract(doc, :path) = '')"
)


def _json_path(field):
    return '$."%s"' % field.replace('"', "")


class WebgraphIndex:
    """
    Document store for edge records, upserted by id.

    Documents are stored as JSON; queries select documents in which a field has a
    value and hand them out through a DocumentStream.
    """

    def __init__(self, path, id_field="id"):
        self.path = path
        self.id_field = id_field
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
        self.lock = Lock()
        self._init_tables()

    def _init_tables(self):
        with self.lock:
            self.conn.execute("CREATE TABLE IF NOT EXISTS edges (id TEXT PRIMARY KEY, doc TEXT NOT NULL)")
            self.conn.commit()

    def add(self, doc):
        doc_id = doc.get(self.id_field)
        if not doc_id:
            raise ValueError("document has no '%s' field" % self.id_field)
        data = json.dumps(doc, ensure_ascii=False, default=_json_default)
        with self.lock:
            self.conn.execute("INSERT OR REPLACE INTO edges(id, doc) VALUES(?,?)", (doc_id, data))
            self.conn.commit()

    def add_many(self, docs):
        stored = 0
        for doc in docs:
            try:
                self.add(doc)
                stored += 1
            except (ValueError, TypeError, sqlite3.Error):
                logging.exception("Failed to store edge document %s", doc.get(self.id_field))
        return stored

    def commit(self):
        with self.lock:
            self.conn.commit()

    def get(self, doc_id):
        with self.lock:
            r = self.conn.execute("SELECT doc FROM edges WHERE id=?", (doc_id,)).fetchone()
        return json.loads(r[0]) if r else None

    def count(self, field=None) -> int:
        with self.lock:
            if field is None:
                return self.conn.execute("SELECT COUNT(*) FROM edges").fetchone()[0]
            sql = "SELECT COUNT(*) FROM edges WHERE " + _HAS_VALUE
            return self.conn.execute(sql, {"path": _json_path(field)}).fetchone()[0]

    def iter_documents(self, batch_size=500):
        last_id = ""
        while True:
            with self.lock:
                rows = self.conn.execute(
                    "SELECT id, doc FROM edges WHERE id > ? ORDER BY id LIMIT ?", (last_id, batch_size)
                ).fetchall()
            if not rows:
                return
            for doc_id, data in rows:
                last_id = doc_id
                yield json.loads(data)

    def _fetch_with_field(self, field, after_id, limit, offset):
        sql = ("SELECT id, doc FROM edges WHERE id > :after AND " + _HAS_VALUE
               + " ORDER BY id LIMIT :limit OFFSET :offset")
        params = {"path": _json_path(field), "after": after_id or "", "limit": limit, "offset": offset}
        with self.lock:
            rows = self.conn.execute(sql, params).fetchall()
        return [(doc_id, json.loads(data)) for doc_id, data in rows]

    def stream_with_field(self, field, offset=0, max_count=100000, timeout=60.0, buffer_size=50,
                          page_size=500, cancel_event=None):
        """Stream every document where `field` has a value, without loading them all at once."""

        def fetch(after_id, limit, first):
            return self._fetch_with_field(field, after_id, limit, offset if first else 0)

        return DocumentStream(fetch, max_count=max_count, timeout=timeout, buffer_size=buffer_size,
                              page_size=page_size, cancel_event=cancel_event)

    def close(self):
        try:
            with self.lock:
                self.conn.commit()
            self.conn.close()
        except Exception:
            pass


class DocumentStream:
    """
    Query results handed from a producer thread to one consumer over a bounded queue.

    Queue items are tagged: ("doc", document), ("error", exception) and ("end", None).
    Iteration stops at "end", when the cancel event is set, or after close().
    Pages are requested by id greater than the last one seen, so documents rewritten
    by the consumer while the stream runs do not shift later pages.
    """

    def __init__(self, fetch, max_count=100000, timeout=60.0, buffer_size=50, page_size=500, cancel_event=None):
        self._fetch = fetch
        self.max_count = max_count
        self.timeout = timeout
        self.page_size = page_size
        self._queue = queue.Queue(maxsize=max(1, buffer_size))
        self._closed = Event()
        self._cancel = cancel_event or Event()
        self.delivered = 0
        self._thread = Thread(target=self._produce, name="document-stream", daemon=True)
        self._thread.start()

    def _stopped(self):
        return self._closed.is_set() or self._cancel.is_set()

    def _put(self, item):
        while not self._stopped():
            try:
                self._queue.put(item, timeout=0.1)
                return True
            except queue.Full:
                continue
        return False

    def _produce(self):
        deadline = time.monotonic() + self.timeout
        produced = 0
        last_id = None
        try:
            while produced < self.max_count and not self._stopped():
                if time.monotonic() >= deadline:
                    logging.info("Document stream timed out after %d documents", produced)
                    break
                rows = self._fetch(last_id, min(self.page_size, self.max_count - produced), last_id is None)
                if not rows:
                    break
                for doc_id, doc in rows:
                    if not self._put(("doc", doc)):
                        return
                    produced += 1
                    last_id = doc_id
        except Exception as e:
            logging.exception("Document stream producer failed")
            self._put(("error", e))
            return
        self._put(("end", None))

    def __iter__(self):
        try:
            while not self._cancel.is_set():
                try:
                    kind, payload = self._queue.get(timeout=0.1)
                except queue.Empty:
                    if not self._thread.is_alive() and self._queue.empty():
                        return
                    continue
                if kind == "end":
                    return
                if kind == "error":
                    raise payload
                self.delivered += 1
                yield payload
        finally:
            self.close()

    def close(self):
        self._closed.set()
        # the producer polls the closed flag between puts and pages
        self._thread.join(timeout=1.0)
        if self._thread.is_alive():
            logging.warning("Document stream producer did not stop within 1s")
