USER_AGENT = "webgraph-indexer/1.0 (+https://example.com)"
REQUEST_TIMEOUT = 20
DB_NAME = "crawl_state.db"
WEBGRAPH_DB_NAME = "webgraph.db"
SCHEMA_FILE = "webgraph.schema"
DEFAULT_COLLECTION = "user"

# click depth value written while the real depth is still unknown
CLICKDEPTH_PENDING = 999

# pending-edge query used by the post-processing pass
POSTPROCESS_MAX_COUNT = 100000
POSTPROCESS_TIMEOUT = 60.0
POSTPROCESS_BUFFER_SIZE = 50
POSTPROCESS_PAGE_SIZE = 500
