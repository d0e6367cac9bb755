"""Key namespaces used across the store."""

RAW_PREFIX = "article:"
REWRITTEN_PREFIX = "article:rewritten:"
ARTICLES_BY_DATE = "articles:by_date"

LAST_RUN = "scrape:last_run"
TOTAL_ARTICLES = "scrape:total_articles"

CORPUS_SCOPE = "all"


def raw_key(article_id: str) -> str:
    return f"{RAW_PREFIX}{article_id}"


def rewritten_key(article_id: str) -> str:
    return f"{REWRITTEN_PREFIX}{article_id}"


def digest_latest_key(scope: str = CORPUS_SCOPE) -> str:
    if scope == CORPUS_SCOPE:
        return "digest:latest"
    return f"digest:category:{scope}:latest"


def digest_history_key(scope: str = CORPUS_SCOPE) -> str:
    if scope == CORPUS_SCOPE:
        return "digest:history"
    return f"digest:category:{scope}:history"


def digest_snapshot_key(timestamp: str, scope: str = CORPUS_SCOPE) -> str:
    if scope == CORPUS_SCOPE:
        return f"digest:snapshot:{timestamp}"
    return f"digest:category:{scope}:snapshot:{timestamp}"
