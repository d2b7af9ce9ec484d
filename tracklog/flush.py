import hmac
import logging
from concurrent.futures import ThreadPoolExecutor

from .store import DEFAULT_PAGE_SIZE, KVStore, list_all_keys

logger = logging.getLogger(__name__)


class FlushResult:
    """HTTP status plus the JSON payload returned by /flush."""

    def __init__(self, status: int, payload: dict):
        self.status = status
        self.payload = payload

    @property
    def deleted(self) -> int:
        return self.payload.get("deleted", 0)


def password_matches(supplied: str | None, expected: str) -> bool:
    if supplied is None:
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


def delete_all(store: KVStore, page_size: int = DEFAULT_PAGE_SIZE, max_workers: int = 16) -> int:
    """
    Delete every key, fanning the deletes out over a thread pool and
    waiting for all of them. The first failing delete is re-raised.
    """
    keys = list_all_keys(store, page_size=page_size)
    if not keys:
        return 0
    workers = max(1, min(max_workers, len(keys)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="flush") as pool:
        # consuming the iterator re-raises the first delete error
        for _ in pool.map(store.delete, keys):
            pass
    return len(keys)


def flush_logs(store: KVStore, supplied_password: str | None, expected_password: str,
               page_size: int = DEFAULT_PAGE_SIZE, max_workers: int = 16) -> FlushResult:
    if not password_matches(supplied_password, expected_password):
        logger.warning("Rejected flush with invalid password")
        return FlushResult(401, {
            "error": "Unauthorized",
            "message": "Invalid password. Use: /flush?password=YOUR_PASSWORD",
        })

    try:
        deleted = delete_all(store, page_size=page_size, max_workers=max_workers)
    except Exception as e:
        logger.exception("Flush failed")
        return FlushResult(500, {
            "error": "Flush failed",
            "message": str(e),
        })

    if deleted == 0:
        return FlushResult(200, {
            "success": True,
            "message": "No logs to delete",
            "deleted": 0,
        })

    logger.info("Flushed %d logs", deleted)
    return FlushResult(200, {
        "success": True,
        "message": "All logs deleted successfully",
        "deleted": deleted,
    })
