# iris_api/common/paging.py
from flask import request

DEFAULT_PAGE = 1
DEFAULT_SIZE = 20
MAX_SIZE = 100

def page_limit():
    try:
        page = max(int(request.args.get("page", DEFAULT_PAGE)), 1)
    except Exception:
        page = DEFAULT_PAGE
    try:
        size = int(request.args.get("size", DEFAULT_SIZE))
        size = max(1, min(size, MAX_SIZE))
    except Exception:
        size = DEFAULT_SIZE
    return page, size

def total_pages(total: int, size: int) -> int:
    if size <= 0:
        return 1
    return max(1, (total + size - 1) // size)

def page_meta(page: int, size: int, total: int) -> dict:
    return {"page": page, "size": size, "total": total, "pages": total_pages(total, size)}
