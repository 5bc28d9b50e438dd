# payroll_api/common/paging.py
from flask import request

DEFAULT_PAGE = 1
DEFAULT_SIZE = 20
MAX_SIZE = 100

def page_size():
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

def text_q():
    q = request.args.get("q", "")
    return q.strip() or None

def paginate(qry):
    """Apply ?page/&size to a query. Returns (items, meta dict)."""
    page, size = page_size()
    total = qry.count()
    items = qry.offset((page - 1) * size).limit(size).all()
    return items, {"page": page, "size": size, "total": total}
