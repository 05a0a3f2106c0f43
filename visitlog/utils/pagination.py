"""
Query-string pagination helpers.
"""
from typing import Any, Dict, Mapping, NamedTuple

from visitlog.config.settings import Config


class PageRequest(NamedTuple):
    page: int
    limit: int
    sort_by: str
    descending: bool

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def _positive_int(value: Any, default: int) -> int:
    try:
        return max(1, int(value))
    except (TypeError, ValueError):
        return default


def parse_page_request(args: Mapping[str, Any], default_limit: int) -> PageRequest:
    """Read page, limit, sortBy and order from request arguments."""
    limit = min(_positive_int(args.get('limit'), default_limit), Config.MAX_PAGE_LIMIT)
    page = _positive_int(args.get('page'), 1)
    sort_by = 'timeOut' if str(args.get('sortBy') or 'timeIn') == 'timeOut' else 'timeIn'
    descending = str(args.get('order') or 'desc').lower() != 'asc'
    return PageRequest(page, limit, sort_by, descending)


def page_envelope(rows: list, page_request: PageRequest, total: int) -> Dict[str, Any]:
    """Wrap one page of visits with its paging metadata."""
    total_pages = max(1, -(-total // page_request.limit))
    return {
        'visits': rows,
        'page': page_request.page,
        'limit': page_request.limit,
        'total': total,
        'totalPages': total_pages,
        'hasMore': page_request.page < total_pages,
    }
