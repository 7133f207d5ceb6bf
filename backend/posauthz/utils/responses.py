from __future__ import annotations
from typing import Any, Dict, Tuple
from flask import request
from posauthz.config.pagination import normalize_pagination


def success(data: Dict[str, Any], status: int = 200, **extra):
    """Standard success envelope; ``extra`` keys sit beside ``data``."""
    body = {'status': 'success', 'data': data}
    body.update(extra)
    return body, status


def page_args() -> Tuple[int, int]:
    return normalize_pagination(request.args.get('limit'), request.args.get('offset'))


def pagination_meta(total: int, limit: int, offset: int, returned: int) -> Dict[str, int]:
    return {
        'total': total,
        'limit': limit,
        'offset': offset,
        'returned': returned,
    }
