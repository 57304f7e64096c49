from flask import current_app # For page-size limits from configuration.

# Columns admin listings may be sorted by. Anything else falls back to created_at.
SORTABLE_SUBSCRIPTION_FIELDS = ('created_at', 'updated_at', 'games_played_count', 'paid_amount', 'status', 'payment_status')


def parse_pagination(request_args):
    """
    Parses pagination and sorting parameters from Flask request arguments (request.args).

    Args:
        request_args (werkzeug.datastructures.MultiDict or dict): The request arguments.
            Recognised keys: 'page', 'limit', 'sort', 'order'.

    Returns:
        tuple: (params, error_response_tuple).
               - params (dict or None): {'page', 'limit', 'sort', 'order'} on success.
               - error_response_tuple (tuple or None): ({"error": "message"}, http_status_code)
                 when a parameter is invalid, otherwise None.
    """
    default_limit = current_app.config.get('DEFAULT_PAGE_SIZE', 10)
    max_limit = current_app.config.get('MAX_PAGE_SIZE', 100)

    try:
        page = int(request_args.get('page', 1))
        limit = int(request_args.get('limit', default_limit))
    except (TypeError, ValueError):
        return None, ({"error": "page and limit must be integers."}, 400)

    if page < 1:
        return None, ({"error": "page must be 1 or greater."}, 400)
    if limit < 1 or limit > max_limit:
        return None, ({"error": f"limit must be between 1 and {max_limit}."}, 400)

    sort = request_args.get('sort', 'created_at')
    if sort not in SORTABLE_SUBSCRIPTION_FIELDS and sort not in ('name', 'email'):
        sort = 'created_at' # Unknown sort keys degrade to the default instead of failing.

    # Only 'asc' is honoured explicitly; anything else sorts newest first.
    order = 'asc' if str(request_args.get('order', 'desc')).lower() == 'asc' else 'desc'

    return {'page': page, 'limit': limit, 'sort': sort, 'order': order}, None


def pagination_meta(total, page, limit):
    """Pagination block returned next to a listing's data."""
    total_pages = (total + limit - 1) // limit # Ceiling division.
    return {
        'total': total,
        'page': page,
        'limit': limit,
        'totalPages': total_pages,
        'hasNextPage': page < total_pages,
        'hasPreviousPage': page > 1,
    }
