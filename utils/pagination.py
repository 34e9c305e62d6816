from flask import current_app, request

from models.db import MAX_ROW_ID


def page_args() -> tuple[int, int]:
    """Read page_number/page_size from the query string, clamped to config."""
    default_size = current_app.config.get("DEFAULT_PAGE_SIZE", 10)
    max_size = current_app.config.get("MAX_PAGE_SIZE", 100)

    page_number = request.args.get("page_number", type=int) or 1
    page_size = request.args.get("page_size", type=int) or default_size
    page_size = max(1, min(page_size, max_size))

    # keep the OFFSET inside a 64-bit integer
    last_page = MAX_ROW_ID // page_size
    return max(1, min(page_number, last_page)), page_size
