"""Iterate repository query results without tripping the default page limit."""

PAGE_SIZE = 500


def iterate_all(queryset, page_size: int = PAGE_SIZE):
    """Yield every record matched by a Protean queryset, one page at a time."""
    offset = 0
    while True:
        page = queryset.offset(offset).limit(page_size).all()
        yield from page.items
        if len(page.items) < page_size:
            return
        offset += page_size
