from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain
from protean.utils.reflection import id_field

from commerce.errors import NotFound

# Protean caps every query at 100 records unless told otherwise, so reads
# that need the whole matching set walk it in batches of this size
BATCH_SIZE = 500


def load(aggregate_cls, identifier, label: str | None = None):
    """Fetch an aggregate by id, raising `NotFound` when it does not exist."""
    label = label or aggregate_cls.__name__
    if not identifier:
        raise NotFound(f"{label} not found")
    try:
        return current_domain.repository_for(aggregate_cls).get(str(identifier))
    except ObjectNotFoundError as exc:
        raise NotFound(f"{label} not found", id=str(identifier)) from exc


def query_for(aggregate_cls, order_by=None, **filters):
    query = current_domain.repository_for(aggregate_cls)._dao.query
    if filters:
        query = query.filter(**filters)
    if order_by:
        query = query.order_by(order_by)
    return query


def iter_all(aggregate_cls, order_by=None, batch_size: int | None = None, **filters):
    """Yield every record of `aggregate_cls` matching `filters`, one batch at a time."""
    # Batches are only stable over a total order, so fall back to the identity
    query = query_for(aggregate_cls, order_by=order_by or id_field(aggregate_cls).field_name, **filters)
    batch_size = batch_size or BATCH_SIZE
    offset = 0
    while True:
        batch = query.offset(offset).limit(batch_size).all(with_total=False).items
        yield from batch
        if len(batch) < batch_size:
            return
        offset += batch_size


def find_all(aggregate_cls, order_by=None, **filters) -> list:
    """Return every record of `aggregate_cls` matching `filters`."""
    return list(iter_all(aggregate_cls, order_by=order_by, **filters))


def find_one(aggregate_cls, **filters):
    """Return the first record matching `filters`, or None."""
    records = query_for(aggregate_cls, **filters).limit(1).all(with_total=False).items
    return records[0] if records else None


def _pagination(total: int, page: int, limit: int) -> dict:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "pages": -(-total // limit),
    }


def find_page(aggregate_cls, page: int = 1, limit: int = 10, order_by=None, **filters) -> tuple[list, dict]:
    """Fetch one page of matching records; the total counts the whole filtered set."""
    page = max(page, 1)
    limit = max(limit, 1)
    results = query_for(aggregate_cls, order_by=order_by, **filters).offset((page - 1) * limit).limit(limit).all()
    return results.items, _pagination(results.total, page, limit)
