# vpnstore/services/catalog.py
import logging
import math

from sqlalchemy import cast, func, or_, String

from vpnstore.errors import NotFound
from vpnstore.extensions import db
from vpnstore.models import Product
from vpnstore.models.catalog import CATEGORIES

log = logging.getLogger(__name__)

SORTABLE = {
    "createdAt": Product.created_at,
    "price": Product.price,
    "name": Product.name,
    "rating": Product.rating,
    "provider": Product.provider,
    "stock": Product.stock,
}
MAX_PAGE_SIZE = 100


def clamp_page(page, limit, default_limit=12):
    try:
        page = max(1, int(page or 1))
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(limit or default_limit)
    except (TypeError, ValueError):
        limit = default_limit
    return page, min(max(1, limit), MAX_PAGE_SIZE)


def list_products(page=1, limit=12, category=None, search=None, sort_by="createdAt",
                  sort_order="desc", include_inactive=False) -> dict:
    page, limit = clamp_page(page, limit)
    q = Product.query
    if not include_inactive:
        q = q.filter(Product.is_active.is_(True))
    if category and category != "all":
        q = q.filter(Product.category == category)
    if search:
        like = f"%{search.strip().lower()}%"
        q = q.filter(or_(
            func.lower(Product.name).like(like),
            func.lower(Product.provider).like(like),
            func.lower(cast(Product.features, String)).like(like),
        ))

    col = SORTABLE.get(sort_by or "createdAt", Product.created_at)
    q = q.order_by(col.asc() if (sort_order or "").lower() == "asc" else col.desc(), Product.id.desc())

    total = q.count()
    rows = q.offset((page - 1) * limit).limit(limit).all()
    return {
        "products": [p.to_dict() for p in rows],
        "totalPages": math.ceil(total / limit) if total else 0,
        "currentPage": page,
        "total": total,
        "categories": list(CATEGORIES),
    }


def get_product(product_id, include_inactive=False) -> Product:
    product = db.session.get(Product, product_id)
    if product is None or (not include_inactive and not product.is_active):
        raise NotFound("Product not found")
    return product


def active_product(item_id) -> Product | None:
    """Catalog row behind a line-item id, if it names an active product."""
    try:
        pid = int(str(item_id))
    except (TypeError, ValueError):
        return None
    product = db.session.get(Product, pid)
    return product if product is not None and product.is_active else None


def create_product(fields: dict) -> Product:
    product = Product(**fields)
    db.session.add(product)
    db.session.commit()
    log.info("catalog: created product id=%s name=%s", product.id, product.name)
    return product


def update_product(product_id, changes: dict) -> Product:
    product = get_product(product_id, include_inactive=True)
    for attr, value in changes.items():
        setattr(product, attr, value)
    db.session.commit()
    log.info("catalog: updated product id=%s fields=%s", product.id, sorted(changes))
    return product


def delete_product(product_id) -> None:
    product = get_product(product_id, include_inactive=True)
    db.session.delete(product)
    db.session.commit()
    log.info("catalog: deleted product id=%s", product_id)
