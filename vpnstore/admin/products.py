# vpnstore/admin/products.py
from flask import jsonify, request

from vpnstore.admin import admin_bp
from vpnstore.schemas import ProductIn, ProductPatch, changed_fields, parse
from vpnstore.services import catalog

# columns that may legitimately be cleared with an explicit null
NULLABLE = {"original_price"}


@admin_bp.get("/products")
def list_products():
    args = request.args
    return jsonify(ok=True, **catalog.list_products(
        page=args.get("page", 1),
        limit=args.get("limit", 20),
        category=args.get("category"),
        search=args.get("search"),
        sort_by=args.get("sortBy", "createdAt"),
        sort_order=args.get("sortOrder", "desc"),
        include_inactive=True,
    ))


@admin_bp.post("/products")
def create_product():
    body = parse(ProductIn, request.get_json(silent=True))
    product = catalog.create_product(body.model_dump())
    return jsonify(ok=True, message="Product created", product=product.to_dict()), 201


@admin_bp.put("/products/<int:product_id>")
def update_product(product_id):
    body = parse(ProductPatch, request.get_json(silent=True))
    changes = {k: v for k, v in changed_fields(body).items() if v is not None or k in NULLABLE}
    product = catalog.update_product(product_id, changes)
    return jsonify(ok=True, message="Product updated", product=product.to_dict())


@admin_bp.delete("/products/<int:product_id>")
def delete_product(product_id):
    catalog.delete_product(product_id)
    return jsonify(ok=True, message="Product deleted")
