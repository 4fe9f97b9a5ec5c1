# feedback_blueprint.py
from collections import defaultdict

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from models import db, Product, ProductRating
from product_ratings import CRITERIA, summarize_ratings, validate_scores
from time_accounting import as_flag

feedback_bp = Blueprint("feedback_bp", __name__)

REQUIRED_PRODUCT_FIELDS = ["id", "name", "image_url", "brand", "kind"]


def _commit_or_500(what: str):
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"{what} failed: {e}")
        return jsonify({"error": f"Error saving {what}.", "details": str(e)}), 500
    return None


# ----------------- Products -----------------
@feedback_bp.route("/products", methods=["GET"])
def list_products():
    # employees only see visible products, the admin list passes include_hidden
    query = Product.query
    if not as_flag(request.args.get("include_hidden")):
        query = query.filter_by(visible=True)
    products = query.order_by(Product.name).all()
    return jsonify({"products": [p.to_dict() for p in products]})


@feedback_bp.route("/products", methods=["POST"])
def create_product():
    body = request.get_json(silent=True) or {}
    data = {k: str(body.get(k) or "").strip() for k in REQUIRED_PRODUCT_FIELDS + ["description"]}
    missing = [k for k in REQUIRED_PRODUCT_FIELDS if not data[k]]
    if missing:
        return jsonify({"error": "All fields are required.", "details": f"Missing: {', '.join(missing)}"}), 400
    if db.session.get(Product, data["id"]) is not None:
        return jsonify({"error": "Product already exists.", "details": data["id"]}), 409

    product = Product(**data, visible=as_flag(body["visible"]) if "visible" in body else True)
    db.session.add(product)
    failed = _commit_or_500("product")
    if failed:
        return failed
    return jsonify(product.to_dict()), 201


@feedback_bp.route("/products/<product_id>", methods=["PATCH"])
def set_product_visibility(product_id):
    product = db.session.get(Product, product_id)
    if product is None:
        return jsonify({"error": "Product not found.", "details": product_id}), 404
    body = request.get_json(silent=True) or {}
    if not isinstance(body.get("visible"), bool):
        return jsonify({"error": "Invalid request.", "details": "'visible' must be true or false"}), 400

    product.visible = body["visible"]
    failed = _commit_or_500("product")
    if failed:
        return failed
    current_app.logger.info(f"Product {product_id} visible={product.visible}")
    return jsonify(product.to_dict())


@feedback_bp.route("/products/<product_id>", methods=["DELETE"])
def delete_product(product_id):
    product = db.session.get(Product, product_id)
    if product is None:
        return jsonify({"error": "Product not found.", "details": product_id}), 404

    removed = len(product.ratings)
    # ratings go with the product through the relationship cascade
    db.session.delete(product)
    failed = _commit_or_500("product")
    if failed:
        return failed
    current_app.logger.info(f"Deleted product {product_id} and {removed} ratings")
    return jsonify({"deleted": product_id, "ratings_deleted": removed})


# ----------------- Ratings -----------------
@feedback_bp.route("/products/<product_id>/ratings", methods=["POST"])
def rate_product(product_id):
    if db.session.get(Product, product_id) is None:
        return jsonify({"error": "Product not found.", "details": product_id}), 404

    body = request.get_json(silent=True) or {}
    employee = str(body.get("employee") or "").strip()
    if not employee:
        return jsonify({"error": "Invalid rating.", "details": "'employee' is required"}), 400
    try:
        scores = validate_scores(body)
    except ValueError as e:
        return jsonify({"error": "Invalid rating.", "details": str(e)}), 400

    # one rating per employee and product, resubmitting overwrites it
    rating = ProductRating.query.filter_by(product_id=product_id, employee=employee).first()
    if rating is None:
        rating = ProductRating(product_id=product_id, employee=employee)
        db.session.add(rating)
    for key, value in scores.items():
        setattr(rating, key, value)

    failed = _commit_or_500("rating")
    if failed:
        return failed
    return jsonify({"product_id": product_id, "employee": employee, **scores})


@feedback_bp.route("/ratings/summary", methods=["GET"])
def ratings_summary():
    products = [p.to_dict() for p in Product.query.order_by(Product.name).all()]
    by_product = defaultdict(list)
    for r in ProductRating.query.all():
        by_product[r.product_id].append({k: getattr(r, k) for k in CRITERIA})
    return jsonify(summarize_ratings(products, by_product))
