from core.imports import (Blueprint, jsonify, request, current_app, jwt_required, SQLAlchemyError, urlparse)
from core.config import image_remote_patterns
from core.extensions import db
from core.pricing import lowest_prices
from core.standardize import standardize_product_name, extract_unit
from models.userModel import User, has_user_type
from models.productModels import ProductRaw, ProductStandard, ProductMapping, product_prices_query
from models.orderModels import Order
from routes.users import load_current_user

products_bp = Blueprint("products", __name__)

MAX_PRICE = 999_999_999
MAX_STOCK = 999_999
DEFAULT_PAGE_SIZE = 12


def is_allowed_image_url(url):
    parsed = urlparse(url)
    if parsed.scheme != "https":
        return False
    for pattern in image_remote_patterns(current_app.config.get("SUPABASE_URL")):
        if parsed.hostname == pattern["hostname"] and parsed.path.startswith(pattern["pathname"]):
            return True
    return False


def get_or_create_standard(standard_name):
    standard = ProductStandard.query.filter_by(standard_name=standard_name).first()
    if standard:
        return standard, False
    standard = ProductStandard(standard_name=standard_name, unit=extract_unit(standard_name), category=None)
    db.session.add(standard)
    db.session.flush()
    return standard, True


def whole_number(value, field):
    """``value`` as an ``int``; booleans and fractional numbers are rejected."""
    if isinstance(value, bool):
        raise ValueError(f"{field} must be a whole number.")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"{field} must be a whole number.")
        return int(value)
    if isinstance(value, (int, str)):
        return int(value)
    raise TypeError(f"{field} must be a whole number.")


def validate_product_fields(data, partial=False):
    """Cleaned listing fields from a request body, or raise ``ValueError``."""
    cleaned = {}

    if "original_name" in data or not partial:
        name = str(data.get("original_name") or "").strip()
        if not name:
            raise ValueError("original_name is required.")
        cleaned["original_name"] = name

    if "price" in data or not partial:
        price = whole_number(data.get("price"), "price")
        if price < 1 or price > MAX_PRICE:
            raise ValueError(f"price must be between 1 and {MAX_PRICE:,}.")
        cleaned["price"] = price

    if "unit" in data or not partial:
        unit = str(data.get("unit") or "").strip()
        if not unit:
            raise ValueError("unit is required.")
        cleaned["unit"] = unit

    if "stock" in data or not partial:
        stock = whole_number(data.get("stock"), "stock")
        if stock < 0 or stock > MAX_STOCK:
            raise ValueError(f"stock must be between 0 and {MAX_STOCK:,}.")
        cleaned["stock"] = stock

    if "image_url" in data:
        image_url = data.get("image_url") or None
        if image_url and not is_allowed_image_url(image_url):
            raise ValueError("image_url must be hosted on an allowed image host.")
        cleaned["image_url"] = image_url

    for field in ("region", "city"):
        if field in data:
            cleaned[field] = data.get(field) or None

    return cleaned


def load_owned_product(product_id, user):
    """``(product, error_response)`` for a listing the caller must own."""
    product = db.session.get(ProductRaw, product_id)
    if not product:
        return None, (jsonify({"error": "Product not found"}), 404)
    if product.vendor_id != user.id:
        return None, (jsonify({"error": "You can only modify products you listed."}), 403)
    return product, None


def seed_products():
    vendor_listings = {
        "vendor_demo_001": [
            ("청양고추 1키로", 8500, "kg", 100),
            ("대파 한단", 3000, "단", 50),
            ("사과 10개", 15000, "개", 30),
        ],
        "vendor_demo_002": [
            ("청양고추 1kg", 9000, "kg", 80),
            ("고등어 1마리", 8000, "마리", 50),
            ("사과10 개", 14500, "개", 20),
        ],
    }
    created = []
    for vendor_id, listings in vendor_listings.items():
        if not db.session.get(User, vendor_id):
            current_app.logger.warning("Vendor %s not found. Run seed_demo_users() first.", vendor_id)
            continue
        for original_name, price, unit, stock in listings:
            if ProductRaw.query.filter_by(vendor_id=vendor_id, original_name=original_name).first():
                continue
            product = ProductRaw(vendor_id=vendor_id, original_name=original_name, price=price,
                                 unit=unit, stock=stock)
            db.session.add(product)
            db.session.flush()
            standard, _ = get_or_create_standard(standardize_product_name(original_name))
            db.session.add(ProductMapping(raw_product_id=product.id, standard_product_id=standard.id,
                                          is_verified=True))
            created.append(original_name)
    db.session.commit()
    if created:
        current_app.logger.info("Demo products created: %s", ", ".join(created))
    else:
        current_app.logger.info("Demo products already exist.")


@products_bp.route("/api/products", methods=["GET"])
@jwt_required()
def list_products():
    """
    List products
    ---
    tags:
      - Products
    security:
      - Bearer: []
    description: >
      Vendors get their own listings with the standardized product each is
      mapped to. Retailers get one entry per standardized product with the
      lowest current price across vendors.
    parameters:
      - name: type
        in: query
        type: string
        enum: ["vendor", "retailer"]
      - name: search
        in: query
        type: string
      - name: category
        in: query
        type: string
      - name: region
        in: query
        type: string
      - name: city
        in: query
        type: string
      - name: limit
        in: query
        type: integer
        default: 12
      - name: offset
        in: query
        type: integer
        default: 0
    responses:
      200:
        description: Product list
      404:
        description: User not found
    """
    user = load_current_user()
    if not user:
        return jsonify({"error": "User not found"}), 404

    requested_type = request.args.get("type")
    if has_user_type(user.user_type, "vendor") and requested_type in (None, "", "vendor"):
        products = (ProductRaw.query
                    .filter_by(vendor_id=user.id)
                    .order_by(ProductRaw.created_at.desc(), ProductRaw.id.desc())
                    .all())
        return jsonify({
            "products": [p.to_dict(with_mapping=True) for p in products],
            "count": len(products),
        }), 200

    try:
        limit = max(int(request.args.get("limit", DEFAULT_PAGE_SIZE)), 1)
        offset = max(int(request.args.get("offset", 0)), 0)
    except ValueError:
        return jsonify({"error": "limit and offset must be integers."}), 400

    query = product_prices_query()
    search = (request.args.get("search") or "").strip()
    category = (request.args.get("category") or "").strip()
    region = (request.args.get("region") or "").strip()
    city = (request.args.get("city") or "").strip()

    if search:
        query = query.filter(ProductStandard.standard_name.ilike(f"%{search}%"))
    if category:
        query = query.filter(ProductStandard.category == category)
    if region:
        query = query.filter(ProductRaw.region == region)
    if city:
        query = query.filter(ProductRaw.city == city)

    try:
        rows = [row._asdict() for row in query.order_by(ProductRaw.id).all()]
    except SQLAlchemyError as e:
        current_app.logger.exception("Failed to load product prices")
        return jsonify({"error": "Failed to load products.", "details": str(e)}), 500

    summaries = lowest_prices(rows)
    return jsonify({
        "products": summaries[offset:offset + limit],
        "count": len(summaries),
    }), 200


@products_bp.route("/api/products", methods=["POST"])
@jwt_required()
def create_product():
    """
    List a new product (vendors only)
    ---
    tags:
      - Products
    security:
      - Bearer: []
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          required: [original_name, price, unit, stock]
          properties:
            original_name:
              type: string
              example: "청양고추 1키로"
            price:
              type: integer
              example: 8500
            unit:
              type: string
              example: "kg"
            stock:
              type: integer
              example: 100
            image_url:
              type: string
            region:
              type: string
              example: "서울"
            city:
              type: string
              example: "강남구"
    responses:
      201:
        description: Product created
      400:
        description: Missing or invalid fields
      403:
        description: Caller is not a vendor
    """
    user = load_current_user()
    if not user:
        return jsonify({"error": "User not found"}), 404
    if not user.has_user_type("vendor"):
        return jsonify({"error": "Only vendors can list products."}), 403

    data = request.get_json(silent=True) or {}
    try:
        fields = validate_product_fields(data)
    except (ValueError, TypeError) as e:
        return jsonify({"error": "Missing or invalid product fields.", "details": str(e)}), 400

    try:
        product = ProductRaw(vendor_id=user.id, **fields)
        db.session.add(product)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("Failed to save product for vendor %s", user.id)
        return jsonify({"error": "Failed to add product.", "details": str(e)}), 500

    # A failed standardization leaves the listing unmapped but still created.
    try:
        standard, _ = get_or_create_standard(standardize_product_name(product.original_name))
        db.session.add(ProductMapping(raw_product_id=product.id, standard_product_id=standard.id,
                                      is_verified=False))
        db.session.commit()
    except (ValueError, SQLAlchemyError):
        db.session.rollback()
        current_app.logger.warning("Standardization failed for product %s", product.id, exc_info=True)

    return jsonify(product.to_dict(with_mapping=True)), 201


@products_bp.route("/api/products/<int:product_id>", methods=["PATCH"])
@jwt_required()
def update_product(product_id):
    user = load_current_user()
    if not user:
        return jsonify({"error": "User not found"}), 404

    product, error = load_owned_product(product_id, user)
    if error:
        return error

    data = request.get_json(silent=True) or {}
    try:
        fields = validate_product_fields(data, partial=True)
    except (ValueError, TypeError) as e:
        return jsonify({"error": "Invalid data format provided.", "details": str(e)}), 400

    try:
        for name, value in fields.items():
            setattr(product, name, value)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("Failed to update product %s", product_id)
        return jsonify({"error": "Failed to update product.", "details": str(e)}), 500

    return jsonify(product.to_dict(with_mapping=True)), 200


@products_bp.route("/api/products/<int:product_id>", methods=["DELETE"])
@jwt_required()
def delete_product(product_id):
    user = load_current_user()
    if not user:
        return jsonify({"error": "User not found"}), 404

    product, error = load_owned_product(product_id, user)
    if error:
        return error

    # Order history is append-only, so listings that were ordered stay.
    if Order.query.filter_by(product_id=product.id).first():
        return jsonify({"error": "Conflict: this product has orders and cannot be deleted. Set its stock to 0 instead."}), 409

    try:
        db.session.delete(product)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("Failed to delete product %s", product_id)
        return jsonify({"error": "Failed to delete product.", "details": str(e)}), 500

    return jsonify({"success": True, "message": "Product deleted."}), 200


@products_bp.route("/api/products/<int:product_id>/mapping", methods=["PATCH"])
@jwt_required()
def update_mapping(product_id):
    """Confirm and/or correct the standardized name of a listing."""
    user = load_current_user()
    if not user:
        return jsonify({"error": "User not found"}), 404

    product, error = load_owned_product(product_id, user)
    if error:
        return error

    mapping = product.mapping
    if not mapping:
        return jsonify({"error": "Standardization result not found."}), 404

    data = request.get_json(silent=True) or {}
    standard_name = str(data.get("standard_name") or "").strip()
    is_verified = data.get("is_verified")

    try:
        if standard_name:
            standard, _ = get_or_create_standard(standard_name)
            mapping.standard_product_id = standard.id
        if is_verified is not None:
            mapping.is_verified = bool(is_verified)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("Failed to update mapping for product %s", product_id)
        return jsonify({"error": "Failed to update standardization result.", "details": str(e)}), 500

    message = "Standardization result confirmed." if is_verified else "Standardization result updated."
    return jsonify({"success": True, "message": message, "mapping": mapping.to_dict()}), 200


@products_bp.route("/api/products/standardize", methods=["POST"])
@jwt_required()
def standardize_product():
    data = request.get_json(silent=True) or {}
    original_name = data.get("original_name")
    if not original_name or not isinstance(original_name, str) or not original_name.strip():
        return jsonify({"error": "The original_name field is required."}), 400

    try:
        standard, created = get_or_create_standard(standardize_product_name(original_name))
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("Failed to store standard product for %r", original_name)
        return jsonify({"error": "Failed to standardize product name.", "details": str(e)}), 500

    current_app.logger.info("Standardized %r -> %r (new=%s)", original_name, standard.standard_name, created)
    return jsonify({
        "standard_name": standard.standard_name,
        "standard_product_id": standard.id,
        "category": standard.category,
        "unit": standard.unit,
    }), 200
