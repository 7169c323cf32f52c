from core.imports import Blueprint, jsonify, request, current_app, jwt_required, SQLAlchemyError
from core.extensions import db
from models.userModel import User, has_user_type
from models.productModels import ProductRaw
from models.orderModels import Order
from routes.users import load_current_user
from routes.products import whole_number

orders_bp = Blueprint("orders", __name__)

MAX_QUANTITY = 999_999
MAX_TOTAL_PRICE = 999_999_999
VENDOR_TRANSITIONS = {"pending": ("confirmed", "cancelled")}


def order_side(user, requested_type):
    """``"retailer"`` or ``"vendor"``: which side of its orders the caller is looking at."""
    if requested_type in ("vendor", "retailer") and has_user_type(user.user_type, requested_type):
        return requested_type
    return "vendor" if user.user_type == "vendor" else "retailer"


def order_details(order):
    data = order.to_dict()
    data["buyer"] = {
        "id": order.buyer.id,
        "business_name": order.buyer.business_name,
        "email": order.buyer.email,
        "phone": order.buyer.phone,
    } if order.buyer else None
    data["vendor"] = {
        "id": order.vendor.id,
        "business_name": order.vendor.business_name,
        "email": order.vendor.email,
        "phone": order.vendor.phone,
    } if order.vendor else None
    data["product"] = {
        "id": order.product.id,
        "original_name": order.product.original_name,
        "price": order.product.price,
        "unit": order.product.unit,
        "image_url": order.product.image_url,
    } if order.product else None
    return data


@orders_bp.route("/api/orders", methods=["POST"])
@jwt_required()
def create_order():
    """
    Place an order against a vendor listing (retailers only)
    ---
    tags:
      - Orders
    security:
      - Bearer: []
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          required: [product_id, quantity]
          properties:
            product_id:
              type: integer
              example: 1
            quantity:
              type: integer
              example: 3
            delivery_address:
              type: string
              example: "서울시 강남구 테헤란로 1"
            notes:
              type: string
    responses:
      201:
        description: Order created with status pending
      400:
        description: Invalid quantity, total or insufficient stock
      403:
        description: Caller is not a retailer
      404:
        description: Product not found
    """
    user = load_current_user()
    if not user:
        return jsonify({"error": "User not found"}), 404
    if not user.has_user_type("retailer"):
        return jsonify({"error": "Only retailers can place orders."}), 403

    data = request.get_json(silent=True) or {}
    try:
        product_id = whole_number(data.get("product_id"), "product_id")
        quantity = whole_number(data.get("quantity"), "quantity")
    except (TypeError, ValueError):
        return jsonify({"error": "product_id and quantity must be integers."}), 400

    if quantity < 1 or quantity > MAX_QUANTITY:
        return jsonify({"error": f"quantity must be between 1 and {MAX_QUANTITY:,}."}), 400

    product = db.session.get(ProductRaw, product_id)
    if not product:
        return jsonify({"error": "Product not found"}), 404
    if product.vendor_id == user.id:
        return jsonify({"error": "You cannot order your own product."}), 400
    if quantity > product.stock:
        return jsonify({"error": f"Only {product.stock} of '{product.original_name}' available."}), 400

    total_price = product.price * quantity
    if total_price < 1 or total_price > MAX_TOTAL_PRICE:
        return jsonify({"error": f"total_price must be between 1 and {MAX_TOTAL_PRICE:,}."}), 400

    try:
        # Reserve stock in the UPDATE itself so concurrent orders cannot oversell.
        reserved = (ProductRaw.query
                    .filter(ProductRaw.id == product.id, ProductRaw.stock >= quantity)
                    .update({ProductRaw.stock: ProductRaw.stock - quantity}))
        if not reserved:
            db.session.rollback()
            return jsonify({"error": f"Not enough stock left for '{product.original_name}'."}), 400

        order = Order(
            buyer_id=user.id,
            vendor_id=product.vendor_id,
            product_id=product.id,
            quantity=quantity,
            total_price=total_price,
            status="pending",
            delivery_address=data.get("delivery_address") or None,
            notes=data.get("notes") or None,
        )
        db.session.add(order)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("Failed to create order for %s", user.id)
        return jsonify({"error": "Failed to create order.", "details": str(e)}), 500

    current_app.logger.info("Order %s placed by %s for product %s", order.id, user.id, product.id)
    return jsonify({"success": True, "order": order.to_dict()}), 201


@orders_bp.route("/api/orders", methods=["GET"])
@jwt_required()
def list_orders():
    user = load_current_user()
    if not user:
        return jsonify({"error": "User not found"}), 404

    side = order_side(user, request.args.get("type"))
    query = Order.query.filter_by(vendor_id=user.id) if side == "vendor" else Order.query.filter_by(buyer_id=user.id)
    query = query.order_by(Order.created_at.desc(), Order.id.desc())

    limit = request.args.get("limit")
    if limit:
        try:
            query = query.limit(max(int(limit), 1))
        except ValueError:
            return jsonify({"error": "limit must be an integer."}), 400

    orders = [order_details(order) for order in query.all()]
    return jsonify({"orders": orders, "count": len(orders), "type": side}), 200


@orders_bp.route("/api/orders/<int:order_id>", methods=["GET"])
@jwt_required()
def get_order(order_id):
    user = load_current_user()
    if not user:
        return jsonify({"error": "User not found"}), 404

    order = db.session.get(Order, order_id)
    if not order:
        return jsonify({"error": "Order not found"}), 404
    if user.id not in (order.buyer_id, order.vendor_id):
        return jsonify({"error": "You do not have access to this order."}), 403

    return jsonify({"order": order_details(order)}), 200


@orders_bp.route("/api/orders/<int:order_id>", methods=["PATCH"])
@jwt_required()
def update_order_status(order_id):
    """
    Confirm or cancel a pending order (selling vendor only)
    ---
    tags:
      - Orders
    security:
      - Bearer: []
    parameters:
      - name: order_id
        in: path
        type: integer
        required: true
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            status:
              type: string
              enum: ["confirmed", "cancelled"]
    responses:
      200:
        description: Status updated
      400:
        description: Transition not allowed
      403:
        description: Caller is not the selling vendor
      404:
        description: Order not found
    """
    user = load_current_user()
    if not user:
        return jsonify({"error": "User not found"}), 404

    order = db.session.get(Order, order_id)
    if not order:
        return jsonify({"error": "Order not found"}), 404
    if order.vendor_id != user.id:
        return jsonify({"error": "Only the selling vendor can update this order."}), 403

    data = request.get_json(silent=True) or {}
    new_status = data.get("status")
    if new_status not in VENDOR_TRANSITIONS.get(order.status, ()):
        return jsonify({"error": f"Cannot change order status from {order.status} to {new_status}."}), 400

    try:
        order.status = new_status
        if new_status == "cancelled":
            ProductRaw.query.filter(ProductRaw.id == order.product_id).update(
                {ProductRaw.stock: ProductRaw.stock + order.quantity})
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("Failed to update order %s", order_id)
        return jsonify({"error": "Failed to update order.", "details": str(e)}), 500

    current_app.logger.info("Order %s %s by vendor %s", order.id, new_status, user.id)
    return jsonify({"success": True, "order": order.to_dict()}), 200


def seed_demo_orders():
    retailer = db.session.get(User, "retailer_demo_001")
    product = ProductRaw.query.filter_by(vendor_id="vendor_demo_001").order_by(ProductRaw.id).first()
    if not retailer or not product:
        current_app.logger.warning("Demo retailer or product missing. Run the user and product seeds first.")
        return
    if Order.query.filter_by(buyer_id=retailer.id).first():
        current_app.logger.info("Demo orders already exist.")
        return

    db.session.add(Order(buyer_id=retailer.id, vendor_id=product.vendor_id, product_id=product.id,
                         quantity=2, total_price=product.price * 2, status="pending",
                         delivery_address="서울시 강남구 테헤란로 1"))
    db.session.commit()
    current_app.logger.info("Demo order created for %s", retailer.email)
