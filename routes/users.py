from core.imports import (Blueprint, jsonify, request, current_app, jwt_required, get_jwt_identity, get_jwt,
                          SQLAlchemyError, datetime, timezone, base64, hashlib, hmac, json, re, urlencode, or_)
from core.extensions import db
from models.userModel import User, USER_TYPES
from models.orderModels import Order

users_bp = Blueprint("users", __name__)

NICKNAME_RE = re.compile(r"^[a-zA-Z0-9가-힣_]+$")
WEBHOOK_TOLERANCE_SECONDS = 5 * 60
SIGN_UP_ROLES = ("vendor", "retailer")


def load_current_user():
    """The ``User`` behind the bearer token, or ``None`` if it was never synced."""
    user = db.session.get(User, get_jwt_identity())
    if user is None or user.deleted_at is not None:
        return None
    return user


def validate_nickname(nickname):
    """Error message for an invalid nickname, ``None`` when it is acceptable."""
    if len(nickname) < 2 or len(nickname) > 20:
        return "Nickname must be between 2 and 20 characters."
    if not NICKNAME_RE.match(nickname):
        return "Nickname may only contain letters, digits, Hangul and underscores."
    return None


def remove_user(user):
    """Delete ``user``, or anonymize it when orders still reference it.

    Order history is kept, so a user with orders keeps its row with the
    personal fields cleared and its listings taken out of stock.
    Returns ``"deleted"`` or ``"anonymized"``.
    """
    has_orders = Order.query.filter(or_(Order.buyer_id == user.id, Order.vendor_id == user.id)).first()
    if not has_orders:
        db.session.delete(user)
        return "deleted"

    user.email = f"deleted+{user.id}@users.invalid"
    user.nickname = None
    user.phone = None
    user.business_name = "Deleted user"
    user.deleted_at = datetime.utcnow()
    for product in user.products:
        product.stock = 0
    return "anonymized"


def seed_demo_users():
    demo_users = [
        {"id": "vendor_demo_001", "email": "vendor1@example.com", "user_type": "vendor",
         "business_name": "서울청과도매", "phone": "02-1234-5678", "region": "서울"},
        {"id": "vendor_demo_002", "email": "vendor2@example.com", "user_type": "vendor",
         "business_name": "부산수산도매", "phone": "051-8765-4321", "region": "부산"},
        {"id": "retailer_demo_001", "email": "retailer1@example.com", "user_type": "retailer",
         "business_name": "강남슈퍼마켓", "phone": "02-9999-8888", "region": "서울"},
    ]
    created = []
    for data in demo_users:
        if not db.session.get(User, data["id"]):
            db.session.add(User(**data))
            created.append(data["email"])
    db.session.commit()
    if created:
        current_app.logger.info("Demo users created: %s", ", ".join(created))
    else:
        current_app.logger.info("Demo users already exist.")


def upsert_user(user_id, email, user_type, business_name, phone=None):
    user = db.session.get(User, user_id)
    if user is None:
        user = User(id=user_id)
        db.session.add(user)
    user.email = email
    user.user_type = user_type
    user.business_name = business_name
    if phone is not None:
        user.phone = phone
    return user


@users_bp.route("/api/sync-user", methods=["POST"])
@jwt_required()
def sync_user():
    """Create or refresh the caller's user row from the identity token claims."""
    user_id = get_jwt_identity()
    claims = get_jwt()

    email = claims.get("email")
    if not email:
        return jsonify({"error": "Email is required"}), 400

    full_name = (claims.get("name")
                 or " ".join(filter(None, [claims.get("first_name"), claims.get("last_name")]))
                 or claims.get("username")
                 or email)

    existing = db.session.get(User, user_id)
    user_type = existing.user_type if existing else "retailer"
    business_name = existing.business_name if existing else full_name

    try:
        user = upsert_user(user_id, email, user_type, business_name, claims.get("phone"))
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("Failed to sync user %s", user_id)
        return jsonify({"error": "Failed to sync user", "details": str(e)}), 500

    return jsonify({"success": True, "user": user.to_dict()}), 200


@users_bp.route("/api/user/check-nickname", methods=["GET"])
def check_nickname():
    nickname = (request.args.get("nickname") or "").strip()
    if not nickname:
        return jsonify({"error": "The nickname query parameter is required."}), 400

    error = validate_nickname(nickname)
    if error:
        return jsonify({"error": error}), 400

    if User.query.filter_by(nickname=nickname).first():
        return jsonify({"available": False, "message": "This nickname is already taken."}), 200

    return jsonify({"available": True, "message": "This nickname is available."}), 200


@users_bp.route("/api/user/update-profile", methods=["PATCH"])
@jwt_required()
def update_profile():
    """
    Update the logged-in user's profile
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            nickname:
              type: string
              example: "fresh_mart"
            business_name:
              type: string
              example: "강남슈퍼마켓"
            phone:
              type: string
              example: "02-9999-8888"
            user_type:
              type: string
              enum: ["vendor", "retailer", "vendor/retailer"]
    responses:
      200:
        description: Profile updated
      400:
        description: Invalid nickname or user type
      404:
        description: User not found
    """
    user = load_current_user()
    if not user:
        return jsonify({"error": "User not found"}), 404

    data = request.get_json(silent=True) or {}

    if "nickname" in data and data["nickname"] is not None:
        nickname = str(data["nickname"]).strip()
        if nickname != user.nickname:
            error = validate_nickname(nickname)
            if error:
                return jsonify({"error": error}), 400
            taken = User.query.filter(User.nickname == nickname, User.id != user.id).first()
            if taken:
                return jsonify({"error": "This nickname is already taken."}), 400
            user.nickname = nickname

    if "user_type" in data:
        if data["user_type"] not in USER_TYPES:
            return jsonify({"error": "Invalid user type."}), 400
        user.user_type = data["user_type"]
    if "business_name" in data and data["business_name"]:
        user.business_name = str(data["business_name"])
    if "phone" in data:
        user.phone = data["phone"] or None
    if "region" in data:
        user.region = data["region"] or None
    if "city" in data:
        user.city = data["city"] or None

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("Failed to update profile for %s", user.id)
        return jsonify({"error": "Failed to update profile.", "details": str(e)}), 500

    return jsonify({"success": True, "user": user.to_dict()}), 200


@users_bp.route("/api/auth/redirect-urls", methods=["GET"])
def auth_redirect_urls():
    """Sign-in / sign-up URLs that carry the chosen role through to profile completion."""
    role = request.args.get("role")
    after_sign_up = "/sign-up/complete"
    if role in SIGN_UP_ROLES:
        after_sign_up = f"{after_sign_up}?{urlencode({'role': role})}"

    return jsonify({
        "sign_in_url": f"/sign-in?{urlencode({'redirect_url': '/'})}",
        "sign_up_url": f"/sign-up?{urlencode({'redirect_url': after_sign_up})}",
        "after_sign_up_url": after_sign_up,
        "role": role if role in SIGN_UP_ROLES else None,
    }), 200


def verify_webhook_signature(secret, msg_id, timestamp, signature_header, payload, now=None):
    """Check a Svix-style webhook signature.

    The signed content is ``"{msg_id}.{timestamp}.{payload}"``, signed with
    HMAC-SHA256 using the base64 key after the ``whsec_`` prefix; the header
    holds one or more space separated ``v1,<base64 signature>`` entries.
    """
    try:
        sent_at = int(timestamp)
    except (TypeError, ValueError):
        return False
    now = now if now is not None else datetime.now(timezone.utc).timestamp()
    if abs(now - sent_at) > WEBHOOK_TOLERANCE_SECONDS:
        return False

    key = secret[len("whsec_"):] if secret.startswith("whsec_") else secret
    try:
        key_bytes = base64.b64decode(key)
    except ValueError:
        return False

    signed_content = f"{msg_id}.{timestamp}.".encode("utf-8") + payload
    expected = base64.b64encode(hmac.new(key_bytes, signed_content, hashlib.sha256).digest()).decode()

    for entry in signature_header.split():
        version, _, signature = entry.partition(",")
        if version == "v1" and hmac.compare_digest(signature, expected):
            return True
    return False


@users_bp.route("/api/webhooks/clerk", methods=["POST"])
def clerk_webhook():
    """
    Keep users in sync with the identity provider
    """
    secret = current_app.config.get("CLERK_WEBHOOK_SECRET")
    if not secret:
        current_app.logger.error("CLERK_WEBHOOK_SECRET is not configured")
        return jsonify({"error": "Webhook secret not configured"}), 500

    msg_id = request.headers.get("svix-id")
    timestamp = request.headers.get("svix-timestamp")
    signature = request.headers.get("svix-signature")
    if not msg_id or not timestamp or not signature:
        return jsonify({"error": "Missing svix headers"}), 400

    payload = request.get_data()
    if not verify_webhook_signature(secret, msg_id, timestamp, signature, payload):
        current_app.logger.warning("Rejected webhook %s: invalid signature", msg_id)
        return jsonify({"error": "Invalid signature"}), 400

    try:
        event = json.loads(payload)
    except ValueError:
        return jsonify({"error": "Invalid payload"}), 400
    if not isinstance(event, dict) or not isinstance(event.get("data") or {}, dict):
        return jsonify({"error": "Invalid payload"}), 400

    event_type = event.get("type")
    data = event.get("data") or {}
    user_id = data.get("id")
    if not user_id:
        return jsonify({"error": "User ID is required"}), 400

    try:
        if event_type in ("user.created", "user.updated"):
            emails = data.get("email_addresses") or []
            phones = data.get("phone_numbers") or []
            metadata = data.get("public_metadata") or {}
            email = emails[0].get("email_address") if emails else None
            if not email:
                return jsonify({"error": "Email is required"}), 400

            first, last = data.get("first_name"), data.get("last_name")
            full_name = " ".join(filter(None, [first, last])) or email
            user_type = metadata.get("user_type") or "retailer"
            if user_type not in USER_TYPES:
                return jsonify({"error": "Invalid user type"}), 400

            phone = metadata.get("phone") or (phones[0].get("phone_number") if phones else None)
            user = upsert_user(user_id, email, user_type, metadata.get("business_name") or full_name, phone)
            db.session.commit()
            current_app.logger.info("Webhook %s synced user %s", event_type, user_id)
            return jsonify({"success": True, "message": f"User synced ({event_type})", "user": user.to_dict()}), 200

        if event_type == "user.deleted":
            user = db.session.get(User, user_id)
            outcome = "not found"
            if user:
                outcome = remove_user(user)
                db.session.commit()
            current_app.logger.info("Webhook user.deleted for %s: %s", user_id, outcome)
            return jsonify({"success": True, "message": f"User {outcome}"}), 200

    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("Webhook %s failed for %s", event_type, user_id)
        return jsonify({"error": "Failed to sync user", "details": str(e)}), 500

    return jsonify({"success": True, "message": f"Unhandled event {event_type}"}), 200
