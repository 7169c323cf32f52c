from core.imports import Blueprint, jsonify, request, current_app, jwt_required, SQLAlchemyError
from core.pricing import flag_lowest_prices, anonymize_vendors
from core.standardize import base_product_name
from models.productModels import ProductRaw, ProductStandard, product_prices_query
from routes.marketPrices import fetch_market_prices

marketplace_bp = Blueprint("marketplace", __name__)

LISTING_FIELDS = ("raw_product_id", "original_name", "price", "unit", "stock", "image_url",
                  "vendor_id", "vendor_name", "region", "city", "is_verified")


@marketplace_bp.route("/api/products/compare", methods=["GET"])
@jwt_required()
def compare_prices():
    """
    Compare vendor prices for one standardized product
    ---
    tags:
      - Marketplace
    security:
      - Bearer: []
    parameters:
      - name: product
        in: query
        type: string
        required: true
        description: Standardized product name, e.g. "청양고추 1kg"
    responses:
      200:
        description: Listings sorted by price with the lowest ones flagged
        schema:
          type: object
          properties:
            standard_name:
              type: string
              example: "청양고추 1kg"
            category:
              type: string
            unit:
              type: string
              example: "kg"
            lowest_price:
              type: integer
              example: 8500
            vendor_count:
              type: integer
              example: 2
            listings:
              type: array
              items:
                type: object
                properties:
                  raw_product_id:
                    type: integer
                  price:
                    type: integer
                  vendor_name:
                    type: string
                    example: "Vendor A"
                  is_lowest:
                    type: boolean
            market_prices:
              type: array
              items:
                type: object
            average_market_price:
              type: number
      400:
        description: product is missing
    """
    standard_name = (request.args.get("product") or "").strip()
    if not standard_name:
        return jsonify({"error": "The product query parameter is required."}), 400

    try:
        rows = (product_prices_query()
                .filter(ProductStandard.standard_name == standard_name)
                .order_by(ProductRaw.price.asc(), ProductRaw.id.asc())
                .all())
    except SQLAlchemyError as e:
        current_app.logger.exception("Failed to load listings for %r", standard_name)
        return jsonify({"error": "Failed to load price comparison.", "details": str(e)}), 500

    rows = [row._asdict() for row in rows]
    listings = [{field: row[field] for field in LISTING_FIELDS} for row in rows]
    listings = anonymize_vendors(flag_lowest_prices(listings))

    # Market prices are a supplement; the comparison stands without them.
    try:
        market_prices, average_market_price = fetch_market_prices(base_product_name(standard_name))
    except Exception:
        current_app.logger.warning("Market prices unavailable for %r", standard_name, exc_info=True)
        market_prices, average_market_price = [], 0

    first = rows[0] if rows else {}
    return jsonify({
        "standard_name": standard_name,
        "category": first.get("category"),
        "unit": first.get("standard_unit") or first.get("unit"),
        "lowest_price": listings[0]["price"] if listings else None,
        "vendor_count": len({listing["vendor_id"] for listing in listings}),
        "listings": listings,
        "count": len(listings),
        "market_prices": market_prices,
        "average_market_price": average_market_price,
    }), 200
