from core.imports import Blueprint, jsonify, request, current_app
from core.marketApi import client_from_config, calculate_average_price

market_prices_bp = Blueprint("market_prices", __name__)


def fetch_market_prices(product_name, region=None):
    """Market prices and their average for ``product_name``; empty on upstream failure."""
    client = client_from_config(current_app.config)
    prices = client.get_prices(product_name, region=region or None)
    return prices, calculate_average_price(prices)


@market_prices_bp.route("/api/market-prices", methods=["GET"])
@market_prices_bp.route("/api/market-prices/kamis", methods=["GET"])
def get_market_prices():
    """
    Real-time wholesale market auction prices for a product
    ---
    tags:
      - Market Prices
    parameters:
      - name: productName
        in: query
        type: string
        required: true
        description: Product to look up, e.g. "사과"
      - name: region
        in: query
        type: string
        required: false
        description: Province to restrict markets to, e.g. "서울"
    responses:
      200:
        description: Normalized prices (possibly empty) and their average
        schema:
          type: object
          properties:
            prices:
              type: array
              items:
                type: object
                properties:
                  market_name:
                    type: string
                    example: "가락시장"
                  price:
                    type: integer
                    example: 1100
                  grade:
                    type: string
                    example: "상품"
                  date:
                    type: string
                    example: "2025-12-03"
                  product_name:
                    type: string
                    example: "사과/부사"
                  unit:
                    type: string
                    example: "1kg"
            averagePrice:
              type: number
              example: 1100
            count:
              type: integer
              example: 3
      400:
        description: productName is missing
      500:
        description: Unexpected internal error
    """
    product_name = (request.args.get("productName") or "").strip()
    region = (request.args.get("region") or "").strip()

    if not product_name:
        current_app.logger.warning("Market price lookup without productName")
        return jsonify({"error": "The productName query parameter is required."}), 400

    try:
        prices, average_price = fetch_market_prices(product_name, region)
    except Exception as e:
        current_app.logger.exception("Market price lookup failed for %r", product_name)
        return jsonify({
            "error": "An error occurred while fetching market prices.",
            "details": str(e) or "Unknown error",
            "prices": [],
            "averagePrice": 0,
            "count": 0,
        }), 500

    if not prices:
        return jsonify({
            "prices": [],
            "averagePrice": 0,
            "count": 0,
            "message": "No market prices found.",
        }), 200

    current_app.logger.info(
        "Market prices for %r: count=%s average=%s min=%s max=%s",
        product_name, len(prices), average_price,
        min(p["price"] for p in prices), max(p["price"] for p in prices),
    )

    return jsonify({
        "prices": prices,
        "averagePrice": average_price,
        "count": len(prices),
    }), 200
