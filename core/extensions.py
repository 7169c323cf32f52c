from core.imports import Swagger, JWTManager, SQLAlchemy, CORS, Migrate

SWAGGER_TEMPLATE = {
    "info": {
        "title": "Produce Market API",
        "description": "Vendor listings, price comparison, orders and wholesale market prices",
        "version": "0.1.0",
    },
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Identity provider session token as: Bearer <token>",
        }
    },
}

jwt = JWTManager()
db = SQLAlchemy()
migrate = Migrate()
swagger = Swagger(template=SWAGGER_TEMPLATE)
cors = CORS()
