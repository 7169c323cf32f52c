from core.imports import Flask
from core.config import Config
from core.extensions import db, jwt, swagger, cors, migrate
from routes.users import users_bp, seed_demo_users
from routes.products import products_bp, seed_products
from routes.marketplace import marketplace_bp
from routes.marketPrices import market_prices_bp
from routes.orders import orders_bp, seed_demo_orders
from routes.chat import chat_bp


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    db.init_app(app)
    jwt.init_app(app)
    swagger.init_app(app)
    cors.init_app(app)
    migrate.init_app(app, db)

    app.register_blueprint(users_bp)
    app.register_blueprint(marketplace_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(market_prices_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(chat_bp)

    @app.route('/ping')
    def ping():
        return "Ping received", 200

    return app


app = create_app()


if __name__ == "__main__":
    with app.app_context():
        db.create_all()

        seed_demo_users()
        seed_products()
        seed_demo_orders()

    app.run(debug=True)
