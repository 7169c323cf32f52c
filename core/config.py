from datetime import timedelta
import os
from dotenv import load_dotenv

load_dotenv()
class Config:
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///producemarket.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Tokens are issued by the identity provider; we only verify them.
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY")
    JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
    JWT_PUBLIC_KEY = os.environ.get("JWT_PUBLIC_KEY")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=24)

    MARKET_API_KEY = os.environ.get("MARKET_API_KEY") or os.environ.get("PUBLIC_DATA_API_KEY")
    MARKET_API_URL = os.environ.get("MARKET_API_URL", "http://apis.data.go.kr/B552845/katRealTime/trades")
    MARKET_API_TIMEOUT = int(os.environ.get("MARKET_API_TIMEOUT", 30))

    CLERK_WEBHOOK_SECRET = os.environ.get("CLERK_WEBHOOK_SECRET")
    SUPABASE_URL = os.environ.get("SUPABASE_URL")
    APP_URL = os.environ.get("APP_URL", "http://localhost:5000")

    N8N_WEBHOOK_URL = os.environ.get("N8N_WEBHOOK_URL")
    CHAT_TIMEOUT = int(os.environ.get("CHAT_TIMEOUT", 30))


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
    JWT_ALGORITHM = "HS256"
    JWT_PUBLIC_KEY = None
    MARKET_API_KEY = "test-key"
    MARKET_API_URL = "http://market.test/trades"
    CLERK_WEBHOOK_SECRET = "whsec_dGVzdC13ZWJob29rLXNlY3JldA=="
    SUPABASE_URL = "https://demo.supabase.co"
    N8N_WEBHOOK_URL = "http://chat.test/webhook/assistant"


def image_remote_patterns(supabase_url):
    """Hosts (and path prefixes) remote product images may be served from."""
    patterns = [{"hostname": "img.clerk.com", "pathname": "/"}]
    if supabase_url:
        hostname = supabase_url.split("://", 1)[-1].split("/", 1)[0]
        patterns.append({"hostname": hostname, "pathname": "/storage/v1/object/public/"})
    return patterns
