from core.extensions import db
from core.imports import datetime

USER_TYPES = ("vendor", "retailer", "vendor/retailer")


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(64), primary_key=True)  # identity provider user id
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    user_type = db.Column(db.String(20), nullable=False, default="retailer", index=True)  # vendor, retailer, vendor/retailer
    nickname = db.Column(db.String(20), unique=True, nullable=True)
    business_name = db.Column(db.String(200), nullable=False)
    phone = db.Column(db.String(30), nullable=True)

    region = db.Column(db.String(50), nullable=True, index=True)
    city = db.Column(db.String(50), nullable=True, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = db.Column(db.DateTime, nullable=True)  # set instead of deleting while orders reference the user

    def has_user_type(self, user_type):
        return has_user_type(self.user_type, user_type)

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "user_type": self.user_type,
            "nickname": self.nickname,
            "business_name": self.business_name,
            "phone": self.phone,
            "region": self.region,
            "city": self.city,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "deleted_at": self.deleted_at.isoformat() if self.deleted_at else None,
        }


def has_user_type(user_type, wanted):
    """True when ``user_type`` grants ``wanted`` ('vendor' or 'retailer')."""
    return user_type == wanted or user_type == "vendor/retailer"
