from core.extensions import db
from core.imports import datetime
from models.userModel import User


class ProductRaw(db.Model):
    """A vendor's own listing, exactly as the vendor typed it."""
    __tablename__ = "products_raw"

    id = db.Column(db.Integer, primary_key=True)
    vendor_id = db.Column(db.String(64), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    original_name = db.Column(db.String(200), nullable=False, index=True)
    price = db.Column(db.Integer, nullable=False)
    unit = db.Column(db.String(20), nullable=False)
    stock = db.Column(db.Integer, default=0, nullable=False)
    image_url = db.Column(db.String(500), nullable=True)

    region = db.Column(db.String(50), nullable=True, index=True)
    city = db.Column(db.String(50), nullable=True, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    vendor = db.relationship("User", backref=db.backref("products", cascade="all, delete-orphan"))
    mapping = db.relationship("ProductMapping", back_populates="raw_product", uselist=False,
                              cascade="all, delete-orphan")

    __table_args__ = (
        db.CheckConstraint("price >= 0", name="ck_products_raw_price"),
        db.CheckConstraint("stock >= 0", name="ck_products_raw_stock"),
    )

    def to_dict(self, with_mapping=False):
        data = {
            "id": self.id,
            "vendor_id": self.vendor_id,
            "original_name": self.original_name,
            "price": self.price,
            "unit": self.unit,
            "stock": self.stock,
            "image_url": self.image_url,
            "region": self.region,
            "city": self.city,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if with_mapping:
            data["product_mapping"] = self.mapping.to_dict() if self.mapping else None
        return data


class ProductStandard(db.Model):
    """Canonical product name that groups equivalent listings across vendors."""
    __tablename__ = "products_standard"

    id = db.Column(db.Integer, primary_key=True)
    standard_name = db.Column(db.String(200), unique=True, nullable=False, index=True)
    category = db.Column(db.String(50), nullable=True, index=True)
    unit = db.Column(db.String(20), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "standard_name": self.standard_name,
            "category": self.category,
            "unit": self.unit,
        }


class ProductMapping(db.Model):
    __tablename__ = "product_mapping"

    id = db.Column(db.Integer, primary_key=True)
    raw_product_id = db.Column(db.Integer, db.ForeignKey("products_raw.id", ondelete="CASCADE"),
                               unique=True, nullable=False)
    standard_product_id = db.Column(db.Integer, db.ForeignKey("products_standard.id", ondelete="CASCADE"),
                                    nullable=False, index=True)
    is_verified = db.Column(db.Boolean, default=False)  # vendor confirmed the standardized name
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    raw_product = db.relationship("ProductRaw", back_populates="mapping")
    standard_product = db.relationship("ProductStandard", backref="mappings")

    def to_dict(self):
        return {
            "id": self.id,
            "standard_product_id": self.standard_product_id,
            "is_verified": self.is_verified,
            "products_standard": self.standard_product.to_dict() if self.standard_product else None,
        }


def product_prices_query():
    """Rows of every in-stock vendor listing with its standardized product.

    Each row exposes ``standard_product_id, standard_name, category,
    raw_product_id, original_name, price, unit, stock, image_url, vendor_id,
    region, city, vendor_name, is_verified``.
    """
    return (
        db.session.query(
            ProductStandard.id.label("standard_product_id"),
            ProductStandard.standard_name,
            ProductStandard.category,
            ProductStandard.unit.label("standard_unit"),
            ProductRaw.id.label("raw_product_id"),
            ProductRaw.original_name,
            ProductRaw.price,
            ProductRaw.unit,
            ProductRaw.stock,
            ProductRaw.image_url,
            ProductRaw.vendor_id,
            ProductRaw.region,
            ProductRaw.city,
            User.business_name.label("vendor_name"),
            ProductMapping.is_verified,
        )
        .join(ProductMapping, ProductMapping.standard_product_id == ProductStandard.id)
        .join(ProductRaw, ProductMapping.raw_product_id == ProductRaw.id)
        .join(User, ProductRaw.vendor_id == User.id)
        .filter(User.user_type.in_(("vendor", "vendor/retailer")), User.deleted_at.is_(None), ProductRaw.stock > 0)
    )
