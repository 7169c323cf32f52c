from core.extensions import db
from core.imports import datetime

ORDER_STATUSES = ("pending", "confirmed", "cancelled")


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    buyer_id = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False, index=True)
    vendor_id = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products_raw.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    total_price = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(20), default="pending", index=True)  # pending, confirmed, cancelled
    delivery_address = db.Column(db.String(500), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    buyer = db.relationship("User", foreign_keys=[buyer_id])
    vendor = db.relationship("User", foreign_keys=[vendor_id])
    product = db.relationship("ProductRaw")

    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_orders_quantity"),
        db.CheckConstraint("total_price >= 0", name="ck_orders_total_price"),
        db.CheckConstraint("status IN ('pending', 'confirmed', 'cancelled')", name="ck_orders_status"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "buyer_id": self.buyer_id,
            "vendor_id": self.vendor_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "total_price": self.total_price,
            "status": self.status,
            "delivery_address": self.delivery_address,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
