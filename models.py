# models.py
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utcnow():
    return datetime.now(timezone.utc)


# ── TIME TRACKING ─────────────────────────────────────────────────────────
class Employee(db.Model):
    __tablename__ = "employees"
    id     = db.Column(db.Integer, primary_key=True)
    name   = db.Column(db.String(150), unique=True, nullable=False)
    role   = db.Column(db.Enum("admin", "employee", name="employee_role"), default="employee")
    active = db.Column(db.Boolean, default=True, nullable=False)


class EmployeeDay(db.Model):
    """One document per employee and calendar date; activities kept as JSON."""
    __tablename__  = "employee_days"
    __table_args__ = (db.UniqueConstraint("employee_id", "day", name="uq_employee_day"),)
    id          = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False)
    day         = db.Column(db.Date, nullable=False, index=True)
    rest        = db.Column(db.Boolean, default=False, nullable=False)
    vacation    = db.Column(db.Boolean, default=False, nullable=False)
    sick        = db.Column(db.Boolean, default=False, nullable=False)
    activities  = db.Column(db.JSON, nullable=False, default=list)
    updated_at  = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
    employee    = db.relationship("Employee", backref=db.backref("days", lazy="dynamic"))


class ActivityCatalog(db.Model):
    """Predefined activities of one category, stored as "name|minutes" strings."""
    __tablename__ = "activity_catalog"
    category   = db.Column(db.String(50), primary_key=True)
    entries    = db.Column(db.JSON, nullable=False, default=list)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)


# ── PRODUCT FEEDBACK ──────────────────────────────────────────────────────
class Product(db.Model):
    __tablename__ = "products"
    id          = db.Column(db.String(100), primary_key=True)
    name        = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    image_url   = db.Column(db.String(255), nullable=False)
    brand       = db.Column(db.String(100), nullable=False)
    kind        = db.Column(db.String(100), nullable=False)
    visible     = db.Column(db.Boolean, default=True, nullable=False)
    created_at  = db.Column(db.DateTime, default=utcnow)
    updated_at  = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description or "",
            "image_url": self.image_url,
            "brand": self.brand,
            "kind": self.kind,
            "visible": bool(self.visible),
        }


class ProductRating(db.Model):
    __tablename__  = "product_ratings"
    __table_args__ = (db.UniqueConstraint("product_id", "employee", name="uq_rating_employee"),)
    id            = db.Column(db.Integer, primary_key=True)
    product_id    = db.Column(db.String(100), db.ForeignKey("products.id"), nullable=False)
    employee      = db.Column(db.String(150), nullable=False)
    effectiveness = db.Column(db.Integer, nullable=False)
    scent         = db.Column(db.Integer, nullable=False)
    ease_of_use   = db.Column(db.Integer, nullable=False)
    rated_at      = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
    product       = db.relationship("Product", backref=db.backref("ratings", lazy=True, cascade="all, delete-orphan"))
