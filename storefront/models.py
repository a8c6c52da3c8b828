# storefront/models.py
from __future__ import annotations

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)

from .db import Base, new_id, utcnow

# Money columns hand back floats; rounding to cents happens on write.
Money = Numeric(10, 2, asdecimal=False)

ORDER_STATUSES = ("pending", "confirmed", "processing", "shipped", "delivered", "cancelled")
CONTACT_STATUSES = ("new", "in-progress", "resolved", "closed")


class User(Base):
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=new_id)
    phone = Column(String(50), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    email = Column(String(100), nullable=True)
    role = Column(String(20), nullable=False, default="user")  # user | guest | admin
    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class OTP(Base):
    __tablename__ = "otps"
    id = Column(String(36), primary_key=True, default=new_id)
    phone_number = Column(String(20), index=True, nullable=False)
    otp_hash = Column(String(255), nullable=False)
    verification_id = Column(String(100), unique=True, index=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    is_used = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)


# -------------------
# Catalog
# -------------------
class Product(Base):
    __tablename__ = "products"
    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), index=True, nullable=False, default="scooter")
    base_price = Column(Money, nullable=False)
    original_price = Column(Money, nullable=True)
    is_active = Column(Boolean, index=True, nullable=False, default=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    rating = Column(Numeric(3, 2, asdecimal=False), nullable=False, default=0.0)
    review_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class ProductVariant(Base):
    __tablename__ = "product_variants"
    id = Column(String(36), primary_key=True, default=new_id)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    battery_capacity = Column(String(50), nullable=True)
    range_km = Column(Integer, nullable=True)
    top_speed_kmh = Column(Integer, nullable=True)
    acceleration_sec = Column(Numeric(4, 2, asdecimal=False), nullable=True)
    price = Column(Money, nullable=False)
    is_new = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)


class ProductColor(Base):
    __tablename__ = "product_colors"
    id = Column(String(36), primary_key=True, default=new_id)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String(100), nullable=False)
    color_code = Column(String(7), nullable=False)
    css_filter = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)


class ProductImage(Base):
    __tablename__ = "product_images"
    id = Column(String(36), primary_key=True, default=new_id)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), index=True, nullable=False)
    variant_id = Column(String(36), ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=True)
    color_id = Column(String(36), ForeignKey("product_colors.id", ondelete="CASCADE"), nullable=True)
    image_url = Column(Text, nullable=False)
    alt_text = Column(String(255), nullable=True)
    display_order = Column(Integer, nullable=False, default=0)
    is_primary = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)


class ProductSpecification(Base):
    __tablename__ = "product_specifications"
    id = Column(String(36), primary_key=True, default=new_id)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), index=True, nullable=False)
    variant_id = Column(String(36), ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=True)
    spec_name = Column(String(255), nullable=False)
    spec_value = Column(String(255), nullable=False)
    spec_unit = Column(String(50), nullable=True)
    display_order = Column(Integer, nullable=False, default=0)


class ProductFeature(Base):
    __tablename__ = "product_features"
    id = Column(String(36), primary_key=True, default=new_id)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), index=True, nullable=False)
    feature_name = Column(String(255), nullable=False)
    feature_description = Column(Text, nullable=True)
    display_order = Column(Integer, nullable=False, default=0)


class Accessory(Base):
    __tablename__ = "accessories"
    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Money, nullable=False)
    image_url = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


# -------------------
# Cart / orders
# -------------------
class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("user_id", "product_id", "variant_id", "color_id", name="uq_cart_line"),
        CheckConstraint("quantity > 0", name="ck_cart_quantity_positive"),
    )
    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    product_id = Column(String(36), nullable=False)
    variant_id = Column(String(36), nullable=False)
    color_id = Column(String(36), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    accessories_json = Column(Text, nullable=False, default="[]")
    # line total, not unit price
    total_price = Column(Money, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Order(Base):
    __tablename__ = "orders"
    id = Column(String(36), primary_key=True, default=new_id)
    order_number = Column(String(50), unique=True, index=True, nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    status = Column(String(20), index=True, nullable=False, default="pending")
    total_amount = Column(Money, nullable=False)
    delivery_fee = Column(Money, nullable=False, default=0)
    final_amount = Column(Money, nullable=False)
    customer_info_json = Column(Text, nullable=False, default="{}")
    delivery_info_json = Column(Text, nullable=False, default="{}")
    payment_info_json = Column(Text, nullable=False, default="{}")
    order_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, index=True, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class OrderItem(Base):
    __tablename__ = "order_items"
    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)
    product_id = Column(String(36), nullable=False)
    variant_id = Column(String(36), nullable=False)
    color_id = Column(String(36), nullable=False)
    quantity = Column(Integer, nullable=False)
    accessories_json = Column(Text, nullable=False, default="[]")
    unit_price = Column(Money, nullable=False)
    total_price = Column(Money, nullable=False)
    created_at = Column(DateTime, default=utcnow)


class OrderStatusHistory(Base):
    __tablename__ = "order_status_history"
    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)
    status = Column(String(20), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)


# -------------------
# Content
# -------------------
class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (CheckConstraint("rating >= 1 AND rating <= 5", name="ck_review_rating"),)
    id = Column(String(36), primary_key=True, default=new_id)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), index=True, nullable=False)
    rating = Column(Integer, nullable=False)
    title = Column(String(200), nullable=False)
    review = Column(Text, nullable=False)
    user_name = Column(String(100), nullable=False)
    user_email = Column(String(100), nullable=False)
    created_at = Column(DateTime, index=True, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class ContactMessage(Base):
    __tablename__ = "contact_messages"
    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), index=True, nullable=False)
    phone = Column(String(20), nullable=True)
    subject = Column(String(500), nullable=False)
    message = Column(Text, nullable=False)
    status = Column(String(50), index=True, nullable=False, default="new")
    created_at = Column(DateTime, index=True, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
