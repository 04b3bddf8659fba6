"""
Database schema models

Importing this package registers every table on Base.metadata.
"""
from .user import User, Address
from .catalog import Category, Brand, Product, VariantGroup, VariantValue, ProductVariant, variant_value_links
from .order import Cart, CartItem, Order, OrderItem, OrderTimeline, Payment
from .promotion import Coupon, UserCoupon, GiftCard, GiftCardTransaction, Campaign
from .blog import BlogCategory, BlogTag, BlogPost, blog_post_tags
from .operations import StockReservation, ReturnRequest, Notification, SystemLog, TransactionLog

__all__ = [
    "User",
    "Address",
    "Category",
    "Brand",
    "Product",
    "VariantGroup",
    "VariantValue",
    "ProductVariant",
    "variant_value_links",
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "OrderTimeline",
    "Payment",
    "Coupon",
    "UserCoupon",
    "GiftCard",
    "GiftCardTransaction",
    "Campaign",
    "BlogCategory",
    "BlogTag",
    "BlogPost",
    "blog_post_tags",
    "StockReservation",
    "ReturnRequest",
    "Notification",
    "SystemLog",
    "TransactionLog",
]
