"""
Domain Layer - Business Entities

This layer contains Pydantic models representing business entities.
These models enforce type safety and validation across the application.

Author: TM3
Date: 2025-10-17
"""
from app.domain.product import Product, ProductVariant, VariantGroup, Category, Brand
from app.domain.order import Order, OrderItem, Payment, TimelineEntry
from app.domain.order_status import OrderStatus
from app.domain.cart import Cart, CartItem
from app.domain.promotion import Coupon, UserCoupon, GiftCard, GiftCardTransaction, Campaign
from app.domain.operations import StockReservation, ReturnRequest, SystemLog, TransactionLog
from app.domain.blog import BlogPost, BlogCategory, BlogTag
from app.domain.user import User, Address

__all__ = [
    'Product', 'ProductVariant', 'VariantGroup', 'Category', 'Brand',
    'Order', 'OrderItem', 'Payment', 'TimelineEntry', 'OrderStatus',
    'Cart', 'CartItem',
    'Coupon', 'UserCoupon', 'GiftCard', 'GiftCardTransaction', 'Campaign',
    'StockReservation', 'ReturnRequest', 'SystemLog', 'TransactionLog',
    'BlogPost', 'BlogCategory', 'BlogTag',
    'User', 'Address',
]
