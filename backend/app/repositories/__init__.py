"""
Repository Layer - Data Access

This layer handles all database queries and returns domain models.
Repositories abstract away SQL details from business logic.
Every method takes an optional cursor so services can compose several
calls inside one transaction.

Author: TM3
Date: 2025-11-18
"""
from app.repositories.user_repository import UserRepository, AddressRepository
from app.repositories.product_repository import ProductRepository
from app.repositories.catalog_repository import CategoryRepository, BrandRepository
from app.repositories.cart_repository import CartRepository
from app.repositories.order_repository import OrderRepository
from app.repositories.coupon_repository import CouponRepository
from app.repositories.gift_card_repository import GiftCardRepository
from app.repositories.campaign_repository import CampaignRepository
from app.repositories.stock_repository import StockRepository
from app.repositories.return_repository import ReturnRepository
from app.repositories.blog_repository import BlogRepository, BlogCategoryRepository, BlogTagRepository
from app.repositories.notification_repository import NotificationRepository
from app.repositories.system_log_repository import SystemLogRepository
from app.repositories.transaction_log_repository import TransactionLogRepository

__all__ = [
    'UserRepository',
    'AddressRepository',
    'ProductRepository',
    'CategoryRepository',
    'BrandRepository',
    'CartRepository',
    'OrderRepository',
    'CouponRepository',
    'GiftCardRepository',
    'CampaignRepository',
    'StockRepository',
    'ReturnRepository',
    'BlogRepository',
    'BlogCategoryRepository',
    'BlogTagRepository',
    'NotificationRepository',
    'SystemLogRepository',
    'TransactionLogRepository',
]
