"""
Unit tests for CouponRepository

Author: TM3
Date: 2025-11-21
"""
from app.domain.promotion import Coupon
from app.repositories.coupon_repository import CouponRepository


class TestCouponRepository:

    def test_find_by_code_upper_cases(self, mock_cursor, sample_coupon_row):
        mock_cursor.fetchone.return_value = sample_coupon_row

        coupon = CouponRepository().find_by_code('save10', cursor=mock_cursor)

        assert isinstance(coupon, Coupon)
        assert mock_cursor.execute.call_args[0][1] == ('SAVE10',)

    def test_update_only_whitelisted_columns(self, mock_cursor, sample_coupon_row):
        mock_cursor.fetchone.return_value = sample_coupon_row

        CouponRepository().update(3, {'is_active': False, 'usage_count': 0}, cursor=mock_cursor)

        sql, params = mock_cursor.execute.call_args[0]
        assert 'is_active = %s' in sql
        assert 'usage_count = %s' not in sql
        assert params == [False, 3]

    def test_delete_removes_wallet_rows_first(self, mock_cursor):
        assert CouponRepository().delete(3, cursor=mock_cursor) is True

        statements = [c[0][0] for c in mock_cursor.execute.call_args_list]
        assert statements[0].startswith('DELETE FROM user_coupons')
        assert statements[1].startswith('DELETE FROM coupons')
