"""
Unit tests for slug and promotional code helpers

Author: TM3
Date: 2025-11-21
"""
import re

import pytest

from app.utils.codes import (
    SAFE_CHARACTERS,
    generate_coupon_code,
    generate_gift_card_code,
    generate_secure_code,
    sanitize_code_input,
)
from app.utils.slugify import slugify, unique_slug


class TestSlugify:

    @pytest.mark.parametrize("text,expected", [
        ("Kışlık Çizme", "kislik-cizme"),
        ("  Hello,  World! ", "hello-world"),
        ("Şapka & Eldiven", "sapka-eldiven"),
        ("Crème brûlée", "creme-brulee"),
        ("already-a-slug", "already-a-slug"),
        ("snake_case_name", "snake-case-name"),
        ("--Trim--Dashes--", "trim-dashes"),
    ])
    def test_slugify(self, text, expected):
        assert slugify(text) == expected

    def test_slugify_empty_values(self):
        assert slugify(None) == ""
        assert slugify("!!!") == ""

    def test_unique_slug_appends_counter(self):
        # Arrange: "shoes" and "shoes-2" are taken
        taken = {"shoes", "shoes-2"}

        # Act
        result = unique_slug("shoes", lambda candidate: candidate in taken)

        # Assert
        assert result == "shoes-3"

    def test_unique_slug_returns_base_when_free(self):
        assert unique_slug("boots", lambda candidate: False) == "boots"


class TestCodes:

    def test_secure_code_uses_safe_alphabet(self):
        code = generate_secure_code(50)
        assert len(code) == 50
        assert set(code) <= set(SAFE_CHARACTERS)

    def test_gift_card_code_format(self):
        code = generate_gift_card_code()
        assert re.fullmatch(rf"GIFT\d{{4}}[{SAFE_CHARACTERS}]{{8}}", code)

    def test_coupon_code_with_prefix(self):
        code = generate_coupon_code(" summer ")
        prefix, random_part = code.split("-")
        assert prefix == "SUMMER"
        assert len(random_part) == 8

    def test_coupon_code_without_prefix(self):
        code = generate_coupon_code()
        assert len(code) == 8
        assert "-" not in code

    @pytest.mark.parametrize("typed,expected", [
        ("gift 1234 abcd", "GIFTI234ABCD"),
        ("  g0od  ", "GOOD"),
        ("al5o8", "AISOB"),
        ("", ""),
    ])
    def test_sanitize_code_input(self, typed, expected):
        assert sanitize_code_input(typed) == expected

    def test_sanitized_generated_code_is_stable(self):
        code = generate_gift_card_code()
        once = sanitize_code_input(code)
        assert sanitize_code_input(once) == once
