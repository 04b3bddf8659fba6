"""
Unit tests for the CSV product import

Author: TM3
Date: 2025-11-21
"""
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from app.core.exceptions import ValidationError
from app.services.product_import_service import (
    ProductImportService,
    generate_combinations,
    parse_variant_groups,
)


class TestGenerateCombinations:

    def test_first_group_varies_slowest(self):
        result = generate_combinations([["Black", "White"], ["S", "M"]])
        assert result == [["Black", "S"], ["Black", "M"], ["White", "S"], ["White", "M"]]

    def test_no_groups_gives_single_empty_combination(self):
        assert generate_combinations([]) == [[]]

    def test_count_is_product_of_group_sizes(self):
        result = generate_combinations([["a", "b", "c"], ["1", "2"], ["x", "y"]])
        assert len(result) == 12


class TestParseVariantGroups:

    def test_parses_groups_and_trims_values(self):
        assert parse_variant_groups("Color: Black , White ;Size:S,M") == [
            ("Color", ["Black", "White"]),
            ("Size", ["S", "M"]),
        ]

    def test_skips_malformed_segments(self):
        assert parse_variant_groups("Color;:S,M;Size:;Fit:Slim") == [("Fit", ["Slim"])]

    def test_empty_input(self):
        assert parse_variant_groups(None) == []
        assert parse_variant_groups("") == []


@pytest.fixture
def import_service():
    """ProductImportService with mocked repositories and a fake transaction"""
    with patch("app.services.product_import_service.db_cursor") as mock_db_cursor:
        mock_db_cursor.return_value.__enter__.return_value = MagicMock()
        service = ProductImportService()
        service.products = MagicMock()
        service.categories = MagicMock()
        service.brands = MagicMock()
        yield service


class TestImportCsv:

    def test_creates_product_with_variant_combinations(self, import_service):
        # Arrange
        import_service.categories.find_by_slug.return_value = MagicMock(id=4)
        import_service.brands.find_by_slug.return_value = MagicMock(id=6)
        import_service.products.find_by_slug.return_value = None
        import_service.products.create.return_value = 11
        content = (
            "name,price,stock,categorySlug,brandSlug,variantGroups,imageUrls\n"
            "Rain Jacket,49.90,3,jackets,acme,\"Color:Red,Blue;Size:S,M\",\"a.jpg, b.jpg\"\n"
        ).encode("utf-8-sig")

        # Act
        result = import_service.import_csv(content)

        # Assert
        assert result == {"total": 1, "success": 1, "failed": 0, "errors": []}
        fields = import_service.products.create.call_args[0][0]
        assert fields["slug"] == "rain-jacket"
        assert fields["category_id"] == 4
        assert fields["brand_id"] == 6
        assert fields["image_urls"] == ["a.jpg", "b.jpg"]
        assert fields["published"] is True

        product_id, groups, variants = import_service.products.replace_variants.call_args[0]
        assert product_id == 11
        assert groups == [("Color", ["Red", "Blue"]), ("Size", ["S", "M"])]
        assert len(variants) == 4
        assert variants[0] == {"options": {"Color": "Red", "Size": "S"}, "price": Decimal("49.90"), "stock": 3}

    def test_existing_slug_is_updated(self, import_service):
        # Arrange
        import_service.categories.find_by_slug.return_value = MagicMock(id=4)
        import_service.products.find_by_slug.return_value = MagicMock(id=20)
        content = b"name,slug,price,categorySlug,published\nBoot,boot,10,shoes,false\n"

        # Act
        result = import_service.import_csv(content)

        # Assert
        assert result["success"] == 1
        import_service.products.create.assert_not_called()
        product_id, fields = import_service.products.update.call_args[0]
        assert product_id == 20
        assert fields["published"] is False
        assert fields["base_price"] == Decimal("10")

    def test_row_errors_are_collected(self, import_service):
        # Arrange: row 2 has no name, row 3 an unknown category, row 4 a bad price
        import_service.categories.find_by_slug.side_effect = lambda slug, cursor=None: (
            MagicMock(id=1) if slug == "shoes" else None
        )
        import_service.products.find_by_slug.return_value = None
        content = (
            b"name,price,categorySlug\n"
            b",10,shoes\n"
            b"Hat,10,hats\n"
            b"Scarf,abc,shoes\n"
        )

        # Act
        result = import_service.import_csv(content)

        # Assert
        assert result["total"] == 3
        assert result["success"] == 0
        assert result["failed"] == 3
        assert result["errors"] == [
            "Row 2: Product name is required",
            "Row 3: Category not found: hats",
            "Row 4: Invalid price: abc",
        ]

    def test_unknown_brand_is_a_warning(self, import_service):
        import_service.categories.find_by_slug.return_value = MagicMock(id=1)
        import_service.brands.find_by_slug.return_value = None
        import_service.products.find_by_slug.return_value = None
        import_service.products.create.return_value = 5

        result = import_service.import_csv(b"name,price,categorySlug,brandSlug\nCap,5,shoes,nobody\n")

        assert result["success"] == 1
        assert result["errors"] == ["Row 2: Brand not found: nobody"]
        assert import_service.products.create.call_args[0][0]["brand_id"] is None

    def test_non_utf8_file_is_rejected(self, import_service):
        with pytest.raises(ValidationError):
            import_service.import_csv("name\nÇizme\n".encode("utf-16"))

    def test_empty_file_is_rejected(self, import_service):
        with pytest.raises(ValidationError, match="empty"):
            import_service.import_csv(b"")


class TestReadRows:

    def test_bom_and_blank_rows(self, import_service):
        content = "name,price,seoTitle\nBoot,10,\n,,\nNA,5,None\n".encode("utf-8-sig")

        rows = import_service.read_rows(content)

        # Cells stay text: no NaN for blanks and no NA coercion
        assert rows == [
            {"name": "Boot", "price": "10", "seoTitle": ""},
            {"name": "NA", "price": "5", "seoTitle": "None"},
        ]
