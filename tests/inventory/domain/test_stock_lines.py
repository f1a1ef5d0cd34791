"""Tests for parsing requested stock lines."""

import json

import pytest
from protean.exceptions import ValidationError
from storefront.shared.lines import dump_lines, parse_lines


class TestParseLines:
    def test_parses_json(self):
        raw = json.dumps([{"product_id": "prod-a", "quantity": 2}])
        assert parse_lines(raw) == [{"product_id": "prod-a", "quantity": 2}]

    def test_accepts_a_list(self):
        assert parse_lines([{"product_id": "prod-a", "quantity": 1}]) == [{"product_id": "prod-a", "quantity": 1}]

    def test_merges_duplicate_products(self):
        lines = parse_lines(
            [
                {"product_id": "prod-a", "quantity": 2},
                {"product_id": "prod-b", "quantity": 1},
                {"product_id": "prod-a", "quantity": 3},
            ]
        )
        assert lines == [
            {"product_id": "prod-a", "quantity": 5},
            {"product_id": "prod-b", "quantity": 1},
        ]

    def test_empty_list_rejected(self):
        with pytest.raises(ValidationError, match="At least one item"):
            parse_lines("[]")

    def test_missing_product_rejected(self):
        with pytest.raises(ValidationError, match="product_id"):
            parse_lines([{"quantity": 1}])

    @pytest.mark.parametrize("quantity", [-2, 1.5, "3", True, None])
    def test_invalid_quantity_rejected(self, quantity):
        with pytest.raises(ValidationError, match="nonnegative integer"):
            parse_lines([{"product_id": "prod-a", "quantity": quantity}])

    def test_zero_quantity_lines_are_dropped(self):
        lines = parse_lines(
            [
                {"product_id": "prod-a", "quantity": 0},
                {"product_id": "prod-b", "quantity": 2},
            ]
        )
        assert lines == [{"product_id": "prod-b", "quantity": 2}]

    def test_only_zero_quantities_rejected(self):
        with pytest.raises(ValidationError, match="positive quantity"):
            parse_lines([{"product_id": "prod-a", "quantity": 0}])


class TestDumpLines:
    def test_dump_is_json(self):
        assert json.loads(dump_lines([{"product_id": "prod-a", "quantity": 2}])) == [
            {"product_id": "prod-a", "quantity": 2}
        ]
