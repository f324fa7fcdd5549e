"""Unit tests for utility functions."""

from pathlib import Path

import pytest

from pybos.utils import (
    YOCTO_PER_NEAR,
    component_name_from_path,
    component_path_from_name,
    format_near_amount,
    is_valid_component_name,
    parse_near_amount,
    widget_key,
)


class TestParseNearAmount:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("1 NEAR", YOCTO_PER_NEAR),
            ("0 NEAR", 0),
            ("0.5 NEAR", YOCTO_PER_NEAR // 2),
            ("1 yoctoNEAR", 1),
            ("42", 42),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_near_amount(value) == expected

    @pytest.mark.parametrize("value", ["", "one NEAR", "1.5 yoctoNEAR", "-1 NEAR"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_near_amount(value)


class TestFormatNearAmount:
    def test_zero(self):
        assert format_near_amount(0) == "0 NEAR"

    def test_yocto(self):
        assert format_near_amount(1) == "1 yoctoNEAR"

    def test_whole(self):
        assert format_near_amount(YOCTO_PER_NEAR) == "1 NEAR"

    def test_fraction(self):
        assert format_near_amount(YOCTO_PER_NEAR * 3 // 2) == "1.5 NEAR"


class TestComponentPaths:
    def test_name_from_path(self):
        base = Path("/work/src")
        assert component_name_from_path(base / "a" / "b" / "C.jsx", base) == "a.b.C"

    def test_path_from_name(self):
        assert component_path_from_name("a.b.C", Path("src")) == Path("src/a/b/C")

    def test_widget_key(self):
        assert widget_key("alice.near", "a.b") == "alice.near/widget/a.b"

    @pytest.mark.parametrize("name", ["App", "nav.Bar", "a.b.C_1"])
    def test_valid_component_name(self, name):
        assert is_valid_component_name(name)

    @pytest.mark.parametrize("name", ["", "a..b", ".a", "a.", "a/b", "a\\b"])
    def test_invalid_component_name(self, name):
        assert not is_valid_component_name(name)
