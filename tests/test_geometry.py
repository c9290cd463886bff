from types import SimpleNamespace

import pytest

from app.services.geometry import from_artifact_space, meets_minimum_size, to_artifact_space, validate_bounds


def field(x=0, y=0, width=150, height=50, type="signature"):
    return SimpleNamespace(id=1, x=x, y=y, width=width, height=height, type=type)


class TestCoordinateTransform:
    def test_flips_origin_to_bottom_left(self):
        assert to_artifact_space(field(x=72, y=100, height=50), 792) == (72, 642)

    def test_uses_the_given_page_height(self):
        f = field(y=100, height=50)
        assert to_artifact_space(f, 792)[1] != to_artifact_space(f, 595)[1]
        assert to_artifact_space(f, 595) == (0, 445)

    @pytest.mark.parametrize("page_height,height,x,y", [(792, 50, 10, 100), (595, 25.5, 0, 0), (1000, 60, 33.3, 940)])
    def test_inverse_recovers_original_position(self, page_height, height, x, y):
        f = field(x=x, y=y, height=height)
        ax, ay = to_artifact_space(f, page_height)
        assert from_artifact_space(ax, ay, height, page_height) == pytest.approx((x, y))


class TestBounds:
    def test_flush_with_page_edges_is_valid(self):
        assert validate_bounds(field(x=462, y=742, width=150, height=50), 612, 792) == []

    def test_one_point_past_the_edge_fails(self):
        violations = validate_bounds(field(x=463, y=0, width=150, height=50), 612, 792)
        assert len(violations) == 1
        assert "page width" in violations[0].message

        violations = validate_bounds(field(x=0, y=743, width=150, height=50), 612, 792)
        assert len(violations) == 1
        assert "page height" in violations[0].message

    def test_collects_every_violation(self):
        violations = validate_bounds(field(x=-1, y=-1, width=0, height=0), 612, 792)
        assert len(violations) == 4

    def test_minimum_size_per_type(self):
        assert meets_minimum_size(field(width=150, height=50))
        assert not meets_minimum_size(field(width=149, height=50))
        assert meets_minimum_size(field(width=15, height=15, type="checkbox"))
        assert not meets_minimum_size(field(width=150, height=59, type="textarea"))
