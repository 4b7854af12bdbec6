import pytest

from label_forge.layout import (
    CATEGORIES, LayoutSuggestion, align_elements, apply_suggestion_fix, auto_space,
    category_layout, center_element, check_density, compute_safe_zone, snap_to_safe_zone,
    suggest_layout,
)
from label_forge.models import (
    BarcodeElement, ElementKind, FontConfig, LabelSize, PrinterProfile, TextElement,
)
from label_forge.symbology import Symbology


def text(element_id, x=5, y=5, order=0, **kwargs):
    return TextElement(id=element_id, kind=ElementKind.CUSTOM_TEXT, x=x, y=y, order=order,
                       value='x', **kwargs)


class TestSafeZone:

    def test_margins(self, label_size):
        zone = compute_safe_zone(label_size)
        assert (zone.left, zone.top, zone.right, zone.bottom) == (2, 2, 48, 28)
        assert (zone.width, zone.height) == (46, 26)

    def test_profile_offset_shifts_zone(self, label_size):
        profile = PrinterProfile(dpi=203, offset_x=203, offset_y=-203)
        zone = compute_safe_zone(label_size, profile)
        assert zone.left == pytest.approx(27.4)
        assert zone.top == pytest.approx(-23.4)
        assert zone.width == 46


class TestDensity:

    def test_wide_ean13_is_fine(self):
        check = check_density('5901234123457', 'ean13', 40)
        assert check.ok
        assert check.severity == 'success'
        assert check.modules == 95

    def test_narrow_ean13_fails(self):
        check = check_density('5901234123457', 'ean13', 20)
        assert not check.ok
        assert check.severity == 'error'
        assert check.min_width_mm == 24

    def test_dense_ean13_warns(self):
        check = check_density('5901234123457', 'ean13', 28)
        assert check.ok
        assert check.severity == 'warning'
        assert check.min_width_mm == 32

    def test_code128_scales_with_length(self):
        check = check_density('ABC-12345', 'code128', 30)
        assert check.modules == 134
        assert not check.ok
        assert check.min_width_mm == 34

    @pytest.mark.parametrize('width, ok, severity, min_width', [
        (10, False, 'error', 11),
        (12, True, 'warning', 16),
        (20, True, 'success', None),
    ])
    def test_qr_cell_size(self, width, ok, severity, min_width):
        check = check_density('https://example.com', 'qrcode', width)
        assert check.modules == 21
        assert (check.ok, check.severity, check.min_width_mm) == (ok, severity, min_width)

    def test_to_dict(self):
        data = check_density('5901234123457', 'ean13', 20).to_dict()
        assert data['minWidthMm'] == 24
        assert data['actualModules'] == 95
        assert data['ok'] is False


class TestSuggestLayout:

    def test_clean_template_has_no_suggestions(self, template):
        assert suggest_layout(template.elements, template.size) == []

    def test_horizontal_overflow(self, label_size):
        element = text('t', x=45, width=10, height=5)
        [suggestion] = suggest_layout([element], label_size)
        assert 'horizontal' in suggestion.issue
        assert suggestion.fix == {'x': 38}

    def test_vertical_overflow(self, label_size):
        element = text('t', y=0, width=10, height=5)
        [suggestion] = suggest_layout([element], label_size)
        assert 'vertical' in suggestion.issue
        assert suggestion.fix == {'y': 2}

    def test_dense_barcode(self, label_size):
        element = BarcodeElement(id='bc', x=5, y=5, width=20, height=10,
                                 symbology=Symbology.CODE128)
        [suggestion] = suggest_layout([element], label_size)
        assert suggestion.fix == {'width': 34}

    def test_font_taller_than_box(self, label_size):
        element = text('t', width=20, height=5, font=FontConfig(size=24, bold=True))
        [suggestion] = suggest_layout([element], label_size)
        assert suggestion.fix['font'].size == 11
        assert suggestion.fix['font'].bold
        assert suggestion.to_dict()['suggestedFix']['font']['size'] == 11

    def test_disabled_elements_ignored(self, label_size):
        element = text('t', x=-10, enabled=False)
        assert suggest_layout([element], label_size) == []

    def test_apply_fix(self, label_size):
        element = text('t', x=45, width=10, height=5)
        [suggestion] = suggest_layout([element], label_size)
        fixed = apply_suggestion_fix(element, suggestion)
        assert fixed.x == 38
        assert element.x == 45
        assert suggest_layout([fixed], label_size) == []

    def test_apply_fix_to_wrong_element(self):
        with pytest.raises(ValueError):
            apply_suggestion_fix(text('a'), LayoutSuggestion(element_id='b', issue='', fix={}))


class TestTransforms:

    def test_snap(self, label_size):
        zone = compute_safe_zone(label_size)
        snapped = snap_to_safe_zone(text('t', x=-5, y=27, width=10, height=5), zone)
        assert (snapped.x, snapped.y) == (2, 23)

    def test_center(self, label_size):
        centered = center_element(text('t', width=10, height=5), label_size)
        assert (centered.x, centered.y) == (20, 12.5)

    def test_center_one_axis(self, label_size):
        centered = center_element(text('t', x=1, y=1, width=10, height=5), label_size,
                                  'horizontal')
        assert (centered.x, centered.y) == (20, 1)

    def test_align_left(self):
        elements = [text('a', x=5), text('b', x=10), text('c', x=20)]
        assert [e.x for e in align_elements(elements, 'left')] == [5, 5, 5]

    def test_align_right(self):
        elements = [text('a', x=5, width=10), text('b', x=10, width=20)]
        assert [e.x for e in align_elements(elements, 'right')] == [20, 10]

    def test_align_center(self):
        elements = [text('a', x=0, width=10), text('b', x=10, width=20)]
        # centers at 5 and 20
        assert [e.x for e in align_elements(elements, 'center')] == [7.5, 2.5]

    def test_align_keeps_disabled(self):
        elements = [text('a', x=5), text('b', x=10), text('c', x=30, enabled=False)]
        assert [e.x for e in align_elements(elements, 'left')] == [5, 5, 30]

    def test_align_unknown(self):
        with pytest.raises(ValueError):
            align_elements([text('a'), text('b')], 'diagonal')

    def test_auto_space_vertical(self, label_size):
        elements = [text('c', order=2), text('a', order=0), text('b', order=1)]
        spaced = {e.id: e.y for e in auto_space(elements, label_size)}
        assert spaced == {'a': 2, 'b': 12.5, 'c': 23}

    def test_auto_space_keeps_minimum_gap(self, label_size):
        elements = [text(str(i), order=i, height=10) for i in range(4)]
        ys = [e.y for e in auto_space(elements, label_size)]
        assert ys == [2, 14, 26, 38]

    def test_auto_space_unknown_direction(self, label_size):
        with pytest.raises(ValueError):
            auto_space([text('a'), text('b')], label_size, 'sideways')


class TestCategories:

    @pytest.mark.parametrize('category', CATEGORIES)
    def test_presets(self, category, label_size):
        elements = category_layout(category, label_size)
        assert elements
        assert sum(1 for e in elements if e.is_barcode) <= 1
        assert len({e.id for e in elements}) == len(elements)

    def test_unknown_falls_back_to_product(self, label_size):
        kinds = [e.to_dict()['type'] for e in category_layout('spaceships', label_size)]
        assert kinds == [e.to_dict()['type'] for e in category_layout('product', label_size)]
