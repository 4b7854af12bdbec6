import re
import struct
import xml.etree.ElementTree as ET

import pytest

from label_forge.config import DEFAULT_CURRENCY_SYMBOL
from label_forge.dialects import (
    BaseDialect, BPLCDialect, DymoDialect, EPLDialect, TSPLDialect, ZPLDialect,
    calibration_pattern, compile_label, get_dialect,
)
from label_forge.errors import UnsupportedDialectError
from label_forge.models import (
    BarcodeElement, ElementKind, LabelTemplate, PrinterProfile, TextElement,
)
from label_forge.symbology import Symbology
from label_forge.units import dots_to_twips

ALL_DIALECTS = ['zpl', 'epl', 'tspl', 'dymo', 'bplc']


def make_profile(dialect='zpl', **kwargs):
    return PrinterProfile(id='P', name='Test', dialect=dialect, dpi=203, label_width_mm=50,
                          label_height_mm=30, **kwargs)


def positions(output, dialect):
    """Element origins from compiled output, in output order."""
    if dialect == 'zpl':
        return [tuple(map(int, m)) for m in re.findall(r'\^FO(-?\d+),(-?\d+)', output)]
    if dialect == 'epl':
        return [tuple(map(int, m)) for m in re.findall(r'^[ABb](-?\d+),(-?\d+),', output, re.M)]
    if dialect == 'tspl':
        return [tuple(map(int, m))
                for m in re.findall(r'^(?:TEXT|BARCODE|QRCODE) (-?\d+),(-?\d+),', output, re.M)]
    if dialect == 'dymo':
        return [tuple(map(int, m)) for m in re.findall(r'X="(-?\d+)" Y="(-?\d+)"', output)]
    found = []
    for m in re.finditer(rb'\x1b\$(..)\x1b\(V\x02\x00(..)', output, re.S):
        found.append((struct.unpack('<H', m.group(1))[0], struct.unpack('<H', m.group(2))[0]))
    return found


MASKS = {
    'zpl': (r'\^FO-?\d+,-?\d+', '^FO#'),
    'epl': (r'(?m)^([ABb])-?\d+,-?\d+,', r'\1#,'),
    'tspl': (r'(?m)^(TEXT|BARCODE|QRCODE) -?\d+,-?\d+,', r'\1 #,'),
    'dymo': (r'X="-?\d+" Y="-?\d+"', 'X="#" Y="#"'),
}


def masked(output, dialect):
    """Compiled output with element origins replaced by a placeholder."""
    if dialect == 'bplc':
        return re.sub(rb'\x1b\$..\x1b\(V\x02\x00..', b'#', output, flags=re.S)
    pattern, placeholder = MASKS[dialect]
    return re.sub(pattern, placeholder, output)


# =============================================================================
# Shared behavior
# =============================================================================

class TestAllDialects:

    @pytest.mark.parametrize('dialect', ALL_DIALECTS)
    def test_registry(self, dialect):
        assert issubclass(get_dialect(dialect), BaseDialect)

    def test_letters(self):
        assert get_dialect('A') is ZPLDialect
        assert get_dialect('B') is EPLDialect
        assert get_dialect('C') is TSPLDialect
        assert get_dialect('D') is DymoDialect
        assert get_dialect('E') is BPLCDialect

    def test_unknown_dialect(self):
        with pytest.raises(UnsupportedDialectError):
            get_dialect('escpos')

    @pytest.mark.parametrize('dialect', ALL_DIALECTS)
    def test_only_enabled_elements_compile(self, dialect, template, record):
        for element in template.elements:
            element.enabled = False
        compiler = get_dialect(dialect)(make_profile(dialect))
        output = compile_label(template, make_profile(dialect), record)
        assert output == compiler.header() + compiler.footer()

    @pytest.mark.parametrize('dialect', ALL_DIALECTS)
    def test_offset_shifts_every_element(self, dialect, template, record):
        plain_output = compile_label(template, make_profile(dialect), record)
        shifted_output = compile_label(template, make_profile(dialect, offset_x=10, offset_y=-5),
                                       record)
        plain = positions(plain_output, dialect)
        shifted = positions(shifted_output, dialect)
        assert len(plain) == len(shifted) == 3

        if dialect == 'dymo':
            delta = (dots_to_twips(10, 203), dots_to_twips(-5, 203))
        else:
            delta = (10, -5)
        for (x0, y0), (x1, y1) in zip(plain, shifted):
            assert (x1 - x0, y1 - y0) == delta

        # Nothing but the origins changes
        assert masked(shifted_output, dialect) == masked(plain_output, dialect)

    @pytest.mark.parametrize('dialect', ALL_DIALECTS)
    def test_empty_values_are_skipped(self, dialect, template):
        output = compile_label(template, make_profile(dialect), {'name': 'Green Tea'})
        assert len(positions(output, dialect)) == 1

    @pytest.mark.parametrize('dialect', ALL_DIALECTS)
    def test_elements_follow_print_order(self, dialect, template, record):
        template.elements.reverse()
        output = compile_label(template, make_profile(dialect), record)
        assert [y for _, y in positions(output, dialect)] == sorted(
            y for _, y in positions(output, dialect))

    @pytest.mark.parametrize('dialect', ['epl', 'tspl', 'dymo', 'bplc'])
    def test_calibration_pattern_is_zpl_only(self, dialect):
        with pytest.raises(UnsupportedDialectError):
            calibration_pattern(make_profile(dialect))


class TestResolveValue:

    def test_barcode_prefers_barcode_over_sku(self):
        element = BarcodeElement(id='b')
        assert BaseDialect.resolve_value(element, {'barcode': '123', 'sku': 'S'}) == '123'
        assert BaseDialect.resolve_value(element, {'sku': 'S'}) == 'S'
        assert BaseDialect.resolve_value(element, {}) == ''

    def test_custom_text_uses_literal(self):
        element = TextElement(id='t', kind=ElementKind.CUSTOM_TEXT, value='Best before')
        assert BaseDialect.resolve_value(element, {'name': 'ignored'}) == 'Best before'

    def test_currency_default(self):
        element = TextElement(id='p', kind=ElementKind.PRICE)
        assert BaseDialect.resolve_value(element, {'price': 99}) == f'{DEFAULT_CURRENCY_SYMBOL}99'

    def test_empty_currency_symbol(self):
        element = TextElement(id='p', kind=ElementKind.MRP, currency_symbol='')
        assert BaseDialect.resolve_value(element, {'mrp': '10'}) == '10'

    def test_prefix_and_suffix(self):
        element = TextElement(id='w', kind=ElementKind.WEIGHT, prefix='Net ', suffix=' g')
        assert BaseDialect.resolve_value(element, {'weight': '250'}) == 'Net 250 g'

    def test_prefix_not_printed_alone(self):
        element = TextElement(id='w', kind=ElementKind.WEIGHT, prefix='Net ')
        assert BaseDialect.resolve_value(element, {}) == ''

    def test_product_name_keys(self):
        element = TextElement(id='n', kind=ElementKind.PRODUCT_NAME)
        assert BaseDialect.resolve_value(element, {'productName': 'Tea'}) == 'Tea'


# =============================================================================
# Individual dialects
# =============================================================================

class TestZPL:

    def test_label(self, template, record):
        output = compile_label(template, make_profile('zpl'), record)
        assert output == (
            '^XA\n^MD15\n^PR4\n^PW400\n^LL240\n'
            '^FO40,40^BCN,80,Y,N,N^FDGT-100^FS\n'
            '^FO40,136^A0N,28,20^FDGreen Tea^FS\n'
            '^FO240,176^A0N,39,23^FD$4.50^FS\n'
            '^XZ\n'
        )

    def test_qr(self):
        template = LabelTemplate(elements=[
            BarcodeElement(id='q', x=5, y=5, height=10, symbology=Symbology.QRCODE)])
        output = compile_label(template, make_profile('zpl'), {'barcode': 'https://x.io'})
        assert '^FO40,40^BQN,2,3^FDQA,https://x.io^FS\n' in output

    @pytest.mark.parametrize('symbology, command', [
        (Symbology.EAN13, '^BEN,80,Y,N^'),
        (Symbology.EAN8, '^B8N,80,Y,N^'),
        (Symbology.UPCA, '^BUN,80,Y,N,Y^'),
    ])
    def test_retail_barcodes(self, symbology, command):
        template = LabelTemplate(elements=[
            BarcodeElement(id='b', x=5, y=5, height=10, symbology=symbology)])
        assert command in compile_label(template, make_profile('zpl'), {'barcode': '1'})

    def test_calibration_pattern(self):
        pattern = calibration_pattern(make_profile('zpl'))
        assert pattern.startswith('^XA\n^MD15\n^PW400\n^LL240\n')
        assert pattern.endswith('^XZ\n')
        assert pattern.count('^GB') == 10
        # top-left mark at (40, 24), 24 dots wide, 2 dots thick
        assert '^FO28,23^GB24,2,2^FS' in pattern
        assert '^FO39,12^GB2,24,2^FS' in pattern
        # center mark
        assert '^FO188,119^GB24,2,2^FS' in pattern
        assert 'CALIBRATION TEST' in pattern
        assert '50mm x 30mm @ 203dpi' in pattern

    def test_calibration_pattern_ignores_offset(self):
        assert (calibration_pattern(make_profile('zpl', offset_x=30, offset_y=12))
                == calibration_pattern(make_profile('zpl')))

    def test_control_characters_hex_escaped(self):
        template = LabelTemplate(elements=[
            TextElement(id='n', kind=ElementKind.PRODUCT_NAME, x=5, y=5),
            BarcodeElement(id='b', x=5, y=15, height=10, symbology=Symbology.CODE128),
        ])
        output = compile_label(template, make_profile('zpl'),
                               {'name': 'A^B~C_D', 'sku': 'GT_100'})
        assert '^FH^FDA_5EB_7EC_5FD^FS' in output
        assert '^FH^FDGT_5F100^FS' in output
        assert output.count('^FS') == 2

    def test_plain_data_has_no_field_hex(self, template, record):
        assert '^FH' not in compile_label(template, make_profile('zpl'), record)


class TestEPL:

    def test_label(self, template, record):
        output = compile_label(template, make_profile('epl'), record)
        assert output == (
            'N\nq400\nQ240,24\n'
            'B40,40,0,1,2,4,80,B,"GT-100"\n'
            'A40,136,0,2,1,1,N,"Green Tea"\n'
            'A240,176,0,3,1,1,N,"$4.50"\n'
            'P1\n'
        )

    def test_quotes_escaped(self):
        template = LabelTemplate(elements=[
            TextElement(id='t', kind=ElementKind.CUSTOM_TEXT, value='12" ruler')])
        assert 'N,"12\\" ruler"' in compile_label(template, make_profile('epl'))

    def test_font_buckets(self):
        from label_forge.dialects.epl import font_number
        assert [font_number(s) for s in (6, 8, 10, 12, 14, 16, 24)] == [1, 1, 2, 2, 3, 3, 4]


class TestTSPL:

    def test_label(self, template, record):
        output = compile_label(template, make_profile('tspl'), record)
        assert output == (
            'SIZE 50 mm, 30 mm\nGAP 3 mm, 0 mm\nSPEED 4\nDENSITY 15\nDIRECTION 1\nCLS\n'
            'BARCODE 40,40,"128",80,1,0,2,4,"GT-100"\n'
            'TEXT 40,136,"2",0,1,1,"Green Tea"\n'
            'TEXT 240,176,"3",0,1,1,"$4.50"\n'
            'PRINT 1\n'
        )

    def test_qr(self):
        template = LabelTemplate(elements=[
            BarcodeElement(id='q', symbology=Symbology.QRCODE)])
        assert 'QRCODE 0,0,L,4,A,0,"https://x.io"\n' in compile_label(
            template, make_profile('tspl'), {'barcode': 'https://x.io'})


class TestDymo:

    def test_document_is_well_formed(self, template):
        record = {'name': 'Tea & "Co" <1>', 'price': '4.50', 'sku': 'GT-100'}
        root = ET.fromstring(compile_label(template, make_profile('dymo'), record).encode('utf-8'))
        assert root.tag == 'DieCutLabel'
        assert root.get('Units') == 'twips'

        barcode = root.find('DrawCommands/DrawBarcode')
        assert barcode.get('X') == '284'
        assert barcode.get('Width') == '2268'
        assert barcode.get('Height') == '567'
        assert barcode.findtext('Type') == 'Code128'
        assert barcode.findtext('Text') == 'GT-100'

        texts = root.findall('DrawCommands/DrawText')
        assert texts[0].findtext('Text') == 'Tea & "Co" <1>'
        font = texts[0].find('Font')
        assert font.get('Size') == '200'
        assert font.get('Bold') == 'true'
        assert font.get('Family') == 'Arial'


class TestBPLC:

    def test_label(self, template, record):
        output = compile_label(template, make_profile('bplc'), record)
        assert isinstance(output, bytes)
        assert output.startswith(b'\x1b@\x1biS\x1biA\x90\x01')
        assert output.endswith(b'\x0c')
        assert (b'\x1b$\x28\x00\x1b(V\x02\x00\x28\x00\x1diBGT-100\x00') in output

    def test_text_is_utf8(self):
        template = LabelTemplate(elements=[
            TextElement(id='p', kind=ElementKind.PRICE, currency_symbol='₹')])
        output = compile_label(template, make_profile('bplc'), {'price': '120'})
        assert '₹120'.encode('utf-8') in output

    def test_negative_position_pinned_to_edge(self):
        template = LabelTemplate(elements=[
            TextElement(id='s', kind=ElementKind.SKU, x=1, y=1)])
        output = compile_label(template, make_profile('bplc', offset_x=-50, offset_y=-50),
                               {'sku': 'GT-100'})
        assert b'\x1b$\x00\x00\x1b(V\x02\x00\x00\x00GT-100' in output
