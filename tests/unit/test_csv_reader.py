from __future__ import annotations

import pytest

from combo_tools.models.combo_row import RawDot
from combo_tools.models.results import ParseError
from combo_tools.parsing.csv_reader import (
    CsvLayout,
    detect_delimiter,
    detect_layout,
    items_from_sheet_values,
    looks_like_combo_csv,
    parse_position,
    read_csv_items,
    read_csv_table,
)

CONSOLIDATED = (
    "product_sku,prod_name,url,img,dot_skus,dot_pos\n"
    "A-1,Sofa,https://shop.example.com/sofa.html,{{media url=wysiwyg/sofa.jpg}},B-1;B-2;B-3,50%:30%;10%:;\n"
    "A-2,\"Desk, oak\",,,C-1,:75.5%\n"
)


@pytest.mark.parametrize(
    "pos,expected",
    [
        ("50%:30%", ("50%", "30%")),
        ("50%:", ("50%", "")),
        (":30%", ("", "30%")),
        (":", ("", "")),
        ("", ("", "")),
        ("  ", ("", "")),
        ("50%", ("50%", "")),
        ("1:2:3", ("", "")),
        (" 5 : 6 ", ("5", "6")),
    ],
)
def test_parse_position(pos, expected):
    assert parse_position(pos) == expected


def test_consolidated_layout():
    items = read_csv_items(CONSOLIDATED)
    assert [i.sku for i in items] == ["A-1", "A-2"]
    first = items[0]
    assert first.name == "Sofa"
    assert first.url == "https://shop.example.com/sofa.html"
    assert first.img == "{{media url=wysiwyg/sofa.jpg}}"
    assert first.dots == (
        RawDot("B-1", "50%", "30%"),
        RawDot("B-2", "10%", ""),
        RawDot("B-3", "", ""),
    )
    second = items[1]
    assert second.name == "Desk, oak"
    assert second.img is None
    assert second.dots == (RawDot("C-1", "", "75.5%"),)


def test_separated_layout():
    text = (
        "product_sku,prod_name,img,dot1_sku,dot1_pos,dot2_sku,dot2_pos,dot3_sku,dot3_pos\n"
        "A-1,Sofa,a.jpg,B-1,50%:30%,,,B-3,:20%\n"
    )
    items = read_csv_items(text)
    assert items[0].dots == (RawDot("B-1", "50%", "30%"), RawDot("B-3", "", "20%"))
    assert items[0].img == "a.jpg"


def test_product_only_layout_has_no_dots():
    items = read_csv_items("product_sku,prod_name\nA-1,Sofa\n")
    assert items[0].sku == "A-1"
    assert items[0].dots == ()


def test_legacy_chinese_header_layout():
    text = (
        "白點商品1,白點商品2,需修改品項,前台連結,前台連結release\n"
        "B-1,B-2,Antony 五斗櫃,https://shop.example.com/antony.html,https://release.example.com/x\n"
    )
    items = read_csv_items(text)
    assert len(items) == 1
    item = items[0]
    assert item.sku == ""
    assert item.img is None
    assert item.name == "Antony 五斗櫃"
    assert item.url == "https://shop.example.com/antony.html"
    assert [d.sku for d in item.dots] == ["B-1", "B-2"]


def test_tab_delimited_with_bom():
    text = "\ufeffproduct_sku\tprod_name\tdot_skus\tdot_pos\nA-1\tSofa\tB-1\t1%:2%\n"
    items = read_csv_items(text)
    assert items[0].sku == "A-1"
    assert items[0].dots == (RawDot("B-1", "1%", "2%"),)


def test_blank_records_are_skipped():
    table = read_csv_table("product_sku,prod_name\n,\n\nA-1,Sofa\n")
    assert table.records == [{"product_sku": "A-1", "prod_name": "Sofa"}]


def test_values_keep_na_like_strings():
    items = read_csv_items("product_sku,prod_name\nNA,None\n")
    assert items[0].sku == "NA"
    assert items[0].name == "None"


def test_malformed_csv_raises_parse_error():
    with pytest.raises(ParseError) as e:
        read_csv_items('product_sku,prod_name\n"A-1,Sofa\n')
    assert "Failed to parse CSV" in str(e.value)


def test_unrecognised_header_raises():
    with pytest.raises(ParseError):
        detect_layout(["foo", "bar"])
    assert detect_layout(["product_sku", "dot_skus", "dot_pos"]) is CsvLayout.CONSOLIDATED
    assert detect_layout(["product_sku", "dot1_sku"]) is CsvLayout.SEPARATED


def test_detect_delimiter_order():
    assert detect_delimiter("a,b;c") == ","
    assert detect_delimiter("a\tb;c") == "\t"
    assert detect_delimiter("a;b") == ";"
    assert detect_delimiter("ab") == ","


def test_looks_like_combo_csv():
    assert looks_like_combo_csv(CONSOLIDATED)
    assert looks_like_combo_csv("\n\n需修改品項,前台連結\n")
    assert not looks_like_combo_csv("[{sku: 'product_sku'}]")
    assert not looks_like_combo_csv("<script>const allRecomComboData = []</script>")
    assert not looks_like_combo_csv("foo,bar\n1,2\n")


def test_items_from_sheet_values_pads_short_rows():
    items = items_from_sheet_values([["A-1", "Sofa"], ["A-2", "", "", "x.jpg", "B-1;B-2", "1%:2%"]])
    assert items[0].sku == "A-1"
    assert items[0].dots == ()
    assert items[0].img is None
    assert items[1].img == "x.jpg"
    assert items[1].dots == (RawDot("B-1", "1%", "2%"), RawDot("B-2", "", ""))
