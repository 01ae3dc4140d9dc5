from __future__ import annotations

from gridtracker.services.clipboard import (
    GridColumn,
    PasteUpdate,
    fill_range,
    format_for_clipboard,
    parse_clipboard_text,
    smart_paste,
)

COLUMNS = [GridColumn("name", "Account Name"), GridColumn("employees", "Employees"), GridColumn("active")]


def test_parse_clipboard_text():
    assert parse_clipboard_text("a\tb\r\nc\td\n") == [["a", "b"], ["c", "d"]]
    assert parse_clipboard_text("") == []
    assert parse_clipboard_text("single") == [["single"]]


def test_format_for_clipboard_quotes_special_cells():
    text = format_for_clipboard(
        [{"name": "Acme", "employees": 10}, {"name": 'Say "hi"', "employees": None}],
        ["name", "employees"],
    )
    assert text.split("\r\n") == ["name\temployees", "Acme\t10", '"Say ""hi"""\t']


def test_smart_paste_header_matches_display_names():
    cells = [["EMPLOYEES", "account name"], ["5", "Acme"]]
    updates = smart_paste(cells, COLUMNS, start_row=2, start_col=0)
    assert updates == [PasteUpdate(2, "employees", "5"), PasteUpdate(2, "name", "Acme")]


def test_smart_paste_positional_clips_outside_columns():
    updates = smart_paste([["a", "b", "c"]], COLUMNS, start_row=0, start_col=1)
    assert updates == [PasteUpdate(0, "employees", "a"), PasteUpdate(0, "active", "b")]


def test_smart_paste_partial_header_is_data():
    updates = smart_paste([["name", "x"]], COLUMNS, start_row=0, start_col=0)
    assert updates == [PasteUpdate(0, "name", "name"), PasteUpdate(0, "employees", "x")]


def test_empty_header_cell_never_matches():
    assert not GridColumn("active").matches("  ")


def test_fill_range_directions():
    assert list(fill_range(1, 4)) == [2, 3, 4]
    assert list(fill_range(4, 1)) == [1, 2, 3]
    assert list(fill_range(2, 2)) == []
