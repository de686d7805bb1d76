"""
test_row_loop.py - 단일 행 루프 테스트

검증:
- 항목 N개 → 행 N개 (아래 행은 N-1만큼 밀림)
- 빈 목록/키 없음 → 행 삭제
- 조건부 서식 복제/이동
"""

from openpyxl.formatting.rule import FormulaRule
from openpyxl.styles import PatternFill

from xlsx_templater.domain.schemas import RowLoop
from xlsx_templater.render.row_loop import RowLoopHandler, find_row_loop

RED = PatternFill(start_color="FFFF0000", end_color="FFFF0000", fill_type="solid")
ITEMS = [{"n": 1}, {"n": 2}, {"n": 3}]


def column_values(ws, column: int, rows: range) -> list:
    return [ws.cell(row=r, column=column).value for r in rows]


def loop_sheet(ws) -> None:
    """1행 헤더, 2행 루프, 3행 합계."""
    ws["A1"] = "Item"
    ws["A2"] = "{#items}row"
    ws["B2"] = "{n}"
    ws["C2"] = "{/items}"
    ws["A3"] = "Total"


# =============================================================================
# find_row_loop
# =============================================================================

class TestFindRowLoop:
    """find_row_loop 테스트."""

    def test_open_and_close_columns(self, ws, sheet):
        loop_sheet(ws)

        assert find_row_loop(sheet, 2) == RowLoop(
            row=2, start_column=1, end_column=3, tag_name="items"
        )

    def test_single_cell_loop(self, ws, sheet):
        ws["B4"] = "{#items}{n}{/items}"

        loop = find_row_loop(sheet, 4)

        assert (loop.start_column, loop.end_column) == (2, 2)

    def test_no_loop(self, ws, sheet):
        loop_sheet(ws)

        assert find_row_loop(sheet, 1) is None

    def test_unterminated(self, ws, sheet):
        ws["A1"] = "{#items}"

        assert find_row_loop(sheet, 1) is None

    def test_inline_loop_is_not_row_loop(self, ws, sheet):
        ws["A1"] = "{#items}{n};{/}"

        assert find_row_loop(sheet, 1) is None


# =============================================================================
# RowLoopHandler
# =============================================================================

class TestRowLoopHandler:
    """RowLoopHandler.handle 테스트."""

    def test_expands_items(self, ws, resolver, copier):
        loop_sheet(ws)

        advanced = RowLoopHandler(resolver, copier, {"items": ITEMS}).handle(2)

        assert advanced == 3
        assert column_values(ws, 2, range(2, 5)) == [1, 2, 3]
        assert column_values(ws, 1, range(2, 5)) == ["row", "row", "row"]
        assert column_values(ws, 3, range(2, 5)) == ["", "", ""]
        assert ws["A5"].value == "Total"
        assert ws.max_row == 5

    def test_not_a_loop_row(self, ws, resolver, copier):
        loop_sheet(ws)

        assert RowLoopHandler(resolver, copier, {"items": ITEMS}).handle(1) == 1
        assert ws["A1"].value == "Item"

    def test_empty_list_removes_row(self, ws, resolver, copier):
        loop_sheet(ws)

        advanced = RowLoopHandler(resolver, copier, {"items": []}).handle(2)

        assert advanced == 0
        assert ws["A2"].value == "Total"
        assert ws.max_row == 2

    def test_missing_key_removes_row(self, ws, resolver, copier):
        loop_sheet(ws)

        assert RowLoopHandler(resolver, copier, {}).handle(2) == 0
        assert ws["A2"].value == "Total"

    def test_single_mapping_item(self, ws, resolver, copier):
        loop_sheet(ws)

        advanced = RowLoopHandler(resolver, copier, {"items": {"n": 9}}).handle(2)

        assert advanced == 1
        assert ws["B2"].value == 9
        assert ws["A3"].value == "Total"

    def test_item_context_only(self, ws, resolver, copier):
        """행 안의 태그는 항목 컨텍스트로만 치환."""
        loop_sheet(ws)
        ws["B2"] = "{n}{title}"

        RowLoopHandler(resolver, copier, {"title": "T", "items": ITEMS[:1]}).handle(2)

        assert ws["B2"].value == "1{title}"

    def test_formulas_follow_rows(self, ws, resolver, copier):
        loop_sheet(ws)
        ws["D2"] = "=B2*2"

        RowLoopHandler(resolver, copier, {"items": ITEMS}).handle(2)

        assert column_values(ws, 4, range(2, 5)) == ["=B2*2", "=B3*2", "=B4*2"]

    def test_scope_inside_loop_row(self, ws, resolver, copier):
        ws["A2"] = "{#items}{@meta}{v}{/meta}"
        ws["B2"] = "{n}{/items}"
        data = {"items": [{"n": 1, "meta": {"v": "x"}}, {"n": 2, "meta": {"v": "y"}}]}

        RowLoopHandler(resolver, copier, data).handle(2)

        assert column_values(ws, 1, range(2, 4)) == ["x", "y"]
        assert column_values(ws, 2, range(2, 4)) == [1, 2]

    def test_conditional_formats_follow_rows(self, ws, sheet, resolver, copier):
        loop_sheet(ws)
        ws.conditional_formatting.add("A2:C2", FormulaRule(formula=["$B$2>1"], fill=RED))
        ws.conditional_formatting.add("A3:C3", FormulaRule(formula=["$B$3>1"], fill=RED))

        RowLoopHandler(resolver, copier, {"items": ITEMS}).handle(2)

        refs = {cf.ref: cf.rules[0].formulae for cf in sheet.get_conditional_formats()}
        assert refs == {
            "A2:C2": ["$B$2>1"],
            "A3:C3": ["$B$3>1"],
            "A4:C4": ["$B$4>1"],
            "A5:C5": ["$B$5>1"],
        }

    def test_conditional_formats_removed_with_row(self, ws, sheet, resolver, copier):
        loop_sheet(ws)
        ws.conditional_formatting.add("A2:C2", FormulaRule(formula=["$B$2>1"], fill=RED))
        ws.conditional_formatting.add("A3:C3", FormulaRule(formula=["$B$3>1"], fill=RED))

        RowLoopHandler(resolver, copier, {"items": []}).handle(2)

        refs = {cf.ref: cf.rules[0].formulae for cf in sheet.get_conditional_formats()}
        assert refs == {"A2:C2": ["$B$2>1"]}
