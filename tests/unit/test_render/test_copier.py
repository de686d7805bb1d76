"""
test_copier.py - 행 복제/삭제 테스트

검증:
- 값/수식(행 참조 이동)/스타일/행 높이 복사
- 복제 구간 안의 병합은 복제본마다 재병합, 서로 겹치지 않음
- 삽입 지점 아래 수식/조건부 서식 재색인
"""

import pytest
from openpyxl.formatting.rule import FormulaRule
from openpyxl.styles import Font, PatternFill

from xlsx_templater.render.copier import offset_row_references

RED = PatternFill(start_color="FFFF0000", end_color="FFFF0000", fill_type="solid")


def merged(ws) -> set[str]:
    return {str(r) for r in ws.merged_cells.ranges}


# =============================================================================
# offset_row_references
# =============================================================================

class TestOffsetRowReferences:
    """offset_row_references 테스트."""

    def test_range(self):
        assert offset_row_references("SUM(B2:B4)", 3) == "SUM(B5:B7)"

    def test_absolute_row_kept(self):
        assert offset_row_references("$A5*B$5", 1) == "$A6*B$5"

    def test_absolute_row_moved_on_insert(self):
        assert offset_row_references("$A5*B$5", 1, absolute=True) == "$A6*B$6"

    def test_multi_letter_column(self):
        assert offset_row_references("AB12+C3", 2) == "AB14+C5"

    def test_function_names_untouched(self):
        assert offset_row_references("LOG10(A1)", 1) == "LOG10(A2)"

    def test_sheet_reference(self):
        assert offset_row_references("Sheet2!A1", 1) == "Sheet2!A2"

    def test_min_row(self):
        assert offset_row_references("A2+A10", 5, min_row=5) == "A2+A15"

    def test_negative(self):
        assert offset_row_references("A7", -2) == "A5"


# =============================================================================
# copy_rows
# =============================================================================

class TestCopyRows:
    """RowCopier.copy_rows 테스트."""

    def test_values_and_formulas(self, ws, copier):
        ws["A1"] = "H"
        ws["A2"] = "x"
        ws["B2"] = "=A2*2"
        ws["A3"] = "footer"

        copier.copy_rows(2, 2, 3)

        assert ws["A3"].value == "x"
        assert ws["B3"].value == "=A3*2"
        assert ws["A4"].value == "footer"
        assert ws["B2"].value == "=A2*2"

    def test_formulas_below_reindexed(self, ws, copier):
        ws["A2"] = "x"
        ws["B3"] = "=A3+A1+A$3"

        copier.copy_rows(2, 2, 3)

        # 3행 → 4행, 3 이상 참조만 +1 (절대 행 포함)
        assert ws["B4"].value == "=A4+A1+A$4"

    def test_height_and_style(self, ws, copier):
        ws["A2"] = "x"
        ws["A2"].font = Font(bold=True)
        ws.row_dimensions[2].height = 30

        copier.copy_rows(2, 2, 3)

        assert ws["A3"].font.bold is True
        assert ws.row_dimensions[3].height == 30

    def test_merges_replicated(self, ws, copier):
        ws["A2"] = "merged"
        ws.merge_cells("A2:B2")
        ws.merge_cells("A5:C5")

        copier.copy_rows(2, 2, 3)

        assert merged(ws) == {"A2:B2", "A3:B3", "A6:C6"}
        assert ws["A3"].value == "merged"

    def test_block_merges_do_not_overlap(self, ws, copier):
        ws.merge_cells("B2:C3")

        copier.copy_rows(2, 3, 4)
        copier.copy_rows(2, 3, 4)

        assert merged(ws) == {"B2:C3", "B4:C5", "B6:C7"}

    def test_conditional_formats(self, ws, sheet, copier):
        ws.conditional_formatting.add("A2:C2", FormulaRule(formula=["$A2>0"], fill=RED))
        ws.conditional_formatting.add("A6:C6", FormulaRule(formula=["$A6>0"], fill=RED))

        copier.copy_rows(2, 3, 4)

        refs = {cf.ref: cf.rules[0].formulae for cf in sheet.get_conditional_formats()}
        assert refs == {
            "A2:C2": ["$A2>0"],
            "A4:C4": ["$A4>0"],
            "A8:C8": ["$A8>0"],
        }

    def test_conditional_formats_skipped(self, ws, sheet, copier):
        ws.conditional_formatting.add("A2:C2", FormulaRule(formula=["$A2>0"], fill=RED))

        copier.copy_rows(2, 2, 3, conditional_formats=False)

        assert [cf.ref for cf in sheet.get_conditional_formats()] == ["A2:C2"]

    def test_target_must_be_below(self, copier):
        with pytest.raises(ValueError):
            copier.copy_rows(2, 4, 3)


# =============================================================================
# duplicate_row / remove_rows
# =============================================================================

class TestDuplicateRow:
    """RowCopier.duplicate_row 테스트."""

    def test_copies_below(self, ws, copier):
        ws["A2"] = "v"
        ws["B2"] = "=A2"
        ws["A3"] = "next"

        copier.duplicate_row(2, 2)

        assert [ws.cell(row=r, column=1).value for r in range(2, 6)] == ["v", "v", "v", "next"]
        assert [ws.cell(row=r, column=2).value for r in range(2, 5)] == ["=A2", "=A3", "=A4"]

    def test_zero_count(self, ws, copier):
        ws["A2"] = "v"

        copier.duplicate_row(2, 0)

        assert ws.max_row == 2


class TestRemoveRows:
    """RowCopier.remove_rows 테스트."""

    def test_removes_and_reindexes(self, ws, copier):
        ws["A2"] = "x"
        ws["A3"] = "=A4"
        ws["A4"] = "y"

        copier.remove_rows(2, 1)

        assert ws["A2"].value == "=A3"
        assert ws["A3"].value == "y"

    def test_removes_block(self, ws, copier):
        for row in range(1, 6):
            ws.cell(row=row, column=1, value=row)

        copier.remove_rows(2, 3)

        assert [ws.cell(row=r, column=1).value for r in (1, 2)] == [1, 5]
        assert ws.max_row == 2
