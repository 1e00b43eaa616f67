"""
Tests for analyze_sql_context() and the WHERE/HAVING operator heuristics.
"""

import unittest

from context_analyzer import (
    SqlContextType,
    analyze_having_context,
    analyze_sql_context,
    analyze_where_context,
)


def _context(text, line=None):
    return analyze_sql_context(text, text if line is None else line)


class TestAnalyzeSqlContext(unittest.TestCase):

    def test_select_list(self):
        ctx = _context("SELECT ")
        self.assertEqual(ctx.type, SqlContextType.SELECT)
        self.assertEqual(ctx.confidence, "medium")

    def test_from_without_table(self):
        ctx = _context("SELECT * FROM ")
        self.assertEqual(ctx.type, SqlContextType.FROM)
        self.assertEqual(ctx.confidence, "high")

    def test_after_from_table(self):
        self.assertEqual(_context("SELECT * FROM Users ").type, SqlContextType.AFTER_FROM)

    def test_where(self):
        ctx = _context("SELECT * FROM Users WHERE ")
        self.assertEqual(ctx.type, SqlContextType.WHERE)
        self.assertFalse(ctx.suggest_operators)

    def test_where_bare_operand_wants_operator(self):
        self.assertTrue(_context("SELECT * FROM Users WHERE Name").suggest_operators)
        self.assertTrue(_context("SELECT * FROM Users u WHERE u.Id").suggest_operators)

    def test_where_after_operator(self):
        self.assertFalse(_context("SELECT * FROM Users WHERE Id = ").suggest_operators)

    def test_where_second_condition(self):
        self.assertTrue(_context("SELECT * FROM Users WHERE Id = 1 AND Name").suggest_operators)

    def test_join_at_end_of_line(self):
        ctx = _context("SELECT * FROM Users LEFT JOIN ")
        self.assertEqual(ctx.type, SqlContextType.JOIN_TABLE)
        self.assertEqual(ctx.confidence, "high")

    def test_join_uses_current_line(self):
        ctx = analyze_sql_context("SELECT *\nFROM Users u\nINNER JOIN ", "INNER JOIN ")
        self.assertEqual(ctx.type, SqlContextType.JOIN_TABLE)

    def test_on_condition(self):
        self.assertEqual(_context("SELECT * FROM Users u JOIN Orders o ON ").type,
                         SqlContextType.ON_CONDITION)

    def test_order_by(self):
        self.assertEqual(_context("SELECT * FROM Users ORDER BY ").type, SqlContextType.ORDER_BY)
        self.assertEqual(_context("SELECT * FROM Users WHERE Id = 1 ORDER BY ").type,
                         SqlContextType.ORDER_BY)

    def test_order_by_closed_by_limit(self):
        self.assertEqual(_context("SELECT * FROM Users ORDER BY Name LIMIT ").type,
                         SqlContextType.AFTER_FROM)

    def test_group_by(self):
        self.assertEqual(_context("SELECT Name FROM Users GROUP BY ").type, SqlContextType.GROUP_BY)
        self.assertEqual(_context("SELECT Name FROM Users WHERE Id > 1 GROUP BY ").type,
                         SqlContextType.GROUP_BY)

    def test_having(self):
        ctx = _context("SELECT Name FROM Users GROUP BY Name HAVING ")
        self.assertEqual(ctx.type, SqlContextType.HAVING)
        self.assertFalse(ctx.suggest_operators)

    def test_having_after_aggregate(self):
        ctx = _context("SELECT Name FROM Users GROUP BY Name HAVING COUNT(*)")
        self.assertEqual(ctx.type, SqlContextType.HAVING)
        self.assertTrue(ctx.suggest_operators)

    def test_having_after_operator(self):
        ctx = _context("SELECT Name FROM Users GROUP BY Name HAVING COUNT(*) > ")
        self.assertFalse(ctx.suggest_operators)

    def test_insert_columns(self):
        ctx = _context("INSERT INTO Users (")
        self.assertEqual(ctx.type, SqlContextType.INSERT_COLUMNS)
        self.assertEqual(ctx.table_name, "Users")

    def test_insert_columns_qualified(self):
        self.assertEqual(_context("INSERT INTO dbo.Users (Id, ").table_name, "Users")
        self.assertEqual(_context("INSERT INTO [dbo].[Users] (").table_name, "Users")

    def test_insert_values(self):
        self.assertEqual(_context("INSERT INTO Users (Id, Name) VALUES (").type,
                         SqlContextType.INSERT_VALUES)

    def test_update_set(self):
        self.assertEqual(_context("UPDATE Users SET Name = 'x', ").type, SqlContextType.UPDATE_SET)

    def test_update_where(self):
        self.assertEqual(_context("UPDATE Users SET Name = 'x' WHERE ").type, SqlContextType.WHERE)

    def test_default(self):
        for text in ("", "DELETE "):
            ctx = _context(text)
            self.assertEqual(ctx.type, SqlContextType.DEFAULT)
            self.assertEqual(ctx.confidence, "low")

    def test_none_input(self):
        self.assertEqual(analyze_sql_context(None, None).type, SqlContextType.DEFAULT)


class TestOperatorHeuristics(unittest.TestCase):

    def test_where_operands(self):
        self.assertFalse(analyze_where_context(""))
        self.assertTrue(analyze_where_context(" Price"))
        self.assertTrue(analyze_where_context(" p.Price"))
        self.assertTrue(analyze_where_context(" 'abc"))
        self.assertTrue(analyze_where_context(" 42"))

    def test_where_operand_with_operator(self):
        self.assertFalse(analyze_where_context(" Name LIKE"))
        self.assertFalse(analyze_where_context(" Id IN"))
        self.assertFalse(analyze_where_context(" Price >= 10"))

    def test_having_operands(self):
        self.assertTrue(analyze_having_context(" SUM(Total)"))
        self.assertTrue(analyze_having_context(" Total"))
        self.assertFalse(analyze_having_context(" SUM(Total) = 5"))
        self.assertFalse(analyze_having_context(""))


if __name__ == "__main__":
    unittest.main()
