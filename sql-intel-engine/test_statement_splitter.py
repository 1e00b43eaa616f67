"""
Tests for split_sql_statements() - no schema required.
"""

import unittest

from statement_splitter import SqlStatement, split_sql_statements


class TestSplitSqlStatements(unittest.TestCase):

    def test_splits_on_semicolons(self):
        statements = split_sql_statements("SELECT * FROM Users; SELECT * FROM Orders;")
        self.assertEqual(len(statements), 2)
        self.assertEqual(statements[0].text, "SELECT * FROM Users")
        self.assertEqual(statements[1].text, " SELECT * FROM Orders")

    def test_single_statement_without_semicolon(self):
        statements = split_sql_statements("SELECT * FROM Users")
        self.assertEqual(statements, [SqlStatement("SELECT * FROM Users", 0, 19)])

    def test_offsets(self):
        sql = "SELECT 1; SELECT 2"
        first, second = split_sql_statements(sql)
        self.assertEqual((first.text, first.start_offset, first.end_offset), ("SELECT 1", 0, 8))
        self.assertEqual((second.text, second.start_offset, second.end_offset), (" SELECT 2", 9, 18))

    def test_offsets_slice_the_script(self):
        sql = "SELECT 1;\n-- note;\nSELECT 'a;b' FROM [x;y];  SELECT 3"
        for stmt in split_sql_statements(sql):
            self.assertEqual(sql[stmt.start_offset:stmt.end_offset], stmt.text)

    def test_join_reproduces_script(self):
        sql = "SELECT 1;SELECT 2 FROM Users;SELECT 3"
        texts = [stmt.text for stmt in split_sql_statements(sql)]
        self.assertEqual(";".join(texts), sql)

    # --- Quote / bracket / comment immunity ---

    def test_semicolon_in_single_quotes(self):
        statements = split_sql_statements("SELECT 'a;b' FROM Users")
        self.assertEqual(len(statements), 1)
        self.assertEqual(statements[0].text, "SELECT 'a;b' FROM Users")

    def test_semicolon_in_double_quotes(self):
        self.assertEqual(len(split_sql_statements('SELECT "a;b" FROM Users')), 1)

    def test_escaped_quote_does_not_close_string(self):
        statements = split_sql_statements("SELECT 'it''s;here' FROM Users; SELECT 2")
        self.assertEqual(len(statements), 2)
        self.assertEqual(statements[0].text, "SELECT 'it''s;here' FROM Users")

    def test_semicolon_in_brackets(self):
        self.assertEqual(len(split_sql_statements("SELECT [a;b] FROM Users")), 1)

    def test_semicolon_in_line_comment(self):
        self.assertEqual(len(split_sql_statements("SELECT * -- comment;\nFROM Users")), 1)

    def test_semicolon_in_block_comment(self):
        self.assertEqual(len(split_sql_statements("SELECT * /* comment; */ FROM Users")), 1)

    def test_statement_after_line_comment_is_split(self):
        statements = split_sql_statements("SELECT 1 -- first\n; SELECT 2")
        self.assertEqual(len(statements), 2)

    # --- Malformed input ---

    def test_unterminated_quote_runs_to_end(self):
        sql = "SELECT 'abc; SELECT 2"
        statements = split_sql_statements(sql)
        self.assertEqual(len(statements), 1)
        self.assertEqual(statements[0].end_offset, len(sql))

    def test_unterminated_block_comment_runs_to_end(self):
        self.assertEqual(len(split_sql_statements("SELECT 1 /* open; SELECT 2")), 1)

    def test_unterminated_bracket_runs_to_end(self):
        self.assertEqual(len(split_sql_statements("SELECT [open; SELECT 2")), 1)

    # --- Trailing segment ---

    def test_whitespace_tail_is_dropped(self):
        statements = split_sql_statements("SELECT 1;   \n\t")
        self.assertEqual(len(statements), 1)

    def test_empty_script(self):
        self.assertEqual(split_sql_statements(""), [])
        self.assertEqual(split_sql_statements("   "), [])

    def test_empty_statements_between_semicolons_are_kept(self):
        statements = split_sql_statements("SELECT 1;;SELECT 2")
        self.assertEqual([s.text for s in statements], ["SELECT 1", "", "SELECT 2"])


if __name__ == "__main__":
    unittest.main()
