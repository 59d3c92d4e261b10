import unittest
import pandas as pd
from tidyposts.exceptions import DataValidationError
from tidyposts.utils.validate import expect_columns, expect_non_empty, expect_unique


class TestValidate(unittest.TestCase):
    def test_expect_columns(self):
        df = pd.DataFrame({"a": [1]})
        expect_columns(df, ["a"])
        with self.assertRaises(DataValidationError) as ctx:
            expect_columns(df, ["a", "b"])
        self.assertIn("'b'", str(ctx.exception))

    def test_expect_non_empty(self):
        with self.assertRaises(ValueError):
            expect_non_empty(pd.DataFrame({"a": []}))

    def test_expect_unique(self):
        df = pd.DataFrame({"k": [1, 1, 2], "g": ["x", "y", "x"]})
        expect_unique(df, ["k", "g"])
        with self.assertRaises(DataValidationError):
            expect_unique(df, ["k"])


if __name__ == '__main__':
    unittest.main()
