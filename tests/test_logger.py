import unittest

import logger


class TestLogger(unittest.TestCase):

    def test_builtin_print_is_left_alone(self):
        self.assertFalse(hasattr(logger, "print"))
        self.assertFalse(hasattr(logger, "_print"))

    def test_shares_one_console(self):
        self.assertIsNotNone(logger.console)
        self.assertTrue(callable(logger.setup_logging))


if __name__ == '__main__':
    unittest.main()
