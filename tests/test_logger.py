"""Tests for coinlens.utils.logger -- package-wide level and handler setup."""

import logging

from coinlens.utils.logger import setup_logger


class TestSetupLogger:

    def setup_method(self):
        self.root = logging.getLogger("coinlens")
        self.saved_level = self.root.level

    def teardown_method(self):
        self.root.setLevel(self.saved_level)

    def test_module_logger_follows_package_level(self):
        module_logger = setup_logger("scoring")
        setup_logger("coinlens", "DEBUG")
        assert module_logger.name == "coinlens.scoring"
        assert module_logger.propagate
        assert module_logger.getEffectiveLevel() == logging.DEBUG
        setup_logger("coinlens", "WARNING")
        assert module_logger.getEffectiveLevel() == logging.WARNING

    def test_single_handler_on_package_logger(self):
        setup_logger("history")
        setup_logger("pipeline")
        assert len(setup_logger().handlers) == 1
        assert setup_logger("history").handlers == []

    def test_explicit_module_level(self):
        module_logger = setup_logger("technical_debug_case", "ERROR")
        setup_logger("coinlens", "DEBUG")
        assert module_logger.getEffectiveLevel() == logging.ERROR
