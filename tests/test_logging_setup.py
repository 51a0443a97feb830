"""Unit tests for logging configuration."""

import logging

from dns_promoter.core.logging_setup import configure_logging


class TestConfigureLogging:

    def teardown_method(self):
        logging.getLogger().setLevel(logging.WARNING)

    def test_sets_level_and_quiets_botocore(self):
        log = configure_logging("debug")

        assert log.name == "dns_promoter"
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("botocore").level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self):
        configure_logging("chatty")

        assert logging.getLogger().level == logging.INFO
