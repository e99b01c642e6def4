import logging

from site_audit.logger import LOGGER_NAME, configure, get_logger


def test_configure_writes_log_file(tmp_path):
    log_file = tmp_path / "logs" / "audit.log"
    lg = configure(level="DEBUG", log_file=log_file)
    try:
        get_logger("links").info("✓ checked %s", "https://example.com/")
        for handler in lg.handlers:
            handler.flush()
        assert "SiteAudit.links | ✓ checked https://example.com/" in log_file.read_text(encoding="utf-8")
        assert len(lg.handlers) == 2
        assert logging.getLogger("aiohttp.access").level == logging.DEBUG
    finally:
        configure(level="INFO")


def test_reconfigure_replaces_handlers_and_quiets_libraries():
    configure(level="INFO")
    lg = configure(level="INFO")
    assert lg.name == LOGGER_NAME
    assert len(lg.handlers) == 1
    assert lg.propagate is False
    assert logging.getLogger("aiohttp.client").level == logging.WARNING
