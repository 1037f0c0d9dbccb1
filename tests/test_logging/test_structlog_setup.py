import json

import pytest
import structlog

from ohmyskills.config import Config, set_config
from ohmyskills.logging import configure_logging, get_logger


@pytest.fixture
def _restore_logging():
    yield
    structlog.reset_defaults()
    set_config(Config())


def test_configure_logging_applies_level_and_json_format(capsys, _restore_logging):
    cfg = Config()
    cfg.logging.level = "WARNING"
    cfg.logging.format = "json"
    set_config(cfg)

    configure_logging()
    logger = get_logger("ohmyskills.tests.setup")
    logger.info("Filtered out", skill="demo")
    logger.warning("Kept", skill="demo")

    lines = [line for line in capsys.readouterr().err.splitlines() if line.strip()]
    assert len(lines) == 1
    event = json.loads(lines[0])
    assert event["event"] == "Kept"
    assert event["skill"] == "demo"
    assert event["level"] == "warning"
