"""Tests for the dedicated application logger."""

import json
import logging
import os

import logger_setup


def test_setup_logging_creates_run_log(tmp_path):
    config_path = tmp_path / 'config.json'
    config_path.write_text(json.dumps({
        'run_id': 'test_run',
        'logging': {'level': 'DEBUG', 'format': '%(levelname)s - %(message)s'},
    }))

    log_file = logger_setup.setup_logging(str(config_path), log_root=str(tmp_path / 'runs'))

    logger = logging.getLogger("particle_web")
    try:
        assert os.path.isfile(log_file)
        assert log_file == os.path.join(str(tmp_path / 'runs'), 'test_run', 'simulation.log')
        assert logger.level == logging.DEBUG
        assert not logger.propagate
        assert len(logger.handlers) == 2

        # Calling again must not stack handlers
        logger_setup.setup_logging(str(config_path), log_root=str(tmp_path / 'runs'))
        assert len(logger.handlers) == 2
    finally:
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()
