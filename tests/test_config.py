"""Tests for configuration loading and logging utilities"""

import logging

import pytest
import yaml

from wbkit.config import (DEFAULT_CONFIG_PATH, get_config_value, get_default_config, load_config,
                          save_config, update_config_value)
from wbkit.utils.logging import BatchStats, StructuredLogger, setup_console_logging


class TestLoadConfig:
    """Test YAML configuration loading"""

    def test_packaged_config_matches_defaults(self):
        """Test the shipped config.yaml agrees with the built-in defaults"""
        assert DEFAULT_CONFIG_PATH.exists()
        assert load_config() == get_default_config()

    def test_missing_file_uses_defaults(self, tmp_path):
        """Test a missing file falls back to defaults"""
        assert load_config(tmp_path / "missing.yaml") == get_default_config()

    def test_partial_file_is_merged(self, tmp_path):
        """Test values absent from the file keep their defaults"""
        path = tmp_path / "wbkit.yaml"
        path.write_text("white_balance:\n  strategy: matrix\nexport:\n  jpeg_quality: 80\n")
        config = load_config(path)
        assert config['white_balance']['strategy'] == 'matrix'
        assert config['white_balance']['locus'] == 'daylight'
        assert config['export']['jpeg_quality'] == 80
        assert config['estimators'] == get_default_config()['estimators']

    def test_environment_variables(self, tmp_path, monkeypatch):
        """Test ${VAR} references are expanded"""
        monkeypatch.setenv('WBKIT_TEST_LOCUS', 'planckian')
        path = tmp_path / "wbkit.yaml"
        path.write_text("white_balance:\n  locus: ${WBKIT_TEST_LOCUS}\n  cat_method: ${WBKIT_UNSET_VAR}\n")
        config = load_config(path)
        assert config['white_balance']['locus'] == 'planckian'
        assert config['white_balance']['cat_method'] == '${WBKIT_UNSET_VAR}'

    @pytest.mark.parametrize("content", ["white_balance: [unclosed", "- just\n- a list\n"])
    def test_invalid_file_uses_defaults(self, tmp_path, content):
        """Test malformed YAML falls back to defaults"""
        path = tmp_path / "bad.yaml"
        path.write_text(content)
        assert load_config(path) == get_default_config()

    def test_save_and_reload(self, tmp_path):
        """Test saved configs load back unchanged"""
        config = get_default_config()
        config['export']['workers'] = 4
        path = tmp_path / "saved.yaml"
        assert save_config(config, path)
        assert yaml.safe_load(path.read_text())['export']['workers'] == 4
        assert load_config(path) == config


class TestConfigValues:
    """Test dot-path access"""

    def test_get_config_value(self):
        """Test nested lookups and defaults"""
        config = get_default_config()
        assert get_config_value(config, 'white_balance.strategy') == 'fast-empirical-v1'
        assert get_config_value(config, 'white_balance.missing', 'x') == 'x'
        assert get_config_value(config, 'export.jpeg_quality.deeper') is None

    def test_update_config_value(self):
        """Test nested updates create intermediate sections"""
        config = {}
        update_config_value(config, 'white_balance.strategy', 'matrix')
        assert config == {'white_balance': {'strategy': 'matrix'}}


class TestLoggingUtilities:
    """Test structured logging and batch statistics"""

    def test_structured_logger(self, caplog):
        """Test metadata is appended to messages"""
        log = StructuredLogger('wbkit.test').bind(file='a.ARW')
        with caplog.at_level(logging.INFO, logger='wbkit.test'):
            log.info("Recovered white point", kelvin=5000)
        assert 'Recovered white point' in caplog.text
        assert '"file": "a.ARW"' in caplog.text
        assert '"kelvin": 5000' in caplog.text

    def test_batch_stats(self):
        """Test counters and the formatted summary"""
        stats = BatchStats()
        stats.set_total(3)
        stats.add_result()
        stats.add_result('d65')
        stats.add_error('c.ARW', 'boom')
        summary = stats.get_summary()
        assert summary['total_files'] == 3
        assert summary['processed_files'] == 2
        assert summary['fallbacks'] == {'d65': 1}
        assert summary['errors'] == 1
        text = stats.format_summary()
        assert 'WHITE BALANCE SUMMARY' in text
        assert 'd65: 1' in text
        assert 'c.ARW: boom' in text

    def test_console_handler_is_replaced(self):
        """Test repeated setup keeps a single console handler"""
        root = logging.getLogger()
        original_level = root.level
        try:
            setup_console_logging('DEBUG', color=False)
            setup_console_logging('WARNING', color=False)
            handlers = [h for h in root.handlers if getattr(h, '_wbkit_console', False)]
            assert len(handlers) == 1
            assert root.level == logging.WARNING
        finally:
            for handler in [h for h in root.handlers if getattr(h, '_wbkit_console', False)]:
                root.removeHandler(handler)
            root.setLevel(original_level)
