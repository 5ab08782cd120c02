"""Tests for YAML config loader gateway."""

from __future__ import annotations

from pathlib import Path

import pytest

from gpt_relay.l3_interface_adapters.gateways.yaml_config_loader import YamlConfigLoader, deep_merge


class TestYamlConfigLoader:
    def test_load_raw_returns_dict(self, sample_config_yaml: Path):
        raw = YamlConfigLoader().load_raw(str(sample_config_yaml))
        assert raw['provider']['model'] == 'gpt-4'
        assert raw['context']['max_history_hops'] == 50
        assert raw['ollama']['host'] == 'http://gpu-box:11434'

    def test_load_nonexistent_raises(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            YamlConfigLoader().load_raw(str(tmp_path / 'nonexistent.yaml'))

    def test_load_raw_with_overrides(self, sample_config_yaml: Path):
        raw = YamlConfigLoader().load_raw(
            str(sample_config_yaml),
            overrides={'provider': {'timeout_ms': 500}},
        )
        assert raw['provider']['timeout_ms'] == 500
        assert raw['provider']['model'] == 'gpt-4'

    def test_empty_yaml_is_empty_dict(self, tmp_path: Path):
        p = tmp_path / 'empty.yaml'
        p.write_text('', encoding='utf-8')
        assert YamlConfigLoader().load_raw(str(p)) == {}

    def test_non_mapping_raises(self, tmp_path: Path):
        p = tmp_path / 'list.yaml'
        p.write_text('- a\n- b\n', encoding='utf-8')
        with pytest.raises(ValueError, match='expected a mapping'):
            YamlConfigLoader().load_raw(str(p))


class TestDefaultConfigResolution:
    _MINIMAL_CONFIG = 'provider:\n  model: "gpt-4o"\n'

    def test_loads_from_default_config_dir(self, tmp_path: Path, monkeypatch):
        config_dir = tmp_path / 'gpt-relay'
        config_dir.mkdir()
        (config_dir / 'config.yml').write_text(self._MINIMAL_CONFIG, encoding='utf-8')

        import gpt_relay.l3_interface_adapters.gateways.yaml_config_loader as mod

        monkeypatch.setattr(mod, 'DEFAULT_CONFIG_PATHS', [config_dir / 'config.yaml', config_dir / 'config.yml'])

        raw = YamlConfigLoader().load_raw()
        assert raw['provider']['model'] == 'gpt-4o'

    def test_no_default_config_returns_empty(self, tmp_path: Path, monkeypatch):
        import gpt_relay.l3_interface_adapters.gateways.yaml_config_loader as mod

        monkeypatch.setattr(mod, 'DEFAULT_CONFIG_PATHS', [tmp_path / 'nope' / 'config.yaml'])

        assert YamlConfigLoader().load_raw() == {}


class TestDeepMerge:
    def test_nested_keys_merge(self):
        base = {'provider': {'model': 'a', 'timeout_ms': 1}, 'store': {'backend': 'sqlite'}}
        deep_merge(base, {'provider': {'model': 'b'}})
        assert base == {'provider': {'model': 'b', 'timeout_ms': 1}, 'store': {'backend': 'sqlite'}}

    def test_scalar_replaces_mapping(self):
        assert deep_merge({'a': {'b': 1}}, {'a': 2}) == {'a': 2}
