"""Unit tests for config.py module."""

import json

import pytest

from loopsim.config import DEFAULT_COUPLING, CouplingTerm, SimConfig


class TestSimConfigDefaults:
    """Test the default constants."""

    def test_default_values(self):
        config = SimConfig()
        assert config.single_tick_interval == 1.0
        assert config.multi_tick_interval == 2.0
        assert config.history_length == 50
        assert config.gain == 0.1
        assert config.setpoint_noise == 1.0
        assert config.pv_noise == 0.75
        assert config.fraction_noise == 1.0
        assert config.convergence_tolerance == 1.0
        assert config.default_target_fraction == 82.0
        assert config.seed is None

    def test_nominal_fraction(self):
        """Test that the default weights sum to the seed fraction."""
        assert SimConfig().nominal_fraction == pytest.approx(78.5)

    def test_coupling_ids(self):
        assert SimConfig().coupling_ids == ("ore_feed", "water_addition", "mill_power", "pulp_density")

    def test_config_is_frozen(self):
        config = SimConfig()
        with pytest.raises(AttributeError):
            config.gain = 0.5


class TestSimConfigValidation:
    """Test rejection of unusable constants."""

    def test_history_length_must_be_positive(self):
        with pytest.raises(ValueError, match="history_length must be at least 1"):
            SimConfig(history_length=0)

    def test_tick_interval_must_be_positive(self):
        with pytest.raises(ValueError, match="multi_tick_interval"):
            SimConfig(multi_tick_interval=0.0)

    def test_negative_noise_rejected(self):
        with pytest.raises(ValueError, match="pv_noise"):
            SimConfig(pv_noise=-0.1)

    def test_duplicate_coupling_rejected(self):
        term = DEFAULT_COUPLING[0]
        with pytest.raises(ValueError, match="distinct parameters"):
            SimConfig(coupling=(term, term))


class TestCouplingTerm:
    """Test coupling term construction and contribution."""

    def test_contribution(self):
        term = CouplingTerm("ore_feed", reference_pv=450.0, weight=25.0, fallback_pv=450.0)
        assert term.contribution(450.0) == pytest.approx(25.0)
        assert term.contribution(495.0) == pytest.approx(27.5)

    def test_zero_reference_rejected(self):
        with pytest.raises(ValueError, match="must be finite and non-zero"):
            CouplingTerm("x", reference_pv=0.0, weight=1.0, fallback_pv=0.0)

    def test_non_finite_weight_rejected(self):
        with pytest.raises(ValueError, match="non-finite"):
            CouplingTerm("x", reference_pv=1.0, weight=float("nan"), fallback_pv=0.0)


class TestSimConfigOverrides:
    """Test external overrides from mappings and JSON."""

    def test_from_mapping_overrides(self):
        config = SimConfig.from_mapping({"history_length": 10, "gain": 0.2, "seed": 3})
        assert config.history_length == 10
        assert config.gain == 0.2
        assert config.seed == 3
        assert config.pv_noise == 0.75

    def test_from_mapping_builds_coupling_terms(self):
        config = SimConfig.from_mapping(
            {"coupling": [{"parameter_id": "a", "reference_pv": 10.0, "weight": 50.0, "fallback_pv": 10.0}]}
        )
        assert config.coupling == (CouplingTerm("a", 10.0, 50.0, 10.0),)
        assert config.nominal_fraction == 50.0

    def test_from_mapping_rejects_unknown_keys(self):
        with pytest.raises(ValueError, match="Unknown configuration keys: gian"):
            SimConfig.from_mapping({"gian": 0.2})

    def test_from_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"single_tick_interval": 0.5, "convergence_tolerance": 2.0}))
        config = SimConfig.from_json(path)
        assert config.single_tick_interval == 0.5
        assert config.convergence_tolerance == 2.0

    def test_from_json_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            SimConfig.from_json(tmp_path / "nope.json")

    def test_from_json_requires_object(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(ValueError, match="must contain a JSON object"):
            SimConfig.from_json(path)
