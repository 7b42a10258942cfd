"""
Tests for ResamplingConfig
"""

import logging

import pytest

from pixelalign.core.config import ResamplingConfig
from pixelalign.core.exceptions import ValidationError
from pixelalign.resample.types import AggregationType, InterpolationType


class TestResamplingConfig:
    """Test resampling parameters"""

    def test_defaults(self):
        config = ResamplingConfig("B02")
        assert config.interpolation_type is InterpolationType.NEAREST
        assert config.aggregation_type is AggregationType.FIRST
        assert config.flag_aggregation_type is AggregationType.FIRST

    def test_methods(self):
        config = ResamplingConfig(
            "B02",
            interpolation_method="Bilinear",
            aggregation_method="Median",
            flag_aggregation_method="FlagMedianOr",
        )
        assert config.interpolation_type is InterpolationType.BILINEAR
        assert config.aggregation_type is AggregationType.MEDIAN
        assert config.flag_aggregation_type is AggregationType.FLAG_MEDIAN_OR

    def test_reference_band_required(self):
        with pytest.raises(ValidationError):
            ResamplingConfig("")

    def test_unknown_method_accepted_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="pixelalign.core.config"):
            config = ResamplingConfig("B02", interpolation_method="Bicubic")
        assert config.interpolation_type is None
        assert "Bicubic" in caplog.text

    def test_flag_method_not_a_numeric_method(self):
        config = ResamplingConfig("B02", aggregation_method="FlagOr")
        assert config.aggregation_type is None

    def test_numeric_method_not_a_flag_method(self):
        config = ResamplingConfig("B02", flag_aggregation_method="Mean")
        assert config.flag_aggregation_type is None

    def test_first_allowed_for_both(self):
        config = ResamplingConfig("B02", aggregation_method="First", flag_aggregation_method="First")
        assert config.aggregation_type is AggregationType.FIRST
        assert config.flag_aggregation_type is AggregationType.FIRST

    def test_round_trip(self):
        config = ResamplingConfig("B02", aggregation_method="Mean")
        assert ResamplingConfig.from_dict(config.to_dict()) == config

    def test_from_dict_operator_names(self):
        config = ResamplingConfig.from_dict(
            {
                "referenceBandName": "B05",
                "interpolationMethod": "Bilinear",
                "aggregationMethod": "Max",
                "flagAggregationMethod": "FlagAnd",
            }
        )
        assert config == ResamplingConfig("B05", "Bilinear", "Max", "FlagAnd")

    def test_from_dict_short_names(self):
        config = ResamplingConfig.from_dict({"referenceBand": "B05", "aggregation": "Min"})
        assert config.reference_band_name == "B05"
        assert config.aggregation_type is AggregationType.MIN
        assert config.interpolation_type is InterpolationType.NEAREST

    def test_from_dict_requires_reference(self):
        with pytest.raises(ValidationError):
            ResamplingConfig.from_dict({"aggregation": "Mean"})

    def test_from_dict_ignores_unknown_keys(self, caplog):
        with caplog.at_level(logging.WARNING, logger="pixelalign.core.config"):
            config = ResamplingConfig.from_dict({"referenceBand": "B05", "upsampling": "Bilinear"})
        assert config.interpolation_type is InterpolationType.NEAREST
        assert "upsampling" in caplog.text


class TestPolicyTypes:
    """Test policy name lookup"""

    def test_interpolation_from_name(self):
        assert InterpolationType.from_name("NearestNeighbour") is InterpolationType.NEAREST
        assert InterpolationType.from_name("Bicubic") is None
        assert InterpolationType.from_name(None) is None

    def test_aggregation_from_name(self):
        assert AggregationType.from_name("FlagOr") is AggregationType.FLAG_OR
        assert AggregationType.from_name("Mode") is None
