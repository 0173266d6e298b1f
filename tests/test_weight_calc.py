"""Tests for volumetric and chargeable weight."""

import pytest

from utils.exceptions import ValidationError
from utils.weight_calc import Dimensions, chargeable_weight, volumetric_weight


class TestVolumetricWeight:
    def test_rounds_up_to_whole_kg(self):
        assert volumetric_weight(Dimensions(length=10, width=10, height=10)) == 1
        assert volumetric_weight(Dimensions(length=50, width=20, height=10)) == 2
        assert volumetric_weight(Dimensions(length=51, width=20, height=10)) == 3

    def test_missing_dimensions_default_to_10cm(self):
        assert volumetric_weight(None) == volumetric_weight(Dimensions())
        assert volumetric_weight({"length": 50, "width": None}) == volumetric_weight(
            Dimensions(length=50)
        )

    def test_custom_divisor(self):
        dims = Dimensions(length=40, width=40, height=40)
        assert volumetric_weight(dims, divisor=4000) == 16
        assert volumetric_weight(dims) == 13


class TestChargeableWeight:
    def test_actual_weight_wins_when_heavier(self):
        assert chargeable_weight(1.2, Dimensions()) == 1.2

    def test_volumetric_weight_wins_when_heavier(self):
        assert chargeable_weight(0.5, Dimensions(length=50, width=40, height=30)) == 12

    def test_monotonic_in_actual_weight(self):
        dims = Dimensions(length=30, width=20, height=10)
        weights = [0.1, 0.5, 1.0, 1.2, 2.5, 7.0]
        chargeable = [chargeable_weight(w, dims) for w in weights]
        assert chargeable == sorted(chargeable)

    def test_monotonic_in_dimensions(self):
        sizes = [10, 20, 30, 40, 60]
        chargeable = [
            chargeable_weight(1.0, Dimensions(length=s, width=s, height=s)) for s in sizes
        ]
        assert chargeable == sorted(chargeable)

    @pytest.mark.parametrize("weight", [None, -1])
    def test_rejects_missing_or_negative_weight(self, weight):
        with pytest.raises(ValidationError) as exc:
            chargeable_weight(weight)
        assert "weight" in exc.value.fields
