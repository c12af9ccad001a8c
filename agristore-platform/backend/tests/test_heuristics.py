import random

import pytest

from agristore.heuristics import Estimator, grade_for, moisture_factor, ph_factor
from conftest import FixedRandom


def test_rice_yield_in_optimal_band_range():
    est = Estimator(random.Random(42))
    for _ in range(200):
        value = est.predict_yield("Rice", 6.5, 70)
        # 4.5 * 1.15 * 1.1 * [0.9, 1.1], rounded to 2dp
        assert 5.12 <= value <= 6.27


def test_yield_uses_weather_noise_bounds():
    low = Estimator(FixedRandom(0.0)).predict_yield("Rice", 6.5, 70)
    high = Estimator(FixedRandom(1.0)).predict_yield("Rice", 6.5, 70)
    assert low == pytest.approx(4.5 * 1.15 * 1.1 * 0.9, abs=0.01)
    assert high == pytest.approx(4.5 * 1.15 * 1.1 * 1.1, abs=0.01)


def test_sub_optimal_ph_penalises_yield():
    est = Estimator(FixedRandom(0.5))
    assert est.predict_yield("Rice", 5.0, 70) == pytest.approx(4.5 * 0.85 * 1.1, abs=0.01)


def test_unknown_crop_uses_default_base():
    est = Estimator(FixedRandom(0.5))
    # pH 5.7 and moisture 50 sit in the neutral bands
    assert est.predict_yield("Sorghum", 5.7, 50) == pytest.approx(5.0, abs=0.01)


@pytest.mark.parametrize("ph,expected", [(6.0, 1.15), (7.0, 1.15), (5.4, 0.85), (7.6, 0.85), (5.5, 1.0), (7.3, 1.0)])
def test_ph_factor_bands(ph, expected):
    assert ph_factor(ph) == expected


@pytest.mark.parametrize("moisture,expected", [(60, 1.1), (80, 1.1), (39, 0.9), (91, 0.9), (40, 1.0), (85, 1.0)])
def test_moisture_factor_bands(moisture, expected):
    assert moisture_factor(moisture) == expected


@pytest.mark.parametrize("frac", [0.0, 0.5, 1.0])
def test_ideal_conditions_are_always_premium(frac):
    est = Estimator(FixedRandom(frac))
    assert est.assess_quality("Rice", 6.5, 70, 4) == "Premium Grade"


def test_poor_conditions_grade():
    # base 50 with no bonuses, noise below +5 stays in the C band
    for frac in (0.0, 0.5, 0.9):
        assert Estimator(FixedRandom(frac)).assess_quality("Maize", 4.0, 20, 1) == "Grade C"


def test_grade_bands():
    assert grade_for(85) == "Premium Grade"
    assert grade_for(84.9) == "Grade A"
    assert grade_for(70) == "Grade A"
    assert grade_for(55) == "Grade B"
    assert grade_for(40) == "Grade C"
    assert grade_for(39.9) == "Grade D"


def test_market_price_regional_multiplier():
    est = Estimator(FixedRandom(0.5))
    assert est.predict_market_price("Rice", "Lagos") == 935
    assert est.predict_market_price("Rice", "Kano") == round(850 * 0.95)
    # Lagos is the default region
    assert est.predict_market_price("Rice") == 935


def test_market_price_defaults_for_unknown_inputs():
    est = Estimator(FixedRandom(0.5))
    assert est.predict_market_price("Sorghum", "Enugu") == 300


def test_market_price_volatility_bounds():
    est = Estimator(random.Random(7))
    for _ in range(200):
        price = est.predict_market_price("Cocoa", "Abuja")
        assert 1165 <= price <= 1355
