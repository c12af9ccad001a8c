# agristore/heuristics.py
"""
Heuristic crop estimates.

These are fixed tables plus arithmetic with a noise term, standing in for a
real model. Every noise draw goes through the injected `random.Random`, so a
seeded or mocked generator pins the output.
"""
import random
from typing import Optional

CROP_TABLE = {
    "Cassava": {"yield": 25, "price": 350},
    "Rice": {"yield": 4.5, "price": 850},
    "Maize": {"yield": 6, "price": 400},
    "Yam": {"yield": 15, "price": 500},
    "Vegetables": {"yield": 8, "price": 280},
    "Cocoa": {"yield": 1.2, "price": 1200},
    "Palm Oil": {"yield": 20, "price": 600},
}
DEFAULT_YIELD = 5
DEFAULT_PRICE = 300

REGIONAL_MULTIPLIERS = {
    "Lagos": 1.1,
    "Abuja": 1.05,
    "Kano": 0.95,
    "Port Harcourt": 1.0,
    "Ibadan": 0.98,
}
DEFAULT_REGION = "Lagos"

# (minimum score, grade), best first
GRADE_BANDS = [
    (85, "Premium Grade"),
    (70, "Grade A"),
    (55, "Grade B"),
    (40, "Grade C"),
]
LOWEST_GRADE = "Grade D"


def ph_optimal(ph: float) -> bool:
    return 6.0 <= ph <= 7.0


def moisture_optimal(moisture: float) -> bool:
    return 60 <= moisture <= 80


def ph_factor(ph: float) -> float:
    if ph_optimal(ph):
        return 1.15
    if ph < 5.5 or ph > 7.5:
        return 0.85
    return 1.0


def moisture_factor(moisture: float) -> float:
    if moisture_optimal(moisture):
        return 1.1
    if moisture < 40 or moisture > 90:
        return 0.9
    return 1.0


def grade_for(score: float) -> str:
    for floor, grade in GRADE_BANDS:
        if score >= floor:
            return grade
    return LOWEST_GRADE


def soil_health(ph: float) -> str:
    return "Optimal" if ph_optimal(ph) else "Needs Attention"


def moisture_level(moisture: float) -> str:
    return "Adequate" if moisture >= 60 else "Low"


class Estimator:
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def predict_yield(self, crop_type: str, soil_ph: float, soil_moisture: float) -> float:
        """Tonnes per hectare, with +/-10% weather noise."""
        base = CROP_TABLE.get(crop_type, {}).get("yield", DEFAULT_YIELD)
        weather = self.rng.uniform(0.9, 1.1)
        return round(base * ph_factor(soil_ph) * moisture_factor(soil_moisture) * weather, 2)

    def quality_score(self, soil_ph: float, soil_moisture: float, organic_matter: float) -> float:
        score = 50
        if ph_optimal(soil_ph):
            score += 20
        if moisture_optimal(soil_moisture):
            score += 15
        if organic_matter > 3:
            score += 10
        return score + self.rng.uniform(-5, 5)

    def assess_quality(self, crop_type: str, soil_ph: float, soil_moisture: float, organic_matter: float) -> str:
        # crop_type does not move the score yet
        return grade_for(self.quality_score(soil_ph, soil_moisture, organic_matter))

    def predict_market_price(self, crop_type: str, region: Optional[str] = None) -> int:
        """Naira per unit, with +/-7.5% volatility."""
        base = CROP_TABLE.get(crop_type, {}).get("price", DEFAULT_PRICE)
        multiplier = REGIONAL_MULTIPLIERS.get(region or DEFAULT_REGION, 1.0)
        volatility = self.rng.uniform(-0.075, 0.075)
        return round(base * multiplier * (1 + volatility))
