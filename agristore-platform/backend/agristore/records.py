# agristore/records.py
"""
Builders for the JSON documents stored on Filecoin.

Each builder validates its input up front, collecting every missing or
invalid field into a single ValidationError, and returns a plain dict ready
for `LighthouseClient.upload_json`. Records are never mutated after upload;
an update is a new document.
"""
import math
from typing import Callable, List, Optional

from .errors import ValidationError
from .heuristics import Estimator, moisture_level, ph_optimal, soil_health
from .schemas import (
    CropRegisterIn,
    FarmerRegisterIn,
    PredictYieldIn,
    SupplyChainCreateIn,
    SupplyChainUpdateIn,
)
from .uploads import iso_now, now_ms
from .wallet import is_address

NETWORK = "Base"
RECORD_VERSION = "1.0"

DEFAULT_SOIL_PH = 6.5
DEFAULT_SOIL_MOISTURE = 65
DEFAULT_ORGANIC_MATTER = 3.5


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _require(payload, names: List[str]) -> List[str]:
    return [name for name in names if _blank(getattr(payload, name, None))]


def _or_default(value, default):
    # unset and zero readings both fall back to the default
    return value if value else default


def _positive_number(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 and math.isfinite(number) else None


def make_id(kind: str, clock: Callable[[], int] = now_ms) -> str:
    return f"{kind}_{clock()}"


def build_farmer_record(payload: FarmerRegisterIn, clock: Callable[[], int] = now_ms) -> dict:
    invalid = _require(payload, ["name", "location"])

    crop_types = payload.cropTypes
    if isinstance(crop_types, str):
        crop_types = [crop_types]
    crop_types = [c.strip() for c in (crop_types or []) if c and c.strip()]
    if not crop_types:
        invalid.append("cropTypes")

    land_size = _positive_number(payload.landSize)
    if land_size is None:
        invalid.append("landSize")
    if not is_address(payload.walletAddress):
        invalid.append("walletAddress")

    if invalid:
        raise ValidationError(invalid)

    return {
        "name": payload.name.strip(),
        "location": payload.location.strip(),
        "cropTypes": crop_types,
        "landSize": land_size,
        "registrationDate": iso_now(),
        "walletAddress": payload.walletAddress.lower(),
        "verified": False,
        "id": make_id("farmer", clock),
        "network": NETWORK,
        "version": RECORD_VERSION,
    }


def crop_recommendations(soil_ph: float, soil_moisture: float) -> List[str]:
    recommendations = []
    if soil_ph < 6.0:
        recommendations.append("Consider lime application to raise pH")
    if soil_moisture < 50:
        recommendations.append("Increase irrigation frequency")
    recommendations.append("Monitor for pest and disease signs")
    recommendations.append("Apply organic fertilizer for better yield")
    return recommendations


def build_crop_record(payload: CropRegisterIn, estimator: Estimator, clock: Callable[[], int] = now_ms) -> dict:
    invalid = _require(payload, ["cropType", "plantingDate", "expectedHarvestDate", "farmerId"])
    if invalid:
        raise ValidationError(invalid)

    soil_ph = _or_default(payload.soilPH, DEFAULT_SOIL_PH)
    soil_moisture = _or_default(payload.soilMoisture, DEFAULT_SOIL_MOISTURE)
    organic_matter = _or_default(payload.organicMatter, DEFAULT_ORGANIC_MATTER)

    predicted_yield = estimator.predict_yield(payload.cropType, soil_ph, soil_moisture)
    quality = estimator.assess_quality(payload.cropType, soil_ph, soil_moisture, organic_matter)
    market_price = estimator.predict_market_price(payload.cropType, payload.location)
    revenue = predicted_yield * market_price

    return {
        "id": make_id("crop", clock),
        "farmerId": payload.farmerId,
        "cropType": payload.cropType,
        "plantingDate": payload.plantingDate,
        "expectedHarvestDate": payload.expectedHarvestDate,
        "soilData": payload.soilData or {},
        "location": payload.location,
        "predictions": {
            "yield": predicted_yield,
            "quality": quality,
            "marketPrice": market_price,
            # 40% of revenue assumed to go to costs
            "profitability": round(revenue - revenue * 0.4),
        },
        "aiAnalysis": {
            "soilHealth": soil_health(soil_ph),
            "moistureLevel": moisture_level(soil_moisture),
            "recommendations": crop_recommendations(soil_ph, soil_moisture),
        },
        "status": "Planted",
        "createdAt": iso_now(),
        "network": NETWORK,
        "version": RECORD_VERSION,
    }


def build_supply_chain_record(payload: SupplyChainCreateIn, clock: Callable[[], int] = now_ms) -> dict:
    invalid = _require(payload, ["cropId", "batchNumber", "initialLocation"])
    if invalid:
        raise ValidationError(invalid)

    created_at = iso_now()
    return {
        "id": make_id("supply", clock),
        "cropId": payload.cropId,
        "batchNumber": payload.batchNumber,
        "createdAt": created_at,
        "createdBy": payload.walletAddress,
        "currentLocation": payload.initialLocation,
        "status": "Created",
        "timeline": [
            {
                "timestamp": created_at,
                "location": payload.initialLocation,
                "status": "Batch Created",
                "handler": payload.handler or "Farmer",
                "action": "Initial batch creation",
                "coordinates": payload.coordinates,
            }
        ],
        "metadata": {
            "totalQuantity": payload.quantity or 0,
            "qualityGrade": payload.qualityGrade or "Pending",
            "certifications": payload.certifications or [],
            "storageConditions": payload.storageConditions or "Standard",
        },
        "network": NETWORK,
    }


def build_supply_chain_update(
    supply_chain_id: str,
    payload: SupplyChainUpdateIn,
    clock: Callable[[], int] = now_ms,
) -> dict:
    """
    A standalone update document for `supply_chain_id`. `previousUpdate` is
    only set when the caller passes the CID of the prior update; the chain of
    versions is not looked up here.
    """
    invalid = _require(payload, ["location", "status"])
    if _blank(supply_chain_id):
        invalid.insert(0, "id")
    if invalid:
        raise ValidationError(invalid, error="Location and status required")

    return {
        "supplyChainId": supply_chain_id,
        "updateId": make_id("update", clock),
        "timestamp": iso_now(),
        "updatedBy": payload.walletAddress,
        "newLocation": payload.location,
        "newStatus": payload.status,
        "handler": payload.handler or "Unknown",
        "action": payload.action or "Location update",
        "coordinates": payload.coordinates,
        "previousUpdate": payload.previousUpdate or None,
    }


def build_yield_prediction(payload: PredictYieldIn, estimator: Estimator) -> dict:
    invalid = _require(payload, ["cropType"])
    if payload.soilData is None:
        invalid.append("soilData")
    if invalid:
        raise ValidationError(invalid, error="Missing required data for prediction")

    soil = payload.soilData
    crop_type = payload.cropType
    soil_ph = _or_default(soil.pH, DEFAULT_SOIL_PH)
    soil_moisture = _or_default(soil.moisture, DEFAULT_SOIL_MOISTURE)
    organic_matter = _or_default(soil.organicMatter, DEFAULT_ORGANIC_MATTER)

    return {
        "cropType": crop_type,
        "location": payload.location or "Nigeria",
        "predictions": {
            "yield": estimator.predict_yield(crop_type, soil_ph, soil_moisture),
            "quality": estimator.assess_quality(crop_type, soil_ph, soil_moisture, organic_matter),
            "marketPrice": estimator.predict_market_price(crop_type, payload.location),
        },
        "confidence": 0.87,
        "factors": {
            "soil": "Optimal" if ph_optimal(soil_ph) else "Needs Improvement",
            "moisture": moisture_level(soil_moisture),
            "climate": "Favorable for season",
        },
        "recommendations": [
            "Apply lime to increase soil pH" if soil_ph < 6.0 else "Maintain current soil pH levels",
            "Increase irrigation frequency" if soil_moisture < 50 else "Monitor soil moisture regularly",
            "Consider organic fertilizer application 2 weeks after planting",
            f"Optimal planting window for {crop_type}: March-May for most Nigerian regions",
        ],
        "riskFactors": [
            "Weather variability",
            "Pest and disease pressure",
            "Market price fluctuations",
        ],
        "timestamp": iso_now(),
    }


def build_prediction_record(
    prediction: dict,
    requested_by: Optional[str] = None,
    clock: Callable[[], int] = now_ms,
) -> dict:
    return {
        **prediction,
        "id": make_id("prediction", clock),
        "requestedBy": requested_by or "anonymous",
    }


def build_migration_summary(batch_id: str, results: List[dict]) -> dict:
    return {
        "batchId": batch_id,
        "timestamp": iso_now(),
        "totalFiles": len(results),
        "successful": sum(1 for r in results if r["status"] == "success"),
        "failed": sum(1 for r in results if r["status"] == "failed"),
        "results": results,
        "totalSize": sum(r.get("size") or 0 for r in results),
    }
