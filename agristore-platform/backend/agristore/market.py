# agristore/market.py
"""Informational payloads. None of these aggregate stored data."""
from typing import Optional

from .heuristics import Estimator
from .uploads import iso_now

MARKET_CROPS = [
    {"type": "Cassava", "trend": "+5%", "demand": "High", "forecast": "Increasing",
     "season": "Year-round", "majorMarkets": ["Lagos", "Ibadan", "Abeokuta"]},
    {"type": "Rice", "trend": "+2%", "demand": "Very High", "forecast": "Stable",
     "season": "Dry season optimal", "majorMarkets": ["Kebbi", "Niger", "Kwara"]},
    {"type": "Maize", "trend": "-1%", "demand": "Medium", "forecast": "Stable",
     "season": "Rainy season", "majorMarkets": ["Kaduna", "Kano", "Plateau"]},
    {"type": "Yam", "trend": "+8%", "demand": "High", "forecast": "Increasing",
     "season": "March-July planting", "majorMarkets": ["Benue", "Oyo", "Ekiti"]},
]

MARKET_INSIGHTS = [
    "Cassava export demand increasing due to industrial starch production",
    "Rice local production incentives boosting farmer participation",
    "Yam prices rising due to export opportunities to diaspora markets",
    "Sustainable farming practices receiving government support",
]

EXPORT_OPPORTUNITIES = [
    "Cassava starch to European markets",
    "Processed yam products to US and UK",
    "Organic vegetables to Middle East",
]


def market_intelligence(estimator: Estimator) -> dict:
    now = iso_now()
    return {
        "region": "Nigeria",
        "currency": "NGN",
        "lastUpdated": now,
        "crops": [
            {"type": crop["type"], "currentPrice": estimator.predict_market_price(crop["type"]),
             **{k: v for k, v in crop.items() if k != "type"}}
            for crop in MARKET_CROPS
        ],
        "insights": list(MARKET_INSIGHTS),
        "alerts": [
            {"type": "Price Alert", "message": "Cassava prices up 15% this month due to export demand",
             "severity": "info", "date": now},
            {"type": "Weather Alert", "message": "Favorable rainfall predicted for northern states",
             "severity": "positive", "date": now},
            {"type": "Policy Update", "message": "New agricultural loan scheme launched by CBN",
             "severity": "info", "date": now},
        ],
        "exportOpportunities": list(EXPORT_OPPORTUNITIES),
    }


def farmer_analytics(farmer_id: str) -> dict:
    now = iso_now()
    return {
        "farmerId": farmer_id,
        "overview": {
            "totalCrops": 5,
            "activeCrops": 3,
            "harvestedCrops": 2,
            "totalYield": 147.5,
            "averageQuality": "Grade A",
        },
        "storage": {"filecoinUsed": "23.4 GB", "totalFiles": 28, "lastBackup": now},
        "financial": {
            "estimatedValue": 850000,  # NGN
            "actualRevenue": 720000,
            "profitMargin": 0.35,
            "costSavings": 125000,
        },
        "performance": {"efficiencyScore": 87, "sustainabilityScore": 92, "qualityScore": 89},
        "trends": {"yieldTrend": "+12%", "qualityTrend": "+5%", "priceTrend": "+8%", "efficiencyTrend": "+3%"},
        "recommendations": [
            "Consider diversifying crop portfolio with high-value vegetables",
            "Implement precision agriculture techniques for 15% yield increase",
            "Explore export opportunities for premium quality produce",
            "Join cooperative for better market access and pricing",
        ],
        "upcomingTasks": [
            "Soil testing due in 2 weeks",
            "Irrigation system maintenance scheduled",
            "Harvest planning for next month",
        ],
        "lastUpdated": now,
    }


def search_files(
    gateway_url: str,
    type: Optional[str] = None,
    farmerId: Optional[str] = None,
    cropType: Optional[str] = None,
    dateFrom: Optional[str] = None,
    dateTo: Optional[str] = None,
) -> dict:
    gateway = gateway_url.rstrip("/")
    return {
        "query": {"type": type, "farmerId": farmerId, "cropType": cropType, "dateFrom": dateFrom, "dateTo": dateTo},
        "totalResults": 15,
        "results": [
            {"cid": "QmExample1...", "type": "farmer_profile", "filename": "farmer_profile_001.json",
             "size": "2.3 KB", "uploadDate": "2025-01-15T10:30:00Z", "url": f"{gateway}/ipfs/QmExample1..."},
            {"cid": "QmExample2...", "type": "crop_data", "filename": "crop_cassava_001.json",
             "size": "5.7 KB", "uploadDate": "2025-01-14T14:22:00Z", "url": f"{gateway}/ipfs/QmExample2..."},
        ],
        "searchTime": "0.23s",
        "timestamp": iso_now(),
    }


ENDPOINT_DIRECTORY = {
    "System": [
        "GET /api/health - System health check",
        "GET /api/network/info - Network and contract information",
    ],
    "Authentication": [
        "POST /api/auth/challenge - Generate wallet authentication challenge",
        "POST /api/auth/verify - Verify wallet signature",
    ],
    "File Storage": [
        "POST /api/upload - Upload file to Lighthouse/Filecoin",
        "GET /api/retrieve/{cid} - Get file information by CID",
        "POST /api/migrate/bulk - Bulk file migration",
    ],
    "Farmer Management": [
        "POST /api/farmers/register - Register new farmer",
        "GET /api/analytics/farmer/{farmerId} - Get farmer analytics",
    ],
    "Crop Management": [
        "POST /api/crops/register - Register new crop with AI analysis",
    ],
    "Supply Chain": [
        "POST /api/supply-chain/create - Create supply chain record",
        "POST /api/supply-chain/update/{id} - Update supply chain location",
    ],
    "AI & Analytics": [
        "POST /api/ai/predict-yield - AI yield prediction",
        "GET /api/market/intelligence - Market data and insights",
    ],
    "Storage & Search": [
        "GET /api/lighthouse/stats - Lighthouse storage statistics",
        "GET /api/search - Search files by metadata",
    ],
}
