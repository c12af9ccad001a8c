# agristore/schemas.py
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ---------- Storage ----------
class UploadResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    cid: str
    hash: str
    name: Optional[str] = None
    size: int
    url: str
    timestamp: int
    metadata: Dict[str, Any] = Field(default_factory=dict)


class FileInfo(BaseModel):
    cid: str
    size: Union[int, str] = "unknown"
    mimeType: str = "unknown"
    lastModified: str = "unknown"


class StoredFile(BaseModel):
    cid: str = "unknown"
    fileName: str = "unknown"
    size: int = 0
    createdAt: Union[int, str] = "unknown"
    mimeType: str = "unknown"


class UsageStats(BaseModel):
    dataUsed: int = 0
    totalUploads: int = 0
    files: List[StoredFile] = Field(default_factory=list)


# ---------- Auth ----------
class Challenge(BaseModel):
    address: str
    message: str
    issuedAt: int


class ChallengeIn(BaseModel):
    walletAddress: Optional[str] = None


class VerifyIn(BaseModel):
    walletAddress: Optional[str] = None
    signature: Optional[str] = None
    message: Optional[str] = None


# ---------- Records ----------
class FarmerRegisterIn(BaseModel):
    name: Optional[str] = None
    location: Optional[str] = None
    cropTypes: Union[List[str], str, None] = None
    # coerced by build_farmer_record so a bad value is reported with the other fields
    landSize: Optional[Any] = None
    walletAddress: Optional[str] = None
    signature: Optional[str] = None


class CropRegisterIn(BaseModel):
    cropType: Optional[str] = None
    plantingDate: Optional[str] = None
    expectedHarvestDate: Optional[str] = None
    farmerId: Optional[str] = None
    soilData: Optional[Dict[str, Any]] = None
    soilPH: Optional[float] = None
    soilMoisture: Optional[float] = None
    organicMatter: Optional[float] = None
    location: Optional[str] = None


class SupplyChainCreateIn(BaseModel):
    cropId: Optional[str] = None
    batchNumber: Optional[str] = None
    initialLocation: Optional[str] = None
    handler: Optional[str] = None
    walletAddress: Optional[str] = None
    coordinates: Optional[Any] = None
    quantity: Optional[float] = None
    qualityGrade: Optional[str] = None
    certifications: Optional[List[str]] = None
    storageConditions: Optional[str] = None


class SupplyChainUpdateIn(BaseModel):
    location: Optional[str] = None
    status: Optional[str] = None
    handler: Optional[str] = None
    action: Optional[str] = None
    coordinates: Optional[Any] = None
    walletAddress: Optional[str] = None
    previousUpdate: Optional[str] = None


class SoilData(BaseModel):
    pH: Optional[float] = None
    moisture: Optional[float] = None
    organicMatter: Optional[float] = None


class PredictYieldIn(BaseModel):
    cropType: Optional[str] = None
    soilData: Optional[SoilData] = None
    location: Optional[str] = None
    historicalData: Optional[Any] = None
    walletAddress: Optional[str] = None
