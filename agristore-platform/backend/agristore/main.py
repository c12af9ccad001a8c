# agristore/main.py
import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import AgriStoreError, AuthError, StorageUploadError, ValidationError
from .heuristics import Estimator
from .lighthouse import LighthouseClient
from .market import ENDPOINT_DIRECTORY, farmer_analytics, market_intelligence, search_files
from .records import (
    build_crop_record,
    build_farmer_record,
    build_migration_summary,
    build_prediction_record,
    build_supply_chain_record,
    build_supply_chain_update,
    build_yield_prediction,
    make_id,
)
from .schemas import (
    ChallengeIn,
    CropRegisterIn,
    FarmerRegisterIn,
    PredictYieldIn,
    SupplyChainCreateIn,
    SupplyChainUpdateIn,
    VerifyIn,
)
from .settings import Settings, get_settings
from .uploads import check_file, iso_now, migrate_files, read_incoming
from .wallet import ChainClient, issue_challenge, verify_signature

VERSION = "2.0.0"
FEATURES = [
    "Lighthouse Filecoin Storage",
    "Base Network Integration",
    "Wallet Authentication",
    "AI Predictions",
    "Supply Chain Tracking",
]

log = logging.getLogger("agristore")

router = APIRouter(prefix="/api")


# ---------- dependencies ----------
def app_settings(request: Request) -> Settings:
    return request.app.state.settings


def lighthouse_client(request: Request) -> LighthouseClient:
    return request.app.state.lighthouse


def chain_client(request: Request) -> ChainClient:
    return request.app.state.chain


def get_estimator(request: Request) -> Estimator:
    return request.app.state.estimator


def ok(data, message: Optional[str] = None) -> dict:
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def storage_block(result) -> dict:
    return {"network": "Filecoin", "provider": "Lighthouse", "size": result.size}


# ---------- system ----------
@router.get("/health")
def health(
    settings: Settings = Depends(app_settings),
    lighthouse: LighthouseClient = Depends(lighthouse_client),
    chain: ChainClient = Depends(chain_client),
):
    return {
        "status": "healthy",
        "timestamp": iso_now(),
        "version": VERSION,
        "services": {
            "lighthouse": "connected" if lighthouse.ping() else "error",
            "baseNetwork": "connected" if chain.is_connected() else "error",
            "server": "running",
        },
        "network": {
            "name": "Base",
            "rpcUrl": settings.rpc_url,
            "contractAddress": settings.CONTRACT_ADDRESS,
        },
        "features": FEATURES,
    }


@router.get("/network/info")
def network_info(
    settings: Settings = Depends(app_settings),
    chain: ChainClient = Depends(chain_client),
):
    info = chain.network_info()
    info["storage"] = {
        "provider": "Lighthouse",
        "network": "Filecoin",
        "endpoint": settings.LIGHTHOUSE_BASE_URL,
    }
    return ok(info)


# ---------- storage ----------
@router.post("/upload")
async def upload_file(
    file: Optional[UploadFile] = File(None),
    walletAddress: Optional[str] = Form(None),
    dataType: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    settings: Settings = Depends(app_settings),
    lighthouse: LighthouseClient = Depends(lighthouse_client),
):
    """
    Accepts a multipart upload, stages it in a temp file and pins it through
    Lighthouse. The staged copy is removed whatever the outcome.
    """
    if file is None:
        raise ValidationError(["file"], "No file uploaded", error="No file uploaded")

    incoming = await read_incoming(file, settings.MAX_UPLOAD_BYTES)
    check_file(incoming, settings.MAX_UPLOAD_BYTES)

    metadata = {
        "originalName": incoming.filename,
        "mimeType": incoming.content_type,
        "uploadedBy": walletAddress,
        "dataType": dataType or "agricultural_data",
        "description": description,
        "tags": [t.strip() for t in tags.split(",") if t.strip()] if tags else [],
    }
    result = await run_in_threadpool(lighthouse.upload_bytes, incoming.content, incoming.filename, metadata)

    return ok(
        {
            "cid": result.cid,
            "hash": result.hash,
            "size": result.size,
            "url": result.url,
            "gateway": lighthouse.gateway_url(result.cid),
            "metadata": metadata,
        },
        "File successfully stored on Filecoin via Lighthouse",
    )


@router.get("/retrieve/{cid}")
def retrieve(cid: str, lighthouse: LighthouseClient = Depends(lighthouse_client)):
    info = lighthouse.get_file_info(cid)
    return ok({
        "cid": cid,
        "fileInfo": info.model_dump(),
        "accessUrls": {
            "lighthouse": lighthouse.gateway_url(cid),
            "ipfs": f"https://ipfs.io/ipfs/{cid}",
            "cloudflare": f"https://cloudflare-ipfs.com/ipfs/{cid}",
        },
        "retrievedAt": iso_now(),
    })


@router.get("/lighthouse/stats")
def lighthouse_stats(lighthouse: LighthouseClient = Depends(lighthouse_client)):
    stats = lighthouse.get_usage_stats()
    recent = stats.files[:10]
    return ok({
        "storage": {
            "used": stats.dataUsed,
            "totalFiles": stats.totalUploads,
            "provider": "Lighthouse Storage",
            "network": "Filecoin",
        },
        "recentFiles": [f.model_dump() for f in recent],
        "stats": {
            "averageFileSize": stats.dataUsed // stats.totalUploads if stats.totalUploads else 0,
            "totalUploads": stats.totalUploads,
            "lastSync": iso_now(),
        },
    })


@router.post("/migrate/bulk")
async def migrate_bulk(
    files: Optional[List[UploadFile]] = File(None),
    migrationType: Optional[str] = Form(None),
    settings: Settings = Depends(app_settings),
    lighthouse: LighthouseClient = Depends(lighthouse_client),
):
    if not files:
        raise ValidationError(["files"], "No files uploaded for migration", error="No files uploaded for migration")
    if len(files) > settings.MAX_BULK_FILES:
        raise ValidationError(
            ["files"],
            f"At most {settings.MAX_BULK_FILES} files per batch",
            error="Too many files",
        )

    incoming = [await read_incoming(f, settings.MAX_UPLOAD_BYTES) for f in files]
    batch_id = make_id("batch")
    results = await run_in_threadpool(
        migrate_files,
        lighthouse,
        incoming,
        batch_id,
        migrationType or "bulk_migration",
        settings.MAX_UPLOAD_BYTES,
    )
    summary = build_migration_summary(batch_id, results)
    summary_result = await run_in_threadpool(
        lighthouse.upload_json, summary, f"migration_summary_{batch_id}.json"
    )
    log.info("Bulk migration %s: %s/%s files stored", batch_id, summary["successful"], summary["totalFiles"])

    return ok(
        {
            "batchId": batch_id,
            "summary": summary,
            "summaryCID": summary_result.cid,
            "filecoinStorage": "Lighthouse",
            "network": "Filecoin",
        },
        f"Bulk migration completed: {summary['successful']}/{summary['totalFiles']} files successfully stored",
    )


@router.get("/search")
def search(
    type: Optional[str] = None,
    farmerId: Optional[str] = None,
    cropType: Optional[str] = None,
    dateFrom: Optional[str] = None,
    dateTo: Optional[str] = None,
    settings: Settings = Depends(app_settings),
):
    return ok(search_files(settings.GATEWAY_URL, type, farmerId, cropType, dateFrom, dateTo))


# ---------- wallet auth ----------
@router.post("/auth/challenge")
def auth_challenge(body: ChallengeIn):
    challenge = issue_challenge(body.walletAddress)
    return ok({"message": challenge.message, "timestamp": challenge.issuedAt})


@router.post("/auth/verify")
def auth_verify(body: VerifyIn):
    missing = [name for name in ("walletAddress", "signature", "message") if not getattr(body, name)]
    if missing:
        raise ValidationError(missing, error="Wallet address, signature, and message required")

    if not verify_signature(body.message, body.signature, body.walletAddress):
        raise AuthError(f"Signature does not belong to {body.walletAddress}")

    return ok(
        {"authenticated": True, "walletAddress": body.walletAddress},
        "Wallet authenticated successfully",
    )


# ---------- records ----------
@router.post("/farmers/register")
def register_farmer(body: FarmerRegisterIn, lighthouse: LighthouseClient = Depends(lighthouse_client)):
    farmer = build_farmer_record(body)
    result = lighthouse.upload_json(farmer, f"farmer_profile_{farmer['id']}.json")
    return ok(
        {
            "farmerId": farmer["id"],
            "filecoinCID": result.cid,
            "lighthouseHash": result.hash,
            "ipfsUrl": result.url,
            "farmer": farmer,
            "storage": storage_block(result),
        },
        "Farmer registered successfully on Filecoin",
    )


@router.post("/crops/register")
def register_crop(
    body: CropRegisterIn,
    lighthouse: LighthouseClient = Depends(lighthouse_client),
    est: Estimator = Depends(get_estimator),
):
    crop = build_crop_record(body, est)
    result = lighthouse.upload_json(crop, f"crop_data_{crop['id']}.json")
    return ok(
        {
            "cropId": crop["id"],
            "filecoinCID": result.cid,
            "lighthouseHash": result.hash,
            "ipfsUrl": result.url,
            "crop": crop,
            "storage": storage_block(result),
        },
        "Crop registered successfully with AI analysis",
    )


@router.post("/supply-chain/create")
def create_supply_chain(
    body: SupplyChainCreateIn,
    request: Request,
    lighthouse: LighthouseClient = Depends(lighthouse_client),
):
    record = build_supply_chain_record(body)
    result = lighthouse.upload_json(record, f"supply_chain_{record['id']}.json")
    base_url = str(request.base_url).rstrip("/")
    return ok(
        {
            "supplyChainId": record["id"],
            "filecoinCID": result.cid,
            "trackingUrl": f"{base_url}/api/supply-chain/track/{record['id']}",
            "qrCodeData": json.dumps({"id": record["id"], "batchNumber": body.batchNumber, "cid": result.cid}),
            "supplyChain": record,
        },
        "Supply chain record created successfully",
    )


@router.post("/supply-chain/update/{supply_chain_id}")
def update_supply_chain(
    supply_chain_id: str,
    body: SupplyChainUpdateIn,
    lighthouse: LighthouseClient = Depends(lighthouse_client),
):
    update = build_supply_chain_update(supply_chain_id, body)
    result = lighthouse.upload_json(update, f"supply_update_{update['updateId']}.json")
    return ok(
        {"updateId": update["updateId"], "filecoinCID": result.cid, "update": update},
        "Supply chain updated successfully",
    )


# ---------- analytics ----------
@router.post("/ai/predict-yield")
def predict_yield(
    body: PredictYieldIn,
    lighthouse: LighthouseClient = Depends(lighthouse_client),
    est: Estimator = Depends(get_estimator),
):
    prediction = build_yield_prediction(body, est)

    # keeping a copy on Filecoin is best effort
    record = build_prediction_record(prediction, body.walletAddress)
    try:
        result = lighthouse.upload_json(record, f"ai_prediction_{record['id']}.json")
        prediction["storage"] = {"cid": result.cid, "url": result.url}
    except (StorageUploadError, OSError) as e:
        log.info("Prediction storage failed, but returning prediction: %s", e)

    return ok(prediction)


@router.get("/market/intelligence")
def market(est: Estimator = Depends(get_estimator)):
    return ok(market_intelligence(est))


@router.get("/analytics/farmer/{farmerId}")
def analytics(farmerId: str):
    return ok(farmer_analytics(farmerId))


# ---------- error handling ----------
def register_error_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(AgriStoreError)
    async def agristore_error(request: Request, exc: AgriStoreError):
        if exc.status_code >= 500:
            log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        fields = [str(err["loc"][-1]) for err in exc.errors() if err.get("loc")]
        return JSONResponse(
            status_code=400,
            content={
                "error": "Invalid request body",
                "details": "; ".join(f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in exc.errors()),
                "fields": fields,
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            return JSONResponse(
                status_code=404,
                content={
                    "error": "Endpoint not found",
                    "requestedPath": request.url.path,
                    "method": request.method,
                    "availableEndpoints": ENDPOINT_DIRECTORY,
                },
            )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail, "details": exc.detail})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        log.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": str(exc) if settings.is_development else "Something went wrong",
            },
        )


def create_app(
    settings: Optional[Settings] = None,
    lighthouse: Optional[LighthouseClient] = None,
    chain: Optional[ChainClient] = None,
    estimator: Optional[Estimator] = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="AgriStore Nigeria Backend", version=VERSION)
    app.state.settings = settings
    app.state.lighthouse = lighthouse or LighthouseClient(settings)
    app.state.chain = chain or ChainClient(settings)
    app.state.estimator = estimator or Estimator()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL.rstrip("/")],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    register_error_handlers(app, settings)

    log.info(
        "AgriStore backend ready: Base %s (%s), storage %s",
        settings.network_label,
        settings.rpc_url,
        settings.LIGHTHOUSE_BASE_URL,
    )
    return app


app = create_app()


def run():
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
