"""
Fundraising Service Main Application

FastAPI application exposing the confidential fundraising workflows.
Port: 8260
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from core.config import get_settings

from .factory import FundraisingServiceFactory
from .fundraising_service import FundraisingService
from .models import (
    CampaignActiveRequest,
    CampaignCreateRequest,
    CampaignForm,
    CampaignListResponse,
    DecryptionKind,
    DonationRequest,
    ErrorResponse,
    HealthResponse,
    WorkflowResult,
)
from .protocols import FundraisingError

settings = get_settings()
settings.logging.apply()
logger = logging.getLogger(__name__)

# Service configuration
SERVICE_NAME = "fundraising_service"
SERVICE_PORT = settings.service_port
SERVICE_VERSION = "1.0.0"

startup_time = time.time()

# Global factory instance
factory: Optional[FundraisingServiceFactory] = None

# error_code -> HTTP status
ERROR_STATUS = {
    "invalid_format": status.HTTP_400_BAD_REQUEST,
    "zero_amount": status.HTTP_400_BAD_REQUEST,
    "amount_too_large": status.HTTP_400_BAD_REQUEST,
    "campaign_validation": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "campaign_not_active": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "campaign_not_found": status.HTTP_404_NOT_FOUND,
    "wallet_unavailable": status.HTTP_401_UNAUTHORIZED,
    "user_rejected": status.HTTP_401_UNAUTHORIZED,
    "unauthorized": status.HTTP_403_FORBIDDEN,
    "encryption_service_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
    "transaction_failure": status.HTTP_502_BAD_GATEWAY,
    "decryption_failure": status.HTTP_502_BAD_GATEWAY,
    "malformed_ledger_response": status.HTTP_502_BAD_GATEWAY,
}


def status_for(error_code: Optional[str]) -> int:
    return ERROR_STATUS.get(error_code or "", status.HTTP_500_INTERNAL_SERVER_ERROR)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    global factory

    logger.info(f"Starting {SERVICE_NAME} on port {SERVICE_PORT}")

    factory = FundraisingServiceFactory(settings)
    await factory.initialize()

    yield

    logger.info(f"Shutting down {SERVICE_NAME}")
    await factory.close()
    factory = None


# Create FastAPI application
app = FastAPI(
    title="Fundraising Service",
    description="Confidential fundraising client: encrypted donations and authorized decryption",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)


# ====================
# Exception Handlers
# ====================


@app.exception_handler(FundraisingError)
async def fundraising_error_handler(request: Request, exc: FundraisingError):
    return JSONResponse(
        status_code=status_for(exc.error_code),
        content=ErrorResponse(detail=str(exc), error_code=exc.error_code).model_dump(mode="json"),
    )


# ====================
# Dependencies
# ====================


def get_service() -> FundraisingService:
    """Get fundraising service from factory"""
    if not factory:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return factory.service


def respond(result: WorkflowResult, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    """One banner per outcome: the result on success, ErrorResponse otherwise"""
    if result.success:
        return JSONResponse(status_code=success_status, content=result.model_dump(mode="json"))
    return JSONResponse(
        status_code=status_for(result.error_code),
        content=ErrorResponse(
            detail=result.error_message or "Request failed",
            error_code=result.error_code,
        ).model_dump(mode="json"),
    )


# ====================
# Health Endpoints
# ====================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(service: FundraisingService = Depends(get_service)):
    """Health check endpoint"""
    return HealthResponse(
        status="healthy",
        service=SERVICE_NAME,
        port=SERVICE_PORT,
        version=SERVICE_VERSION,
        encryption_status=service.encryption_status,
        wallet_connected=service.wallet_connected,
    )


# ====================
# Campaign Endpoints
# ====================


@app.get("/api/v1/campaigns", response_model=CampaignListResponse, tags=["Campaigns"])
async def list_campaigns(service: FundraisingService = Depends(get_service)):
    """List campaigns, newest first, with any values already revealed"""
    campaigns = await service.list_campaigns()
    return CampaignListResponse(campaigns=campaigns, total=len(campaigns))


@app.post("/api/v1/campaigns/refresh", tags=["Campaigns"])
async def refresh_campaigns(service: FundraisingService = Depends(get_service)):
    """Drop the cached registry so the next listing re-reads the ledger"""
    service.refresh()
    return WorkflowResult(success=True, status_message="Campaign list refreshed")


@app.post("/api/v1/campaigns", tags=["Campaigns"])
async def create_campaign(
    request: CampaignCreateRequest,
    service: FundraisingService = Depends(get_service),
):
    """Create a campaign; the goal is a decimal cETH amount"""
    result = await service.create_campaign(
        CampaignForm(title=request.title, description=request.description, goal=request.goal)
    )
    return respond(result, status.HTTP_201_CREATED)


@app.post("/api/v1/campaigns/{campaign_id}/active", tags=["Campaigns"])
async def set_campaign_active(
    campaign_id: int,
    request: CampaignActiveRequest,
    service: FundraisingService = Depends(get_service),
):
    """Activate or deactivate a campaign (creator only)"""
    return respond(await service.set_campaign_active(campaign_id, request.active))


# ====================
# Donation / Decryption Endpoints
# ====================


@app.post("/api/v1/campaigns/{campaign_id}/donations", tags=["Donations"])
async def donate(
    campaign_id: int,
    request: DonationRequest,
    service: FundraisingService = Depends(get_service),
):
    """Encrypt and submit a donation"""
    return respond(await service.donate(campaign_id, request.amount))


@app.post("/api/v1/campaigns/{campaign_id}/decrypt/{kind}", tags=["Decryption"])
async def decrypt(
    campaign_id: int,
    kind: DecryptionKind,
    service: FundraisingService = Depends(get_service),
):
    """Reveal the raised total or the caller's points"""
    return respond(await service.decrypt(campaign_id, kind))


@app.post("/api/v1/faucet", tags=["Faucet"])
async def claim_faucet(service: FundraisingService = Depends(get_service)):
    """Claim 1 cETH of test tokens"""
    return respond(await service.claim_faucet())


# ====================
# Main Entry Point
# ====================


def main():
    """Run the service"""
    import uvicorn

    uvicorn.run(
        "microservices.fundraising_service.main:app",
        host="0.0.0.0",
        port=SERVICE_PORT,
        log_level=settings.logging.log_level.lower(),
    )


if __name__ == "__main__":
    main()
