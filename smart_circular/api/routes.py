import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status

from smart_circular.api.deps import get_admin_account, get_current_account, get_ledger, oauth2_scheme
from smart_circular.core.config import settings
from smart_circular.core.exceptions import NotFound
from smart_circular.ledger import Ledger
from smart_circular.schemas.schemas import (
    Account,
    AuthResponse,
    DecisionRequest,
    LoginRequest,
    PointsAward,
    ProfileUpdate,
    RegisterRequest,
    Report,
    ReportSubmission,
    RewardSummary,
    UploadResponse,
)
from smart_circular.services.media import StorageUnavailable, effective_content_type, upload_image_to_storage

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/categories")
def categories(ledger: Ledger = Depends(get_ledger)):
    """Static category -> reward points table."""
    return ledger.reports.points_table


# --- Session / identity ---

@router.post("/accounts", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, ledger: Ledger = Depends(get_ledger)):
    grant = ledger.identity.register(payload)
    return {"access_token": grant.token, "token_type": "bearer", "account": grant.account}


@router.post("/session", response_model=AuthResponse)
def login(payload: LoginRequest, ledger: Ledger = Depends(get_ledger)):
    grant = ledger.identity.authenticate(payload.email, payload.password)
    return {"access_token": grant.token, "token_type": "bearer", "account": grant.account}


@router.get("/session", response_model=Account)
def current_account(account: Account = Depends(get_current_account)):
    return account


@router.delete("/session", status_code=status.HTTP_204_NO_CONTENT)
def logout(token: str = Depends(oauth2_scheme), ledger: Ledger = Depends(get_ledger)):
    ledger.identity.end_session(token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- User directory ---

@router.get("/accounts", response_model=List[Account])
def list_accounts(admin: Account = Depends(get_admin_account), ledger: Ledger = Depends(get_ledger)):
    return ledger.directory.list()


@router.get("/accounts/{account_id}", response_model=Account)
def get_account(
    account_id: str,
    account: Account = Depends(get_current_account),
    ledger: Ledger = Depends(get_ledger),
):
    ledger.identity.require_self_or_privileged(account.id, account_id)
    return ledger.identity.get_account(account_id)


@router.patch("/accounts/{account_id}", response_model=Account)
def update_account(
    account_id: str,
    update: ProfileUpdate,
    account: Account = Depends(get_current_account),
    ledger: Ledger = Depends(get_ledger),
):
    ledger.identity.require_self_or_privileged(account.id, account_id)
    return ledger.directory.update_profile(account_id, update)


@router.post("/accounts/{account_id}/points", response_model=Account)
def award_points(
    account_id: str,
    award: PointsAward,
    admin: Account = Depends(get_admin_account),
    ledger: Ledger = Depends(get_ledger),
):
    logger.info("Admin %s awarding %d points to %s", admin.id, award.amount, account_id)
    return ledger.directory.credit_points(account_id, award.amount)


@router.get("/accounts/{account_id}/rewards", response_model=RewardSummary)
def reward_summary(
    account_id: str,
    account: Account = Depends(get_current_account),
    ledger: Ledger = Depends(get_ledger),
):
    ledger.identity.require_self_or_privileged(account.id, account_id)
    return ledger.reports.summarize(account_id)


# --- Reports ---

@router.post("/reports", response_model=Report, status_code=status.HTTP_201_CREATED)
def submit_report(
    payload: ReportSubmission,
    account: Account = Depends(get_current_account),
    ledger: Ledger = Depends(get_ledger),
):
    return ledger.reports.submit(
        account.id,
        payload.category,
        payload.description,
        label=payload.label,
        image_url=payload.image_url,
        location=payload.location,
    )


@router.get("/reports", response_model=List[Report])
def list_reports(
    owner: Optional[str] = None,
    account: Account = Depends(get_current_account),
    ledger: Ledger = Depends(get_ledger),
):
    if owner is None:
        # The unscoped listing is the moderation queue
        ledger.identity.require_privileged(account.id)
        return ledger.reports.list_all()
    ledger.identity.require_self_or_privileged(account.id, owner)
    return ledger.reports.list_by_owner(owner)


def _visible_report(ledger: Ledger, report_id: str, account: Account) -> Report:
    report = ledger.reports.get(report_id)
    if report is None:
        raise NotFound(f"Report {report_id} not found.")
    ledger.identity.require_self_or_privileged(account.id, report.owner_id)
    return report


@router.get("/reports/{report_id}", response_model=Report)
def get_report(
    report_id: str,
    account: Account = Depends(get_current_account),
    ledger: Ledger = Depends(get_ledger),
):
    return _visible_report(ledger, report_id, account)


@router.delete("/reports/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_report(
    report_id: str,
    account: Account = Depends(get_current_account),
    ledger: Ledger = Depends(get_ledger),
):
    _visible_report(ledger, report_id, account)
    ledger.reports.delete(report_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/reports/{report_id}/decision", response_model=Report)
def decide_report(
    report_id: str,
    payload: DecisionRequest,
    admin: Account = Depends(get_admin_account),
    ledger: Ledger = Depends(get_ledger),
):
    logger.info("Admin %s deciding report %s: %s", admin.id, report_id, payload.decision)
    return ledger.moderation.decide(report_id, payload.decision)


# --- Evidence images ---

@router.post("/uploads", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_image(
    image: UploadFile = File(...),
    account: Account = Depends(get_current_account),
):
    logger.info("Received upload content-type: %s", image.content_type)

    file_bytes = await image.read()
    content_type = effective_content_type(image.content_type, file_bytes)
    if not content_type:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unsupported image type: {image.content_type}")

    if len(file_bytes) > settings.MAX_UPLOAD_SIZE_BYTES:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="Image too large")

    try:
        public_image_url = upload_image_to_storage(file_bytes, image.filename, content_type)
    except StorageUnavailable as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return {"image_url": public_image_url}
