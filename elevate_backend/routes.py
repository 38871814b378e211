"""
HTTP routes for the scholarship backend API.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.encoders import jsonable_encoder

from elevate_backend.auth import get_current_principal, is_admin, require_admin
from elevate_backend.checkout import (
    InvalidPaymentMetadata,
    ScholarshipNotFound,
    confirm_payment,
    create_checkout,
)
from elevate_backend.config import Settings
from elevate_backend.db import DbClient
from elevate_backend.dependencies import (
    get_app_settings,
    get_db_client,
    get_payment_provider,
)
from elevate_backend.identity import Principal
from elevate_backend.payments import PaymentProvider, SessionNotFoundError
from elevate_backend.schemas import (
    ApplicationCreate,
    CheckoutRequest,
    CheckoutResponse,
    DeleteResponse,
    ExistsResponse,
    HealthResponse,
    InsertResponse,
    PaymentConfirmationResponse,
    PaymentStatus,
    ProfileUpdate,
    ReviewCreate,
    Role,
    RoleResponse,
    RoleUpdate,
    ScholarshipCreate,
    ScholarshipUpdate,
    UpdateResponse,
    UserCreate,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Fields owned by the server; client bodies never set them.
SCHOLARSHIP_PROTECTED_FIELDS = {
    "_id", "createdAt", "createdBy", "updatedAt", "paymentStatus", "payAt",
}
USER_PROTECTED_FIELDS = {"_id", "email", "role", "createdAt", "updatedAt"}
REVIEW_PROTECTED_FIELDS = {"_id", "email", "createdAt"}
APPLICATION_PROTECTED_FIELDS = {"_id", "applicationDate", "paymentStatus", "payAt"}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _serialize(doc):
    return jsonable_encoder(doc, custom_encoder={ObjectId: str})


def _object_id(value: str) -> ObjectId:
    if not ObjectId.is_valid(value):
        raise HTTPException(status_code=400, detail="Invalid id")
    return ObjectId(value)


def _strip(fields: dict, protected: set) -> dict:
    return {k: v for k, v in fields.items() if k not in protected}


@router.get("/")
def root():
    return {"message": "Elevate Scholar Server"}


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


# Scholarships


@router.get("/scholarships")
def list_scholarships(
    search: Optional[str] = Query(None, alias="filter"),
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_app_settings),
):
    docs = db.list_scholarships(search=search, limit=settings.page_size)
    return _serialize(docs)


@router.get("/scholarships/{scholarship_id}")
def get_scholarship(scholarship_id: str, db: DbClient = Depends(get_db_client)):
    doc = db.get_scholarship(_object_id(scholarship_id))
    if doc is None:
        raise HTTPException(status_code=404, detail="Scholarship not found")
    return _serialize(doc)


@router.post("/scholarships", response_model=InsertResponse)
def create_scholarship(
    payload: ScholarshipCreate,
    admin: Principal = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    doc = _strip(payload.model_dump(), SCHOLARSHIP_PROTECTED_FIELDS)
    doc.update(
        createdAt=_now(),
        createdBy=admin.email,
        paymentStatus=PaymentStatus.UNPAID.value,
    )
    inserted_id = db.insert_scholarship(doc)
    logger.info("Scholarship %s created by %s", inserted_id, admin.email)
    return InsertResponse(insertedId=str(inserted_id))


@router.patch("/scholarships/{scholarship_id}", response_model=UpdateResponse)
def update_scholarship(
    scholarship_id: str,
    payload: ScholarshipUpdate,
    admin: Principal = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    oid = _object_id(scholarship_id)
    fields = _strip(payload.model_dump(exclude_unset=True), SCHOLARSHIP_PROTECTED_FIELDS)
    fields["updatedAt"] = _now()
    result = db.update_scholarship(oid, fields)
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="Scholarship not found")
    logger.info("Scholarship %s updated by %s", scholarship_id, admin.email)
    return UpdateResponse(**result.as_dict())


@router.delete("/scholarships/{scholarship_id}", response_model=DeleteResponse)
def delete_scholarship(
    scholarship_id: str,
    admin: Principal = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    deleted = db.delete_scholarship(_object_id(scholarship_id))
    if not deleted:
        raise HTTPException(status_code=404, detail="Scholarship not found")
    logger.info("Scholarship %s deleted by %s", scholarship_id, admin.email)
    return DeleteResponse(deletedCount=deleted)


# Reviews


@router.get("/reviews")
def list_reviews(
    email: Optional[str] = Query(None),
    scholarshipId: Optional[str] = Query(None),
    db: DbClient = Depends(get_db_client),
):
    return _serialize(db.list_reviews(email=email, scholarship_id=scholarshipId))


@router.post("/reviews", response_model=InsertResponse)
def create_review(
    payload: ReviewCreate,
    principal: Principal = Depends(get_current_principal),
    db: DbClient = Depends(get_db_client),
):
    doc = _strip(payload.model_dump(), REVIEW_PROTECTED_FIELDS)
    doc.update(email=principal.email, createdAt=_now())
    return InsertResponse(insertedId=str(db.insert_review(doc)))


@router.delete("/reviews/{review_id}", response_model=DeleteResponse)
def delete_review(
    review_id: str,
    principal: Principal = Depends(get_current_principal),
    db: DbClient = Depends(get_db_client),
):
    oid = _object_id(review_id)
    review = db.get_review(oid)
    if review is None:
        raise HTTPException(status_code=404, detail="Review not found")
    if review.get("email") != principal.email and not is_admin(db, principal.email):
        raise HTTPException(status_code=403, detail="forbidden access")
    return DeleteResponse(deletedCount=db.delete_review(oid))


# Users


@router.get("/users/profile")
def get_profile(
    principal: Principal = Depends(get_current_principal),
    db: DbClient = Depends(get_db_client),
):
    user = db.get_user(principal.email)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return _serialize(user)


@router.patch("/users/profile", response_model=UpdateResponse)
def update_profile(
    payload: ProfileUpdate,
    principal: Principal = Depends(get_current_principal),
    db: DbClient = Depends(get_db_client),
):
    fields = _strip(payload.model_dump(exclude_unset=True), USER_PROTECTED_FIELDS)
    fields["updatedAt"] = _now()
    result = db.update_user(principal.email, fields)
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="User not found")
    return UpdateResponse(**result.as_dict())


@router.get("/users")
def list_users(
    search: Optional[str] = Query(None, alias="filter"),
    admin: Principal = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_app_settings),
):
    return _serialize(db.list_users(search=search, limit=settings.page_size))


@router.get("/users/{email}/role", response_model=RoleResponse)
def get_user_role(email: str, db: DbClient = Depends(get_db_client)):
    user = db.get_user(email)
    try:
        role = Role((user or {}).get("role") or Role.STUDENT)
    except ValueError:
        role = Role.STUDENT
    return RoleResponse(role=role)


@router.post("/users", response_model=InsertResponse | ExistsResponse)
def register_user(payload: UserCreate, db: DbClient = Depends(get_db_client)):
    if db.get_user(payload.email):
        return ExistsResponse(message="user already exists")
    doc = _strip(payload.model_dump(), USER_PROTECTED_FIELDS)
    doc.update(email=payload.email, role=Role.STUDENT.value, createdAt=_now())
    return InsertResponse(insertedId=str(db.insert_user(doc)))


@router.patch("/users/{email}/role", response_model=UpdateResponse)
def update_user_role(
    email: str,
    payload: RoleUpdate,
    admin: Principal = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    result = db.update_user(email, {"role": payload.role.value, "updatedAt": _now()})
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="User not found")
    logger.info("Role of %s set to %s by %s", email, payload.role.value, admin.email)
    return UpdateResponse(**result.as_dict())


# Applications


@router.get("/applications")
def list_applications(
    email: Optional[str] = Query(None),
    db: DbClient = Depends(get_db_client),
):
    return _serialize(db.list_applications(user_email=email))


@router.post("/applications", response_model=InsertResponse | ExistsResponse)
def create_application(payload: ApplicationCreate, db: DbClient = Depends(get_db_client)):
    if db.find_application(payload.userEmail, payload.scholarshipId):
        return ExistsResponse(message="application already exists")
    doc = _strip(payload.model_dump(), APPLICATION_PROTECTED_FIELDS)
    doc.update(applicationDate=_now(), paymentStatus=PaymentStatus.UNPAID.value)
    return InsertResponse(insertedId=str(db.insert_application(doc)))


@router.delete("/applications/{application_id}", response_model=DeleteResponse)
def delete_application(
    application_id: str,
    principal: Principal = Depends(get_current_principal),
    db: DbClient = Depends(get_db_client),
):
    deleted = db.delete_application(_object_id(application_id))
    if not deleted:
        raise HTTPException(status_code=404, detail="Application not found")
    return DeleteResponse(deletedCount=deleted)


# Payments


@router.post("/checkout-session", response_model=CheckoutResponse)
def create_checkout_session(
    payload: CheckoutRequest,
    provider: PaymentProvider = Depends(get_payment_provider),
    settings: Settings = Depends(get_app_settings),
):
    try:
        session = create_checkout(
            provider,
            payload,
            currency=settings.stripe_currency,
            client_domain=settings.client_domain,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not session.url:
        raise HTTPException(status_code=500, detail="internal server error")
    return CheckoutResponse(url=session.url)


@router.patch("/payment-success", response_model=PaymentConfirmationResponse)
def payment_success(
    successId: str = Query(..., min_length=1),
    db: DbClient = Depends(get_db_client),
    provider: PaymentProvider = Depends(get_payment_provider),
):
    try:
        confirmation = confirm_payment(db, provider, successId)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Checkout session not found") from exc
    except InvalidPaymentMetadata as exc:
        raise HTTPException(status_code=400, detail="Invalid payment metadata") from exc
    except ScholarshipNotFound as exc:
        raise HTTPException(status_code=404, detail="Scholarship not found") from exc
    return PaymentConfirmationResponse(**confirmation.as_dict())
