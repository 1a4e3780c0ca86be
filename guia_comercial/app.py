from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from .analytics.aggregator import admin_analytics, business_analytics
from .analytics.models import TrackRequest
from .analytics.store import record_event
from .analytics.summary import send_monthly_summary
from .auth.dependencies import (
    require_admin,
    require_merchant,
    require_public_user,
    require_session_ids,
)
from .auth.models import (
    InteractionRequest,
    LoginRequest,
    MerchantUpdate,
    PublicRegisterRequest,
    PublicUserUpdate,
    RegisterRequest,
    VerifyRequest,
)
from .auth.users import (
    authenticate_merchant,
    authenticate_public_user,
    is_admin,
    record_interaction,
    register_merchant,
    register_public_user,
    toggle_favorite,
    update_merchant,
    update_public_user,
    verify_merchant,
)
from .chat import service as chat_service
from .chat.models import MarkReadRequest, SendMessageRequest, StartConversationRequest
from .config import DEFAULT_SETTINGS
from .directory import service as directory_service
from .directory.models import (
    BusinessFilters,
    BusinessIn,
    Coordinates,
    LikeIn,
    OpinionIn,
    ReplyIn,
    ReportIn,
    SearchResponse,
)
from .directory.ranking import DEFAULT_FILTERS, search
from .directory.tiers import expiring_soon
from .errors import DirectoryError
from .payments.models import ConfirmationResponse, PaymentRequest, PreferenceResponse
from .payments.service import confirm_payment, create_preference
from .recommendations.models import RecommendationResponse
from .recommendations.scorer import recommend
from .store import DataStore, get_store
from .store.models import InteractionType, Merchant, PublicUser

logger = logging.getLogger(__name__)

app = FastAPI(title="Guía Comercial API", version="2.0.0")
app.add_middleware(SessionMiddleware, secret_key=DEFAULT_SETTINGS.session_secret)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(DEFAULT_SETTINGS.cors_origins),
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info("%s %s", request.method, request.url.path)
    return await call_next(request)


# ── Error responses ──────────────────────────────────────────────────────


@app.exception_handler(DirectoryError)
async def directory_error_handler(request: Request, exc: DirectoryError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = str(exc.detail)
    if exc.status_code == 404 and exc.detail == "Not Found":
        logger.info("[404] Route not found: %s %s", request.method, request.url.path)
        message = f"Route not found: {request.method} {request.url.path}"
    return JSONResponse(status_code=exc.status_code, content={"error": message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = [
        f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}"
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "; ".join(problems) or "Invalid request."})


def _merchant_out(store: DataStore, merchant: Merchant) -> dict:
    merchant.unread_message_count = chat_service.unread_total(store, merchant.id)
    return {**merchant.model_dump(mode="json"), "is_admin": is_admin(merchant)}


def _public_user_out(store: DataStore, user: PublicUser) -> dict:
    user.unread_message_count = chat_service.unread_total(store, user.id)
    return user.model_dump(mode="json")


def _require_self(user_id: str, acting_id: str) -> None:
    if user_id != acting_id:
        raise HTTPException(status_code=403, detail="You can only act on your own account")


def _require_acting_as(user_id: str, session_ids: set[str]) -> None:
    if user_id not in session_ids:
        raise HTTPException(status_code=403, detail="You can only act as yourself")


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/api/health")
def health(store: DataStore = Depends(get_store)) -> dict:
    return {"status": "ok", "message": "Server up and healthy", "timestamp": store.clock().isoformat()}


@app.get("/api/data")
def data(store: DataStore = Depends(get_store)) -> dict:
    return store.snapshot()


@app.post("/api/reset-data")
def reset_data(request: Request, store: DataStore = Depends(get_store)) -> dict:
    store.reset()
    request.session.clear()
    logger.info("Data store reset to seed data")
    return {"message": "Data reset successfully."}


# ── Merchant identity ────────────────────────────────────────────────────


@app.post("/api/register", status_code=201)
def register(body: RegisterRequest, store: DataStore = Depends(get_store)) -> dict:
    merchant, code = register_merchant(store, body)
    return {
        "message": "Registration successful. Verification required.",
        "email": merchant.email,
        "verification_code": code,
    }


@app.post("/api/verify")
def verify(body: VerifyRequest, store: DataStore = Depends(get_store)) -> dict:
    return _merchant_out(store, verify_merchant(store, body.email, body.code))


@app.post("/api/login")
def login(body: LoginRequest, request: Request, store: DataStore = Depends(get_store)) -> dict:
    merchant = authenticate_merchant(store, body.email, body.password)
    request.session["user"] = {"id": merchant.id, "email": merchant.email}
    return _merchant_out(store, merchant)


@app.post("/api/logout")
def logout(request: Request) -> dict:
    request.session.clear()
    return {"status": "logged_out"}


@app.put("/api/usuarios/{user_id}")
def update_user(
    user_id: str,
    body: MerchantUpdate,
    store: DataStore = Depends(get_store),
    merchant: Merchant = Depends(require_merchant),
) -> dict:
    _require_self(user_id, merchant.id)
    return _merchant_out(store, update_merchant(store, user_id, body.name, body.phone))


@app.get("/api/usuarios/{user_id}/notices")
def expiry_notices(
    user_id: str,
    store: DataStore = Depends(get_store),
    merchant: Merchant = Depends(require_merchant),
) -> list[dict]:
    _require_self(user_id, merchant.id)
    return expiring_soon(store.businesses_owned_by(user_id), store.clock())


# ── Businesses ───────────────────────────────────────────────────────────


@app.get("/api/comercios/search", response_model=SearchResponse)
def search_businesses(
    province_id: str | None = None,
    city_id: str | None = None,
    neighborhood: str | None = None,
    category_id: str | None = None,
    subcategory_id: str | None = None,
    name: str | None = None,
    lat: float | None = Query(default=None, ge=-90.0, le=90.0),
    lon: float | None = Query(default=None, ge=-180.0, le=180.0),
    page: int = 1,
    store: DataStore = Depends(get_store),
) -> SearchResponse:
    params = {
        "province_id": province_id,
        "city_id": city_id,
        "neighborhood": neighborhood,
        "category_id": category_id,
        "subcategory_id": subcategory_id,
        "name": name,
    }
    coords = None
    if lat is not None and lon is not None:
        coords = Coordinates(lat=lat, lon=lon)
    elif (lat is None) != (lon is None):
        raise HTTPException(status_code=400, detail="Both lat and lon are required for a location search")

    if coords is None and all(v is None for v in params.values()):
        filters = DEFAULT_FILTERS
    else:
        filters = BusinessFilters(**{k: v for k, v in params.items() if v is not None})
    return search(store.businesses(), filters, page=page, coords=coords)


@app.get("/api/comercios/{business_id}")
def get_business(business_id: str, store: DataStore = Depends(get_store)) -> dict:
    business = directory_service.get_business(store, business_id)
    return {**business.model_dump(mode="json"), "average_rating": business.average_rating}


@app.post("/api/comercios", status_code=201)
def create_business(
    body: BusinessIn,
    store: DataStore = Depends(get_store),
    merchant: Merchant = Depends(require_merchant),
) -> dict:
    return directory_service.create_business(store, merchant.id, body).model_dump(mode="json")


@app.put("/api/comercios/{business_id}")
def update_business(
    business_id: str,
    body: BusinessIn,
    store: DataStore = Depends(get_store),
    merchant: Merchant = Depends(require_merchant),
) -> dict:
    return directory_service.update_business(store, business_id, merchant.id, body).model_dump(mode="json")


@app.delete("/api/comercios/{business_id}")
def delete_business(
    business_id: str,
    store: DataStore = Depends(get_store),
    merchant: Merchant = Depends(require_merchant),
) -> dict:
    directory_service.delete_business(store, business_id, merchant.id)
    return {"message": "Business deleted successfully."}


@app.post("/api/comercios/{business_id}/opinar", status_code=201)
def add_opinion(business_id: str, body: OpinionIn, store: DataStore = Depends(get_store)) -> dict:
    return directory_service.add_opinion(store, business_id, body).model_dump(mode="json")


@app.post("/api/comercios/{business_id}/opiniones/{opinion_id}/responder")
def reply_to_opinion(
    business_id: str,
    opinion_id: str,
    body: ReplyIn,
    store: DataStore = Depends(get_store),
    merchant: Merchant = Depends(require_merchant),
) -> dict:
    business = directory_service.reply_to_opinion(store, business_id, opinion_id, merchant.id, body.text)
    return business.model_dump(mode="json")


@app.post("/api/comercios/{business_id}/opiniones/{opinion_id}/like")
def like_opinion(
    business_id: str, opinion_id: str, body: LikeIn, store: DataStore = Depends(get_store)
) -> dict:
    business = directory_service.toggle_opinion_like(store, business_id, opinion_id, body.user_id)
    return business.model_dump(mode="json")


@app.post("/api/reportes", status_code=201)
def report_business(body: ReportIn, store: DataStore = Depends(get_store)) -> dict:
    report = directory_service.submit_report(store, body)
    return {"message": "Report received. Thank you.", "id": report.id}


# ── Public users ─────────────────────────────────────────────────────────


@app.post("/api/public-register", status_code=201)
def public_register(body: PublicRegisterRequest, request: Request, store: DataStore = Depends(get_store)) -> dict:
    user = register_public_user(store, body)
    request.session["public_user"] = {"id": user.id, "email": user.email}
    return _public_user_out(store, user)


@app.post("/api/public-login")
def public_login(body: LoginRequest, request: Request, store: DataStore = Depends(get_store)) -> dict:
    user = authenticate_public_user(store, body.email, body.password)
    request.session["public_user"] = {"id": user.id, "email": user.email}
    return _public_user_out(store, user)


@app.put("/api/public-users/{user_id}")
def public_user_update(
    user_id: str,
    body: PublicUserUpdate,
    store: DataStore = Depends(get_store),
    user: PublicUser = Depends(require_public_user),
) -> dict:
    _require_self(user_id, user.id)
    return _public_user_out(store, update_public_user(store, user_id, body))


@app.post("/api/public-users/{user_id}/favorites/{business_id}")
def public_user_favorite(
    user_id: str,
    business_id: str,
    store: DataStore = Depends(get_store),
    user: PublicUser = Depends(require_public_user),
) -> dict:
    _require_self(user_id, user.id)
    return _public_user_out(store, toggle_favorite(store, user, business_id))


@app.post("/api/public-users/{user_id}/interactions")
def public_user_interaction(
    user_id: str,
    body: InteractionRequest,
    store: DataStore = Depends(get_store),
    user: PublicUser = Depends(require_public_user),
) -> dict:
    _require_self(user_id, user.id)
    updated = record_interaction(store, user, body.business_id, InteractionType(body.type))
    return _public_user_out(store, updated)


@app.get("/api/public-users/{user_id}/recommendations", response_model=RecommendationResponse)
def public_user_recommendations(
    user_id: str,
    store: DataStore = Depends(get_store),
    user: PublicUser = Depends(require_public_user),
) -> RecommendationResponse:
    _require_self(user_id, user.id)
    return recommend(user, store.businesses())


# ── Payments ─────────────────────────────────────────────────────────────


@app.post("/api/payments/create-preference", response_model=PreferenceResponse)
def payment_preference(
    body: PaymentRequest,
    store: DataStore = Depends(get_store),
    merchant: Merchant = Depends(require_merchant),
) -> PreferenceResponse:
    return create_preference(store, body.business_id, body.new_level, merchant.id)


@app.post("/api/payments/confirm-payment", response_model=ConfirmationResponse)
def payment_confirm(
    body: PaymentRequest,
    store: DataStore = Depends(get_store),
    merchant: Merchant = Depends(require_merchant),
) -> ConfirmationResponse:
    return confirm_payment(store, body.business_id, body.new_level, merchant.id)


# ── Tracking & analytics ─────────────────────────────────────────────────


@app.post("/api/track", status_code=202)
def track(body: TrackRequest, store: DataStore = Depends(get_store)) -> dict:
    directory_service.get_business(store, body.business_id)
    record_event(store, body.business_id, body.event_type, body.user_id)
    return {"status": "recorded"}


@app.get("/api/analytics")
def analytics(
    business_id: str | None = None,
    store: DataStore = Depends(get_store),
    merchant: Merchant = Depends(require_merchant),
) -> dict:
    if business_id is None:
        if not is_admin(merchant):
            raise HTTPException(status_code=403, detail="Admin access required")
        return admin_analytics(store)
    business = directory_service.get_business(store, business_id)
    if business.owner_id != merchant.id and not is_admin(merchant):
        raise HTTPException(status_code=403, detail="You do not own this business")
    return business_analytics(store, business_id)


@app.post("/api/marketing/send-summary")
def marketing_summary(
    store: DataStore = Depends(get_store),
    admin: Merchant = Depends(require_admin),
) -> dict:
    return send_monthly_summary(store)


# ── Chat ─────────────────────────────────────────────────────────────────


@app.post("/api/conversations/start")
def conversation_start(
    body: StartConversationRequest,
    store: DataStore = Depends(get_store),
    session_ids: set[str] = Depends(require_session_ids),
) -> dict:
    _require_acting_as(body.client_id, session_ids)
    conversation = chat_service.start_conversation(store, body.client_id, body.business_id)
    return conversation.model_dump(mode="json")


@app.get("/api/conversations/{user_id}")
def conversation_list(
    user_id: str,
    store: DataStore = Depends(get_store),
    session_ids: set[str] = Depends(require_session_ids),
) -> list[dict]:
    _require_acting_as(user_id, session_ids)
    return [c.model_dump(mode="json") for c in chat_service.conversations_for(store, user_id)]


@app.get("/api/messages/{conversation_id}")
def message_list(conversation_id: str, store: DataStore = Depends(get_store)) -> list[dict]:
    return [m.model_dump(mode="json") for m in chat_service.messages_for(store, conversation_id)]


@app.post("/api/messages", status_code=201)
def message_send(
    body: SendMessageRequest,
    store: DataStore = Depends(get_store),
    session_ids: set[str] = Depends(require_session_ids),
) -> dict:
    _require_acting_as(body.sender_id, session_ids)
    message = chat_service.send_message(store, body.conversation_id, body.sender_id, body.content)
    return message.model_dump(mode="json")


@app.post("/api/conversations/{conversation_id}/read")
def conversation_read(
    conversation_id: str,
    body: MarkReadRequest,
    store: DataStore = Depends(get_store),
    session_ids: set[str] = Depends(require_session_ids),
) -> dict:
    _require_acting_as(body.user_id, session_ids)
    chat_service.mark_read(store, conversation_id, body.user_id)
    return {"message": "Conversation marked as read."}
