"""Payment gateway HTTP surface.

Validates card payments and runs them through the ledger lock protocol, or
straight through the card network simulator when `PAYMENT_MODE=direct`.
"""

from datetime import datetime, timezone
from time import perf_counter, time
from uuid import uuid4

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from skyfox.common.auth import ApiKeyRejected, api_key_rejected_handler, require_api_key
from skyfox.common.config import settings
from skyfox.common.logging import configure_logging, logger, mask_fingerprint, request_id_ctx, transaction_id_ctx
from skyfox.common.metrics import (
    http_request_duration_seconds,
    http_requests_total,
    metrics_response,
    payment_latency_seconds,
    payment_requests_total,
    payment_validation_failures_total,
)
from skyfox.common.startup import log_startup_config
from skyfox.common.tracing import instrument_app, setup_tracing
from skyfox.services.payment_gateway.backends import build_ledger
from skyfox.services.payment_gateway.card_network import SUCCESS, CardNetworkSimulator
from skyfox.services.payment_gateway.coordinator import ProcessingDelay, TransactionCoordinator
from skyfox.services.payment_gateway.errors import LedgerError
from skyfox.services.payment_gateway.fingerprint import fingerprint
from skyfox.services.payment_gateway.ledger import Ledger, TransactionRecord
from skyfox.services.payment_gateway.schemas import PaymentRequest, PaymentResponse, ValidationFailureResponse
from skyfox.services.payment_gateway.validator import validate

configure_logging()
setup_tracing(settings.service_name)
log_startup_config(
    settings.service_name,
    [
        "SERVICE_NAME",
        "API_KEY",
        "PAYMENT_MODE",
        "LEDGER_BACKEND",
        "POSTGRES_DSN",
        "REDIS_URL",
        "TRANSACTION_TTL_SECONDS",
    ],
)
ledger = build_ledger(settings)
coordinator = TransactionCoordinator(
    ledger,
    ttl_seconds=settings.transaction_ttl_seconds,
    delay=ProcessingDelay(settings.processing_delay_min_ms, settings.processing_delay_max_ms),
)
card_network = CardNetworkSimulator(
    min_ms=settings.card_network_delay_min_ms,
    max_ms=settings.card_network_delay_max_ms,
    decline_rate=settings.card_network_decline_rate,
)

app = FastAPI(title="SkyFox Payment Gateway")
instrument_app(app)
app.add_exception_handler(ApiKeyRejected, api_key_rejected_handler)


def get_ledger() -> Ledger:
    return ledger


def get_coordinator() -> TransactionCoordinator:
    return coordinator


def get_card_network() -> CardNetworkSimulator:
    return card_network


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid4())


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Tag the request with an id and record count and latency."""

    request.state.request_id = str(uuid4())
    start = perf_counter()
    route = request.url.path
    method = request.method
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers["x-request-id"] = request.state.request_id
        route_obj = request.scope.get("route")
        if route_obj is not None and getattr(route_obj, "path", None):
            route = route_obj.path
        return response
    finally:
        elapsed = max(0.0, perf_counter() - start)
        http_request_duration_seconds.labels(
            service=settings.service_name,
            route=route,
            method=method,
        ).observe(elapsed)
        http_requests_total.labels(
            service=settings.service_name,
            route=route,
            method=method,
            status_code=str(status_code),
        ).inc()


@app.exception_handler(RequestValidationError)
async def invalid_request_format(request: Request, exc: RequestValidationError):
    """Body that is not JSON or not the expected shape is a 400."""

    request_id = _request_id(request)
    logger.warning("invalid request format request_id=%s errors=%s", request_id, exc.errors())
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request format", "request_id": request_id},
    )


@app.post("/payment", response_model=PaymentResponse, dependencies=[Depends(require_api_key)])
def create_payment(
    req: PaymentRequest,
    request: Request,
    coordinator: TransactionCoordinator = Depends(get_coordinator),
    card_network: CardNetworkSimulator = Depends(get_card_network),
):
    """Validate a card payment and run one attempt.

    Coordination outcomes are always a 200; REJECT is a business result.
    """

    request_id = _request_id(request)
    request_id_ctx.set(request_id)
    req.received_at(datetime.now(timezone.utc))
    payment_requests_total.labels(service=settings.service_name, mode=settings.payment_mode).inc()
    logger.info("received payment request client_ip=%s", request.client.host if request.client else "")

    errors = validate(req)
    if errors:
        for error in errors:
            payment_validation_failures_total.labels(service=settings.service_name, field=error.field).inc()
        logger.warning("validation failed fields=%s", [error.field for error in errors])
        return JSONResponse(
            status_code=422,
            content=ValidationFailureResponse(errors=errors, request_id=request_id).model_dump(),
        )

    transaction_id = str(uuid4())
    transaction_id_ctx.set(transaction_id)
    started = perf_counter()

    if settings.payment_mode == "direct":
        with payment_latency_seconds.labels(service=settings.service_name).time():
            result = card_network.process_payment(req)
        message = "Payment processed successfully" if result.status == SUCCESS else result.error
        logger.info(
            "direct payment completed status=%s processing_time_ms=%d",
            result.status,
            (perf_counter() - started) * 1000,
        )
        return PaymentResponse(
            status=result.status,
            message=message,
            transaction_id=transaction_id,
            request_id=request_id,
        )

    card_hash = fingerprint(req.card_number, req.cvv)
    with payment_latency_seconds.labels(service=settings.service_name).time():
        outcome = coordinator.process_transaction(
            TransactionRecord(transaction_id=transaction_id, card_fingerprint=card_hash)
        )
    logger.info(
        "transaction completed status=%s reason=%s card_hash=%s processing_time_ms=%d",
        outcome.status,
        outcome.reason,
        mask_fingerprint(card_hash),
        (perf_counter() - started) * 1000,
    )
    return PaymentResponse(
        status=outcome.status,
        message=outcome.message,
        transaction_id=transaction_id,
        request_id=request_id,
    )


@app.get("/health")
def health(ledger: Ledger = Depends(get_ledger)):
    """Service health; unhealthy when the ledger backend is unreachable."""

    if settings.payment_mode != "direct":
        try:
            ledger.ping()
        except LedgerError as exc:
            logger.error("health check failed: ledger connection issue error=%s", exc)
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "message": "Database connection issue"},
            )
    return {
        "status": "healthy",
        "version": settings.app_version,
        "timestamp": int(time()),
        "ledger_backend": settings.ledger_backend,
        "payment_mode": settings.payment_mode,
    }


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()
