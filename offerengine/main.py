from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from offerengine.config import Settings
from offerengine.coordinator import OfferCoordinator
from offerengine.errors import ValidationError
from offerengine.logging_config import configure_logging, get_logger
from offerengine.metrics import REQUESTS, ERRORS, LATENCY
from offerengine.models import (
    ApiResponse,
    ApplyOfferRequest,
    ApplyOfferResponse,
    OfferListResponse,
    OfferRequest,
)
from offerengine.segments import HttpSegmentResolver, SegmentResolver
from offerengine.store import OfferStore
import time

logger = get_logger(__name__)


def get_coordinator(request: Request) -> OfferCoordinator:
    return request.app.state.coordinator


def create_app(settings: Optional[Settings] = None,
               store: Optional[OfferStore] = None,
               resolver: Optional[SegmentResolver] = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.log_level, settings.log_format)

    owned_resolver = None
    if resolver is None:
        resolver = owned_resolver = HttpSegmentResolver(settings.segment_service_url,
                                                        timeout=settings.segment_timeout_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # injected resolvers belong to the caller
        if owned_resolver is not None:
            owned_resolver.close()
            logger.info("segment_client_closed")

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.coordinator = OfferCoordinator(store or OfferStore(), resolver)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        msg = _describe(exc)
        logger.warning("malformed_request", path=request.url.path, error=msg)
        REQUESTS.labels(request.url.path, request.method, "400").inc()
        return JSONResponse(status_code=400, content={"response_msg": msg})

    @app.get("/health")
    def health():
        return {"status":"ok"}

    @app.post("/api/v1/offer", response_model=ApiResponse)
    def add_offer(payload: OfferRequest, coordinator: OfferCoordinator = Depends(get_coordinator)):
        t0 = time.time()
        status = "200"
        logger.info("add_offer_received", request=payload.model_dump())
        try:
            coordinator.register_offer(payload)
            return ApiResponse(response_msg="success")
        except ValidationError as exc:
            status = "400"
            logger.warning("invalid_offer_request", error=str(exc))
            return JSONResponse(status_code=400, content={"response_msg": str(exc)})
        except Exception:
            status = "500"
            ERRORS.labels("/api/v1/offer").inc()
            logger.exception("add_offer_failed")
            return JSONResponse(status_code=500, content={"response_msg": "Internal server error"})
        finally:
            LATENCY.observe(time.time() - t0)
            REQUESTS.labels("/api/v1/offer","POST",status).inc()

    @app.get("/api/v1/offer", response_model=OfferListResponse)
    def list_offers(coordinator: OfferCoordinator = Depends(get_coordinator)):
        offers = coordinator.list_offers()
        REQUESTS.labels("/api/v1/offer","GET","200").inc()
        return {"offers": [o.to_dict() for o in offers]}

    @app.post("/api/v1/cart/apply_offer", response_model=ApplyOfferResponse)
    def apply_offer(payload: ApplyOfferRequest, coordinator: OfferCoordinator = Depends(get_coordinator)):
        t0 = time.time()
        status = "200"
        logger.info("apply_offer_received", request=payload.model_dump())
        try:
            return ApplyOfferResponse(cart_value=coordinator.price_cart(payload))
        except ValidationError as exc:
            status = "400"
            logger.warning("invalid_apply_offer_request", error=str(exc))
            return JSONResponse(status_code=400, content={"response_msg": str(exc)})
        except Exception:
            # the caller still gets a usable, undiscounted cart value
            status = "500"
            ERRORS.labels("/api/v1/cart/apply_offer").inc()
            logger.exception("apply_offer_failed")
            return JSONResponse(status_code=500, content={"cart_value": payload.cart_value})
        finally:
            LATENCY.observe(time.time() - t0)
            REQUESTS.labels("/api/v1/cart/apply_offer","POST",status).inc()

    @app.post("/api/v1/offer/clear", response_model=ApiResponse)
    def clear_offers(coordinator: OfferCoordinator = Depends(get_coordinator)):
        status = "200"
        try:
            coordinator.clear_offers()
            return ApiResponse(response_msg="success")
        except Exception:
            status = "500"
            ERRORS.labels("/api/v1/offer/clear").inc()
            logger.exception("clear_offers_failed")
            return JSONResponse(status_code=500, content={"response_msg": "Internal server error"})
        finally:
            REQUESTS.labels("/api/v1/offer/clear","POST",status).inc()

    @app.get("/metrics")
    def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


def _describe(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request body"
    first = errors[0]
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    if field:
        return f"Invalid request body: {field}: {first.get('msg')}"
    return f"Invalid request body: {first.get('msg')}"


def run():
    import uvicorn

    settings = Settings()
    uvicorn.run("offerengine.main:app", host=settings.host, port=settings.port,
                log_level=settings.log_level.lower())


app = create_app()
