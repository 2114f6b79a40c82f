"""
FastAPI Application Entry Point

Order Dispatch Hub - atomic order creation and real-time order events.

Endpoints:
    - POST  /api/orders: Create an order (atomic)
    - GET   /api/orders: List orders (full read for reconnecting clients)
    - GET   /api/orders/{order_id}: Get one order
    - PATCH /api/orders/{order_id}/status: Move an order through its workflow
    - PATCH /api/orders/{order_id}/items/{item_id}/status: Move one item
    - GET   /api/kitchen/{branch_id}/orders: Open orders for a kitchen display
    - GET   /health: System health check
    - WS    /ws: Realtime gateway (room.join / room.leave / ping)

Version: 1.0.0
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, WebSocket
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

# Windows-specific event loop policy (psycopg async needs a selector loop)
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from orderhub.core.config import Settings, get_settings, setup_logging
from orderhub.core.exceptions import NotFoundError, OrderHubError
from orderhub.database import build_engine, build_session_maker, get_db, init_db
from orderhub.schemas import (
    ErrorResponse,
    HealthResponse,
    ItemStatusUpdate,
    KitchenOrder,
    OrderCreate,
    OrderListResponse,
    OrderSnapshot,
    OrderStatusUpdate,
)
from orderhub.services.cache import build_cache_service
from orderhub.services.orders import (
    OrderStatusService,
    OrderStore,
    OrderTransactionManager,
    parse_order_status,
)
from orderhub.services.realtime import ConnectionRegistry, DispatchHub, RealtimeGateway

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_order_manager(request: Request) -> OrderTransactionManager:
    return request.app.state.order_manager


def get_status_service(request: Request) -> OrderStatusService:
    return request.app.state.status_service


# =============================================================================
# ORDER API ENDPOINTS
# =============================================================================

router = APIRouter()


@router.post(
    "/api/orders",
    response_model=OrderSnapshot,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Create Order",
)
async def create_order(
    order_data: OrderCreate,
    manager: OrderTransactionManager = Depends(get_order_manager),
) -> OrderSnapshot:
    """
    Create an order with all its items in a single transaction.

    Prices come from the catalog; any price sent by the client is ignored.
    On success the table is occupied and `order.created` is pushed to the
    branch and kitchen rooms.
    """
    logger.info(f"Creating order for table {order_data.table_id} ({len(order_data.items)} items)")

    return await manager.create_order(
        table_id=order_data.table_id,
        items=order_data.items,
        branch_id=order_data.branch_id,
        customer_id=order_data.customer_id,
        notes=order_data.notes,
    )


@router.get(
    "/api/orders",
    response_model=OrderListResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="List Orders",
)
async def list_orders(
    branch_id: Optional[str] = Query(None),
    table_id: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """Retrieve paginated list of orders, newest first."""
    status_filter = parse_order_status(status.lower()) if status else None

    total, orders = await OrderStore(db).list_orders(
        branch_id=branch_id,
        table_id=table_id,
        status=status_filter,
        skip=skip,
        limit=limit,
    )

    return OrderListResponse(
        total=total,
        orders=[OrderSnapshot.from_order(order) for order in orders],
    )


@router.get(
    "/api/orders/{order_id}",
    response_model=OrderSnapshot,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def get_order(
    order_id: str,
    db: AsyncSession = Depends(get_db),
) -> OrderSnapshot:
    """Get a specific order by ID."""
    order = await OrderStore(db).get_order(order_id)
    if order is None:
        raise NotFoundError("Order", order_id)

    return OrderSnapshot.from_order(order)


@router.patch(
    "/api/orders/{order_id}/status",
    response_model=OrderSnapshot,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Update Order Status",
)
async def update_order_status(
    order_id: str,
    update: OrderStatusUpdate,
    service: OrderStatusService = Depends(get_status_service),
) -> OrderSnapshot:
    """Move an order one step forward, or cancel it."""
    return await service.update_order_status(order_id, update.status, notes=update.notes)


@router.patch(
    "/api/orders/{order_id}/items/{item_id}/status",
    response_model=OrderSnapshot,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Update Item Status",
)
async def update_item_status(
    order_id: str,
    item_id: str,
    update: ItemStatusUpdate,
    service: OrderStatusService = Depends(get_status_service),
) -> OrderSnapshot:
    """Move one order item through the kitchen workflow."""
    return await service.update_item_status(order_id, item_id, update.status)


# =============================================================================
# KITCHEN ENDPOINTS
# =============================================================================

@router.get(
    "/api/kitchen/{branch_id}/orders",
    response_model=list[KitchenOrder],
    tags=["Kitchen"],
    summary="Kitchen Queue",
)
async def kitchen_orders(
    branch_id: str,
    db: AsyncSession = Depends(get_db),
) -> list[KitchenOrder]:
    """Pending, confirmed and preparing orders for a branch, oldest first, with minutes waited."""
    orders = await OrderStore(db).kitchen_orders(branch_id)
    now = datetime.now(timezone.utc)
    return [KitchenOrder.from_order(order, now=now) for order in orders]


# =============================================================================
# HEALTH & REALTIME
# =============================================================================

@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> HealthResponse:
    """Verify all system components are operational."""

    # Check database
    db_status = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    # Check cache invalidation backend
    cache = request.app.state.cache
    cache_status = "healthy" if await cache.health_check() else "unhealthy"

    registry: ConnectionRegistry = request.app.state.registry
    overall = "operational" if all(
        s == "healthy" for s in [db_status, cache_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        cache_service=f"{cache.provider_name}: {cache_status}",
        connections=registry.connection_count,
        rooms=registry.room_count,
        timestamp=datetime.now(timezone.utc),
    )


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket) -> None:
    """Realtime gateway: join rooms and receive order events."""
    gateway: RealtimeGateway = websocket.app.state.gateway
    await gateway.serve(websocket)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def register_error_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(OrderHubError)
    async def order_hub_error_handler(request: Request, exc: OrderHubError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected ({exc.code}): {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        detail = f"{field}: {first.get('msg', 'invalid request')}" if field else "Invalid request"
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="VALIDATION_ERROR", detail=detail).model_dump(),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="INTERNAL_ERROR",
                detail=str(exc) if settings.debug else "Internal server error",
            ).model_dump(),
        )


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[AsyncEngine] = None,
) -> FastAPI:
    """
    Build the application and wire every component explicitly.

    Args:
        settings: Settings to use (defaults to get_settings())
        engine: Pre-built async engine (defaults to one built from settings)
    """
    settings = settings or get_settings()
    engine = engine or build_engine(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Manage application startup and shutdown events.
        """
        # Startup
        logger.info("=" * 60)
        logger.info(f"🚀 Starting {settings.app_name}")
        logger.info(f"   Version: {settings.app_version}")
        logger.info(f"   Environment: {settings.env_mode.value}")
        logger.info(f"   Debug: {settings.debug}")
        logger.info("=" * 60)

        await init_db(engine)
        logger.info(f"✅ Cache Service: {app.state.cache.provider_name}")

        # Validate production config
        if settings.use_real_services:
            missing = settings.validate_production_config()
            if missing:
                logger.warning(f"⚠️ Missing production config: {missing}")

        logger.info("✅ Application ready!")

        yield  # Application runs

        # Shutdown
        logger.info("Shutting down...")
        await engine.dispose()
        logger.info("✅ Cleanup complete")

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Atomic restaurant order creation with real-time fan-out of order "
            "events to kitchen displays, branch dashboards and table trackers."
        ),
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    session_maker = build_session_maker(engine)
    registry = ConnectionRegistry()
    hub = DispatchHub(registry)
    cache = build_cache_service(settings)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_maker = session_maker
    app.state.registry = registry
    app.state.hub = hub
    app.state.cache = cache
    app.state.gateway = RealtimeGateway(registry, queue_size=settings.connection_queue_size)
    app.state.order_manager = OrderTransactionManager(session_maker, hub, cache, settings)
    app.state.status_service = OrderStatusService(session_maker, hub, cache, settings)

    register_error_handlers(app, settings)
    app.include_router(router)
    return app


app = create_app(settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "orderhub.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
