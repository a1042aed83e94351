"""FastAPI entrypoint: admin API, dashboard page and the customer portal page."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional
from urllib.parse import urlencode

from fastapi import Depends, FastAPI, Form, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from . import __version__, schemas
from .config import get_settings
from .database import Base, engine, get_db, wait_for_database
from .errors import InvalidLink, JerseyOrdersError
from .models import OrderStatus
from .routers import customers, designs, mail, materials, notifications, orders, portal, reports, suppliers
from .routers import settings as settings_router
from .security import require_admin
from .services import lifecycle
from .services.links import resolve_base_url, verify_portal_access
from .services.live import AppContext
from .services.stats import stats_from_context

log = logging.getLogger("jersey_orders.main")

settings = get_settings()
TEMPLATE_DIR = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATE_DIR))
RECENT_ORDERS = 10


@asynccontextmanager
async def lifespan(app: FastAPI):
    wait_for_database()
    Base.metadata.create_all(bind=engine)
    app.state.live = AppContext().start()
    try:
        yield
    finally:
        app.state.live.teardown()
        app.state.live = None


def get_live_context(request: Request) -> AppContext:
    # outside the lifespan (scripts, plain TestClient) every read is one-shot
    return getattr(request.app.state, "live", None) or AppContext()


def _back_to_dashboard(error: Optional[str] = None) -> RedirectResponse:
    url = "/" if not error else "/?" + urlencode({"error": error})
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title=settings.app_name, version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(JerseyOrdersError)
    async def domain_error_handler(request: Request, exc: JerseyOrdersError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.get("/health", tags=["System"])
    def health_check():
        return {"status": "ok", "environment": settings.environment}

    @app.get("/stats", response_model=schemas.DashboardStats, tags=["Dashboard"])
    def dashboard_stats(context: AppContext = Depends(get_live_context), _: str = Depends(require_admin)):
        return stats_from_context(context, settings.low_stock_threshold)

    @app.get("/", response_class=HTMLResponse, tags=["Dashboard"])
    def dashboard(
        request: Request,
        error: Optional[str] = Query(None),
        context: AppContext = Depends(get_live_context),
        _: str = Depends(require_admin),
    ):
        orders_snapshot = context.orders
        stats = stats_from_context(context, settings.low_stock_threshold)

        recent_orders = [
            {
                "id": order.id,
                "customer": order.customer,
                "mobile": order.mobile,
                "material": order.product or order.material,
                "quantity": order.display_quantity,
                "status": order.status.value,
                "date": order.date.strftime("%Y-%m-%d"),
                "customer_link": order.customer_link,
            }
            for order in orders_snapshot[:RECENT_ORDERS]
        ]
        context_vars = {
            "app_name": settings.app_name,
            "orders": recent_orders,
            "stats": stats,
            "chart": {"labels": list(stats.by_status), "counts": list(stats.by_status.values())},
            "materials": [m.name for m in context.materials],
            "suppliers": [(s.id, s.name) for s in context.suppliers],
            "status_choices": [s.value for s in OrderStatus],
            "error": error,
        }
        return templates.TemplateResponse(request, "dashboard.html", context_vars)

    @app.post("/admin/orders", tags=["Dashboard"])
    def create_order_form(
        request: Request,
        customer: str = Form(""),
        mobile: str = Form(""),
        email: str = Form(""),
        material: str = Form(""),
        supplier_id: str = Form(""),
        db: Session = Depends(get_db),
        _: str = Depends(require_admin),
    ):
        try:
            payload = schemas.parse_model(
                schemas.OrderCreate,
                {
                    "customer": customer,
                    "mobile": mobile,
                    "email": email or None,
                    "material": material,
                    "supplier_id": supplier_id or None,
                },
            )
        except JerseyOrdersError as exc:
            return _back_to_dashboard(exc.message)
        lifecycle.create_order(db, payload, resolve_base_url(request.base_url))
        return _back_to_dashboard()

    @app.post("/admin/orders/{order_id}/status", tags=["Dashboard"])
    def change_status_form(
        order_id: str,
        status_value: str = Form(..., alias="status"),
        db: Session = Depends(get_db),
        _: str = Depends(require_admin),
    ):
        try:
            new_status = OrderStatus(status_value)
        except ValueError:
            return _back_to_dashboard(f"Unknown status: {status_value}")
        lifecycle.set_status(db, lifecycle.get_order(db, order_id), new_status)
        return _back_to_dashboard()

    @app.post("/admin/orders/{order_id}/delete", tags=["Dashboard"])
    def delete_order_form(order_id: str, db: Session = Depends(get_db), _: str = Depends(require_admin)):
        lifecycle.delete_order(db, lifecycle.get_order(db, order_id))
        return _back_to_dashboard()

    @app.get("/customer", response_class=HTMLResponse, tags=["Customer portal"])
    def customer_page(
        request: Request,
        order_id: Optional[str] = Query(None, alias="orderId"),
        token: Optional[str] = Query(None),
        db: Session = Depends(get_db),
    ):
        try:
            order = verify_portal_access(db, order_id, token)
        except InvalidLink as exc:
            return templates.TemplateResponse(
                request,
                "invalid_link.html",
                {"message": exc.message},
                status_code=exc.status_code,
            )
        view = portal.portal_view(db, order)
        return templates.TemplateResponse(request, "customer.html", {"order": view, "token": token})

    app.include_router(orders.router)
    app.include_router(portal.router)
    app.include_router(customers.router)
    app.include_router(materials.router)
    app.include_router(suppliers.router)
    app.include_router(designs.router)
    app.include_router(reports.router)
    app.include_router(notifications.router)
    app.include_router(settings_router.router)
    app.include_router(mail.router)

    return app


app = create_app()
