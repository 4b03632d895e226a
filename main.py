from __future__ import annotations

import logging
import os
import socket
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Path, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from config.settings import settings
from models.hateoas import HATEOASLink
from models.health import Health
from routers import (
    customers,
    orders,
    products,
)
from services.database import close_db, init_db
from utils.errors import install_error_handlers
from utils.hal import hal_links
from utils.jsonapi import jsonapi_links
from utils.negotiation import MediaType, get_media_type
from utils.responses import make_response

port = int(os.environ.get("FASTAPIPORT", 8000))

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info("Orders API started (%s)", settings.ENVIRONMENT)
    yield
    await close_db()


app = FastAPI(
    title="Orders Hypermedia API",
    description="FastAPI microservice exposing customers, products and orders as plain JSON, HAL or JSON:API.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["ETag", "Location"],
)

install_error_handlers(app)

# -----------------------------------------------------------------------------
# Health endpoints
# -----------------------------------------------------------------------------

def make_health(echo: Optional[str], path_echo: Optional[str]=None) -> Health:
    return Health(
        status=200,
        status_message="OK",
        timestamp=datetime.now(timezone.utc).isoformat(),
        ip_address=socket.gethostbyname(socket.gethostname()),
        echo=echo,
        path_echo=path_echo
    )

@app.get("/health", response_model=Health)
def get_health_no_path(echo: str | None = Query(None, description="Optional echo string")):
    # Works because path_echo is optional in the model
    return make_health(echo=echo, path_echo=None)

@app.get("/health/{path_echo}", response_model=Health)
def get_health_with_path(
    path_echo: str = Path(..., description="Required echo in the URL path"),
    echo: str | None = Query(None, description="Optional echo string"),
):
    return make_health(echo=echo, path_echo=path_echo)

# -----------------------------------------------------------------------------
# Routers to public RESTful resources
# -----------------------------------------------------------------------------

app.include_router(router=customers.router)
app.include_router(router=products.router)
app.include_router(router=orders.router)


# -----------------------------------------------------------------------------
# Root
# -----------------------------------------------------------------------------
def build_root_links(request: Request) -> list[HATEOASLink]:
    base = str(request.base_url).rstrip("/")
    return [
        HATEOASLink(rel="self", href=str(request.url_for("root")), method="GET"),
        HATEOASLink(rel="customers", href=str(request.url_for("list_customers")), method="GET"),
        HATEOASLink(rel="products", href=str(request.url_for("list_products")), method="GET"),
        HATEOASLink(rel="orders", href=str(request.url_for("list_orders")), method="GET"),
        HATEOASLink(rel="find-customer", href=f"{base}/customers/{{id}}", method="GET"),
        HATEOASLink(rel="find-product", href=f"{base}/products/{{id}}", method="GET"),
        HATEOASLink(rel="find-order", href=f"{base}/orders/{{id}}", method="GET"),
        HATEOASLink(rel="health", href=str(request.url_for("get_health_no_path")), method="GET"),
    ]


@app.get("/", name="root")
def root(request: Request, media_type: MediaType = Depends(get_media_type)):
    """Hypermedia entry point: every collection is reachable from here."""
    links = build_root_links(request)

    if media_type == MediaType.HAL:
        content = {"_links": hal_links(links)}
    elif media_type == MediaType.JSONAPI:
        content = {
            "jsonapi": {"version": settings.JSONAPI_VERSION},
            "meta": {"message": "Welcome to the Orders API."},
            "links": jsonapi_links(links),
        }
    else:
        content = {
            "message": "Welcome to the Orders API. See /docs for OpenAPI UI.",
            "links": links,
        }
    return make_response(media_type, content)

# -----------------------------------------------------------------------------
# Entrypoint for `python main.py`
# -----------------------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=port, reload=True)
