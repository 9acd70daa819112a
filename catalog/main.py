# catalog/main.py
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from catalog.cache import ProductCache
from catalog.config import Settings, settings as default_settings
from catalog.core import AddCategoryIn, SaveCategoriesIn, SaveProductsIn, _make_write_result
from catalog.database import InMemoryStore, RemoteStore
from catalog.errors import CatalogError, Unauthorized, UpstreamFailure
from catalog.logging import get_logger
from catalog.rest_store import PostgrestStore
from catalog.service import CatalogService

logger = get_logger(__name__)

_bearer = HTTPBearer(auto_error=False)


def build_store(config: Settings) -> RemoteStore:
    if config.remote_store_configured:
        logger.info(f"💾 Using remote store at {config.SUPABASE_URL}")
        return PostgrestStore(config.SUPABASE_URL, config.SUPABASE_KEY, config.STORE_TIMEOUT)
    logger.warning("SUPABASE_URL/SUPABASE_KEY not set, using in-memory store")
    return InMemoryStore()


# ---------------------------
# Dependencies
# ---------------------------
def get_service(request: Request) -> CatalogService:
    return request.app.state.service


def is_admin(request: Request, token: Optional[str]) -> bool:
    return bool(token) and token == request.app.state.settings.ADMIN_TOKEN


async def require_admin(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> None:
    token = credentials.credentials if credentials else None
    if not is_admin(request, token):
        logger.warning(f"Rejected admin request to {request.url.path}")
        raise Unauthorized("Not authorized")


# ---------------------------
# Catalog endpoints
# ---------------------------
router = APIRouter(prefix="/api")


@router.get("/products")
async def list_products(response: Response, service: CatalogService = Depends(get_service)):
    products, hit = await service.list_products()
    response.headers["X-Cache"] = "HIT" if hit else "MISS"
    return {"products": [p.model_dump() for p in products]}


@router.get("/categories")
async def list_categories(service: CatalogService = Depends(get_service)):
    categories = await service.list_categories()
    return {"categories": [c.model_dump() for c in categories]}


@router.post("/products", dependencies=[Depends(require_admin)])
async def save_products(payload: SaveProductsIn, service: CatalogService = Depends(get_service)):
    result = await service.replace_all_products(payload.products)
    return _make_write_result(result.saved_count, "products", result.items, "products")


@router.post("/categories", dependencies=[Depends(require_admin)])
async def save_categories(payload: SaveCategoriesIn, service: CatalogService = Depends(get_service)):
    result = await service.replace_all_categories(payload.categories)
    return _make_write_result(result.saved_count, "categories", result.items, "categories")


@router.post("/categories/add", dependencies=[Depends(require_admin)])
async def add_category(payload: AddCategoryIn, service: CatalogService = Depends(get_service)):
    category = await service.upsert_category(payload.category)
    return {
        "success": True,
        "message": f'Category "{category.name}" added',
        "category": category.model_dump(),
    }


@router.delete("/categories/{category_id}", dependencies=[Depends(require_admin)])
async def delete_category(category_id: str, service: CatalogService = Depends(get_service)):
    result = await service.delete_category(category_id)
    return {"success": True, "message": f'Category "{result["deleted_name"]}" deleted'}


@router.post("/cache/clear")
async def clear_cache(service: CatalogService = Depends(get_service)):
    service.clear_cache()
    return {"success": True, "message": "Product cache cleared"}


@router.get("/auth/verify")
async def verify_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
):
    token = credentials.credentials if credentials else None
    if is_admin(request, token):
        return {"valid": True, "user": {"username": "admin"}}
    return {"valid": False}


# ---------------------------
# App factory
# ---------------------------
def create_app(
    config: Optional[Settings] = None,
    store: Optional[RemoteStore] = None,
    cache: Optional[ProductCache] = None,
) -> FastAPI:
    """Create the FastAPI application; tests pass their own store and cache."""
    config = config or default_settings
    store = store or build_store(config)
    cache = cache or ProductCache(ttl_ms=config.PRODUCTS_CACHE_DURATION)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"🚀 Catalog sync starting, cache TTL {config.PRODUCTS_CACHE_DURATION / 1000}s")
        yield
        await store.close()
        logger.info("🛑 Catalog sync shutting down")

    app = FastAPI(title="catalog-sync", version="1.0.0", lifespan=lifespan)
    app.state.settings = config
    app.state.service = CatalogService(store, cache)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    @app.get("/")
    async def root():
        return {
            "message": "🚀 Catalog sync backend",
            "version": app.version,
            "status": "operational",
            "endpoints": {
                "products": "/api/products",
                "categories": "/api/categories",
                "health": "/health",
            },
            "cache": {
                "enabled": True,
                "duration": f"{config.PRODUCTS_CACHE_DURATION / 1000}s",
                "type": "memory",
            },
        }

    @app.get("/health")
    async def health(service: CatalogService = Depends(get_service)):
        try:
            return await service.health()
        except UpstreamFailure as e:
            return JSONResponse(status_code=503, content={"status": "unhealthy", "error": e.detail})

    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError):
        if exc.status_code >= 500:
            logger.error(f"❌ {request.method} {request.url.path}: {exc.detail}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=default_settings.HOST, port=default_settings.PORT)
