"""
FastAPI application exposing the catalog over HTTP.

Authentication is a collaborator concern; this demo trusts the ``X-Actor-Id``
and ``X-Actor-Role`` headers to identify the caller.

Uses MongoDB and Redis when configured (see config.config), otherwise an
in-memory store and no cache.
Run with: uvicorn demos.catalog_api_demo:app --reload
"""

from typing import Any

from fastapi import Body, Depends, FastAPI, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from catalog.bootstrap import CatalogServices, open_services
from catalog.errors import CatalogError, ValidationFailed
from models.api import Actor, ImageAppend
from models.catalog import Category, ProductPage, ProductView, SearchResult, Variation
from models.enums import ActorRole
from utils.logger import get_logger

logger = get_logger("catalog-api")


def get_actor(
    x_actor_id: str | None = Header(None),
    x_actor_role: str | None = Header(None),
) -> Actor | None:
    if not x_actor_id:
        return None
    try:
        role = ActorRole(x_actor_role.lower()) if x_actor_role else ActorRole.CUSTOMER
    except ValueError:
        role = ActorRole.CUSTOMER
    return Actor(id=x_actor_id, role=role)


def create_app(services: CatalogServices | None = None) -> FastAPI:
    """Build the app. Passing ``services`` skips backend bootstrap (tests, embedding)."""
    app = FastAPI(
        title="Dynamic Catalog API",
        description="Products with runtime-defined, type-checked category attributes",
        version="1.0.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.services = services

    @app.on_event("startup")
    async def startup_event():
        """Connect to the store and cache on startup."""
        if app.state.services is None:
            app.state.services = await open_services()
            app.state.owns_services = True

    @app.on_event("shutdown")
    async def shutdown_event():
        """Release backend connections on shutdown."""
        if getattr(app.state, "owns_services", False):
            await app.state.services.close()

    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": "internal_error", "message": "Internal server error"})

    def services_dep(request: Request) -> CatalogServices:
        return request.app.state.services

    # --- Categories (registered before /product/{id} so the paths don't collide) ---

    @app.get("/product/category", response_model=list[Category])
    async def list_categories(svc: CatalogServices = Depends(services_dep)):
        return await svc.registry.list()

    @app.get("/product/category/{category_id}", response_model=Category)
    async def get_category(category_id: str, svc: CatalogServices = Depends(services_dep)):
        return await svc.registry.get_by_id(category_id)

    @app.post("/product/category", status_code=201, response_model=Category)
    async def create_category(
        body: dict[str, Any] = Body(...),
        actor: Actor | None = Depends(get_actor),
        svc: CatalogServices = Depends(services_dep),
    ):
        return await svc.registry.create(body, actor)

    @app.put("/product/category/{category_id}", response_model=Category)
    async def update_category(
        category_id: str,
        body: dict[str, Any] = Body(...),
        actor: Actor | None = Depends(get_actor),
        svc: CatalogServices = Depends(services_dep),
    ):
        return await svc.registry.update(category_id, body, actor)

    @app.delete("/product/category/{category_id}")
    async def delete_category(
        category_id: str,
        actor: Actor | None = Depends(get_actor),
        svc: CatalogServices = Depends(services_dep),
    ):
        await svc.registry.delete(category_id, actor)
        return {"message": "Category deleted successfully"}

    # --- Products: collection-level reads ---

    @app.get("/product", response_model=ProductPage)
    async def list_products(
        page: int = Query(1),
        limit: int | None = Query(None),
        svc: CatalogServices = Depends(services_dep),
    ):
        return await svc.products.list_products(page, limit or svc.config.default_page_size)

    @app.get("/product/count")
    async def count_products(svc: CatalogServices = Depends(services_dep)):
        return {"count": await svc.products.count()}

    @app.post("/product/search", response_model=SearchResult)
    async def search_products(
        body: dict[str, Any] | None = Body(None),
        svc: CatalogServices = Depends(services_dep),
    ):
        return await svc.search.search(body)

    @app.get("/product/suggestions", response_model=list[str])
    async def suggest_products(
        text: str = Query(""),
        limit: int = Query(5),
        svc: CatalogServices = Depends(services_dep),
    ):
        return await svc.search.suggest(text, limit)

    # --- Products: single entity ---

    @app.get("/product/{product_id}", response_model=ProductView)
    async def get_product(
        product_id: str,
        skip_cache: bool = Query(False),
        svc: CatalogServices = Depends(services_dep),
    ):
        return await svc.products.get_by_id(product_id, skip_cache=skip_cache)

    @app.get("/product/{product_id}/variations", response_model=list[Variation])
    async def get_product_variations(product_id: str, svc: CatalogServices = Depends(services_dep)):
        return await svc.products.get_variations(product_id)

    @app.post("/product", status_code=201, response_model=ProductView)
    async def create_product(
        body: dict[str, Any] = Body(...),
        actor: Actor | None = Depends(get_actor),
        svc: CatalogServices = Depends(services_dep),
    ):
        return await svc.products.create(body, actor)

    @app.put("/product/{product_id}", response_model=ProductView)
    async def update_product(
        product_id: str,
        body: dict[str, Any] = Body(...),
        actor: Actor | None = Depends(get_actor),
        svc: CatalogServices = Depends(services_dep),
    ):
        return await svc.products.update(product_id, body, actor)

    @app.delete("/product/{product_id}")
    async def delete_product(
        product_id: str,
        actor: Actor | None = Depends(get_actor),
        svc: CatalogServices = Depends(services_dep),
    ):
        await svc.products.delete(product_id, actor)
        return {"message": "Product deleted successfully"}

    @app.post("/product/{product_id}/images", response_model=ProductView)
    async def add_product_images(
        product_id: str,
        body: dict[str, Any] = Body(...),
        actor: Actor | None = Depends(get_actor),
        svc: CatalogServices = Depends(services_dep),
    ):
        try:
            request = ImageAppend.model_validate(body)
        except ValidationError as e:
            raise ValidationFailed(f"Invalid image list: {e.errors()[0]['msg']}") from e
        return await svc.products.add_images(product_id, request.images, actor)

    @app.delete("/product/{product_id}/images", response_model=ProductView)
    async def remove_product_image(
        product_id: str,
        image: str = Query(...),
        actor: Actor | None = Depends(get_actor),
        svc: CatalogServices = Depends(services_dep),
    ):
        return await svc.products.remove_image(product_id, image, actor)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8004)
