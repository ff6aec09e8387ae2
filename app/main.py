# app/main.py
import os
import logging
from typing import List, Optional

from fastapi import FastAPI, Depends, File, Form, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .db import Base, engine
from . import models  # noqa: F401  (registers tables on Base.metadata)
from .deps import add_cors, add_security_headers, get_catalog_reader, get_catalog_service
from .errors import CatalogError
from .parsing import normalize_id, parse_bool
from .schemas import (
    CatalogFilter,
    CatalogListResponse,
    CatalogRead,
    CatalogResponse,
    ColorsResponse,
    Envelope,
    ImageFile,
    StockResponse,
)
from .service import CatalogService

# ---------------------------------------------------------
# 🚀 Initialization
# ---------------------------------------------------------
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)
app = FastAPI(title="Product Catalog API", version="1.0.0")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
add_cors(app, CORS_ORIGINS)
add_security_headers(app)


# ---------------------------------------------------------
# ⚠️ Error responses
# ---------------------------------------------------------
@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ())[1:])
        parts.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return JSONResponse(status_code=400, content={"success": False, "message": "; ".join(parts) or "Invalid request"})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": str(exc.detail)})


def _image_files(uploads: Optional[List[UploadFile]]) -> List[ImageFile]:
    # Browsers send an empty, nameless part when no file was chosen
    return [
        ImageFile(filename=u.filename, content_type=u.content_type, stream=u.file, size=u.size)
        for u in uploads or []
        if u.filename
    ]


def _present(**fields):
    return {k: v for k, v in fields.items() if v is not None}


# ---------------------------------------------------------
# 🩺 Health check
# ---------------------------------------------------------
@app.get("/")
def root():
    return {"success": True, "message": "API is running", "version": app.version}


@app.get("/health")
def health():
    return {"status": "ok"}


# ---------------------------------------------------------
# 📦 Catalogs
# ---------------------------------------------------------
@app.get("/catalogs", response_model=CatalogListResponse)
def get_all_catalogs(
    category: Optional[str] = Query(None),
    is_active: Optional[str] = Query(None, alias="isActive"),
    service: CatalogService = Depends(get_catalog_reader),
):
    filters = CatalogFilter(
        category=category or None,
        is_active=parse_bool(is_active) if is_active is not None else None,
    )
    records = service.get_all(filters)
    return CatalogListResponse(
        message="Fetched all catalogs",
        count=len(records),
        data=[CatalogRead.model_validate(r) for r in records],
    )


@app.get("/catalogs/{id}", response_model=CatalogResponse)
def get_catalog(id: str, service: CatalogService = Depends(get_catalog_reader)):
    record = service.get_by_id(normalize_id(id))
    return CatalogResponse(data=CatalogRead.model_validate(record))


@app.post("/catalogs", response_model=CatalogResponse, status_code=201)
def create_catalog(
    product_name: Optional[str] = Form(None, alias="productName"),
    product_price: Optional[str] = Form(None, alias="productPrice"),
    product_description: Optional[str] = Form(None, alias="productDescription"),
    category: Optional[str] = Form(None),
    colors: Optional[List[str]] = Form(None),
    sizes: Optional[List[str]] = Form(None),
    stock: Optional[str] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    service: CatalogService = Depends(get_catalog_service),
):
    data = dict(
        product_name=product_name,
        product_price=product_price,
        product_description=product_description,
        category=category,
        colors=colors,
        sizes=sizes,
        stock=stock,
    )
    record = service.create(data, _image_files(images))
    return CatalogResponse(message="Catalog created", data=CatalogRead.model_validate(record))


@app.patch("/catalogs/{id}", response_model=CatalogResponse)
def update_catalog(
    id: str,
    product_name: Optional[str] = Form(None, alias="productName"),
    product_price: Optional[str] = Form(None, alias="productPrice"),
    product_description: Optional[str] = Form(None, alias="productDescription"),
    category: Optional[str] = Form(None),
    colors: Optional[List[str]] = Form(None),
    sizes: Optional[List[str]] = Form(None),
    stock: Optional[str] = Form(None),
    is_active: Optional[str] = Form(None, alias="isActive"),
    existing_images: Optional[List[str]] = Form(None, alias="existingImages"),
    deleted_images: Optional[List[str]] = Form(None, alias="deletedImages"),
    version: Optional[int] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    service: CatalogService = Depends(get_catalog_service),
):
    data = _present(
        product_name=product_name,
        product_price=product_price,
        product_description=product_description,
        category=category,
        colors=colors,
        sizes=sizes,
        stock=stock,
        is_active=is_active,
    )
    record = service.update(
        normalize_id(id),
        data,
        new_files=_image_files(images),
        existing_images=existing_images,
        images_to_remove=deleted_images,
        expected_version=version,
    )
    return CatalogResponse(message="Catalog updated", data=CatalogRead.model_validate(record))


@app.delete("/catalogs/{id}", response_model=Envelope)
def delete_catalog(id: str, service: CatalogService = Depends(get_catalog_service)):
    service.delete(normalize_id(id))
    return Envelope(message="Catalog deleted")


@app.get("/catalogs/{id}/colors", response_model=ColorsResponse)
def get_catalog_colors(id: str, service: CatalogService = Depends(get_catalog_reader)):
    return ColorsResponse(data=service.get_colors(normalize_id(id)))


@app.get("/catalogs/{id}/stock", response_model=StockResponse)
def check_catalog_stock(id: str, service: CatalogService = Depends(get_catalog_reader)):
    return StockResponse(data=service.check_stock(normalize_id(id)))


if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT", 10000))
    uvicorn.run("app.main:app", host="0.0.0.0", port=port, log_level="info")
