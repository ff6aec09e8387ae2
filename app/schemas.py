from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ImageRef(CamelModel):
    url: str
    storage_id: str
    is_primary: bool = False


class ImageFile(BaseModel):
    """An incoming attachment; `stream` is any readable binary file object."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    filename: str
    content_type: Optional[str] = None
    stream: Any
    size: Optional[int] = None


class CatalogFilter(BaseModel):
    category: Optional[str] = None
    is_active: Optional[bool] = None


class CatalogRead(CamelModel):
    id: str
    product_name: str
    product_price: float
    product_description: str
    category: Optional[str] = None
    images: List[ImageRef] = Field(default_factory=list)
    colors: List[str]
    sizes: List[str]
    stock: int
    is_active: bool
    version: int
    created_at: datetime
    updated_at: datetime


class StockStatus(BaseModel):
    stock: int
    available: bool


class Envelope(BaseModel):
    success: bool = True
    message: Optional[str] = None


class CatalogResponse(Envelope):
    data: CatalogRead


class CatalogListResponse(Envelope):
    count: int
    data: List[CatalogRead]


class ColorsResponse(Envelope):
    data: List[str]


class StockResponse(Envelope):
    data: StockStatus
