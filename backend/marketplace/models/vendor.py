from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field

from marketplace.models.catalog import CategoryResponse, ProductResponse
from marketplace.models.common import ApiModel, RequestModel
from marketplace.models_sqlalchemy.models import CustomDomainStatus


class VendorCreate(RequestModel):
    owner_email: EmailStr
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    domain: Optional[str] = Field(default=None, max_length=255)
    plan: str = "basic"
    status: str = "active"
    subscription_status: str = "trial"


class VendorUpdate(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    domain: Optional[str] = Field(default=None, max_length=255)
    plan: Optional[str] = None
    status: Optional[str] = None
    subscription_status: Optional[str] = None


class VendorResponse(ApiModel):
    id: str
    owner_id: str
    name: str
    description: Optional[str] = None
    domain: Optional[str] = None
    custom_domain_id: Optional[str] = None
    plan: str
    status: str
    subscription_status: str
    created_by: Optional[str] = None
    created_at: datetime


class CustomDomainCreate(RequestModel):
    domain: str = Field(min_length=1, max_length=255)
    vendor_id: Optional[str] = None
    ssl_enabled: bool = False


class CustomDomainUpdate(RequestModel):
    domain: Optional[str] = Field(default=None, min_length=1, max_length=255)
    vendor_id: Optional[str] = None
    status: Optional[CustomDomainStatus] = None
    ssl_enabled: Optional[bool] = None


class CustomDomainResponse(ApiModel):
    id: str
    domain: str
    vendor_id: Optional[str] = None
    status: CustomDomainStatus
    ssl_enabled: bool
    created_by: str
    created_at: datetime


class StorefrontVendor(ApiModel):
    id: str
    name: str
    description: Optional[str] = None
    domain: Optional[str] = None
    custom_domain: Optional[str] = None


class StorefrontResponse(ApiModel):
    vendor: StorefrontVendor
    products: List[ProductResponse]
    categories: List[CategoryResponse]
