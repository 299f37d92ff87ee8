from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict


class Role(str, Enum):
    CUSTOMER = "Customer"
    EMPLOYEE = "Employee"
    MANAGER = "Manager"

    @classmethod
    def parse(cls, value: str) -> "Role":
        # legacy rows store 'Manager ' / 'Employee ' padded to the column width
        return cls(value.strip())

    @property
    def is_staff(self) -> bool:
        return self in (Role.EMPLOYEE, Role.MANAGER)


class ItemState(str, Enum):
    IN_PROGRESS = "In progress"
    READY = "Ready"


class ActingIdentity(BaseModel):
    """Who is invoking a core operation. Passed explicitly into every call."""

    login: str
    role: Role

    model_config = ConfigDict(frozen=True)


class UserCreate(BaseModel):
    login: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1)
    phone: Optional[str] = Field(default=None, max_length=16)


class UserRead(BaseModel):
    login: str
    phone_num: Optional[str] = None
    fav_items: str = ""
    type: str = Role.CUSTOMER.value

    model_config = ConfigDict(from_attributes=True)

    @field_validator("type")
    def strip_type(cls, v: str):
        return v.strip()


class UserUpdate(BaseModel):
    password: Optional[str] = None
    old_password: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=16)
    fav_items: Optional[str] = None
    role: Optional[Role] = None


class LoginRequest(BaseModel):
    login: str
    password: str


class MenuItemCreate(BaseModel):
    item_name: str = Field(..., min_length=1, max_length=50)
    type: str = Field(..., min_length=1, max_length=20)
    # Parsed by the catalog so an unparseable price surfaces as InvalidInput
    price: str
    description: str = ""
    image_url: str = ""


class MenuItemRead(BaseModel):
    item_name: str
    type: str
    price: Decimal
    description: str
    image_url: str

    model_config = ConfigDict(from_attributes=True)


class MenuItemUpdate(BaseModel):
    field: str
    value: str


class LineItemRead(BaseModel):
    orderid: int
    item_name: str
    status: str
    comments: str
    price: Decimal
    last_updated: datetime

    model_config = ConfigDict(from_attributes=True)


class LineItemAdd(BaseModel):
    item_name: str
    comment: str = ""


class LineItemUpdate(BaseModel):
    comment: Optional[str] = None
    ready: Optional[bool] = None


class OrderCreate(BaseModel):
    items: List[LineItemAdd] = []


class OrderEdit(BaseModel):
    add: List[LineItemAdd] = []
    remove: List[str] = []


class PaidUpdate(BaseModel):
    paid: bool


class OrderRead(BaseModel):
    orderid: int
    login: str
    paid: bool
    total: Decimal
    timestamp_received: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderSummary(OrderRead):
    ready: bool
    items: List[LineItemRead] = []
