# supermarket/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict, EmailStr
from typing import Dict, List, Optional, Union
from decimal import Decimal
from datetime import datetime


class ProductOut(BaseModel):
    """Schema dla produktu z katalogu (response)."""

    id: int
    name: str
    price: Decimal
    category: Optional[str] = None
    image: Optional[str] = None
    quantity: int

    model_config = ConfigDict(from_attributes=True)


class ReplenishIn(BaseModel):
    """Schema dla uzupelnienia stanu magazynu."""

    quantity: int = Field(..., gt=0, description="Ile sztuk dodac (musi być > 0)")


class AddItemIn(BaseModel):
    """Schema dla dodawania produktu do koszyka."""

    quantity: int = Field(1, gt=0, description="Ilość produktu (domyslnie 1)")


class UpdateItemIn(BaseModel):
    """
    Schema dla ustawienia ilosci pozycji.
    quantity jako int albo string z formularza - walidacja w serwisie.
    """

    quantity: Union[int, str]
    selected: Optional[bool] = None


class CartItemOut(BaseModel):
    """Schema dla pozycji w koszyku (response)."""

    product_id: int
    name: str
    price: Decimal
    image: Optional[str] = None
    category: str
    quantity: int
    subtotal: Decimal
    selected: bool


class CartSnapshotOut(BaseModel):
    """Schema dla wycenionego koszyka (response)."""

    items: List[CartItemOut]
    total: Decimal
    selected_total: Decimal
    count: int


class CartUpdateOut(BaseModel):
    """Schema dla odpowiedzi po zmianie koszyka."""

    success: bool = True
    cart: CartSnapshotOut
    item: Optional[CartItemOut] = None


class CheckoutIn(BaseModel):
    """Schema dla zlozenia zamowienia."""

    delivery_method: str = Field("standard", description="standard / express / pickup")
    delivery_fee: Optional[Decimal] = Field(None, ge=0, description="Oplata podana przez klienta - musi zgadzac sie z cennikiem")
    payment_method: str = Field("paynow", description="paypal / paynow / cod")
    shipping_phone: Optional[str] = Field(None, max_length=30)
    shipping_name: Optional[str] = Field(None, max_length=100)
    customer_email: Optional[EmailStr] = None


class CheckoutFormOut(BaseModel):
    """Schema dla danych formularza checkout (response)."""

    cart: CartSnapshotOut
    delivery_fees: Dict[str, Decimal]
    payment_methods: List[str]
    form: Dict[str, Union[str, int, float, bool, None]]


class PaymentStartIn(BaseModel):
    """Schema dla rozpoczecia platnosci w bramce."""

    delivery_method: str = "standard"


class PaymentStartOut(BaseModel):
    gateway_order_id: str
    amount: Decimal
    currency: str


class PaymentCaptureOut(BaseModel):
    gateway_order_id: str
    capture_id: Optional[str] = None
    status: str


class OrderItemOut(BaseModel):
    """Schema dla pozycji zamowienia (response)."""

    product_id: Optional[int] = None
    name: str
    price: Decimal
    quantity: int
    subtotal: Decimal


class ReceiptOut(BaseModel):
    """Schema dla paragonu zamowienia (response)."""

    order_number: str
    user_id: Optional[int] = None
    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal
    delivery_method: str
    payment_method: str
    payment_reference: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    paid: bool
    status: str
    created_at: Optional[datetime] = None
    saved: bool = True
    items: List[OrderItemOut]


class CheckoutOut(BaseModel):
    """Schema dla wyniku checkoutu (response)."""

    order_number: str
    saved: bool
    warning: Optional[str] = None
    order: ReceiptOut


class ConfirmPaymentIn(BaseModel):
    """Schema dla potwierdzenia platnosci."""

    reference: Optional[str] = Field(None, max_length=100, description="Referencja platnosci z zewnatrz")


class UserCreate(BaseModel):
    """Schema dla tworzenia użytkownika."""

    username: str = Field(..., min_length=1, max_length=100, description="Nazwa użytkownika")
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    address: str = Field(..., min_length=1, max_length=255)
    contact: str = Field(..., description="Telefon kontaktowy - 8 cyfr")


class LoginIn(BaseModel):
    """Schema dla logowania."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class UserRead(BaseModel):
    """Schema dla użytkownika (response)."""

    id: int
    username: str
    email: str
    role: str

    model_config = ConfigDict(from_attributes=True)


class LoginOut(BaseModel):
    user: UserRead
    cart: CartSnapshotOut
