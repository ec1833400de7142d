"""
Database Schemas for the Storefront

Each Pydantic model corresponds to one MongoDB collection.
Collection name is the lowercase of the class name.
Request bodies accept the camelCase keys used by the web client as aliases.
"""
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field

Role = Literal["user", "admin"]
Gender = Literal["male", "female", "other"]
Category = Literal["clothes", "beauty", "mice", "electronics", "books", "groceries", "other"]
OrderStatus = Literal["pending", "confirmed", "shipped", "delivered", "cancelled"]
PaymentStatus = Literal["pending", "completed"]

ORDER_STATUSES = ("pending", "confirmed", "shipped", "delivered", "cancelled")


class Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ----------------------- Collections -----------------------
class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: EmailStr
    password_hash: Optional[str] = Field(None, description="bcrypt hash, absent for Google-only accounts")
    mobile_number: Optional[str] = None
    gender: Optional[Gender] = None
    role: Role = "user"
    google_id: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None


class Faq(BaseModel):
    id: str
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)


class Product(Body):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    images: List[str] = Field(..., min_length=1, description="Ordered image URLs, first is the cover")
    mrp: float = Field(..., gt=0)
    our_price: float = Field(..., gt=0, validation_alias=AliasChoices("our_price", "ourPrice"))
    discount: Optional[int] = Field(None, ge=0, le=100, description="Percent off MRP, computed when omitted")
    after_exchange_price: Optional[float] = None
    offers: List[str] = []
    coupons: List[str] = []
    company: str = Field(..., min_length=1)
    color: Optional[str] = None
    size: Optional[str] = None
    weight: Optional[str] = None
    height: Optional[str] = None
    category: Category
    in_stock: bool = Field(True, validation_alias=AliasChoices("in_stock", "inStock"))
    stock_quantity: int = Field(0, ge=0, validation_alias=AliasChoices("stock_quantity", "stockQuantity"))
    rating: float = Field(0.0, ge=0, le=5)
    faqs: List[Faq] = []


class ShippingAddress(BaseModel):
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    pincode: str = Field(..., pattern=r"^\d{6}$")
    country: str = "India"


class OrderItem(BaseModel):
    product_id: str
    quantity: int
    price: float = Field(..., description="Unit price at purchase time")
    selected_size: Optional[str] = None
    selected_color: Optional[str] = None
    product_name: Optional[str] = None
    product_image: Optional[str] = None


class Order(BaseModel):
    user_id: str
    total_amount: float
    currency: str = "INR"
    status: OrderStatus = "pending"
    payment_status: PaymentStatus = "pending"
    payment_id: Optional[str] = None
    gateway_order_id: Optional[str] = None
    shipping_address: ShippingAddress
    items: List[OrderItem]


class Review(BaseModel):
    product_id: str
    user_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: str
    verified: bool = True


class Notification(BaseModel):
    title: str
    message: str
    type: str
    user_id: Optional[str] = Field(None, description="Owning user, None for a broadcast")
    metadata: Dict[str, Any] = {}
    read_by: List[str] = []


# ----------------------- Request bodies -----------------------
class RegisterBody(Body):
    name: str = Field(..., min_length=2)
    email: EmailStr
    password: str = Field(..., min_length=6)
    mobile_number: Optional[str] = Field(None, validation_alias=AliasChoices("mobile_number", "mobileNumber"))
    gender: Optional[Gender] = None


class LoginBody(Body):
    email: EmailStr
    password: str = Field(..., min_length=1)


class GoogleAuthBody(Body):
    google_id: str = Field(..., min_length=1, validation_alias=AliasChoices("google_id", "googleId"))
    email: EmailStr
    name: str = Field(..., min_length=1)


class ProfileUpdateBody(Body):
    name: Optional[str] = Field(None, min_length=2)
    mobile_number: Optional[str] = Field(None, validation_alias=AliasChoices("mobile_number", "mobileNumber"))
    gender: Optional[Gender] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = Field(None, validation_alias=AliasChoices("postal_code", "postalCode"))


class ProductCreateBody(Product):
    pass


class ProductUpdateBody(Body):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    images: Optional[List[str]] = Field(None, min_length=1)
    mrp: Optional[float] = Field(None, gt=0)
    our_price: Optional[float] = Field(None, gt=0, validation_alias=AliasChoices("our_price", "ourPrice"))
    discount: Optional[int] = Field(None, ge=0, le=100)
    offers: Optional[List[str]] = None
    coupons: Optional[List[str]] = None
    company: Optional[str] = Field(None, min_length=1)
    color: Optional[str] = None
    size: Optional[str] = None
    weight: Optional[str] = None
    height: Optional[str] = None
    category: Optional[Category] = None
    in_stock: Optional[bool] = Field(None, validation_alias=AliasChoices("in_stock", "inStock"))
    stock_quantity: Optional[int] = Field(None, ge=0, validation_alias=AliasChoices("stock_quantity", "stockQuantity"))
    faqs: Optional[List[Faq]] = None


class OrderLineBody(Body):
    product_id: str = Field(..., validation_alias=AliasChoices("product_id", "productId"))
    quantity: int = Field(..., gt=0)
    price: float = Field(..., gt=0)
    selected_size: Optional[str] = Field(None, validation_alias=AliasChoices("selected_size", "selectedSize"))
    selected_color: Optional[str] = Field(None, validation_alias=AliasChoices("selected_color", "selectedColor"))


class OrderCreateBody(Body):
    amount: float = Field(..., gt=0)
    currency: Optional[str] = None
    items: List[OrderLineBody] = Field(..., min_length=1)
    shipping_address: ShippingAddress = Field(
        ..., validation_alias=AliasChoices("shipping_address", "shippingAddress"))


class PaymentVerifyBody(Body):
    gateway_order_id: str = Field(..., min_length=1, validation_alias=AliasChoices(
        "gateway_order_id", "gatewayOrderId", "razorpay_order_id"))
    gateway_payment_id: str = Field(..., min_length=1, validation_alias=AliasChoices(
        "gateway_payment_id", "gatewayPaymentId", "razorpay_payment_id"))
    signature: str = Field(..., min_length=1, validation_alias=AliasChoices(
        "signature", "razorpay_signature"))
    order_id: str = Field(..., validation_alias=AliasChoices("order_id", "orderId"))


class OrderStatusBody(Body):
    status: str


class ReviewCreateBody(Body):
    product_id: str = Field(..., validation_alias=AliasChoices("product_id", "productId"))
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1)


class NotificationCreateBody(Body):
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    user_id: Optional[str] = Field(None, validation_alias=AliasChoices("user_id", "userId"))
