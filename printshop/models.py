from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from printshop.utils import iso_now, new_id, to_money, to_qty


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    ONLINE = "ONLINE"
    SPLIT = "SPLIT"
    NONE = "NONE"


class PaymentStatus(str, Enum):
    PAID = "PAID"
    UNPAID = "UNPAID"
    PARTIAL = "PARTIAL"


def parse_enum(enum_cls, value: Any, default):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().upper())
    except ValueError:
        return default


def _pick(d: dict, *names: str, default: Any = None) -> Any:
    for n in names:
        if n in d and d[n] is not None:
            return d[n]
    return default


def _require_dict(d: Any, what: str) -> dict:
    if not isinstance(d, dict):
        raise ValueError(f"{what} record must be an object.")
    return d


def _text(v: Any) -> str:
    return "" if v is None else str(v)


def _optional_text(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s if s else None


@dataclass
class Product:
    id: str
    name: str
    category: str = "General"
    cost_price: float = 0.0
    selling_price: float = 0.0
    quantity: int = 0
    min_stock: int = 0

    @classmethod
    def from_dict(cls, d: Any) -> "Product":
        d = _require_dict(d, "Product")
        pid = _pick(d, "id")
        if pid is None or str(pid) == "":
            raise ValueError("Product id is required.")
        return cls(
            id=str(pid),
            name=_text(_pick(d, "name", default="")),
            category=_text(_pick(d, "category", default="General")),
            cost_price=to_money(_pick(d, "costPrice", "cost_price", default=0)),
            selling_price=to_money(_pick(d, "sellingPrice", "selling_price", default=0)),
            quantity=to_qty(_pick(d, "quantity", default=0)),
            min_stock=to_qty(_pick(d, "minStock", "min_stock", default=0)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "costPrice": self.cost_price,
            "sellingPrice": self.selling_price,
            "quantity": self.quantity,
            "minStock": self.min_stock,
        }


@dataclass
class DepotStock:
    product_id: str
    depot_a: int = 0
    depot_b: int = 0
    last_updated: str = field(default_factory=iso_now)

    @property
    def total(self) -> int:
        return self.depot_a + self.depot_b

    @classmethod
    def from_dict(cls, d: Any) -> "DepotStock":
        d = _require_dict(d, "DepotStock")
        pid = _pick(d, "productId", "product_id")
        if pid is None:
            raise ValueError("Depot stock productId is required.")
        return cls(
            product_id=str(pid),
            depot_a=to_qty(_pick(d, "depotA_Stock", "depot_a", "deepakStock", default=0)),
            depot_b=to_qty(_pick(d, "depotB_Stock", "depot_b", "dimpleStock", default=0)),
            last_updated=_text(_pick(d, "lastUpdated", "last_updated", default="")) or iso_now(),
        )

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "depotA_Stock": self.depot_a,
            "depotB_Stock": self.depot_b,
            "lastUpdated": self.last_updated,
        }


@dataclass
class OrderItem:
    product_id: str
    product_name: str
    quantity: int
    cost_price_snapshot: float = 0.0
    selling_price_snapshot: float = 0.0
    is_custom: bool = False

    @property
    def line_total(self) -> float:
        return round(self.quantity * self.selling_price_snapshot, 2)

    @property
    def line_cost(self) -> float:
        return round(self.quantity * self.cost_price_snapshot, 2)

    @classmethod
    def from_dict(cls, d: Any) -> "OrderItem":
        d = _require_dict(d, "OrderItem")
        return cls(
            product_id=_text(_pick(d, "productId", "product_id", default="")),
            product_name=_text(_pick(d, "productName", "product_name", default="")),
            quantity=to_qty(_pick(d, "quantity", default=0)),
            cost_price_snapshot=to_money(_pick(d, "costPriceSnapshot", "cost_price_snapshot", default=0)),
            selling_price_snapshot=to_money(_pick(d, "sellingPriceSnapshot", "selling_price_snapshot", default=0)),
            is_custom=bool(_pick(d, "isCustom", "is_custom", default=False)),
        )

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "quantity": self.quantity,
            "costPriceSnapshot": self.cost_price_snapshot,
            "sellingPriceSnapshot": self.selling_price_snapshot,
            "isCustom": self.is_custom,
        }


@dataclass
class PaymentDetails:
    method: PaymentMethod = PaymentMethod.NONE
    cash_amount: float = 0.0
    online_amount: float = 0.0
    total_paid: float = 0.0
    status: PaymentStatus = PaymentStatus.UNPAID

    @classmethod
    def from_dict(cls, d: Any) -> "PaymentDetails":
        if not isinstance(d, dict):
            return cls()
        return cls(
            method=parse_enum(PaymentMethod, _pick(d, "method", default="NONE"), PaymentMethod.NONE),
            cash_amount=to_money(_pick(d, "cashAmount", "cash_amount", default=0)),
            online_amount=to_money(_pick(d, "onlineAmount", "online_amount", default=0)),
            total_paid=to_money(_pick(d, "totalPaid", "total_paid", "amountPaid", default=0)),
            status=parse_enum(PaymentStatus, _pick(d, "status", default="UNPAID"), PaymentStatus.UNPAID),
        )

    def to_dict(self) -> dict:
        return {
            "method": self.method.value,
            "cashAmount": self.cash_amount,
            "onlineAmount": self.online_amount,
            "totalPaid": self.total_paid,
            "status": self.status.value,
        }


@dataclass
class StockMove:
    """Units actually taken out of stock for one product when an order completed."""

    product_id: str
    quantity: int = 0
    from_a: int = 0
    from_b: int = 0

    @classmethod
    def from_dict(cls, d: Any) -> "StockMove":
        d = _require_dict(d, "StockMove")
        return cls(
            product_id=_text(_pick(d, "productId", "product_id", default="")),
            quantity=to_qty(_pick(d, "quantity", default=0)),
            from_a=to_qty(_pick(d, "fromA", "from_a", default=0)),
            from_b=to_qty(_pick(d, "fromB", "from_b", default=0)),
        )

    def to_dict(self) -> dict:
        return {"productId": self.product_id, "quantity": self.quantity, "fromA": self.from_a, "fromB": self.from_b}


@dataclass
class Order:
    id: str
    customer_name: str = ""
    customer_phone: str = ""
    date: str = field(default_factory=iso_now)
    completed_at: Optional[str] = None
    items: list[OrderItem] = field(default_factory=list)
    discount: float = 0.0
    total_amount: float = 0.0
    status: OrderStatus = OrderStatus.PENDING
    payment_details: PaymentDetails = field(default_factory=PaymentDetails)
    note: Optional[str] = None
    stock_moves: list[StockMove] = field(default_factory=list)

    @property
    def stock_items(self) -> list[OrderItem]:
        """Catalog-linked lines: the only ones that touch stock or demand."""
        return [i for i in self.items if not i.is_custom]

    @classmethod
    def from_dict(cls, d: Any) -> "Order":
        d = _require_dict(d, "Order")
        oid = _pick(d, "id")
        if oid is None or str(oid) == "":
            raise ValueError("Order id is required.")
        raw_items = _pick(d, "items", default=[])
        raw_moves = _pick(d, "stockMoves", "stock_moves", default=[])
        return cls(
            id=str(oid),
            customer_name=_text(_pick(d, "customerName", "customer_name", default="")),
            customer_phone=_text(_pick(d, "customerPhone", "customer_phone", default="")),
            date=_text(_pick(d, "date", default="")) or iso_now(),
            completed_at=_optional_text(_pick(d, "completedAt", "completed_at")),
            items=[OrderItem.from_dict(i) for i in raw_items if isinstance(i, dict)] if isinstance(raw_items, list) else [],
            discount=to_money(_pick(d, "discount", default=0)),
            total_amount=to_money(_pick(d, "totalAmount", "total_amount", default=0)),
            status=parse_enum(OrderStatus, _pick(d, "status", default="PENDING"), OrderStatus.PENDING),
            payment_details=PaymentDetails.from_dict(_pick(d, "paymentDetails", "payment_details")),
            note=_optional_text(_pick(d, "note")),
            stock_moves=[StockMove.from_dict(m) for m in raw_moves if isinstance(m, dict)] if isinstance(raw_moves, list) else [],
        )

    def to_dict(self) -> dict:
        out = {
            "id": self.id,
            "customerName": self.customer_name,
            "customerPhone": self.customer_phone,
            "date": self.date,
            "items": [i.to_dict() for i in self.items],
            "discount": self.discount,
            "totalAmount": self.total_amount,
            "status": self.status.value,
            "paymentDetails": self.payment_details.to_dict(),
        }
        if self.completed_at:
            out["completedAt"] = self.completed_at
        if self.note is not None:
            out["note"] = self.note
        if self.stock_moves:
            out["stockMoves"] = [m.to_dict() for m in self.stock_moves]
        return out


@dataclass
class LogisticsPlanEntry:
    product_id: str
    carry_from_a: int = 0
    carry_from_b: int = 0

    @property
    def total(self) -> int:
        return self.carry_from_a + self.carry_from_b

    @classmethod
    def from_dict(cls, d: Any) -> "LogisticsPlanEntry":
        d = _require_dict(d, "LogisticsPlanEntry")
        return cls(
            product_id=_text(_pick(d, "productId", "product_id", default="")),
            carry_from_a=to_qty(_pick(d, "carryFromA", "carry_from_a", "carryDeepak", default=0)),
            carry_from_b=to_qty(_pick(d, "carryFromB", "carry_from_b", "carryDimple", default=0)),
        )

    def to_dict(self) -> dict:
        return {"productId": self.product_id, "carryFromA": self.carry_from_a, "carryFromB": self.carry_from_b}


@dataclass
class ManualNeed:
    product_id: str
    total_required: int = 0
    note: str = ""
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=iso_now)

    @classmethod
    def from_dict(cls, d: Any) -> "ManualNeed":
        d = _require_dict(d, "ManualNeed")
        return cls(
            id=_text(_pick(d, "id", default="")) or new_id(),
            product_id=_text(_pick(d, "productId", "product_id", default="")),
            total_required=to_qty(_pick(d, "totalRequired", "total_required", default=0)),
            note=_text(_pick(d, "note", default="")),
            created_at=_text(_pick(d, "createdAt", "created_at", default="")) or iso_now(),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "totalRequired": self.total_required,
            "note": self.note,
            "createdAt": self.created_at,
        }


@dataclass
class UnpaidWriting:
    title: str
    amount: float = 0.0
    description: str = ""
    category: str = "Unpaid"
    related_order_id: Optional[str] = None
    status: str = "UNPAID"  # UNPAID / PAID
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=iso_now)

    @classmethod
    def from_dict(cls, d: Any) -> "UnpaidWriting":
        d = _require_dict(d, "UnpaidWriting")
        status = _text(_pick(d, "status", default="UNPAID")).upper()
        return cls(
            id=_text(_pick(d, "id", default="")) or new_id(),
            title=_text(_pick(d, "title", default="")),
            description=_text(_pick(d, "description", default="")),
            amount=to_money(_pick(d, "amount", default=0)),
            category=_text(_pick(d, "category", default="Unpaid")),
            related_order_id=_optional_text(_pick(d, "relatedOrderId", "related_order_id")),
            created_at=_text(_pick(d, "createdAt", "created_at", default="")) or iso_now(),
            status="PAID" if status == "PAID" else "UNPAID",
        )

    def to_dict(self) -> dict:
        out = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "amount": self.amount,
            "category": self.category,
            "createdAt": self.created_at,
            "status": self.status,
        }
        if self.related_order_id:
            out["relatedOrderId"] = self.related_order_id
        return out


@dataclass
class PartialPayment:
    order_id: str
    amount: float
    method: str = "CASH"  # CASH / ONLINE
    reference: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=iso_now)

    @classmethod
    def from_dict(cls, d: Any) -> "PartialPayment":
        d = _require_dict(d, "PartialPayment")
        method = _text(_pick(d, "method", default="CASH")).upper()
        return cls(
            id=_text(_pick(d, "id", default="")) or new_id(),
            order_id=_text(_pick(d, "orderId", "order_id", default="")),
            amount=to_money(_pick(d, "amount", default=0)),
            method="ONLINE" if method == "ONLINE" else "CASH",
            reference=_optional_text(_pick(d, "reference")),
            created_at=_text(_pick(d, "createdAt", "created_at", default="")) or iso_now(),
        )

    def to_dict(self) -> dict:
        out = {
            "id": self.id,
            "orderId": self.order_id,
            "amount": self.amount,
            "method": self.method,
            "createdAt": self.created_at,
        }
        if self.reference:
            out["reference"] = self.reference
        return out


@dataclass
class Category:
    id: str
    name: str
    color: Optional[str] = None

    @property
    def is_unpaid(self) -> bool:
        return self.name.strip().lower() == "unpaid"

    @classmethod
    def from_dict(cls, d: Any) -> "Category":
        d = _require_dict(d, "Category")
        cid = _pick(d, "id")
        if cid is None:
            raise ValueError("Category id is required.")
        return cls(id=str(cid), name=_text(_pick(d, "name", default="")), color=_optional_text(_pick(d, "color")))

    def to_dict(self) -> dict:
        out = {"id": self.id, "name": self.name}
        if self.color:
            out["color"] = self.color
        return out


@dataclass
class OrderCategoryLink:
    order_id: str
    category_id: str

    @classmethod
    def from_dict(cls, d: Any) -> "OrderCategoryLink":
        d = _require_dict(d, "OrderCategoryLink")
        return cls(
            order_id=_text(_pick(d, "orderId", "order_id", default="")),
            category_id=_text(_pick(d, "categoryId", "category_id", default="")),
        )

    def to_dict(self) -> dict:
        return {"orderId": self.order_id, "categoryId": self.category_id}


@dataclass
class Expense:
    description: str
    amount: float
    category: Optional[str] = None
    id: str = field(default_factory=new_id)
    date: str = field(default_factory=iso_now)

    @classmethod
    def from_dict(cls, d: Any) -> "Expense":
        d = _require_dict(d, "Expense")
        return cls(
            id=_text(_pick(d, "id", default="")) or new_id(),
            description=_text(_pick(d, "description", default="")),
            amount=to_money(_pick(d, "amount", default=0)),
            date=_text(_pick(d, "date", default="")) or iso_now(),
            category=_optional_text(_pick(d, "category")),
        )

    def to_dict(self) -> dict:
        out = {"id": self.id, "description": self.description, "amount": self.amount, "date": self.date}
        if self.category:
            out["category"] = self.category
        return out
