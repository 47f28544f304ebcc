"""
Draft and patch shapes for every entity the back office writes.

A draft is a complete not-yet-persisted record; a patch names only the fields
to change (everything else stays ``UNSET``). ``validated()`` turns either into
the row dict handed to the store, raising ``ValidationError`` first.
"""
import dataclasses
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import RegexValidator, validate_email

from .errors import ValidationError
from .models import ORDER_STATUSES
from .utilities import _as_bool, _as_list


class _Unset:
    def __repr__(self):
        return "UNSET"

    def __bool__(self):
        return False


UNSET = _Unset()


# -----------------------
# Field rules
# -----------------------
def _required_text(field_name):
    def rule(value):
        text = str(value).strip() if value is not None else ""
        if not text:
            raise ValidationError(f"Field '{field_name}' is required.", field=field_name)
        return text
    return rule


def _optional_text(value):
    text = str(value).strip() if value is not None else ""
    return text or None


def _plain_text(value):
    return "" if value is None else str(value)


def _trimmed_text(value):
    return "" if value is None else str(value).strip()


_validate_slug = RegexValidator(r"^[a-z0-9]+(?:-[a-z0-9]+)*\Z")


def _slug(value):
    slug = _required_text("slug")(value)
    try:
        _validate_slug(slug)
    except DjangoValidationError:
        raise ValidationError(
            "Field 'slug' may only contain lowercase letters, numbers and single hyphens.",
            field="slug",
        ) from None
    return slug


def _decimal(field_name, optional=False, max_digits=10, decimal_places=2):
    def rule(value):
        if value is None or (isinstance(value, str) and not value.strip()):
            if optional:
                return None
            raise ValidationError(f"Field '{field_name}' is required.", field=field_name)
        if isinstance(value, bool):
            raise ValidationError(f"Field '{field_name}' must be a number.", field=field_name)
        try:
            number = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f"Field '{field_name}' must be a number.", field=field_name) from None
        if not number.is_finite():
            raise ValidationError(f"Field '{field_name}' must be a number.", field=field_name)
        if number < 0:
            raise ValidationError(f"Field '{field_name}' cannot be negative.", field=field_name)
        _sign, digits, exponent = number.normalize().as_tuple()
        if -exponent > decimal_places:
            raise ValidationError(
                f"Field '{field_name}' allows at most {decimal_places} decimal places.", field=field_name,
            )
        if len(digits) + exponent > max_digits - decimal_places:
            raise ValidationError(f"Field '{field_name}' is too large.", field=field_name)
        return number
    return rule


# largest value a PositiveIntegerField column holds on every backend
MAX_COUNT = 2147483647


def _count(field_name, minimum=0, maximum=MAX_COUNT):
    def rule(value):
        if isinstance(value, bool):
            raise ValidationError(f"Field '{field_name}' must be a whole number.", field=field_name)
        try:
            number = int(str(value).strip())
        except (TypeError, ValueError):
            raise ValidationError(f"Field '{field_name}' must be a whole number.", field=field_name) from None
        if number < minimum or number > maximum:
            bounds = f"between {minimum} and {maximum}"
            raise ValidationError(f"Field '{field_name}' must be {bounds}.", field=field_name)
        return number
    return rule


def _flag(field_name):
    def rule(value):
        if not isinstance(value, bool):
            raise ValidationError(f"Field '{field_name}' must be true or false.", field=field_name)
        return value
    return rule


def _tokens(field_name):
    def rule(value):
        if value is None:
            return []
        if isinstance(value, str) or not isinstance(value, (list, tuple)):
            raise ValidationError(f"Field '{field_name}' must be a list.", field=field_name)
        return [str(v).strip() for v in value if str(v).strip()]
    return rule


def _email(field_name):
    def rule(value):
        email = _required_text(field_name)(value).lower()
        try:
            validate_email(email)
        except DjangoValidationError:
            raise ValidationError(f"'{email}' is not a valid email address.", field=field_name) from None
        return email
    return rule


normalize_email = _email("email")


def validate_status(value):
    status = _trimmed_text(value).lower()
    if status not in ORDER_STATUSES:
        raise ValidationError(
            f"Unknown order status '{value}'. Expected one of: {', '.join(ORDER_STATUSES)}.",
            field="status",
        )
    return status


def _order_items(value):
    if not isinstance(value, (list, tuple)) or not value:
        raise ValidationError("An order needs at least one item.", field="items")
    items = []
    for raw in value:
        item = raw.as_dict() if isinstance(raw, OrderItem) else dict(raw)
        items.append({
            "name": _required_text("items.name")(item.get("name")),
            "size": _optional_text(item.get("size")),
            "quantity": _count("items.quantity", minimum=1)(item.get("quantity", 1)),
            "price": str(_decimal("items.price")(item.get("price"))),
        })
    return items


# -----------------------
# Bases
# -----------------------
class _Draft:
    rules: ClassVar[dict] = {}
    parsers: ClassVar[dict] = {}

    def validated(self):
        return {name: rule(getattr(self, name)) for name, rule in self.rules.items()}

    @classmethod
    def from_payload(cls, data):
        """Build from a request payload; form strings are coerced first."""
        kwargs = {}
        for f in dataclasses.fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            parse = cls.parsers.get(f.name)
            if parse is _as_list and hasattr(data, "getlist"):
                # repeated form keys (sizes=S&sizes=M); a lone value may still be comma separated
                values = [v for v in data.getlist(f.name) if isinstance(v, str)]
                if len(values) > 1:
                    value = values
            kwargs[f.name] = parse(value) if parse else value
        return cls(**kwargs)

    @classmethod
    def from_row(cls, row):
        names = {f.name for f in dataclasses.fields(cls)}
        return cls(**{k: v for k, v in row.items() if k in names})


class _Patch(_Draft):
    def validated(self):
        row = {}
        for name, rule in self.rules.items():
            value = getattr(self, name)
            if value is not UNSET:
                row[name] = rule(value)
        if not row:
            raise ValidationError("Nothing to update.")
        return row

    def is_empty(self):
        return all(getattr(self, f.name) is UNSET for f in dataclasses.fields(self))


# -----------------------
# Products
# -----------------------
_PRODUCT_RULES = {
    "name": _required_text("name"),
    "slug": _slug,
    "description": _plain_text,
    "price": _decimal("price"),
    "old_price": _decimal("old_price", optional=True),
    "category_name": _trimmed_text,
    "images": _tokens("images"),
    "sizes": _tokens("sizes"),
    "colors": _tokens("colors"),
    "features": _tokens("features"),
    "stock": _count("stock"),
    "featured": _flag("featured"),
    "bestseller": _flag("bestseller"),
    "active": _flag("active"),
    "tag": _optional_text,
}

_PRODUCT_PARSERS = {
    "images": _as_list,
    "sizes": _as_list,
    "colors": _as_list,
    "features": _as_list,
    "featured": _as_bool,
    "bestseller": _as_bool,
    "active": lambda v: _as_bool(v, default=True),
    "old_price": lambda v: v if v not in ("", None) else None,
}


@dataclass
class ProductDraft(_Draft):
    name: str = ""
    slug: str = ""
    price: Any = Decimal("0")
    description: str = ""
    old_price: Optional[Any] = None
    category_name: str = ""
    images: list = field(default_factory=list)
    sizes: list = field(default_factory=list)
    colors: list = field(default_factory=list)
    features: list = field(default_factory=list)
    stock: int = 0
    featured: bool = False
    bestseller: bool = False
    active: bool = True
    tag: Optional[str] = None

    rules: ClassVar[dict] = _PRODUCT_RULES
    parsers: ClassVar[dict] = _PRODUCT_PARSERS


@dataclass
class ProductPatch(_Patch):
    name: Any = UNSET
    slug: Any = UNSET
    price: Any = UNSET
    description: Any = UNSET
    old_price: Any = UNSET
    category_name: Any = UNSET
    images: Any = UNSET
    sizes: Any = UNSET
    colors: Any = UNSET
    features: Any = UNSET
    stock: Any = UNSET
    featured: Any = UNSET
    bestseller: Any = UNSET
    active: Any = UNSET
    tag: Any = UNSET

    rules: ClassVar[dict] = _PRODUCT_RULES
    parsers: ClassVar[dict] = _PRODUCT_PARSERS

    @classmethod
    def from_draft(cls, draft):
        """Full patch carrying every field of an edited working draft."""
        return cls(**{f.name: getattr(draft, f.name) for f in dataclasses.fields(ProductDraft)})


# -----------------------
# Categories
# -----------------------
_CATEGORY_RULES = {
    "name": _required_text("name"),
    "slug": _slug,
    "description": _optional_text,
}


@dataclass
class CategoryDraft(_Draft):
    name: str = ""
    slug: str = ""
    description: Optional[str] = None

    rules: ClassVar[dict] = _CATEGORY_RULES


@dataclass
class CategoryPatch(_Patch):
    name: Any = UNSET
    slug: Any = UNSET
    description: Any = UNSET

    rules: ClassVar[dict] = _CATEGORY_RULES


# -----------------------
# Testimonials
# -----------------------
_TESTIMONIAL_RULES = {
    "name": _required_text("name"),
    "comment": _required_text("comment"),
    "rating": _count("rating", minimum=1, maximum=5),
    "image": _optional_text,
    "active": _flag("active"),
}

_TESTIMONIAL_PARSERS = {
    "active": lambda v: _as_bool(v, default=True),
}


@dataclass
class TestimonialDraft(_Draft):
    __test__ = False

    name: str = ""
    comment: str = ""
    rating: int = 5
    image: Optional[str] = None
    active: bool = True

    rules: ClassVar[dict] = _TESTIMONIAL_RULES
    parsers: ClassVar[dict] = _TESTIMONIAL_PARSERS


@dataclass
class TestimonialPatch(_Patch):
    __test__ = False

    name: Any = UNSET
    comment: Any = UNSET
    rating: Any = UNSET
    image: Any = UNSET
    active: Any = UNSET

    rules: ClassVar[dict] = _TESTIMONIAL_RULES
    parsers: ClassVar[dict] = _TESTIMONIAL_PARSERS


# -----------------------
# Orders
# -----------------------
@dataclass
class OrderItem:
    name: str
    quantity: int
    price: Any
    size: Optional[str] = None

    def as_dict(self):
        return {"name": self.name, "size": self.size, "quantity": self.quantity, "price": self.price}


@dataclass
class OrderDraft(_Draft):
    customer_name: str = ""
    customer_email: str = ""
    shipping_address: str = ""
    items: list = field(default_factory=list)
    subtotal: Any = Decimal("0")
    shipping_cost: Any = Decimal("0")
    total: Any = Decimal("0")
    customer_phone: Optional[str] = None
    notes: Optional[str] = None
    status: str = "pending"

    rules: ClassVar[dict] = {
        "customer_name": _required_text("customer_name"),
        "customer_email": _email("customer_email"),
        "shipping_address": _required_text("shipping_address"),
        "items": _order_items,
        "subtotal": _decimal("subtotal", max_digits=12),
        "shipping_cost": _decimal("shipping_cost", max_digits=12),
        "total": _decimal("total", max_digits=12),
        "customer_phone": _optional_text,
        "notes": _optional_text,
        "status": validate_status,
    }
