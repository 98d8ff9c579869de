"""
Core types derived from the Abby public OpenAPI specification.

These dataclasses provide type safety and IDE support for API responses.
Regenerate rather than edit when the API document changes.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from abby_sdk.core.errors import ValidationError

T = TypeVar("T")


def _require(data: Any, key: str, model: str) -> Any:
    """Return a required field or raise ValidationError."""
    if not isinstance(data, dict):
        raise ValidationError(f"{model}: expected an object, got {type(data).__name__}")
    if data.get(key) is None:
        raise ValidationError(f"{model}: missing required field '{key}'", details={"field": key})
    return data[key]


# =============================================================================
# Pagination
# =============================================================================


@dataclass
class PaginatedResponse(Generic[T]):
    """Paginated API response (docs + paging counters)."""

    docs: list[T]
    total_docs: int
    limit: int = 10
    page: int = 1
    total_pages: int = 1
    has_next_page: bool = False
    has_prev_page: bool = False

    @property
    def has_more(self) -> bool:
        """Check if there are more results."""
        return self.has_next_page

    @classmethod
    def from_dict(cls, data: dict[str, Any], parser: Callable[[dict[str, Any]], T]) -> "PaginatedResponse[T]":
        """Create from API response dict, parsing each doc with ``parser``."""
        docs = _require(data, "docs", "PaginatedResponse")
        if not isinstance(docs, list):
            raise ValidationError("PaginatedResponse: 'docs' must be a list")
        return cls(
            docs=[parser(item) for item in docs],
            total_docs=data.get("totalDocs", len(docs)),
            limit=data.get("limit", 10),
            page=data.get("page", 1),
            total_pages=data.get("totalPages", 1),
            has_next_page=bool(data.get("hasNextPage", False)),
            has_prev_page=bool(data.get("hasPrevPage", False)),
        )


# =============================================================================
# Company Types
# =============================================================================


@dataclass
class Company:
    """The company owning the API key."""

    id: str
    commercial_name: str | None = None
    siret: str | None = None
    vat_number: str | None = None
    email: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Company":
        """Create from API response dict."""
        return cls(
            id=_require(data, "id", "Company"),
            commercial_name=data.get("commercialName"),
            siret=data.get("siret"),
            vat_number=data.get("vatNumber"),
            email=data.get("email"),
        )


@dataclass
class User:
    """The user the API key was issued to."""

    id: str
    firstname: str = ""
    lastname: str = ""
    email: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.firstname} {self.lastname}".strip()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        """Create from API response dict."""
        return cls(
            id=_require(data, "id", "User"),
            firstname=data.get("firstname") or "",
            lastname=data.get("lastname") or "",
            email=data.get("email"),
        )


@dataclass
class Me:
    """Response of the "who am I" endpoint."""

    company: Company
    user: User

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Me":
        """Create from API response dict."""
        return cls(
            company=Company.from_dict(_require(data, "company", "Me")),
            user=User.from_dict(_require(data, "user", "Me")),
        )


# =============================================================================
# Contact & Organization Types
# =============================================================================


@dataclass
class Contact:
    """A contact (person) in the customer directory."""

    id: str
    firstname: str = ""
    lastname: str = ""
    emails: list[str] = field(default_factory=list)
    phone: str | None = None
    organization_id: str | None = None
    archived: bool = False

    @property
    def fullname(self) -> str:
        return f"{self.firstname} {self.lastname}".strip()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Contact":
        """Create from API response dict."""
        contact_id = _require(data, "id", "Contact")
        organization = data.get("organization")
        return cls(
            id=contact_id,
            firstname=data.get("firstname") or "",
            lastname=data.get("lastname") or "",
            emails=list(data.get("emails") or []),
            phone=data.get("phone"),
            organization_id=organization.get("id") if isinstance(organization, dict) else data.get("organizationId"),
            archived=bool(data.get("archived", False)),
        )


@dataclass
class Organization:
    """A customer organization (company)."""

    id: str
    name: str
    emails: list[str] = field(default_factory=list)
    siret: str | None = None
    vat_number: str | None = None
    archived: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Organization":
        """Create from API response dict."""
        return cls(
            id=_require(data, "id", "Organization"),
            name=data.get("name") or "",
            emails=list(data.get("emails") or []),
            siret=data.get("siret"),
            vat_number=data.get("vatNumber"),
            archived=bool(data.get("archived", False)),
        )


# =============================================================================
# Billing Types
# =============================================================================


@dataclass
class Billing:
    """A billing document: invoice, estimate, advance or asset."""

    id: str
    type: str
    number: str | None = None
    state: str | None = None
    total_amount_with_taxes: int = 0
    currency: str = "EUR"
    customer_id: str | None = None
    emitted_at: str | None = None
    due_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Billing":
        """Create from API response dict."""
        billing_id = _require(data, "id", "Billing")
        customer = data.get("customer")
        return cls(
            id=billing_id,
            type=data.get("type") or "invoice",
            number=data.get("number"),
            state=data.get("state"),
            total_amount_with_taxes=data.get("totalAmountWithTaxes", 0),
            currency=data.get("currency") or "EUR",
            customer_id=customer.get("id") if isinstance(customer, dict) else data.get("customerId"),
            emitted_at=data.get("emittedAt"),
            due_at=data.get("dueAt"),
        )


# =============================================================================
# Opportunity Types
# =============================================================================


@dataclass
class Opportunity:
    """A sales opportunity (deal) tracked in the pipeline."""

    id: str
    name: str
    category_id: str | None = None
    amount: int | None = None
    customer_id: str | None = None
    due_date: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Opportunity":
        """Create from API response dict."""
        return cls(
            id=_require(data, "id", "Opportunity"),
            name=data.get("name") or "",
            category_id=data.get("categoryId"),
            amount=data.get("amount"),
            customer_id=data.get("customerId"),
            due_date=data.get("dueDate"),
        )
