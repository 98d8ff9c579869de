"""
Per-resource service classes derived from the Abby public OpenAPI specification.

One class per API tag, one coroutine per operation. Every service receives the
HTTPClient it talks through in its constructor; there is no shared default
client.
"""

from typing import Any

from abby_sdk.core.client import HTTPClient, Response
from abby_sdk.core.errors import ValidationError
from abby_sdk.core.types import (
    Billing,
    Contact,
    Me,
    Opportunity,
    Organization,
    PaginatedResponse,
)


class Service:
    """Base class holding the injected client."""

    def __init__(self, client: HTTPClient):
        self._client = client

    @staticmethod
    def _json(response: Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ValidationError(f"Invalid JSON response: {e}") from e


# =============================================================================
# Company
# =============================================================================


class CompanyService(Service):
    """Current company information."""

    async def get_me(self) -> Me:
        """Get the company and user the API key belongs to."""
        response = await self._client.get("/me")
        return Me.from_dict(self._json(response))


# =============================================================================
# Contacts & Organizations
# =============================================================================


class ContactService(Service):
    """Create and manage contacts."""

    async def retrieve_contacts(
        self,
        page: int = 1,
        limit: int = 10,
        archived: bool | None = None,
        search: str | None = None,
    ) -> PaginatedResponse[Contact]:
        """List contacts, one page at a time."""
        response = await self._client.get(
            "/contacts",
            {"page": page, "limit": limit, "archived": archived, "search": search},
        )
        return PaginatedResponse.from_dict(self._json(response), Contact.from_dict)

    async def retrieve_contact(self, contact_id: str) -> Contact:
        response = await self._client.get(f"/contact/{contact_id}")
        return Contact.from_dict(self._json(response))

    async def create_contact(self, data: dict[str, Any]) -> Contact:
        response = await self._client.post("/contact", data)
        return Contact.from_dict(self._json(response))

    async def update_contact(self, contact_id: str, data: dict[str, Any]) -> Contact:
        response = await self._client.patch(f"/contact/{contact_id}", data)
        return Contact.from_dict(self._json(response))

    async def archive_contact(self, contact_id: str) -> None:
        await self._client.patch(f"/contact/{contact_id}/archive")


class OrganizationService(Service):
    """Create and manage organizations."""

    async def retrieve_organizations(
        self,
        page: int = 1,
        limit: int = 10,
        archived: bool | None = None,
        search: str | None = None,
    ) -> PaginatedResponse[Organization]:
        """List organizations, one page at a time."""
        response = await self._client.get(
            "/organizations",
            {"page": page, "limit": limit, "archived": archived, "search": search},
        )
        return PaginatedResponse.from_dict(self._json(response), Organization.from_dict)

    async def retrieve_organization(self, organization_id: str) -> Organization:
        response = await self._client.get(f"/organization/{organization_id}")
        return Organization.from_dict(self._json(response))

    async def create_organization(self, data: dict[str, Any]) -> Organization:
        response = await self._client.post("/organization", data)
        return Organization.from_dict(self._json(response))

    async def update_organization(self, organization_id: str, data: dict[str, Any]) -> Organization:
        response = await self._client.patch(f"/organization/{organization_id}", data)
        return Organization.from_dict(self._json(response))


# =============================================================================
# Billing documents
# =============================================================================


class InvoiceService(Service):
    """Create and manage invoices."""

    async def get_invoice(self, invoice_id: str) -> Billing:
        response = await self._client.get(f"/v2/invoice/{invoice_id}")
        return Billing.from_dict(self._json(response))

    async def create_invoice_for_customer(self, customer_id: str) -> Billing:
        """Create an empty draft invoice for a contact or organization."""
        response = await self._client.post(f"/v2/invoice/{customer_id}")
        return Billing.from_dict(self._json(response))

    async def update_invoice(self, invoice_id: str, data: dict[str, Any]) -> Billing:
        response = await self._client.patch(f"/v2/invoice/{invoice_id}", data)
        return Billing.from_dict(self._json(response))

    async def finalize_invoice(self, invoice_id: str) -> Billing:
        response = await self._client.put(f"/v2/invoice/{invoice_id}/finalize")
        return Billing.from_dict(self._json(response))


class EstimateService(Service):
    """Create and manage estimates (quotes)."""

    async def get_estimate(self, estimate_id: str) -> Billing:
        response = await self._client.get(f"/v2/estimate/{estimate_id}")
        return Billing.from_dict(self._json(response))

    async def create_estimate_for_customer(self, customer_id: str) -> Billing:
        response = await self._client.post(f"/v2/estimate/{customer_id}")
        return Billing.from_dict(self._json(response))

    async def update_estimate(self, estimate_id: str, data: dict[str, Any]) -> Billing:
        response = await self._client.patch(f"/v2/estimate/{estimate_id}", data)
        return Billing.from_dict(self._json(response))

    async def finalize_estimate(self, estimate_id: str) -> Billing:
        response = await self._client.put(f"/v2/estimate/{estimate_id}/finalize")
        return Billing.from_dict(self._json(response))


class AdvanceService(Service):
    """Advance (deposit) invoices."""

    async def get_advance(self, advance_id: str) -> Billing:
        response = await self._client.get(f"/v2/advance/{advance_id}")
        return Billing.from_dict(self._json(response))

    async def create_advance_for_customer(self, customer_id: str) -> Billing:
        response = await self._client.post(f"/v2/advance/{customer_id}")
        return Billing.from_dict(self._json(response))


class AssetService(Service):
    """Assets (credit notes)."""

    async def get_asset(self, asset_id: str) -> Billing:
        response = await self._client.get(f"/v2/asset/{asset_id}")
        return Billing.from_dict(self._json(response))

    async def create_asset_from_invoice(self, invoice_id: str) -> Billing:
        response = await self._client.post(f"/v2/asset/invoice/{invoice_id}")
        return Billing.from_dict(self._json(response))


class BillingService(Service):
    """Operations shared by every billing document."""

    async def retrieve_billings(
        self,
        page: int = 1,
        limit: int = 10,
        type: str | None = None,
    ) -> PaginatedResponse[Billing]:
        response = await self._client.get("/v2/billings", {"page": page, "limit": limit, "type": type})
        return PaginatedResponse.from_dict(self._json(response), Billing.from_dict)

    async def download_pdf(self, billing_id: str) -> bytes:
        """Download the rendered PDF of a finalized document."""
        response = await self._client.get(
            f"/v2/billing/{billing_id}/download",
            headers={"Accept": "application/pdf"},
        )
        return response.body

    async def send_by_email(self, billing_id: str, data: dict[str, Any]) -> None:
        await self._client.post(f"/v2/billing/{billing_id}/send", data)


class CustomerPortalService(Service):
    """Customer-facing portal links."""

    async def get_customer_portal_link(self, customer_id: str) -> str:
        response = await self._client.get(f"/customer-portal/{customer_id}/link")
        data = self._json(response)
        if not isinstance(data, dict) or not isinstance(data.get("url"), str):
            raise ValidationError("CustomerPortalLink: missing required field 'url'")
        return data["url"]


class OpportunityService(Service):
    """Create and manage opportunities (deals)."""

    async def retrieve_opportunities(self, page: int = 1, limit: int = 10) -> PaginatedResponse[Opportunity]:
        response = await self._client.get("/opportunities", {"page": page, "limit": limit})
        return PaginatedResponse.from_dict(self._json(response), Opportunity.from_dict)

    async def get_opportunity(self, opportunity_id: str) -> Opportunity:
        response = await self._client.get(f"/opportunity/{opportunity_id}")
        return Opportunity.from_dict(self._json(response))

    async def create_opportunity(self, data: dict[str, Any]) -> Opportunity:
        response = await self._client.post("/opportunity", data)
        return Opportunity.from_dict(self._json(response))
