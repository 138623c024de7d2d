"""Google People (contacts) collaborator."""

import asyncio
from typing import Any, Protocol

from pydantic import BaseModel, Field

from assistant.clients.google import GoogleContext, build_service
from assistant.utils.logging import get_logger

logger = get_logger(__name__)

PERSON_FIELDS = "names,emailAddresses,phoneNumbers,organizations,addresses"


class TypedValue(BaseModel):
    value: str
    type: str | None = None


class Organization(BaseModel):
    name: str
    title: str | None = None


class Address(BaseModel):
    street_address: str | None = Field(default=None, serialization_alias="streetAddress")
    city: str | None = None
    region: str | None = None
    postal_code: str | None = Field(default=None, serialization_alias="postalCode")
    country: str | None = None
    type: str | None = None


class ContactInput(BaseModel):
    """Contact fields accepted by create and update."""

    first_name: str | None = None
    last_name: str | None = None
    email_addresses: list[TypedValue] = Field(default_factory=list)
    phone_numbers: list[TypedValue] = Field(default_factory=list)
    organizations: list[Organization] = Field(default_factory=list)
    addresses: list[Address] = Field(default_factory=list)

    def to_person(self) -> dict[str, Any]:
        """People API `Person` body."""
        return {
            "names": [{"givenName": self.first_name, "familyName": self.last_name}],
            "emailAddresses": [e.model_dump(exclude_none=True) for e in self.email_addresses],
            "phoneNumbers": [p.model_dump(exclude_none=True) for p in self.phone_numbers],
            "organizations": [o.model_dump(exclude_none=True) for o in self.organizations],
            "addresses": [a.model_dump(exclude_none=True, by_alias=True) for a in self.addresses],
        }


class ContactsService(Protocol):
    async def create_contact(self, context: GoogleContext, contact: ContactInput) -> dict[str, Any]: ...

    async def update_contact(
        self, context: GoogleContext, resource_name: str, contact: ContactInput
    ) -> dict[str, Any]: ...

    async def search_contacts(self, context: GoogleContext, query: str) -> list[dict[str, Any]]: ...


class GoogleContactsService:
    """Contact operations backed by the People v1 API."""

    async def create_contact(self, context: GoogleContext, contact: ContactInput) -> dict[str, Any]:
        service = build_service("people", "v1", context)
        created = await asyncio.to_thread(service.people().createContact(body=contact.to_person()).execute)
        logger.info(f"Created contact {created.get('resourceName')}")
        return created

    async def update_contact(self, context: GoogleContext, resource_name: str, contact: ContactInput) -> dict[str, Any]:
        service = build_service("people", "v1", context)
        body = {"etag": "*", **contact.to_person()}
        return await asyncio.to_thread(
            service.people()
            .updateContact(resourceName=resource_name, updatePersonFields=PERSON_FIELDS, body=body)
            .execute
        )

    async def search_contacts(self, context: GoogleContext, query: str) -> list[dict[str, Any]]:
        service = build_service("people", "v1", context)
        response = await asyncio.to_thread(
            service.people()
            .searchContacts(query=query, readMask="names,emailAddresses,phoneNumbers", pageSize=30)
            .execute
        )
        return response.get("results", [])
