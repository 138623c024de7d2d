"""Contact tools backed by the People API."""

from typing import Any

from pydantic import Field

from assistant.services.contacts import Address, ContactInput, ContactsService, Organization, TypedValue
from assistant.tools.base import ToolContext, ToolDefinition, ToolInput


class ContactFields(ToolInput):
    first_name: str | None = None
    last_name: str | None = None
    emails: list[str] = Field(default_factory=list)
    phones: list[str] = Field(default_factory=list)
    organization: str | None = None
    job_title: str | None = None
    city: str | None = None
    country: str | None = None

    def to_contact(self) -> ContactInput:
        organizations = [Organization(name=self.organization, title=self.job_title)] if self.organization else []
        addresses = [Address(city=self.city, country=self.country)] if self.city or self.country else []
        return ContactInput(
            first_name=self.first_name,
            last_name=self.last_name,
            email_addresses=[TypedValue(value=email) for email in self.emails],
            phone_numbers=[TypedValue(value=phone) for phone in self.phones],
            organizations=organizations,
            addresses=addresses,
        )


class CreateContactInput(ContactFields):
    pass


class UpdateContactInput(ContactFields):
    resource_name: str = Field(..., pattern=r"^people/\S+$", description="Contact resource name, e.g. people/c123")


class SearchContactsInput(ToolInput):
    query: str = Field(..., min_length=1, description="Name, email or phone prefix to search for")


def create_contact_tool(contacts: ContactsService) -> ToolDefinition:
    async def create_contact(params: CreateContactInput, context: ToolContext) -> dict[str, Any]:
        return await contacts.create_contact(context.google, params.to_contact())

    return ToolDefinition(
        name="createContact",
        description="Create a new Google contact.",
        input_schema_class=CreateContactInput,
        handler=create_contact,
    )


def create_update_contact_tool(contacts: ContactsService) -> ToolDefinition:
    async def update_contact(params: UpdateContactInput, context: ToolContext) -> dict[str, Any]:
        return await contacts.update_contact(context.google, params.resource_name, params.to_contact())

    return ToolDefinition(
        name="updateContact",
        description="Update an existing Google contact. Use searchContacts first to find its resourceName.",
        input_schema_class=UpdateContactInput,
        handler=update_contact,
    )


def create_search_contacts_tool(contacts: ContactsService) -> ToolDefinition:
    async def search_contacts(params: SearchContactsInput, context: ToolContext) -> list[dict[str, Any]]:
        return await contacts.search_contacts(context.google, params.query)

    return ToolDefinition(
        name="searchContacts",
        description="Search the user's Google contacts.",
        input_schema_class=SearchContactsInput,
        handler=search_contacts,
    )
