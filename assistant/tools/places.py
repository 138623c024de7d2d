"""Places, location and web search tools."""

from typing import Any

from pydantic import BaseModel, Field

from assistant.services.places import GeolocationService, PlacesService, PlaceType, SearchService
from assistant.tools.base import ToolContext, ToolDefinition, ToolInput


class LatLng(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class SearchPlacesInput(ToolInput):
    """Input schema for place search."""

    query: str = Field(..., min_length=1, description="What to look for, e.g. 'ramen near Shibuya'")
    type: PlaceType | None = None
    radius: int | None = Field(None, ge=100, le=50000, description="Search radius in meters")
    location: LatLng | None = Field(None, description="Center of the search; use getLocation when unknown")
    language: str | None = None
    open_now: bool | None = None


class GetLocationInput(ToolInput):
    pass


class SearchWebInput(ToolInput):
    query: str = Field(..., min_length=1)
    num: int | None = Field(None, ge=1, le=10, description="Number of results")


def create_search_places_tool(places: PlacesService) -> ToolDefinition:
    async def search_places(params: SearchPlacesInput, context: ToolContext) -> dict[str, Any]:
        return await places.search_places(
            context.google,
            params.query,
            place_type=params.type,
            radius=params.radius,
            location=(params.location.lat, params.location.lng) if params.location else None,
            language=params.language,
            open_now=params.open_now,
        )

    return ToolDefinition(
        name="searchPlaces",
        description="Search for places using Google Places with optional type, radius and location filters.",
        input_schema_class=SearchPlacesInput,
        handler=search_places,
    )


def create_get_location_tool(geolocation: GeolocationService) -> ToolDefinition:
    async def get_location(params: GetLocationInput, context: ToolContext) -> dict[str, Any]:
        return await geolocation.get_location(context.google)

    return ToolDefinition(
        name="getLocation",
        description="Get the user's approximate current location (latitude, longitude and accuracy in meters).",
        input_schema_class=GetLocationInput,
        handler=get_location,
    )


def create_search_web_tool(search: SearchService) -> ToolDefinition:
    async def search_web(params: SearchWebInput, context: ToolContext) -> dict[str, Any]:
        return await search.search_web(context.google, params.query, num=params.num or 10)

    return ToolDefinition(
        name="searchWeb",
        description="Search the web and return result titles, links and snippets.",
        input_schema_class=SearchWebInput,
        handler=search_web,
    )
