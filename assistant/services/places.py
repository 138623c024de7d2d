"""Places, geolocation and web search collaborators (API-key authenticated)."""

import asyncio
from enum import StrEnum
from typing import Any, Protocol

import httpx
from googleapiclient.discovery import build

from assistant.clients.google import GoogleContext
from assistant.utils.logging import get_logger

logger = get_logger(__name__)

PLACES_SEARCH_URL = "https://places.googleapis.com/v1/places:searchText"
GEOLOCATION_URL = "https://www.googleapis.com/geolocation/v1/geolocate"

PLACES_FIELD_MASK = ",".join(
    f"places.{name}"
    for name in (
        "id",
        "displayName",
        "formattedAddress",
        "location",
        "rating",
        "userRatingCount",
        "types",
        "photos",
        "nationalPhoneNumber",
        "websiteUri",
        "regularOpeningHours",
        "priceLevel",
        "reviews",
    )
)

DEFAULT_RADIUS_METERS = 5000
MAX_PLACES = 20
MAX_REVIEWS = 3


class PlaceType(StrEnum):
    ACCOUNTING = "accounting"
    AIRPORT = "airport"
    AMUSEMENT_PARK = "amusement_park"
    AQUARIUM = "aquarium"
    ART_GALLERY = "art_gallery"
    ATM = "atm"
    BAKERY = "bakery"
    BANK = "bank"
    BAR = "bar"
    BEAUTY_SALON = "beauty_salon"
    BICYCLE_STORE = "bicycle_store"
    BOOK_STORE = "book_store"
    BOWLING_ALLEY = "bowling_alley"
    BUS_STATION = "bus_station"
    CAFE = "cafe"
    CAMPGROUND = "campground"
    CAR_DEALER = "car_dealer"
    CAR_RENTAL = "car_rental"
    CAR_REPAIR = "car_repair"
    CAR_WASH = "car_wash"
    CASINO = "casino"
    CEMETERY = "cemetery"
    CHURCH = "church"
    CITY_HALL = "city_hall"
    CLOTHING_STORE = "clothing_store"
    CONVENIENCE_STORE = "convenience_store"
    COURTHOUSE = "courthouse"
    DENTIST = "dentist"
    DEPARTMENT_STORE = "department_store"
    DOCTOR = "doctor"
    DRUGSTORE = "drugstore"
    ELECTRICIAN = "electrician"
    ELECTRONICS_STORE = "electronics_store"
    EMBASSY = "embassy"
    FIRE_STATION = "fire_station"
    FLORIST = "florist"
    FUNERAL_HOME = "funeral_home"
    FURNITURE_STORE = "furniture_store"
    GAS_STATION = "gas_station"
    GYM = "gym"
    HAIR_CARE = "hair_care"
    HARDWARE_STORE = "hardware_store"
    HINDU_TEMPLE = "hindu_temple"
    HOME_GOODS_STORE = "home_goods_store"
    HOSPITAL = "hospital"
    INSURANCE_AGENCY = "insurance_agency"
    JEWELRY_STORE = "jewelry_store"
    LAUNDRY = "laundry"
    LAWYER = "lawyer"
    LIBRARY = "library"
    LIGHT_RAIL_STATION = "light_rail_station"
    LIQUOR_STORE = "liquor_store"
    LOCAL_GOVERNMENT_OFFICE = "local_government_office"
    LOCKSMITH = "locksmith"
    LODGING = "lodging"
    MEAL_DELIVERY = "meal_delivery"
    MEAL_TAKEAWAY = "meal_takeaway"
    MOSQUE = "mosque"
    MOVIE_RENTAL = "movie_rental"
    MOVIE_THEATER = "movie_theater"
    MOVING_COMPANY = "moving_company"
    MUSEUM = "museum"
    NIGHT_CLUB = "night_club"
    PAINTER = "painter"
    PARK = "park"
    PARKING = "parking"
    PET_STORE = "pet_store"
    PHARMACY = "pharmacy"
    PHYSIOTHERAPIST = "physiotherapist"
    PLUMBER = "plumber"
    POLICE = "police"
    POST_OFFICE = "post_office"
    PRIMARY_SCHOOL = "primary_school"
    REAL_ESTATE_AGENCY = "real_estate_agency"
    RESTAURANT = "restaurant"
    ROOFING_CONTRACTOR = "roofing_contractor"
    RV_PARK = "rv_park"
    SCHOOL = "school"
    SECONDARY_SCHOOL = "secondary_school"
    SHOE_STORE = "shoe_store"
    SHOPPING_MALL = "shopping_mall"
    SPA = "spa"
    STADIUM = "stadium"
    STORAGE = "storage"
    STORE = "store"
    SUBWAY_STATION = "subway_station"
    SUPERMARKET = "supermarket"
    SYNAGOGUE = "synagogue"
    TAXI_STAND = "taxi_stand"
    TOURIST_ATTRACTION = "tourist_attraction"
    TRAIN_STATION = "train_station"
    TRANSIT_STATION = "transit_station"
    TRAVEL_AGENCY = "travel_agency"
    UNIVERSITY = "university"
    VETERINARY_CARE = "veterinary_care"
    ZOO = "zoo"


class PlacesService(Protocol):
    async def search_places(
        self,
        context: GoogleContext,
        query: str,
        place_type: PlaceType | None = None,
        radius: int | None = None,
        location: tuple[float, float] | None = None,
        language: str | None = None,
        open_now: bool | None = None,
    ) -> dict[str, Any]: ...


class GeolocationService(Protocol):
    async def get_location(self, context: GoogleContext) -> dict[str, Any]: ...


class SearchService(Protocol):
    async def search_web(self, context: GoogleContext, query: str, num: int = 10) -> dict[str, Any]: ...


def build_places_request(
    query: str,
    place_type: PlaceType | None = None,
    radius: int | None = None,
    location: tuple[float, float] | None = None,
    language: str | None = None,
    open_now: bool | None = None,
) -> dict[str, Any]:
    """Body of a Places API v1 searchText request."""
    body: dict[str, Any] = {"textQuery": query, "languageCode": language or "en", "maxResultCount": MAX_PLACES}
    if place_type:
        body["includedType"] = place_type.value
    if open_now is not None:
        body["openNow"] = open_now
    if location:
        lat, lng = location
        body["locationBias"] = {
            "circle": {"center": {"latitude": lat, "longitude": lng}, "radius": float(radius or DEFAULT_RADIUS_METERS)}
        }
    return body


def summarize_place(place: dict[str, Any]) -> dict[str, Any]:
    """Flatten a Places API place into the shape shown to the model and the UI."""
    return {
        "name": place.get("displayName", {}).get("text") or place.get("id"),
        "address": place.get("formattedAddress"),
        "location": place.get("location"),
        "rating": place.get("rating"),
        "totalRatings": place.get("userRatingCount"),
        "placeId": place.get("id"),
        "types": place.get("types", []),
        "photos": [photo.get("name") for photo in place.get("photos", [])],
        "phone": place.get("nationalPhoneNumber"),
        "website": place.get("websiteUri"),
        "openingHours": place.get("regularOpeningHours", {}).get("weekdayDescriptions"),
        "priceLevel": place.get("priceLevel"),
        "reviews": [
            {
                "author": review.get("authorAttribution", {}).get("displayName", "Anonymous"),
                "rating": review.get("rating"),
                "text": review.get("text", {}).get("text", ""),
                "time": review.get("relativePublishTimeDescription"),
            }
            for review in place.get("reviews", [])[:MAX_REVIEWS]
        ],
    }


class GooglePlacesService:
    """Text search against the Places API v1."""

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout

    async def search_places(
        self,
        context: GoogleContext,
        query: str,
        place_type: PlaceType | None = None,
        radius: int | None = None,
        location: tuple[float, float] | None = None,
        language: str | None = None,
        open_now: bool | None = None,
    ) -> dict[str, Any]:
        body = build_places_request(query, place_type, radius, location, language, open_now)
        headers = {"X-Goog-Api-Key": context.require_api_key(), "X-Goog-FieldMask": PLACES_FIELD_MASK}

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(PLACES_SEARCH_URL, json=body, headers=headers)
            response.raise_for_status()

        places = response.json().get("places", [])
        logger.debug(f"Places search for '{query}' returned {len(places)} results")
        return {"places": [summarize_place(p) for p in places], "total": len(places)}


class GoogleGeolocationService:
    """Approximate device location from the Geolocation API (IP based)."""

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout

    async def get_location(self, context: GoogleContext) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                GEOLOCATION_URL, params={"key": context.require_api_key()}, json={"considerIp": True}
            )
            response.raise_for_status()
        return response.json()


class GoogleSearchService:
    """Web search through the Custom Search JSON API."""

    async def search_web(self, context: GoogleContext, query: str, num: int = 10) -> dict[str, Any]:
        service = build("customsearch", "v1", developerKey=context.require_api_key(), cache_discovery=False)
        response = await asyncio.to_thread(
            service.cse().list(q=query, num=num, cx=context.search_engine_id).execute
        )

        items = response.get("items", [])
        return {
            "items": [
                {
                    "title": item.get("title"),
                    "link": item.get("link"),
                    "snippet": item.get("snippet"),
                    "content": item.get("htmlSnippet"),
                }
                for item in items
            ]
        }
