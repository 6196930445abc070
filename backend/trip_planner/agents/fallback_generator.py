"""
Rule-based itinerary synthesis used when the generative backend is absent,
fails, or returns nothing usable.

Everything here is a pure function of the TripRequest: the same request always
yields the same days, activities, times and costs.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import timedelta

from trip_planner.models.itinerary import Accommodation, Activity, DayItinerary, GeneratedItinerary
from trip_planner.models.trip import TripRequest
from trip_planner.utils.location_validator import is_valid_location, strip_vague_phrases

# Share of the total budget given to first-night accommodation, spread over the nights
ACCOMMODATION_BUDGET_SHARE = 0.3
ACCOMMODATION_ADDRESS = "{destination} Central Business District"
GENERIC_AIRPORT = "{destination} International Airport"

# Stands in for a destination (and origin) with nothing concrete left in it
DEFAULT_PLACE = "Capital"

DAY_ONE_SLOTS = ("14:00", "18:30")
DAY_SLOTS = ("09:30", "14:00")


@dataclass(frozen=True)
class TransportTemplate:
    title: str
    location: str
    time: str
    duration: int
    cost_ratio: float
    description: str


@dataclass(frozen=True)
class ActivityTemplate:
    type: str
    duration: int
    cost_ratio: float
    variants: tuple[tuple[str, str], ...]  # (title, location)
    description: str
    tips: tuple[str, ...] = ()


TRANSPORT_TEMPLATES: dict[str, TransportTemplate] = {
    "flight": TransportTemplate(
        title="Flight from {origin} to {destination}",
        location="{arrival_airport}",
        time="08:00",
        duration=240,
        cost_ratio=0.25,
        description="Fly to {destination}; allow time for check-in and immigration.",
    ),
    "train": TransportTemplate(
        title="High-speed train from {origin} to {destination}",
        location="{destination} Railway Station",
        time="08:30",
        duration=300,
        cost_ratio=0.12,
        description="Take the train to {destination}; book seats in advance.",
    ),
    "car": TransportTemplate(
        title="Self-drive from {origin} to {destination}",
        location="{destination} Visitor Centre",
        time="07:30",
        duration=360,
        cost_ratio=0.08,
        description="Drive to {destination}; plan fuel and rest stops.",
    ),
    "bus": TransportTemplate(
        title="Coach from {origin} to {destination}",
        location="{destination} Coach Station",
        time="08:00",
        duration=420,
        cost_ratio=0.05,
        description="Take a long-distance coach to {destination}.",
    ),
    "mixed": TransportTemplate(
        title="Journey from {origin} to {destination}",
        location="{destination} Central Station",
        time="09:00",
        duration=300,
        cost_ratio=0.15,
        description="Combine rail and local transport to reach {destination}.",
    ),
}

@dataclass(frozen=True)
class DestinationProfile:
    """Real arrival airport and landmark variants for a well-known destination."""

    aliases: tuple[str, ...]
    airport: str
    landmarks: dict[str, tuple[tuple[str, str], ...]]  # template key -> (title, location)


# Every landmark location here is also in the fallback coordinate table.
# Matched by alias containment, in order.
DESTINATION_PROFILES: tuple[DestinationProfile, ...] = (
    DestinationProfile(
        aliases=("london", "伦敦"),
        airport="Heathrow Airport",
        landmarks={
            "food": (("Dinner at The Wolseley", "The Wolseley"), ("Market food at Covent Garden", "Covent Garden")),
            "shopping": (("Shopping on Oxford Street", "Oxford Street"), ("Regent Street boutiques", "Regent Street")),
            "culture": (("British Museum highlights", "British Museum"), ("Changing of the Guard", "Buckingham Palace")),
            "art": (("Trafalgar Square and the National Gallery", "Trafalgar Square"),),
            "nature": (("Walk along the River Thames", "River Thames"),),
            "nightlife": (("Evening at Piccadilly Circus", "Piccadilly Circus"), ("Night flight on the London Eye", "London Eye")),
            "photography": (("Tower Bridge photo walk", "Tower Bridge"), ("Big Ben at golden hour", "Big Ben")),
        },
    ),
    DestinationProfile(
        aliases=("paris", "巴黎"),
        airport="Charles de Gaulle Airport",
        landmarks={
            "culture": (("Eiffel Tower summit", "Eiffel Tower"), ("Arc de Triomphe and the Champs-Elysees", "Arc de Triomphe")),
            "art": (("Louvre masterpieces", "Louvre Museum"),),
            "photography": (("Eiffel Tower at sunset", "Eiffel Tower"),),
        },
    ),
    DestinationProfile(
        aliases=("tokyo", "东京", "japan", "日本"),
        airport="Haneda Airport",
        landmarks={
            "food": (("Fresh sushi at Tsukiji", "Tsukiji Outer Market"),),
            "shopping": (("Shopping in Ginza", "Ginza"),),
            "culture": (("Senso-ji temple visit", "Senso-ji"),),
            "nightlife": (("Tokyo Tower night view", "Tokyo Tower"),),
            "photography": (("Shibuya Crossing photo stop", "Shibuya Crossing"),),
        },
    ),
    DestinationProfile(
        aliases=("sanya", "三亚"),
        airport="Sanya Phoenix International Airport",
        landmarks={
            "nature": (("Beach day at Yalong Bay", "Yalong Bay"),),
            "outdoor": (("Snorkelling at Yalong Bay", "Yalong Bay"),),
            "culture": (("Tianya Haijiao coastal park", "Tianya Haijiao"),),
            "photography": (("Sunset at Tianya Haijiao", "Tianya Haijiao"),),
        },
    ),
    DestinationProfile(
        aliases=("beijing", "北京"),
        airport="Beijing Capital International Airport",
        landmarks={
            "culture": (("Forbidden City tour", "Forbidden City"), ("Summer Palace gardens", "Summer Palace")),
            "outdoor": (("Hike the Badaling Great Wall", "Badaling Great Wall"),),
            "photography": (("Flag ceremony at Tiananmen Square", "Tiananmen Square"),),
        },
    ),
    DestinationProfile(
        aliases=("shanghai", "上海"),
        airport="Shanghai Pudong International Airport",
        landmarks={
            "culture": (("Yu Garden and the old bazaar", "Yu Garden"),),
            "nightlife": (("Evening on The Bund", "The Bund"),),
            "photography": (("Oriental Pearl Tower skyline", "Oriental Pearl Tower"),),
        },
    ),
    DestinationProfile(
        aliases=("hangzhou", "杭州"),
        airport="Hangzhou Xiaoshan International Airport",
        landmarks={
            "nature": (("Boat ride on West Lake", "West Lake"),),
            "culture": (("Lingyin Temple visit", "Lingyin Temple"),),
        },
    ),
)

ACTIVITY_TEMPLATES: dict[str, ActivityTemplate] = {
    "food": ActivityTemplate(
        type="dining",
        duration=90,
        cost_ratio=0.02,
        variants=(
            ("Local food tasting in {destination}", "{destination} Central Food Market"),
            ("Signature dinner in {destination}", "{destination} Old Town Food Street"),
        ),
        description="Try the dishes {destination} is known for.",
        tips=("Book popular restaurants a day ahead",),
    ),
    "shopping": ActivityTemplate(
        type="shopping",
        duration=180,
        cost_ratio=0.05,
        variants=(
            ("Shopping in {destination}", "{destination} Main Shopping Street"),
            ("Souvenir hunting in {destination}", "{destination} Crafts Market"),
        ),
        description="Pick up local specialities and souvenirs.",
        tips=("Ask about tax refunds for large purchases",),
    ),
    "culture": ActivityTemplate(
        type="sightseeing",
        duration=180,
        cost_ratio=0.01,
        variants=(
            ("{destination} history and culture tour", "{destination} History Museum"),
            ("Old town walk in {destination}", "{destination} Old Town"),
        ),
        description="Learn the history of {destination} at its best-known sites.",
        tips=("Buy tickets online to skip the queue",),
    ),
    "nature": ActivityTemplate(
        type="leisure",
        duration=150,
        cost_ratio=0.005,
        variants=(
            ("Nature walk in {destination}", "{destination} Botanical Garden"),
            ("Lakeside afternoon in {destination}", "{destination} Lakeside Park"),
        ),
        description="Slow down with some green space.",
    ),
    "art": ActivityTemplate(
        type="sightseeing",
        duration=150,
        cost_ratio=0.01,
        variants=(("{destination} art gallery visit", "{destination} Art Gallery"),),
        description="See the main collections of {destination}.",
    ),
    "nightlife": ActivityTemplate(
        type="entertainment",
        duration=150,
        cost_ratio=0.02,
        variants=(
            ("Evening out in {destination}", "{destination} Old Town Bar Street"),
            ("Night view of {destination}", "{destination} Observation Deck"),
        ),
        description="Experience {destination} after dark.",
    ),
    "outdoor": ActivityTemplate(
        type="leisure",
        duration=240,
        cost_ratio=0.01,
        variants=(("Outdoor adventure in {destination}", "{destination} Country Park"),),
        description="Hiking or cycling for active travelers.",
        tips=("Check the weather forecast the evening before",),
    ),
    "photography": ActivityTemplate(
        type="sightseeing",
        duration=120,
        cost_ratio=0.0,
        variants=(("Photo walk in {destination}", "{destination} Riverside Promenade"),),
        description="Golden-hour photo spots.",
    ),
    "spa": ActivityTemplate(
        type="leisure",
        duration=180,
        cost_ratio=0.03,
        variants=(("Hot spring and spa in {destination}", "{destination} Hot Spring Resort"),),
        description="Relax and recover between sightseeing days.",
    ),
    "theme_park": ActivityTemplate(
        type="entertainment",
        duration=300,
        cost_ratio=0.04,
        variants=(("Theme park day in {destination}", "{destination} Theme Park"),),
        description="A full day of rides and shows.",
        tips=("Arrive at opening time for shorter queues",),
    ),
    "anime": ActivityTemplate(
        type="entertainment",
        duration=180,
        cost_ratio=0.02,
        variants=(("Anime and pop culture district in {destination}", "{destination} Anime Street"),),
        description="Shops and cafes for anime fans.",
    ),
}

# Preference tag (lowercased) -> template key
PREFERENCE_ALIASES: dict[str, str] = {
    "food": "food", "dining": "food", "cuisine": "food", "美食": "food", "餐饮": "food", "小吃": "food",
    "shopping": "shopping", "购物": "shopping",
    "culture": "culture", "history": "culture", "heritage": "culture",
    "历史文化": "culture", "文化": "culture", "历史": "culture",
    "nature": "nature", "scenery": "nature", "自然风光": "nature", "自然": "nature",
    "art": "art", "arts": "art", "museum": "art", "museums": "art", "艺术": "art", "艺术博物馆": "art",
    "nightlife": "nightlife", "夜生活": "nightlife",
    "outdoor": "outdoor", "outdoors": "outdoor", "hiking": "outdoor", "sports": "outdoor", "户外运动": "outdoor",
    "photography": "photography", "摄影": "photography",
    "spa": "spa", "hot spring": "spa", "wellness": "spa", "温泉": "spa",
    "theme park": "theme_park", "theme parks": "theme_park", "主题公园": "theme_park",
    "anime": "anime", "动漫": "anime",
}

# Used when no preference tag matches, and to pad a single matched tag to two
DEFAULT_TEMPLATE_KEYS = ("culture", "food")

ACCOMMODATION_TIERS: dict[str, dict] = {
    "luxury": {
        "name": "{destination} Grand Hotel",
        "rating": 4.8,
        "amenities": ["Free WiFi", "Gym", "Swimming pool", "Spa", "24-hour room service"],
    },
    "comfort": {
        "name": "{destination} Boutique Hotel",
        "rating": 4.3,
        "amenities": ["Free WiFi", "Gym", "Breakfast", "24-hour front desk"],
    },
    "budget": {
        "name": "{destination} Youth Hostel",
        "rating": 3.8,
        "amenities": ["Free WiFi", "24-hour front desk"],
    },
}

GENERAL_TIPS = (
    "Book tickets for popular attractions in advance",
    "Use the metro or buses for getting around the city",
    "Download an offline map and a translation app",
    "Check the weather and pack suitable clothing",
)


def _per_person_cost(request: TripRequest, ratio: float) -> int:
    return math.floor(request.budget * ratio / max(request.travelers, 1))


_PLACE_TEMPLATES: tuple[str, ...] = (
    GENERIC_AIRPORT,
    ACCOMMODATION_ADDRESS,
    *(t.location for t in TRANSPORT_TEMPLATES.values() if "{destination}" in t.location),
    *(location for t in ACTIVITY_TEMPLATES.values() for _, location in t.variants),
)


def _composes_cleanly(place: str) -> bool:
    return bool(place) and all(is_valid_location(t.format(destination=place)) for t in _PLACE_TEMPLATES)


def place_name(request: TripRequest) -> str:
    """
    The destination as it appears inside generated place names.

    Vague wording is stripped ("上海周边" -> "上海", "Paris nearby" -> "Paris") so
    every generated location passes the location validator. When nothing usable
    is left the origin is tried the same way, then DEFAULT_PLACE.
    """
    for candidate in (request.destination, request.origin):
        for name in (candidate.strip(), strip_vague_phrases(candidate)):
            if _composes_cleanly(name):
                return name
    return DEFAULT_PLACE


def destination_profile(place: str) -> DestinationProfile | None:
    lowered = place.strip().lower()
    for profile in DESTINATION_PROFILES:
        if any(alias in lowered for alias in profile.aliases):
            return profile
    return None


def matched_template_keys(preferences: list[str]) -> list[str]:
    """Template keys for the request's preference tags, in tag order, without repeats."""
    keys: list[str] = []
    for tag in preferences:
        key = PREFERENCE_ALIASES.get(str(tag).strip().lower())
        if key and key not in keys:
            keys.append(key)
    return keys


def _template_pool(preferences: list[str]) -> list[str]:
    pool = matched_template_keys(preferences)
    if len(pool) < 2:
        pool.extend(k for k in DEFAULT_TEMPLATE_KEYS if k not in pool)
    return pool


def transport_activity(request: TripRequest) -> Activity:
    template = TRANSPORT_TEMPLATES[request.transport_mode]
    place = place_name(request)
    profile = destination_profile(place)
    fields = {
        "origin": request.origin,
        "destination": place,
        "arrival_airport": profile.airport if profile else GENERIC_AIRPORT.format(destination=place),
    }
    return Activity(
        id="d1-transport",
        time=template.time,
        title=template.title.format(**fields),
        description=template.description.format(**fields),
        location=template.location.format(**fields),
        type="transport",
        duration=template.duration,
        estimated_cost=_per_person_cost(request, template.cost_ratio),
    )


def first_night_accommodation(request: TripRequest) -> Accommodation:
    if request.budget > 8000:
        tier = "luxury"
    elif request.budget > 3000:
        tier = "comfort"
    else:
        tier = "budget"
    tier_info = ACCOMMODATION_TIERS[tier]
    nights = max(request.trip_days - 1, 1)
    place = place_name(request)
    return Accommodation(
        name=tier_info["name"].format(destination=place),
        address=ACCOMMODATION_ADDRESS.format(destination=place),
        estimated_cost=math.floor(request.budget * ACCOMMODATION_BUDGET_SHARE / nights),
        rating=tier_info["rating"],
        amenities=list(tier_info["amenities"]),
    )


def _day_theme(request: TripRequest, day: int) -> str:
    if day == 1:
        return f"Arrival in {request.destination}"
    if day == request.trip_days:
        return f"Final day in {request.destination}"
    return f"Exploring {request.destination}"


def build_fallback_day(request: TripRequest, day: int) -> DayItinerary:
    """Deterministic itinerary for one day (1-based) of the request."""
    pool = _template_pool(request.preferences)
    place = place_name(request)
    profile = destination_profile(place)
    slots = DAY_ONE_SLOTS if day == 1 else DAY_SLOTS

    activities: list[Activity] = []
    if day == 1:
        activities.append(transport_activity(request))

    for index, slot in enumerate(slots):
        position = 2 * (day - 1) + index
        key = pool[position % len(pool)]
        template = ACTIVITY_TEMPLATES[key]
        variants = (profile.landmarks.get(key) if profile else None) or template.variants
        title, location = variants[(position // len(pool)) % len(variants)]
        activities.append(
            Activity(
                id=f"d{day}-a{index + 1}",
                time=slot,
                title=title.format(destination=place),
                description=template.description.format(destination=place),
                location=location.format(destination=place),
                type=template.type,
                duration=template.duration,
                estimated_cost=_per_person_cost(request, template.cost_ratio),
                tips=list(template.tips),
            )
        )

    return DayItinerary(
        day=day,
        date=request.start_date + timedelta(days=day - 1),
        theme=_day_theme(request, day),
        activities=activities,
        accommodation=first_night_accommodation(request) if day == 1 else None,
    )


def generate_fallback_itinerary(request: TripRequest) -> GeneratedItinerary:
    days = [build_fallback_day(request, day) for day in range(1, request.trip_days + 1)]
    focus = ", ".join(request.preferences) if request.preferences else "classic sightseeing"
    return GeneratedItinerary(
        title=f"{request.destination} {request.trip_days}-Day Trip",
        summary=(
            f"A {request.trip_days}-day trip from {request.origin} to {request.destination} "
            f"for {request.travelers} traveler(s), focused on {focus}."
        ),
        days=days,
        total_estimated_cost=sum(day.total_cost for day in days),
        tips=list(GENERAL_TIPS),
    )


__all__ = [
    "TRANSPORT_TEMPLATES",
    "ACTIVITY_TEMPLATES",
    "PREFERENCE_ALIASES",
    "build_fallback_day",
    "generate_fallback_itinerary",
    "matched_template_keys",
    "transport_activity",
    "first_night_accommodation",
    "place_name",
    "destination_profile",
    "DESTINATION_PROFILES",
]
