"""
Static coordinates for well-known places.

Queried before any network call: it is free, it is the only way to resolve
places the remote geocoder cannot serve (most non-domestic landmarks), and it
keeps resolution deterministic for the landmarks listed here.
"""

from __future__ import annotations

from dataclasses import dataclass

from trip_planner.core.logging import setup_logger
from trip_planner.models.geocode import GeocodeResult

logger = setup_logger(__name__)


@dataclass(frozen=True)
class FallbackEntry:
    names: tuple[str, ...]
    lng: float
    lat: float
    address: str
    city: str | None = None

    def to_result(self) -> GeocodeResult:
        return GeocodeResult(lng=self.lng, lat=self.lat, address=self.address, city=self.city)


def _entry(names: tuple[str, ...], lng: float, lat: float, address: str, city: str | None = None) -> FallbackEntry:
    return FallbackEntry(names=tuple(n.lower() for n in names), lng=lng, lat=lat, address=address, city=city)


# Tier (a): landmark names, origin-script and English aliases.
# Order matters for substring matches: specific landmarks before their cities.
LANDMARK_ENTRIES: tuple[FallbackEntry, ...] = (
    # Airports
    _entry(("上海浦东国际机场", "pudong airport", "shanghai pudong international airport"), 121.8057, 31.1434, "Shanghai Pudong International Airport", "Shanghai"),
    _entry(("北京首都国际机场", "beijing capital international airport"), 116.5849, 40.0801, "Beijing Capital International Airport", "Beijing"),
    _entry(("伦敦希思罗机场", "heathrow airport"), -0.4543, 51.4700, "Heathrow Airport", "London"),
    _entry(("巴黎戴高乐机场", "charles de gaulle airport"), 2.5479, 49.0097, "Paris Charles de Gaulle Airport", "Paris"),
    _entry(("东京羽田机场", "羽田机场", "haneda airport"), 139.7798, 35.5494, "Tokyo Haneda Airport", "Tokyo"),
    _entry(("三亚凤凰国际机场", "sanya phoenix international airport"), 109.4122, 18.3029, "Sanya Phoenix International Airport", "Sanya"),
    _entry(("杭州萧山国际机场", "hangzhou xiaoshan international airport"), 120.4344, 30.2295, "Hangzhou Xiaoshan International Airport", "Hangzhou"),
    # China
    _entry(("天安门广场", "tiananmen square"), 116.3977, 39.9031, "Tiananmen Square, Dongcheng District, Beijing", "Beijing"),
    _entry(("故宫", "forbidden city", "palace museum"), 116.3972, 39.9169, "The Palace Museum, Beijing", "Beijing"),
    _entry(("颐和园", "summer palace"), 116.2755, 39.9999, "Summer Palace, Haidian District, Beijing", "Beijing"),
    _entry(("八达岭长城", "badaling great wall"), 116.0163, 40.3580, "Badaling Great Wall, Yanqing District, Beijing", "Beijing"),
    _entry(("外滩", "the bund"), 121.4921, 31.2335, "The Bund, Huangpu District, Shanghai", "Shanghai"),
    _entry(("东方明珠", "oriental pearl tower"), 121.4997, 31.2397, "Oriental Pearl Tower, Pudong, Shanghai", "Shanghai"),
    _entry(("豫园", "yu garden", "yuyuan garden"), 121.4921, 31.2272, "Yu Garden, Huangpu District, Shanghai", "Shanghai"),
    _entry(("西湖", "west lake"), 120.1304, 30.2592, "West Lake, Xihu District, Hangzhou", "Hangzhou"),
    _entry(("灵隐寺", "lingyin temple"), 120.1010, 30.2408, "Lingyin Temple, Hangzhou", "Hangzhou"),
    _entry(("亚龙湾", "yalong bay"), 109.6358, 18.2317, "Yalong Bay, Jiyang District, Sanya", "Sanya"),
    _entry(("天涯海角", "tianya haijiao"), 109.3933, 18.2985, "Tianya Haijiao, Tianya District, Sanya", "Sanya"),
    # London
    _entry(("大英博物馆", "british museum"), -0.1278, 51.5194, "British Museum", "London"),
    _entry(("白金汉宫", "buckingham palace"), -0.1419, 51.5014, "Buckingham Palace", "London"),
    _entry(("伦敦塔桥", "tower bridge"), -0.0754, 51.5055, "Tower Bridge", "London"),
    _entry(("泰晤士河", "river thames"), -0.1276, 51.5074, "River Thames", "London"),
    _entry(("大本钟", "big ben"), -0.1246, 51.4994, "Big Ben", "London"),
    _entry(("伦敦眼", "london eye"), -0.1196, 51.5033, "London Eye", "London"),
    _entry(("特拉法加广场", "trafalgar square"), -0.1278, 51.5080, "Trafalgar Square", "London"),
    _entry(("考文特花园", "covent garden"), -0.1225, 51.5118, "Covent Garden", "London"),
    _entry(("牛津街", "oxford street"), -0.1419, 51.5154, "Oxford Street", "London"),
    _entry(("摄政街", "regent street"), -0.1419, 51.5154, "Regent Street", "London"),
    _entry(("皮卡迪利广场", "piccadilly circus"), -0.1347, 51.5099, "Piccadilly Circus", "London"),
    _entry(("the wolseley",), -0.1419, 51.5094, "The Wolseley Restaurant", "London"),
    # Other landmarks
    _entry(("埃菲尔铁塔", "eiffel tower"), 2.2945, 48.8584, "Champ de Mars, 5 Avenue Anatole France, Paris", "Paris"),
    _entry(("卢浮宫", "louvre"), 2.3376, 48.8606, "Rue de Rivoli, Paris", "Paris"),
    _entry(("凯旋门", "arc de triomphe"), 2.2950, 48.8738, "Place Charles de Gaulle, Paris", "Paris"),
    _entry(("浅草寺", "senso-ji", "sensoji"), 139.7967, 35.7148, "2-3-1 Asakusa, Taito City, Tokyo", "Tokyo"),
    _entry(("东京塔", "tokyo tower"), 139.7454, 35.6586, "4-2-8 Shibakoen, Minato City, Tokyo", "Tokyo"),
    _entry(("涩谷十字路口", "shibuya crossing"), 139.7005, 35.6595, "Shibuya Crossing, Tokyo", "Tokyo"),
    _entry(("银座", "ginza"), 139.7653, 35.6762, "Ginza, Chuo City, Tokyo", "Tokyo"),
    _entry(("筑地市场", "tsukiji"), 139.7707, 35.6654, "5-2-1 Tsukiji, Chuo City, Tokyo", "Tokyo"),
    _entry(("自由女神像", "statue of liberty"), -74.0445, 40.6892, "Liberty Island, New York", "New York"),
    _entry(("时代广场", "times square"), -73.9855, 40.7580, "Times Square, Manhattan, New York", "New York"),
    _entry(("悉尼歌剧院", "sydney opera house"), 151.2153, -33.8568, "Bennelong Point, Sydney", "Sydney"),
    _entry(("罗马斗兽场", "colosseum"), 12.4922, 41.8902, "Piazza del Colosseo, Rome", "Rome"),
    _entry(("勃兰登堡门", "brandenburg gate"), 13.3777, 52.5163, "Pariser Platz, Berlin", "Berlin"),
    # City centroids last
    _entry(("伦敦", "london"), -0.1276, 51.5074, "London, UK", "London"),
    _entry(("巴黎", "paris"), 2.3522, 48.8566, "Paris, France", "Paris"),
    _entry(("东京", "tokyo"), 139.6917, 35.6895, "Tokyo, Japan", "Tokyo"),
    _entry(("纽约", "new york"), -74.0060, 40.7128, "New York, USA", "New York"),
)

# Tier (b): keywords tried only when no landmark entry matches
KEYWORD_ENTRIES: tuple[tuple[str, FallbackEntry], ...] = (
    ("heathrow", _entry(("heathrow",), -0.4543, 51.4700, "Heathrow Airport", "London")),
    ("museum", _entry(("museum",), -0.1278, 51.5194, "British Museum", "London")),
    ("palace", _entry(("palace",), -0.1419, 51.5014, "Buckingham Palace", "London")),
    ("bridge", _entry(("bridge",), -0.0754, 51.5055, "Tower Bridge", "London")),
    ("ben", _entry(("ben",), -0.1246, 51.4994, "Big Ben", "London")),
    ("eye", _entry(("eye",), -0.1196, 51.5033, "London Eye", "London")),
    ("square", _entry(("square",), -0.1278, 51.5080, "Trafalgar Square", "London")),
    ("garden", _entry(("garden",), -0.1225, 51.5118, "Covent Garden", "London")),
    ("oxford", _entry(("oxford",), -0.1419, 51.5154, "Oxford Street", "London")),
    ("piccadilly", _entry(("piccadilly",), -0.1347, 51.5099, "Piccadilly Circus", "London")),
    ("wolseley", _entry(("wolseley",), -0.1419, 51.5094, "The Wolseley Restaurant", "London")),
)


# A keyword match is dropped when the query or the city hint names another city
CITY_ALIASES: dict[str, tuple[str, ...]] = {
    "London": ("london", "伦敦"),
    "Paris": ("paris", "巴黎"),
    "Tokyo": ("tokyo", "东京"),
    "New York": ("new york", "纽约"),
    "Sydney": ("sydney", "悉尼"),
    "Rome": ("rome", "罗马"),
    "Berlin": ("berlin", "柏林"),
    "Beijing": ("beijing", "北京"),
    "Shanghai": ("shanghai", "上海"),
    "Hangzhou": ("hangzhou", "杭州"),
    "Suzhou": ("suzhou", "苏州"),
    "Sanya": ("sanya", "三亚"),
    "Chengdu": ("chengdu", "成都"),
    "Guangzhou": ("guangzhou", "广州"),
    "Shenzhen": ("shenzhen", "深圳"),
    "Hong Kong": ("hong kong", "香港"),
}


def mentioned_city(text: str) -> str | None:
    lowered = text.lower()
    for city, aliases in CITY_ALIASES.items():
        if any(alias in lowered for alias in aliases):
            return city
    return None


def _names_city(text: str, city: str) -> bool:
    lowered = text.strip().lower()
    return any(alias in lowered for alias in CITY_ALIASES.get(city, (city.lower(),)))


class FallbackCoordinateTable:
    """
    Two-tier name → coordinate lookup. Absence is None, never an error.

    The optional city hint only constrains the keyword tier: a keyword hit is
    kept when neither the hint nor the query points at a different city.
    """

    def __init__(
        self,
        landmarks: tuple[FallbackEntry, ...] = LANDMARK_ENTRIES,
        keywords: tuple[tuple[str, FallbackEntry], ...] = KEYWORD_ENTRIES,
    ) -> None:
        self._landmarks = landmarks
        self._keywords = keywords

    def lookup(self, address: str | None, city_hint: str | None = None) -> GeocodeResult | None:
        if not address or not isinstance(address, str):
            return None
        query = address.strip().lower()
        if not query:
            return None

        entry = self._match_landmark(query) or self._match_keyword(query, city_hint)
        if entry is None:
            return None
        logger.debug(f"[fallback_coordinates] '{address}' -> {entry.address}")
        return entry.to_result()

    def _match_landmark(self, query: str) -> FallbackEntry | None:
        for entry in self._landmarks:
            if query in entry.names:
                return entry
        allow_partial_query = len(query) >= 3
        for entry in self._landmarks:
            for name in entry.names:
                if name in query or (allow_partial_query and query in name):
                    return entry
        return None

    def _match_keyword(self, query: str, city_hint: str | None) -> FallbackEntry | None:
        for keyword, entry in self._keywords:
            if keyword in query and not self._contradicts(entry, query, city_hint):
                return entry
        return None

    @staticmethod
    def _contradicts(entry: FallbackEntry, query: str, city_hint: str | None) -> bool:
        if entry.city is None:
            return False
        if city_hint and city_hint.strip() and not _names_city(city_hint, entry.city):
            return True
        named = mentioned_city(query)
        return named is not None and named != entry.city

    def __contains__(self, address: str) -> bool:
        return self.lookup(address) is not None


DEFAULT_FALLBACK_TABLE = FallbackCoordinateTable()


__all__ = [
    "FallbackEntry",
    "FallbackCoordinateTable",
    "DEFAULT_FALLBACK_TABLE",
    "LANDMARK_ENTRIES",
    "KEYWORD_ENTRIES",
    "CITY_ALIASES",
    "mentioned_city",
]
