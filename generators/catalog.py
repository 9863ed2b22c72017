"""Fixed attribute catalogs: regions, countries, cities, devices, error codes."""

from dataclasses import dataclass


@dataclass(frozen=True)
class City:
    name: str
    latitude: float
    longitude: float
    postal_code: str
    subdivision_code: str
    subdivision_name: str


@dataclass(frozen=True)
class Country:
    code: str
    name: str
    continent_code: str
    continent_name: str
    timezone: str
    cities: tuple[City, ...]


@dataclass(frozen=True)
class RegionProfile:
    code: str
    name: str
    countries: tuple[Country, ...]
    country_weights: tuple[float, ...]


INDIA = Country(
    code="IN",
    name="India",
    continent_code="AS",
    continent_name="Asia",
    timezone="Asia/Kolkata",
    cities=(
        City("Mumbai", 19.076, 72.8777, "400001", "MH", "Maharashtra"),
        City("Delhi", 28.7041, 77.1025, "110001", "DL", "Delhi"),
        City("Bengaluru", 12.9716, 77.5946, "560001", "KA", "Karnataka"),
        City("Hyderabad", 17.385, 78.4867, "500001", "TG", "Telangana"),
        City("Chennai", 13.0827, 80.2707, "600001", "TN", "Tamil Nadu"),
        City("Kolkata", 22.5726, 88.3639, "700001", "WB", "West Bengal"),
        City("Pune", 18.5204, 73.8567, "411001", "MH", "Maharashtra"),
        City("Ahmedabad", 23.0225, 72.5714, "380001", "GJ", "Gujarat"),
        City("Jaipur", 26.9124, 75.7873, "302001", "RJ", "Rajasthan"),
        City("Lucknow", 26.8467, 80.9462, "226001", "UP", "Uttar Pradesh"),
        City("Indore", 22.7196, 75.8577, "452001", "MP", "Madhya Pradesh"),
        City("Nagpur", 21.1458, 79.0882, "440001", "MH", "Maharashtra"),
        City("Surat", 21.1702, 72.8311, "395003", "GJ", "Gujarat"),
        City("Patna", 25.5941, 85.1376, "800001", "BR", "Bihar"),
        City("Coimbatore", 11.0168, 76.9558, "641001", "TN", "Tamil Nadu"),
        City("Visakhapatnam", 17.6868, 83.2185, "530001", "AP", "Andhra Pradesh"),
        City("Bhopal", 23.2599, 77.4126, "462001", "MP", "Madhya Pradesh"),
        City("Chandigarh", 30.7333, 76.7794, "160001", "CH", "Chandigarh"),
        City("Vijayawada", 16.5062, 80.648, "520001", "AP", "Andhra Pradesh"),
        City("Thiruvananthapuram", 8.5241, 76.9366, "695001", "KL", "Kerala"),
    ),
)

UNITED_STATES = Country(
    code="US",
    name="United States",
    continent_code="NA",
    continent_name="North America",
    timezone="America/New_York",
    cities=(
        City("New York", 40.7128, -74.006, "10001", "NY", "New York"),
        City("Los Angeles", 34.0522, -118.2437, "90001", "CA", "California"),
        City("Chicago", 41.8781, -87.6298, "60601", "IL", "Illinois"),
        City("Houston", 29.7604, -95.3698, "77001", "TX", "Texas"),
        City("Phoenix", 33.4484, -112.074, "85001", "AZ", "Arizona"),
        City("Philadelphia", 39.9526, -75.1652, "19019", "PA", "Pennsylvania"),
        City("San Antonio", 29.4241, -98.4936, "78201", "TX", "Texas"),
        City("San Diego", 32.7157, -117.1611, "92101", "CA", "California"),
        City("Dallas", 32.7767, -96.797, "75201", "TX", "Texas"),
        City("San Jose", 37.3382, -121.8863, "95113", "CA", "California"),
    ),
)

UAE = Country(
    code="AE",
    name="United Arab Emirates",
    continent_code="AS",
    continent_name="Asia",
    timezone="Asia/Dubai",
    cities=(
        City("Dubai", 25.2048, 55.2708, "00000", "DU", "Dubai"),
        City("Abu Dhabi", 24.4539, 54.3773, "00000", "AZ", "Abu Dhabi"),
        City("Sharjah", 25.3463, 55.4209, "00000", "SH", "Sharjah"),
    ),
)


def _european(code, name, timezone, *cities):
    return Country(
        code=code,
        name=name,
        continent_code="EU",
        continent_name="Europe",
        timezone=timezone,
        cities=tuple(cities),
    )


EUROPE_COUNTRIES = (
    _european(
        "GB",
        "United Kingdom",
        "Europe/London",
        City("London", 51.5072, -0.1276, "EC1A", "ENG", "England"),
        City("Manchester", 53.4808, -2.2426, "M1", "ENG", "England"),
    ),
    _european(
        "DE",
        "Germany",
        "Europe/Berlin",
        City("Berlin", 52.52, 13.405, "10115", "BE", "Berlin"),
        City("Munich", 48.1351, 11.582, "80331", "BY", "Bavaria"),
    ),
    _european(
        "FR",
        "France",
        "Europe/Paris",
        City("Paris", 48.8566, 2.3522, "75001", "IDF", "Île-de-France"),
        City("Lyon", 45.764, 4.8357, "69001", "ARA", "Auvergne-Rhône-Alpes"),
    ),
    _european(
        "NL",
        "Netherlands",
        "Europe/Amsterdam",
        City("Amsterdam", 52.3676, 4.9041, "1011", "NH", "North Holland"),
    ),
    _european(
        "SE",
        "Sweden",
        "Europe/Stockholm",
        City("Stockholm", 59.3293, 18.0686, "111 20", "AB", "Stockholm"),
    ),
    _european(
        "ES",
        "Spain",
        "Europe/Madrid",
        City("Madrid", 40.4168, -3.7038, "28001", "MD", "Madrid"),
        City("Barcelona", 41.3874, 2.1686, "08001", "CT", "Catalonia"),
    ),
    _european(
        "IT",
        "Italy",
        "Europe/Rome",
        City("Rome", 41.9028, 12.4964, "00184", "LAZ", "Lazio"),
        City("Milan", 45.4642, 9.19, "20121", "LOM", "Lombardy"),
    ),
    _european(
        "CH",
        "Switzerland",
        "Europe/Zurich",
        City("Zurich", 47.3769, 8.5417, "8001", "ZH", "Zurich"),
    ),
    _european(
        "NO",
        "Norway",
        "Europe/Oslo",
        City("Oslo", 59.9139, 10.7522, "0150", "03", "Oslo"),
    ),
    _european(
        "FI",
        "Finland",
        "Europe/Helsinki",
        City("Helsinki", 60.1699, 24.9384, "00100", "18", "Uusimaa"),
    ),
    _european(
        "DK",
        "Denmark",
        "Europe/Copenhagen",
        City("Copenhagen", 55.6761, 12.5683, "1050", "84", "Capital Region"),
    ),
)

# Share of European signups per country, same order as EUROPE_COUNTRIES
EUROPE_COUNTRY_WEIGHTS = (25, 20, 15, 10, 8, 6, 5, 4, 3, 2, 2)

REGIONS = {
    "IN": RegionProfile("IN", "India", (INDIA,), (1.0,)),
    "US": RegionProfile("US", "USA", (UNITED_STATES,), (1.0,)),
    "EU": RegionProfile("EU", "Europe", EUROPE_COUNTRIES, EUROPE_COUNTRY_WEIGHTS),
    "AE": RegionProfile("AE", "UAE", (UAE,), (1.0,)),
}

REGION_ALIASES = {
    "india": "IN",
    "in": "IN",
    "usa": "US",
    "us": "US",
    "united states": "US",
    "europe": "EU",
    "eu": "EU",
    "uae": "AE",
    "ae": "AE",
    "united arab emirates": "AE",
}


def normalize_region(label: str) -> str:
    try:
        return REGION_ALIASES[label.strip().lower()]
    except KeyError:
        raise KeyError(f"Unknown region: {label}. Use one of: {sorted(REGIONS)}") from None


OS_CHOICES = (("Windows", "10"), ("macOS", "14"), ("Ubuntu", "24.04"))
BROWSER_CHOICES = (("Chrome", "137"), ("Firefox", "128"), ("Edge", "136"))
INITIAL_PATHS = ("/home/dashboard", "/home/billing", "/signup")

SUBSCRIPTION_TIERS = ("Pro", "Premium", "Enterprise")
FREE_TIER = "Free"

# Engagement boost applied to login weights per acquisition source
SOURCE_ENGAGEMENT = {
    "github": 1.2,
    "referral": 1.3,
    "hugging_face": 1.1,
}

JOB_ERRORS = (
    ("STORAGE_FULL", "Insufficient storage space"),
    ("NETWORK_TIMEOUT", "Network timeout during processing"),
    ("INVALID_FORMAT", "Invalid data format detected"),
    ("MEMORY_ERROR", "Memory allocation failed"),
    ("QUOTA_EXCEEDED", "Processing quota exceeded"),
    ("AUTH_EXPIRED", "Authentication token expired"),
    ("DB_CONNECTION_LOST", "Database connection lost"),
    ("FILE_CORRUPTED", "File corruption detected"),
)


def user_agent(os_name: str, os_version: str, browser: str, browser_version: str) -> str:
    platform = {
        "Windows": f"Windows NT {os_version}.0; Win64; x64",
        "macOS": "Macintosh; Intel Mac OS X 10_15_7",
        "Ubuntu": "X11; Ubuntu; Linux x86_64",
    }.get(os_name, "X11; Linux x86_64")

    if browser == "Firefox":
        return f"Mozilla/5.0 ({platform}; rv:{browser_version}.0) Gecko/20100101 Firefox/{browser_version}.0"
    engine = f"Mozilla/5.0 ({platform}) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/{browser_version}.0.0.0 Safari/537.36"
    if browser == "Edge":
        return f"{engine} Edg/{browser_version}.0.0.0"
    return engine
