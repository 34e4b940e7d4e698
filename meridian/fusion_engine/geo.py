"""Meridian — Named geographic reference points.

Intel hotspots (capitals / flashpoint cities), active conflict zone
centres and strategic maritime chokepoints, plus the haversine helper
used to measure proximity to them.

Each conflict zone lists the countries whose hotspot activity it boosts:
the Gaza zone maps to Israel and Palestine (IL, PS) and the Sudan zone
to Sudan (SD), not to Iran or Saudi Arabia.
"""

import math

EARTH_RADIUS_KM = 6371.0

INTEL_HOTSPOTS: list[dict] = [
    {"id": "tehran",         "name": "Tehran",             "lat": 35.69, "lon": 51.39},
    {"id": "moscow",         "name": "Moscow",             "lat": 55.76, "lon": 37.62},
    {"id": "beijing",        "name": "Beijing",            "lat": 39.90, "lon": 116.41},
    {"id": "kyiv",           "name": "Kyiv",               "lat": 50.45, "lon": 30.52},
    {"id": "taipei",         "name": "Taipei",             "lat": 25.03, "lon": 121.57},
    {"id": "telaviv",        "name": "Tel Aviv",           "lat": 32.09, "lon": 34.78},
    {"id": "pyongyang",      "name": "Pyongyang",          "lat": 39.04, "lon": 125.76},
    {"id": "sanaa",          "name": "Sanaa",              "lat": 15.37, "lon": 44.19},
    {"id": "riyadh",         "name": "Riyadh",             "lat": 24.71, "lon": 46.68},
    {"id": "ankara",         "name": "Ankara",             "lat": 39.93, "lon": 32.86},
    {"id": "damascus",       "name": "Damascus",           "lat": 33.51, "lon": 36.29},
    {"id": "caracas",        "name": "Caracas",            "lat": 10.48, "lon": -66.90},
    {"id": "dc",             "name": "Washington DC",      "lat": 38.90, "lon": -77.04},
    {"id": "london",         "name": "London",             "lat": 51.51, "lon": -0.13},
    {"id": "brussels",       "name": "Brussels",           "lat": 50.85, "lon": 4.35},
    {"id": "baghdad",        "name": "Baghdad",            "lat": 33.31, "lon": 44.36},
    {"id": "beirut",         "name": "Beirut",             "lat": 33.89, "lon": 35.50},
    {"id": "doha",           "name": "Doha",               "lat": 25.29, "lon": 51.53},
    {"id": "abudhabi",       "name": "Abu Dhabi",          "lat": 24.45, "lon": 54.38},
    {"id": "mexico",         "name": "Mexico City",        "lat": 19.43, "lon": -99.13},
    {"id": "nuuk",           "name": "Nuuk",               "lat": 64.18, "lon": -51.72},
    {"id": "sahel",          "name": "Sahel",              "lat": 14.00, "lon": -1.00},
    {"id": "haiti",          "name": "Port-au-Prince",     "lat": 18.54, "lon": -72.34},
    {"id": "horn_africa",    "name": "Horn of Africa",     "lat": 8.00,  "lon": 45.00},
    {"id": "silicon_valley", "name": "Silicon Valley",     "lat": 37.39, "lon": -122.08},
    {"id": "wall_street",    "name": "Wall Street",        "lat": 40.71, "lon": -74.01},
    {"id": "houston",        "name": "Houston",            "lat": 29.76, "lon": -95.37},
    {"id": "cairo",          "name": "Cairo",              "lat": 30.04, "lon": 31.24},
]

CONFLICT_ZONES: list[dict] = [
    {"id": "ukraine", "name": "Ukraine Conflict",  "lat": 48.0, "lon": 37.5, "countries": ["UA", "RU"]},
    {"id": "gaza",    "name": "Gaza Conflict",     "lat": 31.4, "lon": 34.4, "countries": ["IL", "PS"]},
    {"id": "sudan",   "name": "Sudan Civil War",   "lat": 15.5, "lon": 32.5, "countries": ["SD"]},
    {"id": "myanmar", "name": "Myanmar Civil War", "lat": 21.0, "lon": 96.0, "countries": ["MM"]},
]

STRATEGIC_WATERWAYS: list[dict] = [
    {"id": "taiwan_strait", "name": "Taiwan Strait",     "lat": 24.0, "lon": 119.5, "countries": ["TW", "CN"]},
    {"id": "hormuz_strait", "name": "Strait of Hormuz",  "lat": 26.6, "lon": 56.3,  "countries": ["IR", "SA"]},
    {"id": "bab_el_mandeb", "name": "Bab el-Mandeb",     "lat": 12.6, "lon": 43.3,  "countries": ["YE", "SA"]},
    {"id": "suez",          "name": "Suez Canal",        "lat": 30.5, "lon": 32.3,  "countries": ["IL"]},
    {"id": "bosphorus",     "name": "Bosphorus",         "lat": 41.1, "lon": 29.0,  "countries": ["TR"]},
    {"id": "malacca",       "name": "Strait of Malacca", "lat": 2.5,  "lon": 101.5, "countries": []},
    {"id": "panama",        "name": "Panama Canal",      "lat": 9.1,  "lon": -79.7, "countries": []},
]


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
