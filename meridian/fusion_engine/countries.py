"""Meridian — Curated country configuration.

Baseline geopolitical risk (0-50) and event significance multipliers for
countries that get hand-tuned scoring. Multipliers below 0.7 mark
"high-volume" countries whose raw event counts are log-scaled.

Iteration order matters: keyword attribution takes the first curated
country whose keyword matches, so e.g. Ukraine must precede the UK.
"""

DEFAULT_BASELINE_RISK = 15
DEFAULT_EVENT_MULTIPLIER = 1.0

CURATED_COUNTRIES: dict[str, dict] = {
    "US": {
        "name": "United States",
        "scoring_keywords": ["united states", "usa", "america", "washington", "biden", "trump", "pentagon"],
        "search_aliases": ["united states", "american", "washington", "pentagon", "white house", "usa", "america", "biden", "trump"],
        "baseline_risk": 5,
        "event_multiplier": 0.3,
    },
    "RU": {
        "name": "Russia",
        "scoring_keywords": ["russia", "moscow", "kremlin", "putin"],
        "search_aliases": ["russia", "russian", "moscow", "kremlin", "putin", "ukraine war"],
        "baseline_risk": 35,
        "event_multiplier": 2.0,
    },
    "CN": {
        "name": "China",
        "scoring_keywords": ["china", "beijing", "xi jinping", "prc"],
        "search_aliases": ["china", "chinese", "beijing", "taiwan strait", "south china sea", "xi jinping"],
        "baseline_risk": 25,
        "event_multiplier": 2.5,
    },
    "UA": {
        "name": "Ukraine",
        "scoring_keywords": ["ukraine", "kyiv", "zelensky", "donbas"],
        "search_aliases": ["ukraine", "ukrainian", "kyiv", "zelensky", "zelenskyy"],
        "baseline_risk": 50,
        "event_multiplier": 0.8,
    },
    "IR": {
        "name": "Iran",
        "scoring_keywords": ["iran", "tehran", "khamenei", "irgc"],
        "search_aliases": ["iran", "iranian", "tehran", "persian", "irgc", "khamenei"],
        "baseline_risk": 40,
        "event_multiplier": 2.0,
    },
    "IL": {
        "name": "Israel",
        "scoring_keywords": ["israel", "tel aviv", "netanyahu", "idf", "gaza"],
        "search_aliases": ["israel", "israeli", "gaza", "hamas", "hezbollah", "netanyahu", "idf", "west bank", "tel aviv", "jerusalem"],
        "baseline_risk": 45,
        "event_multiplier": 0.7,
    },
    "TW": {
        "name": "Taiwan",
        "scoring_keywords": ["taiwan", "taipei"],
        "search_aliases": ["taiwan", "taiwanese", "taipei"],
        "baseline_risk": 30,
        "event_multiplier": 1.5,
    },
    "KP": {
        "name": "North Korea",
        "scoring_keywords": ["north korea", "pyongyang", "kim jong"],
        "search_aliases": ["north korea", "pyongyang", "kim jong"],
        "baseline_risk": 45,
        "event_multiplier": 3.0,
    },
    "SA": {
        "name": "Saudi Arabia",
        "scoring_keywords": ["saudi arabia", "riyadh", "mbs"],
        "search_aliases": ["saudi", "riyadh", "mbs"],
        "baseline_risk": 20,
        "event_multiplier": 2.0,
    },
    "TR": {
        "name": "Turkey",
        "scoring_keywords": ["turkey", "ankara", "erdogan"],
        "search_aliases": ["turkey", "turkish", "ankara", "erdogan", "türkiye"],
        "baseline_risk": 25,
        "event_multiplier": 1.2,
    },
    "PL": {
        "name": "Poland",
        "scoring_keywords": ["poland", "warsaw"],
        "search_aliases": ["poland", "polish", "warsaw"],
        "baseline_risk": 10,
        "event_multiplier": 0.8,
    },
    "DE": {
        "name": "Germany",
        "scoring_keywords": ["germany", "berlin"],
        "search_aliases": ["germany", "german", "berlin"],
        "baseline_risk": 5,
        "event_multiplier": 0.5,
    },
    "FR": {
        "name": "France",
        "scoring_keywords": ["france", "paris", "macron"],
        "search_aliases": ["france", "french", "paris", "macron"],
        "baseline_risk": 10,
        "event_multiplier": 0.6,
    },
    "GB": {
        "name": "United Kingdom",
        "scoring_keywords": ["britain", "uk", "london", "starmer"],
        "search_aliases": ["united kingdom", "british", "london", "uk "],
        "baseline_risk": 5,
        "event_multiplier": 0.5,
    },
    "IN": {
        "name": "India",
        "scoring_keywords": ["india", "delhi", "modi"],
        "search_aliases": ["india", "indian", "new delhi", "modi"],
        "baseline_risk": 20,
        "event_multiplier": 0.8,
    },
    "PK": {
        "name": "Pakistan",
        "scoring_keywords": ["pakistan", "islamabad"],
        "search_aliases": ["pakistan", "pakistani", "islamabad"],
        "baseline_risk": 35,
        "event_multiplier": 1.5,
    },
    "SY": {
        "name": "Syria",
        "scoring_keywords": ["syria", "damascus", "assad"],
        "search_aliases": ["syria", "syrian", "damascus", "assad"],
        "baseline_risk": 50,
        "event_multiplier": 0.7,
    },
    "YE": {
        "name": "Yemen",
        "scoring_keywords": ["yemen", "sanaa", "houthi"],
        "search_aliases": ["yemen", "houthi", "sanaa"],
        "baseline_risk": 50,
        "event_multiplier": 0.7,
    },
    "MM": {
        "name": "Myanmar",
        "scoring_keywords": ["myanmar", "burma", "rangoon"],
        "search_aliases": ["myanmar", "burmese", "burma", "rangoon"],
        "baseline_risk": 45,
        "event_multiplier": 1.8,
    },
    "VE": {
        "name": "Venezuela",
        "scoring_keywords": ["venezuela", "caracas", "maduro"],
        "search_aliases": ["venezuela", "venezuelan", "caracas", "maduro"],
        "baseline_risk": 40,
        "event_multiplier": 1.8,
    },
    "BR": {
        "name": "Brazil",
        "scoring_keywords": ["brazil", "brasilia", "lula", "bolsonaro"],
        "search_aliases": ["brazil", "brazilian", "brasilia", "lula", "bolsonaro"],
        "baseline_risk": 15,
        "event_multiplier": 0.6,
    },
    "AE": {
        "name": "United Arab Emirates",
        "scoring_keywords": ["uae", "emirates", "dubai", "abu dhabi"],
        "search_aliases": ["united arab emirates", "uae", "emirati", "dubai", "abu dhabi"],
        "baseline_risk": 10,
        "event_multiplier": 1.5,
    },
    "MX": {
        "name": "Mexico",
        "scoring_keywords": ["mexico", "mexican", "amlo", "sheinbaum", "cartel", "sinaloa", "jalisco", "cjng", "tijuana", "juarez", "sedena"],
        "search_aliases": ["mexico", "mexican", "amlo", "sheinbaum", "cartel", "sinaloa", "jalisco", "cjng", "tijuana", "juarez", "sedena", "fentanyl", "narco"],
        "baseline_risk": 35,
        "event_multiplier": 1.0,
    },
    "KR": {
        "name": "South Korea",
        "scoring_keywords": ["south korea", "seoul"],
        "search_aliases": ["south korea", "seoul"],
        "baseline_risk": 15,
        "event_multiplier": 1.0,
    },
    "IQ": {
        "name": "Iraq",
        "scoring_keywords": ["iraq", "iraqi", "baghdad"],
        "search_aliases": ["iraq", "iraqi", "baghdad"],
        "baseline_risk": 35,
        "event_multiplier": 1.0,
    },
    "AF": {
        "name": "Afghanistan",
        "scoring_keywords": ["afghanistan", "afghan", "kabul", "taliban"],
        "search_aliases": ["afghanistan", "afghan", "kabul", "taliban"],
        "baseline_risk": 15,
        "event_multiplier": 1.0,
    },
    "LB": {
        "name": "Lebanon",
        "scoring_keywords": ["lebanon", "lebanese", "beirut"],
        "search_aliases": ["lebanon", "lebanese", "beirut"],
        "baseline_risk": 15,
        "event_multiplier": 1.0,
    },
    "EG": {
        "name": "Egypt",
        "scoring_keywords": ["egypt", "egyptian", "cairo", "suez"],
        "search_aliases": ["egypt", "egyptian", "cairo", "suez"],
        "baseline_risk": 15,
        "event_multiplier": 1.0,
    },
    "JP": {
        "name": "Japan",
        "scoring_keywords": ["japan", "japanese", "tokyo"],
        "search_aliases": ["japan", "japanese", "tokyo"],
        "baseline_risk": 15,
        "event_multiplier": 1.0,
    },
    "QA": {
        "name": "Qatar",
        "scoring_keywords": ["qatar", "qatari", "doha"],
        "search_aliases": ["qatar", "qatari", "doha"],
        "baseline_risk": 15,
        "event_multiplier": 1.0,
    },
}

# Hotspot id -> associated country code(s)
HOTSPOT_COUNTRY_MAP: dict[str, str | list[str]] = {
    "tehran": "IR", "moscow": "RU", "beijing": "CN", "kyiv": "UA", "taipei": "TW",
    "telaviv": "IL", "pyongyang": "KP", "sanaa": "YE", "riyadh": "SA", "ankara": "TR",
    "damascus": "SY", "caracas": "VE", "dc": "US", "london": "GB",
    "brussels": "BE", "baghdad": "IQ", "beirut": "LB", "doha": "QA", "abudhabi": "AE",
    "mexico": "MX", "nuuk": "GL", "sahel": ["ML", "NE", "BF"], "haiti": "HT",
    "horn_africa": ["ET", "SO", "SD"], "silicon_valley": "US", "wall_street": "US",
    "houston": "US", "cairo": "EG",
}


def get_baseline_risk(code: str) -> float:
    cfg = CURATED_COUNTRIES.get(code)
    return cfg["baseline_risk"] if cfg else DEFAULT_BASELINE_RISK


def get_event_multiplier(code: str) -> float:
    cfg = CURATED_COUNTRIES.get(code)
    return cfg["event_multiplier"] if cfg else DEFAULT_EVENT_MULTIPLIER


def get_hotspot_countries(hotspot_id: str) -> list[str]:
    val = HOTSPOT_COUNTRY_MAP.get(hotspot_id)
    if not val:
        return []
    return val if isinstance(val, list) else [val]
